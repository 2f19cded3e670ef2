from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    """
    Custom manager to easily create different types of school users.
    """

    def create_user(self, email, password=None, **extra_fields):
        """Base method for creating a generic user."""
        if not email:
            raise ValueError(_('The Email must be set'))
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """Create a Superuser (Platform Owner)."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError(_('Superuser must have is_staff=True.'))
        if extra_fields.get('is_superuser') is not True:
            raise ValueError(_('Superuser must have is_superuser=True.'))

        return self.create_user(email, password, **extra_fields)

    # --- ROLE SPECIFIC HELPERS ---

    def create_director(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', User.Role.DIRECTOR)
        return self.create_user(email, password, **extra_fields)

    def create_headteacher(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', User.Role.HEADTEACHER)
        return self.create_user(email, password, **extra_fields)

    def create_bursar(self, email, password=None, **extra_fields):
        extra_fields.setdefault('role', User.Role.BURSAR)
        return self.create_user(email, password, **extra_fields)

    def create_teacher(self, email, password=None, **extra_fields):
        """Create a Teacher (subject instructor or class teacher)."""
        extra_fields.setdefault('role', User.Role.TEACHER)
        return self.create_user(email, password, **extra_fields)


class User(AbstractUser):
    class Role(models.TextChoices):
        DIRECTOR = 'director', _('Director')
        HEADTEACHER = 'headteacher', _('Head Teacher')
        BURSAR = 'bursar', _('Bursar')
        CLASS_TEACHER = 'classteacher', _('Class Teacher')
        TEACHER = 'teacher', _('Teacher')

    username = None
    email = models.EmailField(_('email address'), unique=True)

    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.TEACHER
    )
    must_change_password = models.BooleanField(default=False)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    objects = UserManager()

    def __str__(self):
        return self.email

    @property
    def is_school_admin(self):
        """Directors and head teachers manage classes and promotions."""
        return self.role in (self.Role.DIRECTOR, self.Role.HEADTEACHER)

    @property
    def is_teacher(self):
        return self.role in (self.Role.CLASS_TEACHER, self.Role.TEACHER)

    @property
    def role_label(self):
        """Helper to get a string representation of the user's role"""
        if self.is_superuser: return "Super Admin"
        return self.get_role_display()
