import uuid

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _
from django.utils import timezone

from core.models import Person
from academics.taxonomy import generate_initials


class Teacher(Person):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        INACTIVE = 'inactive', _('Inactive')
        PENDING = 'pending', _('Pending')

    # Link to User account
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='teacher_profile',
        help_text="Associated user account for login"
    )

    staff_id = models.CharField(max_length=20, unique=True, help_text="Unique Employee ID")
    qualification = models.CharField(max_length=100, blank=True, help_text="e.g. B.Ed Mathematics")
    subject_specialization = models.CharField(max_length=100, blank=True, help_text="e.g. Mathematics, Physics")
    employment_date = models.DateField(default=timezone.now)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['first_name', 'last_name']

    @property
    def full_name(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(filter(None, parts))

    @property
    def initials(self):
        return generate_initials(self.first_name, self.last_name)

    def __str__(self):
        return self.full_name

    def to_dict(self):
        return {
            'id': str(self.pk),
            'staff_id': self.staff_id,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'initials': self.initials,
            'email': self.email,
            'phone_number': self.phone_number,
            'qualification': self.qualification,
            'subject_specialization': self.subject_specialization,
            'status': self.status,
        }
