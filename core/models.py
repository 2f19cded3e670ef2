from django.db import models

from .choices import Gender


class Person(models.Model):
    """
    Abstract Person model shared by staff records.
    """
    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    middle_name = models.CharField(max_length=50, blank=True, default='')

    gender = models.CharField(
        max_length=1,
        choices=Gender.choices,
        default=Gender.MALE
    )
    date_of_birth = models.DateField(null=True, blank=True)

    # Contact
    phone_number = models.CharField(max_length=17, blank=True)
    email = models.EmailField(blank=True, null=True)

    class Meta:
        abstract = True

    def __str__(self):
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(filter(None, parts))


class AcademicYear(models.Model):
    """
    Represents an academic year, identified by its calendar year (e.g. 2025).
    """
    year = models.PositiveIntegerField(unique=True)
    name = models.CharField(
        max_length=50,
        blank=True,
        help_text="e.g., 2025 Academic Year"
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    is_current = models.BooleanField(
        default=False,
        help_text="Only one academic year can be current at a time"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year']
        verbose_name = "Academic Year"
        verbose_name_plural = "Academic Years"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.name:
            self.name = f"{self.year} Academic Year"
        # Ensure only one academic year is current
        if self.is_current:
            AcademicYear.objects.filter(is_current=True).exclude(pk=self.pk).update(is_current=False)
        super().save(*args, **kwargs)

    @classmethod
    def get_current(cls):
        """Get the current academic year."""
        return cls.objects.filter(is_current=True).first()

    def get_next(self):
        """The academic year immediately following this one, if created."""
        return AcademicYear.objects.filter(year__gt=self.year).order_by('year').first()

    def to_dict(self):
        return {
            'id': self.pk,
            'year': self.year,
            'name': self.name,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'is_current': self.is_current,
        }
