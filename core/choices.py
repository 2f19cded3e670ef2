from django.db import models
from django.utils.translation import gettext_lazy as _


class Gender(models.TextChoices):
    MALE = 'M', _('Male')
    FEMALE = 'F', _('Female')
    OTHER = 'O', _('Other')


class Term(models.TextChoices):
    TERM_1 = 'T1', _('Term 1')
    TERM_2 = 'T2', _('Term 2')
    TERM_3 = 'T3', _('Term 3')

    @classmethod
    def parse(cls, value):
        """Accept 'T2', 't2' or 2; return None for anything else."""
        if value is None:
            return None
        value = str(value).strip().upper()
        if value.isdigit():
            value = f'T{value}'
        try:
            return cls(value)
        except ValueError:
            return None
