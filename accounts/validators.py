import re

from django.core.exceptions import ValidationError
from django.utils.translation import gettext as _


class PasswordStrengthValidator:
    """
    Require a mix of character classes on top of Django's length checks.

    Registered in AUTH_PASSWORD_VALIDATORS, so it runs for password
    change, reset and user creation alike.
    """

    RULES = (
        (re.compile(r'[A-Z]'), 'password_no_upper', 'Password must contain at least one uppercase letter'),
        (re.compile(r'[a-z]'), 'password_no_lower', 'Password must contain at least one lowercase letter'),
        (re.compile(r'[0-9]'), 'password_no_digit', 'Password must contain at least one number'),
    )

    def __init__(self, min_length=8):
        self.min_length = min_length

    def validate(self, password, user=None):
        if len(password) < self.min_length:
            raise ValidationError(
                _('Password must be at least %(min_length)d characters long'),
                code='password_too_short',
                params={'min_length': self.min_length},
            )
        for pattern, code, message in self.RULES:
            if not pattern.search(password):
                raise ValidationError(_(message), code=code)

    def get_help_text(self):
        return _(
            'Your password must be at least %(min_length)d characters long and contain '
            'an uppercase letter, a lowercase letter and a number.'
        ) % {'min_length': self.min_length}
