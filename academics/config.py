"""
Configuration settings for the academics app.

These values can be overridden in Django settings by prefixing with ACADEMICS_.
For example, to raise the promotion pass mark:
    ACADEMICS_PROMOTION_PASS_MARK = Decimal('60.00')

All configuration values are lazily loaded to avoid Django setup issues.
"""
from decimal import Decimal


def _get_setting(name, default):
    """Get an academics setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'ACADEMICS_{name}', default)


_DEFAULTS = {
    # Promotion
    'PROMOTION_PASS_MARK': Decimal('50.00'),
    'PROMOTION_TERM': 'T3',

    # Competencies
    'COMPETENCE_MIN_SCORE': 1,
    'COMPETENCE_MAX_SCORE': 100,
    'DEFAULT_COMPETENCE_MAX_SCORE': 3,

    # Export settings
    'EXCEL_HEADER_COLOR': '4F46E5',

    # Celery task settings
    'TASK_MAX_RETRIES': 3,
    'TASK_RETRY_DELAY': 60,  # seconds
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


config = _ConfigProxy()
