"""Base utilities, decorators, and helper functions for academics views."""
from django.utils import timezone

from core.choices import Term
from core.models import AcademicYear
from core.utils import (
    admin_required,
    api_login_required,
    is_school_admin,
    is_teacher_or_admin,
    json_error,
    parse_int,
    parse_json_body,
    parse_uuid,
    teacher_or_admin_required,
)


def teacher_profile(user):
    return getattr(user, 'teacher_profile', None)


def can_manage_class(user, class_obj):
    """Admins manage every class; teachers manage classes they lead."""
    if is_school_admin(user):
        return True
    teacher = teacher_profile(user)
    return teacher is not None and class_obj.class_teacher_id == teacher.pk


def can_edit_subject(user, class_subject):
    """Class managers edit every subject of the class; instructors edit their own."""
    if can_manage_class(user, class_subject.class_assigned):
        return True
    teacher = teacher_profile(user)
    return teacher is not None and class_subject.instructor_id == teacher.pk


def resolve_year(value):
    """
    Year from a query/body value, defaulting to the current academic
    year, then to the calendar year.
    """
    year = parse_int(value)
    if year is not None:
        return year
    current = AcademicYear.get_current()
    if current:
        return current.year
    return timezone.localdate().year


def resolve_term(value, default=Term.TERM_1):
    """Term from a query/body value ('T2', '2'); invalid values give None."""
    if value in (None, ''):
        return default
    return Term.parse(value)


__all__ = [
    'admin_required',
    'api_login_required',
    'can_edit_subject',
    'can_manage_class',
    'is_school_admin',
    'is_teacher_or_admin',
    'json_error',
    'parse_int',
    'parse_json_body',
    'parse_uuid',
    'resolve_term',
    'resolve_year',
    'teacher_or_admin_required',
    'teacher_profile',
]
