from academics.models import Class
from core.models import AcademicYear
from core.utils import json_error, parse_int
from students.models import Enrollment


def create_enrollment_for_student(student):
    """Create an enrollment record for a student in the current academic year."""
    current_year = AcademicYear.get_current()
    if not current_year:
        return None, False

    class_to_use = student.current_class
    if not class_to_use:
        return None, False

    enrollment, created = Enrollment.objects.get_or_create(
        student=student,
        academic_year=current_year,
        defaults={
            'class_assigned': class_to_use,
            'status': Enrollment.Status.ACTIVE,
        }
    )
    return enrollment, created


def resolve_academic_year(value):
    """
    AcademicYear for a ?year= value (the calendar year), or the current one.

    Returns (academic_year, error_response).
    """
    year = parse_int(value)
    if year is None:
        academic_year = AcademicYear.get_current()
        if academic_year is None:
            return None, json_error('No current academic year set. Please configure the academic year first.')
        return academic_year, None

    academic_year = AcademicYear.objects.filter(year=year).first()
    if academic_year is None:
        return None, json_error(f'Academic year {year} not found', status=404)
    return academic_year, None


def get_class_or_error(class_id):
    """Active Class for an id, or (None, error_response)."""
    class_obj = Class.objects.filter(pk=parse_int(class_id), is_active=True).select_related('class_teacher').first()
    if class_obj is None:
        return None, json_error('Class not found', status=404)
    return class_obj, None
