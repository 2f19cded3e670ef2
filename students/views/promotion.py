"""End-of-year promotion API."""
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from academics.models import Class
from academics.tasks import schedule_rollover
from academics.views.base import can_manage_class
from core.utils import (
    form_errors, json_error, parse_json_body, teacher_or_admin_required, validation_error_message,
)
from students import promotion as workflow
from students.forms import PromotionOverrideForm
from students.models import Student
from .utils import get_class_or_error, resolve_academic_year

logger = logging.getLogger(__name__)


def _managed_class(request, pk):
    """(class, error_response) for a class the user may promote."""
    class_obj, error = get_class_or_error(pk)
    if error:
        return None, error
    if not can_manage_class(request.user, class_obj):
        return None, json_error("Only the class teacher or an administrator can manage promotions.", status=403)
    return class_obj, None


@require_GET
@teacher_or_admin_required
def promotion_years(request):
    return JsonResponse({'years': workflow.available_years()})


@require_GET
@teacher_or_admin_required
def promotion_next_level(request, pk):
    class_obj, error = _managed_class(request, pk)
    if error:
        return error
    return JsonResponse(workflow.next_level_info(class_obj))


@require_GET
@teacher_or_admin_required
def promotion_class_students(request, pk):
    """Promotion candidates of a class for ?year= (defaults to the current year)."""
    class_obj, error = _managed_class(request, pk)
    if error:
        return error
    academic_year, error = resolve_academic_year(request.GET.get('year'))
    if error:
        return error

    data = workflow.students_for_promotion(class_obj, academic_year)
    for student in data['students']:
        student['promotion_status_display'] = workflow.format_promotion_status(student['promotion_status'])
    return JsonResponse(data)


@require_GET
@teacher_or_admin_required
def promotion_default_decisions(request, pk):
    """Suggested decisions: qualifying students go up, the rest repeat."""
    class_obj, error = _managed_class(request, pk)
    if error:
        return error
    academic_year, error = resolve_academic_year(request.GET.get('year'))
    if error:
        return error

    data = workflow.students_for_promotion(class_obj, academic_year)
    pending = [s for s in data['students'] if not s['is_already_processed']]
    decisions = workflow.default_decisions(
        pending, data['next_level_info']['suggested_class_id'], class_obj.pk
    )
    return JsonResponse({'class_id': class_obj.pk, 'year': academic_year.year, 'decisions': decisions})


@require_GET
@teacher_or_admin_required
def promotion_stats(request, pk):
    class_obj, error = _managed_class(request, pk)
    if error:
        return error
    academic_year, error = resolve_academic_year(request.GET.get('year'))
    if error:
        return error
    return JsonResponse(workflow.promotion_stats(class_obj, academic_year))


@require_POST
@teacher_or_admin_required
def promotion_process(request, pk):
    """
    Apply promotion decisions for a class.

    Body: {"year": 2025, "decisions": [{"student_id", "action", "to_class_id",
    "remarks"}], "rollover_subjects": true}. Without "decisions" the default
    decisions are applied to every student still pending.
    """
    class_obj, error = _managed_class(request, pk)
    if error:
        return error
    payload, error = parse_json_body(request)
    if error:
        return error
    academic_year, error = resolve_academic_year(payload.get('year'))
    if error:
        return error

    next_year = academic_year.get_next()
    decisions = payload.get('decisions')
    if decisions is None:
        data = workflow.students_for_promotion(class_obj, academic_year)
        pending = [s for s in data['students'] if not s['is_already_processed']]
        decisions = workflow.default_decisions(
            pending, data['next_level_info']['suggested_class_id'], class_obj.pk
        )
    elif not isinstance(decisions, list) or not all(isinstance(d, dict) for d in decisions):
        return json_error('decisions must be a list of objects')

    if not decisions:
        return json_error('No promotion decisions to process')

    result = workflow.process_promotions(class_obj, academic_year, next_year, decisions)

    if payload.get('rollover_subjects') and next_year is not None:
        result['rollover_classes'] = schedule_rollover(result, class_obj, academic_year.year, next_year.year)

    status = 200 if result['summary']['errors'] < result['summary']['total'] else 400
    return JsonResponse(result, status=status)


@require_POST
@teacher_or_admin_required
def promotion_override(request):
    """Manually promote or repeat one student, with a mandatory reason."""
    payload, error = parse_json_body(request)
    if error:
        return error

    form = PromotionOverrideForm(data=payload)
    if not form.is_valid():
        return json_error('Invalid override', errors=form_errors(form))
    cleaned = form.cleaned_data

    from_class, error = _managed_class(request, cleaned['from_class_id'])
    if error:
        return error
    academic_year, error = resolve_academic_year(cleaned.get('year'))
    if error:
        return error
    student = get_object_or_404(Student, pk=cleaned['student_id'])

    to_class = None
    if cleaned.get('to_class_id'):
        to_class = Class.objects.filter(pk=cleaned['to_class_id'], is_active=True).first()
        if to_class is None:
            return json_error('Target class not found', status=404)

    try:
        result = workflow.teacher_override(
            student, from_class, cleaned['action'], cleaned['reason'],
            academic_year, academic_year.get_next(), to_class=to_class,
        )
    except ValidationError as e:
        return json_error(validation_error_message(e))

    logger.info(f"Promotion override for {student.full_name} by {request.user}: {cleaned['action']}")
    return JsonResponse(result)


@require_GET
@teacher_or_admin_required
def promotion_student_history(request, pk):
    student = get_object_or_404(Student, pk=pk)
    return JsonResponse({
        'student_id': student.pk,
        'full_name': student.full_name,
        'history': workflow.student_history(student),
    })

