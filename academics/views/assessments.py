"""Assessment entry views: read and bulk-save a subject's scores for a term."""
import logging

from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.utils import form_errors
from students.models import Student

from ..forms import AssessmentForm
from ..models import Assessment, Class, ClassSubject
from .base import (
    can_edit_subject, json_error, parse_int, parse_json_body, resolve_term, resolve_year,
    teacher_or_admin_required,
)


logger = logging.getLogger(__name__)

SCORE_FIELDS = ['project_score', 'continuous_score', 'eot_score', 'competence_scores']


@require_http_methods(['GET', 'POST'])
@teacher_or_admin_required
def class_subject_assessments(request, pk):
    """
    GET: scores of every student of the class for ?year=&term=.

    POST: upsert scores from
    {"year", "term", "assessments": [{"student_id", "project_score",
    "continuous_score", "eot_score", "competence_scores"}]}.
    Invalid rows are reported and skipped.
    """
    class_subject = get_object_or_404(
        ClassSubject.objects.select_related('subject', 'class_assigned', 'instructor'), pk=pk
    )

    if request.method == 'GET':
        year = resolve_year(request.GET.get('year'))
        term = resolve_term(request.GET.get('term'))
        if term is None:
            return json_error('Invalid term')
        assessments = Assessment.objects.filter(
            class_subject=class_subject, year=year, term=term
        ).select_related('class_subject__subject')
        return JsonResponse({
            'class_subject_id': class_subject.pk,
            'year': year,
            'term': term,
            'assessments': [a.to_dict() for a in assessments],
        })

    if not can_edit_subject(request.user, class_subject):
        return json_error("You don't have permission to record scores for this subject.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error
    year = resolve_year(payload.get('year'))
    term = resolve_term(payload.get('term'))
    if term is None:
        return json_error('Invalid term')
    rows = payload.get('assessments')
    if not isinstance(rows, list):
        return json_error('assessments must be a list')

    student_ids = {parse_int(row.get('student_id')) for row in rows if isinstance(row, dict)}
    class_obj = class_subject.class_assigned
    valid_students = set(Student.objects.filter(pk__in=student_ids).filter(
        Q(current_class=class_obj)
        | Q(enrollments__class_assigned=class_obj, enrollments__academic_year__year=year)
    ).values_list('pk', flat=True))
    existing = {
        a.student_id: a for a in Assessment.objects.filter(
            class_subject=class_subject, year=year, term=term, student_id__in=valid_students
        )
    }

    to_create, to_update, errors = [], [], []
    for row in rows:
        if not isinstance(row, dict):
            errors.append({'student_id': None, 'error': 'Each assessment must be an object'})
            continue
        student_id = parse_int(row.get('student_id'))
        if student_id not in valid_students:
            errors.append({'student_id': row.get('student_id'), 'error': 'Student is not in this class'})
            continue

        form = AssessmentForm(data=row)
        if not form.is_valid():
            errors.append({'student_id': student_id, 'errors': form_errors(form)})
            continue

        assessment = existing.get(student_id)
        if assessment is None:
            assessment = Assessment(student_id=student_id, class_subject=class_subject, year=year, term=term)
            existing[student_id] = assessment
            to_create.append(assessment)
        elif assessment.pk is not None and assessment not in to_update:
            to_update.append(assessment)

        for field in SCORE_FIELDS:
            value = form.cleaned_data.get(field)
            if field in row and value is not None:
                setattr(assessment, field, value)

    with transaction.atomic():
        if to_create:
            Assessment.objects.bulk_create(to_create)
        if to_update:
            Assessment.objects.bulk_update(to_update, SCORE_FIELDS)

    logger.info(
        f"Saved {len(to_create) + len(to_update)} assessment(s) for {class_subject} "
        f"{term} {year} ({len(errors)} error(s))"
    )
    return JsonResponse({
        'message': f'{len(to_create)} created, {len(to_update)} updated',
        'created': len(to_create),
        'updated': len(to_update),
        'errors': errors,
    })


@require_http_methods(['GET'])
@teacher_or_admin_required
def class_assessments(request, pk):
    """Scores of a class for ?year=&term=, optionally narrowed to ?subject=<name>."""
    class_obj = get_object_or_404(Class, pk=pk)
    year = resolve_year(request.GET.get('year'))
    term = resolve_term(request.GET.get('term'))
    if term is None:
        return json_error('Invalid term')

    assessments = Assessment.objects.filter(
        class_subject__class_assigned=class_obj, year=year, term=term
    ).select_related('class_subject__subject').order_by('class_subject__subject__name', 'student_id')
    subject = request.GET.get('subject', '').strip()
    if subject:
        assessments = assessments.filter(class_subject__subject__name__iexact=subject)

    return JsonResponse({
        'class_id': class_obj.pk,
        'year': year,
        'term': term,
        'assessments': [a.to_dict() for a in assessments],
    })
