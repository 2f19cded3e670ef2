"""Class subject setup, instructor assignment and competency views."""
import logging

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.choices import Term
from core.utils import form_errors, validation_error_message
from teachers.models import Teacher

from ..forms import CompetenceForm, SetupSubjectForm
from ..models import Class, ClassSubject, Competence, Subject
from ..utils import clone_competencies_from_previous_year, setup_class_subjects, subjects_breakdown
from .base import (
    admin_required, can_edit_subject, can_manage_class, json_error, parse_int, parse_json_body,
    parse_uuid, resolve_term, resolve_year, teacher_or_admin_required,
)

logger = logging.getLogger(__name__)


def _clean_competences(items, label='competence'):
    """Run each competence row through CompetenceForm. Returns (rows, error_response)."""
    if not isinstance(items, list):
        return None, json_error('competences must be a list')

    cleaned = []
    for position, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            return None, json_error(f'Invalid {label} #{position}: expected an object')
        form = CompetenceForm(data=item)
        if not form.is_valid():
            return None, json_error(f'Invalid {label} #{position}', errors=form_errors(form))
        cleaned.append(form.cleaned_data)
    return cleaned, None


def _clean_setup_subjects(subjects):
    """Validate the shape of a setup payload entry by entry. Returns (entries, error_response)."""
    cleaned = []
    for position, entry in enumerate(subjects, start=1):
        if not isinstance(entry, dict):
            return None, json_error(f'Invalid subject #{position}: expected an object')
        form = SetupSubjectForm(data=entry)
        if not form.is_valid():
            return None, json_error(f'Invalid subject #{position}', errors=form_errors(form))

        data = dict(form.cleaned_data)
        competences, error = _clean_competences(
            entry.get('competences') or [], label=f'competence of {data["subject_name"]}'
        )
        if error:
            return None, error
        data['competences'] = competences
        cleaned.append(data)
    return cleaned, None


@require_http_methods(['GET', 'POST'])
@teacher_or_admin_required
def class_subjects(request, pk):
    """
    GET: subjects of a class for ?year=, each with its ?term= competences
    (cloned from the last edited term when the term has none yet).

    POST: set up the class subjects for a year from
    {"year": 2025, "subjects": [{"subject_name", "is_core", "instructor_id",
    "instructor_initials", "competences": [{"name", "max_score"}]}]}.
    """
    class_obj = get_object_or_404(Class, pk=pk)

    if request.method == 'GET':
        year = resolve_year(request.GET.get('year'))
        term = resolve_term(request.GET.get('term'))
        if term is None:
            return json_error('Invalid term')

        allocations = class_obj.class_subjects.filter(year=year, is_active=True).select_related(
            'subject', 'instructor'
        )
        subjects = [
            cs.to_dict(competences=Competence.get_or_clone_for_term(cs, year, term))
            for cs in allocations
        ]
        return JsonResponse({
            'class_id': class_obj.pk,
            'class_name': class_obj.name,
            'year': year,
            'term': term,
            'breakdown': subjects_breakdown(allocations),
            'subjects': subjects,
        })

    if not can_manage_class(request.user, class_obj):
        return json_error("You don't have permission to set up this class.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error
    subjects = payload.get('subjects')
    if subjects is not None and not isinstance(subjects, list):
        return json_error('subjects must be a list')
    subjects, error = _clean_setup_subjects(subjects or [])
    if error:
        return error
    year = resolve_year(payload.get('year'))

    try:
        allocations = setup_class_subjects(class_obj, year, subjects)
    except ValidationError as e:
        return json_error(validation_error_message(e))

    return JsonResponse({
        'message': f'{len(allocations)} subject(s) set up for {class_obj.name}',
        'year': year,
        'subjects': [
            cs.to_dict(competences=Competence.objects.for_term(cs, year, Term.TERM_1))
            for cs in allocations
        ],
    }, status=201)


@require_http_methods(['PATCH'])
@admin_required
def class_subject_instructor(request, pk):
    """Assign ({"instructor_id": ...}) or clear ({"instructor_id": null}) a subject's instructor."""
    class_subject = get_object_or_404(ClassSubject.objects.select_related('subject', 'class_assigned'), pk=pk)
    payload, error = parse_json_body(request)
    if error:
        return error
    if 'instructor_id' not in payload:
        return json_error('instructor_id is required')

    teacher = None
    if payload['instructor_id']:
        teacher_pk = parse_uuid(payload['instructor_id'])
        if teacher_pk is None:
            return json_error('instructor_id must be a teacher id')
        teacher = Teacher.objects.filter(pk=teacher_pk).first()
        if teacher is None:
            return json_error('Teacher not found', status=404)

    class_subject.assign_instructor(teacher, initials=payload.get('instructor_initials'))
    logger.info(f"Instructor of {class_subject} set to {teacher.full_name if teacher else 'nobody'}")
    return JsonResponse({
        'message': f'Instructor updated for {class_subject.subject.name}',
        'class_subject': class_subject.to_dict(),
    })


@require_http_methods(['GET', 'PUT'])
@teacher_or_admin_required
def class_subject_competences(request, pk):
    """
    GET: competences of a subject for ?year=&term=.
    PUT: replace that term's competences with {"competences": [...]}.
    """
    class_subject = get_object_or_404(
        ClassSubject.objects.select_related('subject', 'class_assigned', 'instructor'), pk=pk
    )

    if request.method == 'GET':
        year = resolve_year(request.GET.get('year'))
        term = resolve_term(request.GET.get('term'))
        if term is None:
            return json_error('Invalid term')
        competences = Competence.get_or_clone_for_term(class_subject, year, term)
        return JsonResponse({
            'class_subject_id': class_subject.pk,
            'year': year,
            'term': term,
            'competences': [c.to_dict() for c in competences],
        })

    if not can_edit_subject(request.user, class_subject):
        return json_error("You don't have permission to edit this subject.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error
    year = resolve_year(payload.get('year'))
    term = resolve_term(payload.get('term'))
    if term is None:
        return json_error('Invalid term')

    cleaned, error = _clean_competences(payload.get('competences'))
    if error:
        return error

    competences = Competence.replace_for_term(class_subject, year, term, cleaned)
    logger.info(f"Replaced {term} {year} competences of {class_subject} ({len(competences)} item(s))")
    return JsonResponse({
        'message': f'{len(competences)} competence(s) saved',
        'class_subject_id': class_subject.pk,
        'year': year,
        'term': term,
        'competences': [c.to_dict() for c in Competence.objects.for_term(class_subject, year, term)],
    })


@require_http_methods(['POST'])
@admin_required
def clone_competences(request, pk):
    """
    Carry subjects and competences of another class from a previous year
    into this class: {"from_class_id", "previous_year", "next_year"}.
    """
    class_obj = get_object_or_404(Class, pk=pk)
    payload, error = parse_json_body(request)
    if error:
        return error

    raw_source = payload.get('from_class_id')
    source_pk = class_obj.pk if raw_source in (None, '') else parse_int(raw_source)
    old_class = Class.objects.filter(pk=source_pk).first() if source_pk is not None else None
    if old_class is None:
        return json_error('Source class not found', status=404)

    next_year = resolve_year(payload.get('next_year'))
    previous_year = parse_int(payload.get('previous_year'), default=next_year - 1)
    if previous_year >= next_year:
        return json_error('previous_year must be before next_year')

    carried = clone_competencies_from_previous_year(class_obj, old_class, previous_year, next_year)
    return JsonResponse({
        'message': f'{carried} subject(s) carried over from {old_class.name} ({previous_year})',
        'carried': carried,
        'class_id': class_obj.pk,
        'year': next_year,
    })


@require_http_methods(['GET'])
@teacher_or_admin_required
def subject_list(request):
    subjects = Subject.objects.filter(is_active=True)
    return JsonResponse({
        'subjects': [{'id': s.pk, 'name': s.name, 'is_core': s.is_core} for s in subjects]
    })
