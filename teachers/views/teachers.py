import logging

from django.db.models import Q
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from academics.models import ClassSubject
from core.utils import admin_required, form_errors, json_error, parse_json_body
from teachers.forms import TeacherForm
from teachers.models import Teacher

logger = logging.getLogger(__name__)


@require_http_methods(['GET', 'POST'])
@admin_required
def teachers_collection(request):
    """GET: teachers filtered by ?search= and ?status=. POST: create a teacher."""
    if request.method == 'GET':
        teachers = Teacher.objects.select_related('user').order_by('first_name')

        # Search
        search = request.GET.get('search', '').strip()
        if search:
            teachers = teachers.filter(
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(staff_id__icontains=search) |
                Q(subject_specialization__icontains=search)
            )

        # Filter by status
        status_filter = request.GET.get('status', '')
        if status_filter:
            teachers = teachers.filter(status=status_filter)

        data = [t.to_dict() for t in teachers]
        return JsonResponse({'count': len(data), 'teachers': data})

    payload, error = parse_json_body(request)
    if error:
        return error

    form = TeacherForm(data=payload)
    if not form.is_valid():
        return json_error('Invalid teacher data', errors=form_errors(form))

    teacher = form.save()
    logger.info(f"Teacher {teacher.staff_id} created by {request.user}")
    return JsonResponse({'message': f'{teacher.full_name} added', 'teacher': teacher.to_dict()}, status=201)


@require_http_methods(['GET', 'PATCH'])
@admin_required
def teacher_detail(request, pk):
    """GET a teacher with their classes and subjects; PATCH updates them."""
    teacher = get_object_or_404(Teacher.objects.select_related('user'), pk=pk)

    if request.method == 'GET':
        data = teacher.to_dict()
        data['classes'] = [
            {'id': c.pk, 'name': c.name} for c in teacher.assigned_classes.filter(is_active=True)
        ]
        data['subjects'] = [
            {'id': cs.pk, 'class_name': cs.class_assigned.name, 'subject_name': cs.subject.name, 'year': cs.year}
            for cs in ClassSubject.objects.filter(instructor=teacher, is_active=True).select_related(
                'class_assigned', 'subject'
            )
        ]
        return JsonResponse(data)

    payload, error = parse_json_body(request)
    if error:
        return error

    data = model_to_dict(teacher, fields=TeacherForm.Meta.fields)
    data.update({k: v for k, v in payload.items() if k in TeacherForm.Meta.fields})
    data = {k: ('' if v is None else v) for k, v in data.items()}

    form = TeacherForm(data=data, instance=teacher)
    if not form.is_valid():
        return json_error('Invalid teacher data', errors=form_errors(form))

    teacher = form.save()
    return JsonResponse({'message': f'{teacher.full_name} updated', 'teacher': teacher.to_dict()})
