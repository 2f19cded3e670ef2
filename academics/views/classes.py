"""Class management API: CRUD, teacher assignment, summaries and exports."""
import logging
from datetime import datetime
from io import BytesIO

from django.db.models import Count, Q
from django.forms.models import model_to_dict
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

from core.models import AcademicYear
from core.utils import form_errors
from students.models import Enrollment, Student
from teachers.models import Teacher

from ..config import config
from ..forms import ClassForm
from ..models import Class
from ..utils import class_setup_status, class_summary
from .base import (
    admin_required, can_manage_class, is_school_admin, json_error, parse_json_body,
    resolve_term, resolve_year, teacher_or_admin_required, teacher_profile,
)

logger = logging.getLogger(__name__)


def _classes_with_counts():
    return Class.objects.select_related('class_teacher').annotate(
        student_count=Count('students', filter=Q(students__status=Student.Status.ACTIVE))
    ).order_by('rank', 'stream')


def _get_visible_class(request, pk):
    """Fetch a class the requesting user may see, or None."""
    class_obj = get_object_or_404(Class, pk=pk)
    user = request.user
    if is_school_admin(user):
        return class_obj
    teacher = teacher_profile(user)
    if teacher is None:
        return None
    if class_obj.class_teacher_id == teacher.pk:
        return class_obj
    if class_obj.class_subjects.filter(instructor=teacher).exists():
        return class_obj
    return None


@require_http_methods(['GET', 'POST'])
@admin_required
def classes_collection(request):
    """GET: all classes. POST: create a class from {rank, stream, class_teacher_id}."""
    if request.method == 'GET':
        classes = _classes_with_counts()
        status = request.GET.get('status', '')
        if status == 'active':
            classes = classes.filter(is_active=True)
        elif status == 'inactive':
            classes = classes.filter(is_active=False)
        data = [c.to_dict(student_count=c.student_count) for c in classes]
        return JsonResponse({'classes': data, 'message': f'{len(data)} class(es) found'})

    payload, error = parse_json_body(request)
    if error:
        return error

    form = ClassForm(data={
        'rank': payload.get('rank', ''),
        'stream': payload.get('stream') or '',
        'class_teacher': payload.get('class_teacher_id') or '',
    })
    if not form.is_valid():
        return json_error('Invalid class data', errors=form_errors(form))

    class_obj = form.save()
    logger.info(f"Class {class_obj.name} created by {request.user}")
    return JsonResponse(
        {'message': f'Class {class_obj.name} created', 'class': class_obj.to_dict(student_count=0)},
        status=201
    )


@require_GET
@teacher_or_admin_required
def my_classes(request):
    """Classes the user leads or teaches in; admins see every active class."""
    classes = _classes_with_counts().filter(is_active=True)
    if not is_school_admin(request.user):
        teacher = teacher_profile(request.user)
        if teacher is None:
            classes = classes.none()
        else:
            assigned = Class.objects.filter(
                Q(class_teacher=teacher) | Q(class_subjects__instructor=teacher)
            ).values('pk')
            classes = classes.filter(pk__in=assigned)

    data = [c.to_dict(student_count=c.student_count) for c in classes]
    return JsonResponse({'classes': data, 'message': f'{len(data)} class(es) found'})


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@teacher_or_admin_required
def class_detail(request, pk):
    """GET a class; PATCH updates it and DELETE deactivates it (admins only)."""
    if request.method == 'GET':
        class_obj = _get_visible_class(request, pk)
        if class_obj is None:
            return json_error("You don't have access to this class.", status=403)
        student_count = class_obj.students.filter(status=Student.Status.ACTIVE).count()
        return JsonResponse(class_obj.to_dict(student_count=student_count))

    if not is_school_admin(request.user):
        return json_error("You don't have permission to perform this action.", status=403)

    class_obj = get_object_or_404(Class, pk=pk)

    if request.method == 'DELETE':
        class_obj.is_active = False
        class_obj.save(update_fields=['is_active', 'updated_at'])
        logger.info(f"Class {class_obj.name} deactivated by {request.user}")
        return JsonResponse({'message': f'Class {class_obj.name} deleted'})

    payload, error = parse_json_body(request)
    if error:
        return error

    data = model_to_dict(class_obj, fields=['rank', 'stream', 'class_teacher', 'is_active'])
    if 'rank' in payload:
        data['rank'] = payload['rank'] or ''
    if 'stream' in payload:
        data['stream'] = payload['stream'] or ''
    if 'class_teacher_id' in payload:
        data['class_teacher'] = payload['class_teacher_id'] or ''
    if 'is_active' in payload:
        data['is_active'] = bool(payload['is_active'])
    elif 'status' in payload:
        data['is_active'] = payload['status'] == 'active'
    if data['class_teacher'] is None:
        data['class_teacher'] = ''

    form = ClassForm(data=data, instance=class_obj)
    if not form.is_valid():
        return json_error('Invalid class data', errors=form_errors(form))

    class_obj = form.save()
    return JsonResponse({'message': f'Class {class_obj.name} updated', 'class': class_obj.to_dict()})


@require_http_methods(['PATCH'])
@admin_required
def class_assign_teacher(request, pk):
    class_obj = get_object_or_404(Class, pk=pk)
    payload, error = parse_json_body(request)
    if error:
        return error

    teacher_id = payload.get('class_teacher_id')
    if not teacher_id:
        return json_error('class_teacher_id is required')
    teacher = Teacher.objects.filter(pk=teacher_id, status=Teacher.Status.ACTIVE).first()
    if teacher is None:
        return json_error('Teacher not found', status=404)

    class_obj.class_teacher = teacher
    class_obj.save(update_fields=['class_teacher', 'updated_at'])
    logger.info(f"{teacher.full_name} assigned as class teacher of {class_obj.name}")
    return JsonResponse({
        'message': f'{teacher.full_name} assigned to {class_obj.name}',
        'class': class_obj.to_dict(),
    })


@require_GET
@teacher_or_admin_required
def class_summary_view(request, pk):
    class_obj = _get_visible_class(request, pk)
    if class_obj is None:
        return json_error("You don't have access to this class.", status=403)

    year = resolve_year(request.GET.get('year'))
    term = resolve_term(request.GET.get('term'))
    academic_year = AcademicYear.objects.filter(year=year).first()
    if academic_year is None:
        return json_error(f'Academic year {year} not found', status=404)

    return JsonResponse({
        'class_id': class_obj.pk,
        'academic_year': year,
        'term': term,
        'summary': class_summary(class_obj, academic_year),
    })


@require_GET
@teacher_or_admin_required
def class_setup_status_view(request, pk):
    class_obj = _get_visible_class(request, pk)
    if class_obj is None:
        return json_error("You don't have access to this class.", status=403)

    term = resolve_term(request.GET.get('term'))
    if term is None:
        return json_error('Invalid term')
    year = resolve_year(request.GET.get('year'))
    return JsonResponse(class_setup_status(class_obj, year, term))


@require_GET
@teacher_or_admin_required
def class_students(request, pk):
    """Students enrolled in a class for a year (defaults to the current year)."""
    class_obj = _get_visible_class(request, pk)
    if class_obj is None:
        return json_error("You don't have access to this class.", status=403)

    year = resolve_year(request.GET.get('year'))
    enrollments = Enrollment.objects.filter(
        class_assigned=class_obj, academic_year__year=year
    ).select_related('student').order_by('student__last_name', 'student__first_name')

    students = []
    for enrollment in enrollments:
        data = enrollment.student.to_dict()
        data['enrollment_id'] = str(enrollment.pk)
        data['enrollment_status'] = enrollment.status
        students.append(data)

    return JsonResponse({'class_id': class_obj.pk, 'year': year, 'count': len(students), 'students': students})


@require_GET
@teacher_or_admin_required
def class_export(request, pk):
    """Export the class list as an Excel workbook."""
    class_obj = get_object_or_404(Class, pk=pk)
    if not can_manage_class(request.user, class_obj):
        return json_error("You don't have access to this class.", status=403)

    students = class_obj.students.filter(status=Student.Status.ACTIVE).order_by('last_name', 'first_name')

    wb = Workbook()
    ws = wb.active
    ws.title = class_obj.name[:31]

    headers = ['#', 'Admission No.', 'Last Name', 'First Name', 'Other Names', 'Gender']
    ws.append(headers)
    header_fill = PatternFill(start_color=config.EXCEL_HEADER_COLOR, end_color=config.EXCEL_HEADER_COLOR, fill_type='solid')
    for cell in ws[1]:
        cell.font = Font(bold=True, color='FFFFFF')
        cell.fill = header_fill

    for i, student in enumerate(students, start=1):
        ws.append([
            i, student.admission_number, student.last_name, student.first_name,
            student.other_names, student.get_gender_display(),
        ])

    for column, width in zip('ABCDEF', (5, 16, 20, 20, 20, 10)):
        ws.column_dimensions[column].width = width

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    filename = f"{class_obj.name.replace('.', '').replace(' ', '_')}_{datetime.now():%Y%m%d}.xlsx"
    response = HttpResponse(
        buffer.getvalue(),
        content_type='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
    )
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
