import logging

from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_http_methods

from core.utils import form_errors, is_school_admin, json_error, parse_json_body, teacher_or_admin_required
from students.forms import StudentForm
from students.models import Student
from .utils import create_enrollment_for_student

logger = logging.getLogger(__name__)


def _student_payload(student):
    data = student.to_dict()
    data.update({
        'other_names': student.other_names,
        'date_of_birth': student.date_of_birth.isoformat() if student.date_of_birth else None,
        'guardian_name': student.guardian_name,
        'guardian_phone': student.guardian_phone,
        'guardian_email': student.guardian_email,
        'admission_date': student.admission_date.isoformat() if student.admission_date else None,
        'current_class_name': student.current_class.name if student.current_class_id else None,
    })
    return data


@require_http_methods(['GET', 'POST'])
@teacher_or_admin_required
def students_collection(request):
    """
    GET: students, filtered by ?search=, ?class= and ?status=.
    POST (admins): admit a student and enroll them in the current year.
    """
    if request.method == 'GET':
        students = Student.objects.select_related('current_class').all()

        # Search
        search = request.GET.get('search', '').strip()
        if search:
            students = students.filter(
                Q(first_name__icontains=search) |
                Q(last_name__icontains=search) |
                Q(other_names__icontains=search) |
                Q(admission_number__icontains=search)
            )

        # Filter by class
        class_filter = request.GET.get('class', '')
        if class_filter:
            students = students.filter(current_class_id=class_filter)

        # Filter by status
        status_filter = request.GET.get('status', '')
        if status_filter:
            students = students.filter(status=status_filter)

        data = [_student_payload(s) for s in students]
        return JsonResponse({'count': len(data), 'students': data})

    if not is_school_admin(request.user):
        return json_error("You don't have permission to perform this action.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error
    if 'current_class_id' in payload:
        payload['current_class'] = payload.pop('current_class_id')

    form = StudentForm(data=payload)
    if not form.is_valid():
        return json_error('Invalid student data', errors=form_errors(form))

    student = form.save()
    # Auto-create enrollment for current academic year
    enrollment, created = create_enrollment_for_student(student)
    logger.info(f"Student {student.admission_number} admitted by {request.user}")

    data = _student_payload(student)
    data['enrollment_id'] = str(enrollment.pk) if enrollment else None
    return JsonResponse({'message': f'{student.full_name} admitted', 'student': data}, status=201)


@require_http_methods(['GET', 'PATCH'])
@teacher_or_admin_required
def student_detail(request, pk):
    student = get_object_or_404(Student.objects.select_related('current_class'), pk=pk)
    if request.method == 'GET':
        return JsonResponse(_student_payload(student))

    if not is_school_admin(request.user):
        return json_error("You don't have permission to perform this action.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error

    data = {field: getattr(student, field) for field in StudentForm.Meta.fields if field != 'current_class'}
    data['current_class'] = student.current_class_id or ''
    data.update({k: v for k, v in payload.items() if k in StudentForm.Meta.fields})
    if 'current_class_id' in payload:
        data['current_class'] = payload['current_class_id'] or ''

    form = StudentForm(data=data, instance=student)
    if not form.is_valid():
        return json_error('Invalid student data', errors=form_errors(form))

    student = form.save()
    return JsonResponse({'message': f'{student.full_name} updated', 'student': _student_payload(student)})
