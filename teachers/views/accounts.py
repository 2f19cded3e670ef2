import logging
import secrets
import string

from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from accounts.models import User
from core.utils import admin_required, json_error, parse_json_body
from teachers.models import Teacher

logger = logging.getLogger(__name__)


def generate_temp_password(length=10):
    """Generate a random temporary password with upper, lower and digit characters."""
    chars = string.ascii_letters + string.digits
    while True:
        password = ''.join(secrets.choice(chars) for _ in range(length))
        if (any(c.isupper() for c in password)
                and any(c.islower() for c in password)
                and any(c.isdigit() for c in password)):
            return password


@require_POST
@admin_required
def create_account(request, pk):
    """
    Create a login for a teacher. The temporary password is returned once;
    the teacher must change it at first login.

    Body (optional): {"email": ..., "role": "teacher" | "classteacher"}
    """
    teacher = get_object_or_404(Teacher, pk=pk)

    if teacher.user_id:
        return json_error(f"{teacher.full_name} already has an account.", status=409)

    payload, error = parse_json_body(request)
    if error:
        return error

    # Use teacher's email if not provided
    email = (payload.get('email') or teacher.email or '').strip()
    if not email:
        return json_error('Email address is required. Please provide an email.')

    role = payload.get('role') or User.Role.TEACHER
    if role not in (User.Role.TEACHER, User.Role.CLASS_TEACHER):
        return json_error('Role must be teacher or classteacher')

    temp_password = generate_temp_password()

    try:
        with transaction.atomic():
            user = User.objects.create_teacher(
                email=email,
                password=temp_password,
                first_name=teacher.first_name,
                last_name=teacher.last_name,
                role=role,
                must_change_password=True,
            )

            # Link to teacher
            teacher.user = user
            if not teacher.email:
                teacher.email = email
            teacher.save(update_fields=['user', 'email', 'updated_at'])
    except IntegrityError:
        return json_error(f"An account with email '{email}' already exists.", status=409)

    logger.info(f"Account created for teacher {teacher.staff_id} ({email})")
    return JsonResponse({
        'message': f'Account created for {teacher.full_name}',
        'email': user.email,
        'role': user.role,
        'temporary_password': temp_password,
    }, status=201)


@require_POST
@admin_required
def deactivate_account(request, pk):
    """Deactivate a teacher's user account."""
    teacher = get_object_or_404(Teacher.objects.select_related('user'), pk=pk)
    if not teacher.user_id:
        return json_error(f"{teacher.full_name} has no account.", status=404)

    user = teacher.user
    user.is_active = False
    user.save(update_fields=['is_active'])
    logger.info(f"Account for teacher {teacher.staff_id} deactivated by {request.user}")
    return JsonResponse({'message': f'Account for {teacher.full_name} has been deactivated.'})
