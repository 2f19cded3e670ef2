import logging

from django.contrib.auth import login, logout, update_session_auth_hash
from django.contrib.auth.forms import PasswordChangeForm
from django.db.models import Q
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from core.utils import admin_required, api_login_required, form_errors, json_error, parse_json_body
from .forms import LoginForm, UserUpdateForm
from .models import User

logger = logging.getLogger(__name__)


def user_payload(user):
    teacher = getattr(user, 'teacher_profile', None)
    return {
        'id': user.pk,
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'role': user.role,
        'role_label': user.role_label,
        'is_school_admin': user.is_superuser or user.is_school_admin,
        'must_change_password': user.must_change_password,
        'is_active': user.is_active,
        'status': 'ACTIVE' if user.is_active else 'SUSPENDED',
        'last_login': user.last_login.isoformat() if user.last_login else None,
        'teacher_id': str(teacher.pk) if teacher else None,
    }


@require_GET
@ensure_csrf_cookie
def csrf(request):
    """Sets the CSRF cookie for clients about to POST."""
    return JsonResponse({'detail': 'CSRF cookie set'})


@require_POST
def login_view(request):
    """Session login with {"email", "password"}."""
    payload, error = parse_json_body(request)
    if error:
        return error

    form = LoginForm(request, data={
        'username': payload.get('email', ''),
        'password': payload.get('password', ''),
    })
    if not form.is_valid():
        logger.warning(f"Failed login attempt for {payload.get('email', '')!r}")
        return json_error('Invalid credentials', status=401, errors=form_errors(form))

    user = form.get_user()
    login(request, user)
    return JsonResponse({'message': 'Logged in', 'user': user_payload(user)})


@require_POST
def logout_view(request):
    logout(request)
    return JsonResponse({'message': 'Logged out'})


@require_GET
@api_login_required
def me(request):
    return JsonResponse(user_payload(request.user))


@require_POST
@api_login_required
def password_change(request):
    """
    Change the password ({"old_password", "new_password1", "new_password2"})
    and clear the must_change_password flag.
    """
    payload, error = parse_json_body(request)
    if error:
        return error

    form = PasswordChangeForm(request.user, data=payload)
    if not form.is_valid():
        return json_error('Password not changed', errors=form_errors(form))

    user = form.save()
    update_session_auth_hash(request, user)

    # Clear the must_change_password flag
    if user.must_change_password:
        user.must_change_password = False
        user.save(update_fields=['must_change_password'])

    return JsonResponse({'message': 'Your password has been changed successfully.'})


# =============================================================================
# USER MANAGEMENT (school admins)
# =============================================================================

USER_STATUSES = {'ACTIVE': True, 'SUSPENDED': False}


def _managed_user(request, pk):
    """(user, error_response) for an account the signed-in admin may change."""
    user = get_object_or_404(User, pk=pk)
    if user.is_superuser and not request.user.is_superuser:
        return None, json_error("You don't have permission to change this account.", status=403)
    return user, None


@require_GET
@admin_required
def users_collection(request):
    """All accounts, filtered by ?role=, ?status= (ACTIVE/SUSPENDED) and ?search=."""
    users = User.objects.select_related('teacher_profile').order_by('email')

    role = request.GET.get('role')
    if role:
        if role not in User.Role.values:
            return json_error('Invalid role')
        users = users.filter(role=role)

    status = (request.GET.get('status') or '').upper()
    if status:
        if status not in USER_STATUSES:
            return json_error('Invalid status')
        users = users.filter(is_active=USER_STATUSES[status])

    search = (request.GET.get('search') or '').strip()
    if search:
        users = users.filter(
            Q(email__icontains=search) | Q(first_name__icontains=search) | Q(last_name__icontains=search)
        )

    data = [user_payload(u) for u in users]
    return JsonResponse({'users': data, 'count': len(data)})


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@admin_required
def user_detail(request, pk):
    """
    GET: one account.
    PATCH: {"first_name", "last_name", "role", "status"}; omitted fields keep their value.
    DELETE: remove the account.
    """
    user, error = _managed_user(request, pk)
    if error:
        return error

    if request.method == 'GET':
        return JsonResponse(user_payload(user))

    is_self = user.pk == request.user.pk

    if request.method == 'DELETE':
        if is_self:
            return json_error('You cannot delete your own account.')
        email = user.email
        user.delete()
        logger.info(f"User {email} deleted by {request.user}")
        return JsonResponse({'message': f'{email} deleted'})

    payload, error = parse_json_body(request)
    if error:
        return error

    previous_role = user.role
    data = model_to_dict(user, fields=UserUpdateForm.Meta.fields)
    data.update({k: v for k, v in payload.items() if k in UserUpdateForm.Meta.fields})
    form = UserUpdateForm(data=data, instance=user)
    if not form.is_valid():
        return json_error('Invalid user', errors=form_errors(form))

    status = payload.get('status')
    if status is not None and status not in USER_STATUSES:
        return json_error('Invalid status', errors={'status': ['Choose ACTIVE or SUSPENDED.']})
    if is_self:
        if form.cleaned_data['role'] != previous_role and not request.user.is_superuser:
            return json_error('You cannot change your own role.')
        if status == 'SUSPENDED':
            return json_error('You cannot suspend your own account.')

    user = form.save(commit=False)
    if status is not None:
        user.is_active = USER_STATUSES[status]
    user.save()
    if previous_role != user.role:
        logger.info(f"Role of {user.email} changed from {previous_role} to {user.role} by {request.user}")
    return JsonResponse({'message': f'{user.email} updated', 'user': user_payload(user)})


def _set_active(request, pk, active):
    user, error = _managed_user(request, pk)
    if error:
        return error
    if user.pk == request.user.pk and not active:
        return json_error('You cannot suspend your own account.')

    user.is_active = active
    user.save(update_fields=['is_active'])
    action = 'activated' if active else 'suspended'
    logger.info(f"User {user.email} {action} by {request.user}")
    return JsonResponse({'message': f'{user.email} {action}', 'user': user_payload(user)})


@require_POST
@admin_required
def user_suspend(request, pk):
    """Suspend an account: it can no longer sign in."""
    return _set_active(request, pk, False)


@require_POST
@admin_required
def user_activate(request, pk):
    return _set_active(request, pk, True)
