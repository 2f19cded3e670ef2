"""
Shared helpers for the JSON API views: permission decorators, request body
parsing and error responses.
"""
import json
import logging
import uuid
from functools import wraps

from django.http import JsonResponse

logger = logging.getLogger(__name__)


def is_school_admin(user):
    """Check if user is a school admin (director / head teacher) or superuser."""
    return user.is_superuser or getattr(user, 'is_school_admin', False)


def is_teacher_or_admin(user):
    """Check if user is a teacher, school admin, or superuser."""
    return (user.is_superuser or
            getattr(user, 'is_school_admin', False) or
            getattr(user, 'is_teacher', False))


def json_error(message, status=400, **extra):
    """Standard error payload used by every API view."""
    payload = {'error': message}
    payload.update(extra)
    return JsonResponse(payload, status=status)


def api_login_required(view_func):
    """Decorator returning 401 instead of redirecting anonymous users."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return json_error('Authentication required', status=401)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def admin_required(view_func):
    """Decorator to require school admin or superuser access."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return json_error('Authentication required', status=401)
        if not is_school_admin(request.user):
            return json_error("You don't have permission to perform this action.", status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def teacher_or_admin_required(view_func):
    """Decorator to require teacher or admin access."""
    @wraps(view_func)
    def _wrapped_view(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return json_error('Authentication required', status=401)
        if not is_teacher_or_admin(request.user):
            return json_error("You don't have permission to perform this action.", status=403)
        return view_func(request, *args, **kwargs)
    return _wrapped_view


def parse_json_body(request):
    """
    Decode a JSON request body.

    Returns (data, error_response); exactly one of them is None.
    """
    if not request.body:
        return {}, None
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Invalid JSON body on {request.path}: {e}")
        return None, json_error('Invalid JSON body')
    if not isinstance(data, dict):
        return None, json_error('JSON body must be an object')
    return data, None


def parse_int(value, default=None):
    """Parse an int from a query parameter, falling back to default."""
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_uuid(value):
    """Parse a UUID primary key from a request value; None when malformed."""
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def validation_error_message(error):
    """Flatten a Django ValidationError into a single readable string."""
    if hasattr(error, 'message_dict'):
        messages = []
        for field, errors in error.message_dict.items():
            prefix = '' if field == '__all__' else f'{field}: '
            messages.extend(f'{prefix}{msg}' for msg in errors)
        return '; '.join(messages)
    return '; '.join(error.messages)


def form_errors(form):
    """Flatten bound form errors into {field: [messages]}."""
    return {field: [str(e) for e in errors] for field, errors in form.errors.items()}
