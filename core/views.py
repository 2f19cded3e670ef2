"""Academic year API: the calendar every enrollment, subject and promotion hangs on."""
import logging

from django.db.models import ProtectedError
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .choices import Term
from .forms import AcademicYearForm
from .models import AcademicYear
from .utils import (
    admin_required, api_login_required, form_errors, is_school_admin, json_error, parse_json_body,
)

logger = logging.getLogger(__name__)

YEAR_FIELDS = ['year', 'name', 'start_date', 'end_date', 'is_current']


@require_http_methods(['GET', 'POST'])
@api_login_required
def academic_years(request):
    """
    GET: every academic year, newest first.
    POST: create one from {"year", "name", "start_date", "end_date", "is_current"} (admins only).
    """
    if request.method == 'GET':
        years = [y.to_dict() for y in AcademicYear.objects.order_by('-year')]
        return JsonResponse({'academic_years': years, 'count': len(years)})

    if not is_school_admin(request.user):
        return json_error("You don't have permission to perform this action.", status=403)

    payload, error = parse_json_body(request)
    if error:
        return error

    form = AcademicYearForm(data=payload)
    if not form.is_valid():
        return json_error('Invalid academic year', errors=form_errors(form))

    academic_year = form.save()
    logger.info(f"Academic year {academic_year.year} created by {request.user}")
    return JsonResponse({
        'message': f'{academic_year.name} created',
        'academic_year': academic_year.to_dict(),
    }, status=201)


@require_POST
@admin_required
def academic_year_initialize(request):
    """One-time setup: make sure the calendar year exists and that some year is current."""
    year = timezone.localdate().year
    academic_year, created = AcademicYear.objects.get_or_create(year=year)
    if AcademicYear.get_current() is None:
        academic_year.is_current = True
        academic_year.save()

    if created:
        logger.info(f"Academic year {year} initialized by {request.user}")
    message = f'{academic_year.name} initialized' if created else f'{academic_year.name} already exists'
    return JsonResponse({
        'message': message,
        'academic_year': academic_year.to_dict(),
    }, status=201 if created else 200)


@require_GET
@api_login_required
def academic_year_current(request):
    """The current academic year together with its terms."""
    academic_year = AcademicYear.get_current()
    if academic_year is None:
        return json_error('No current academic year has been set', status=404)

    data = academic_year.to_dict()
    data['terms'] = [{'value': value, 'label': str(label)} for value, label in Term.choices]
    return JsonResponse({'academic_year': data})


@require_http_methods(['GET', 'PATCH', 'DELETE'])
@admin_required
def academic_year_detail(request, pk):
    academic_year = get_object_or_404(AcademicYear, pk=pk)

    if request.method == 'GET':
        return JsonResponse({'academic_year': academic_year.to_dict()})

    if request.method == 'DELETE':
        if academic_year.is_current:
            return json_error('The current academic year cannot be deleted', status=409)
        try:
            academic_year.delete()
        except ProtectedError:
            return json_error(f'{academic_year.name} has enrollments and cannot be deleted', status=409)
        logger.info(f"Academic year {academic_year.year} deleted by {request.user}")
        return JsonResponse({'message': 'Academic year deleted'})

    payload, error = parse_json_body(request)
    if error:
        return error
    if payload.get('is_current') is False and academic_year.is_current:
        return json_error('Set another academic year as current instead')

    data = model_to_dict(academic_year, fields=YEAR_FIELDS)
    data.update({k: v for k, v in payload.items() if k in YEAR_FIELDS})
    form = AcademicYearForm(data=data, instance=academic_year)
    if not form.is_valid():
        return json_error('Invalid academic year', errors=form_errors(form))

    academic_year = form.save()
    return JsonResponse({
        'message': f'{academic_year.name} updated',
        'academic_year': academic_year.to_dict(),
    })


@require_http_methods(['POST', 'PATCH'])
@admin_required
def academic_year_set_current(request, pk):
    """Set an academic year as current; the previous one is released on save."""
    academic_year = get_object_or_404(AcademicYear, pk=pk)
    academic_year.is_current = True
    academic_year.save()

    logger.info(f"Academic year {academic_year.year} set as current by {request.user}")
    return JsonResponse({
        'message': f'{academic_year.name} is now the current academic year',
        'academic_year': academic_year.to_dict(),
    })
