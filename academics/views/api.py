"""Read-only API endpoints for the class taxonomy and academic calendar."""
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from core.choices import Term
from core.models import AcademicYear
from ..taxonomy import (
    available_ranks, available_streams, format_rank_display, format_term,
    generate_class_name, level_from_rank, next_rank, rank_requires_stream,
)
from .base import api_login_required


@require_GET
@api_login_required
def api_ranks(request):
    """Rank catalogue used to populate the class creation form."""
    return JsonResponse({'ranks': [option._asdict() for option in available_ranks()]})


@require_GET
@api_login_required
def api_streams(request):
    """Stream options for ?rank=; A-Level ranks get Sciences/Arts only."""
    rank = request.GET.get('rank', '')
    return JsonResponse({
        'rank': rank,
        'requires_stream': rank_requires_stream(rank),
        'streams': [option._asdict() for option in available_streams(rank)],
    })


@require_GET
@api_login_required
def api_class_preview(request):
    """
    Preview the derived facts of a class before it is created.

    Query: rank, stream (optional)
    """
    rank = request.GET.get('rank', '')
    stream = request.GET.get('stream') or None
    successor = next_rank(rank)

    return JsonResponse({
        'rank': rank,
        'stream': stream,
        'name': generate_class_name(rank, stream),
        'level': level_from_rank(rank),
        'requires_stream': rank_requires_stream(rank),
        'rank_display': format_rank_display(rank),
        'next_rank': successor.value if successor else None,
    })


@require_GET
@api_login_required
def api_years(request):
    """Academic years known to the system, newest first."""
    years = list(AcademicYear.objects.order_by('-year').values_list('year', flat=True))
    return JsonResponse({'years': years})


@require_GET
@api_login_required
def api_terms(request):
    terms = [{'value': value, 'label': format_term(value)} for value in Term.values]
    return JsonResponse({'terms': terms})
