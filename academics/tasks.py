"""
Celery tasks for the academics app.

Year roll-over can touch every subject of every class, so it runs in the
background after promotions are processed.
"""
import logging

from celery import shared_task
from django.db import DatabaseError

from .config import config

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=config.TASK_MAX_RETRIES,
    default_retry_delay=config.TASK_RETRY_DELAY,
)
def rollover_class_subjects(self, class_id, from_class_id, previous_year, next_year):
    """
    Carry the subjects and latest competences of from_class_id in
    previous_year into class_id for next_year.

    Returns:
        dict with success flag and the number of subjects carried over
    """
    from .models import Class
    from .utils import clone_competencies_from_previous_year

    try:
        class_obj = Class.objects.get(pk=class_id)
        old_class = Class.objects.get(pk=from_class_id)
    except Class.DoesNotExist:
        # Non-retryable
        logger.error(f"Roll-over skipped: class {class_id} or {from_class_id} not found")
        return {'success': False, 'error': 'Class not found'}

    try:
        carried = clone_competencies_from_previous_year(class_obj, old_class, previous_year, next_year)
    except DatabaseError as exc:
        logger.warning(f"Roll-over of {old_class.name} into {class_obj.name} failed, retrying: {exc}")
        raise self.retry(exc=exc)

    return {'success': True, 'carried': carried}


def schedule_rollover(promotion_result, class_obj, previous_year, next_year):
    """
    Queue a roll-over for every class that received promoted or repeating
    students. Returns the target class ids queued.
    """
    targets = set()
    for bucket in ('promoted', 'repeated'):
        for item in promotion_result['results'][bucket]:
            targets.add(item['to_class_id'])

    for target_id in sorted(targets):
        rollover_class_subjects.delay(target_id, class_obj.pk, previous_year, next_year)

    if targets:
        logger.info(
            f"Queued subject roll-over from {class_obj.name} ({previous_year}) "
            f"into {len(targets)} class(es) for {next_year}"
        )
    return sorted(targets)
