import logging

from celery import shared_task
from django.conf import settings

from . import store

logger = logging.getLogger(__name__)


@shared_task(ignore_result=False)
def sweep_downloads(max_age_minutes: int | None = None) -> dict:
    """Periodic cleanup pass over DOWNLOADS_ROOT (scheduled by beat, and once at worker start)."""
    if max_age_minutes is None:
        max_age_minutes = settings.SWEEP_MAX_AGE_MINUTES
    result = store.sweep(max_age_minutes)
    if result.expired or result.removed or result.errors:
        logger.info(
            "Sweep finished: %d expired, %d removed, %d errors",
            result.expired, result.removed, result.errors,
        )
    return result.as_dict()
