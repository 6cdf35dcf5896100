import logging
import os
from celery import Celery
from celery.signals import worker_ready

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tubefetch.settings")

logger = logging.getLogger(__name__)

celery_app = Celery("tubefetch")
celery_app.config_from_object("django.conf:settings", namespace="CELERY")
celery_app.autodiscover_tasks()


@worker_ready.connect
def sweep_on_startup(sender=None, **kwargs):
    """Run one sweep when a worker boots; beat takes over from there."""
    from api.tasks import sweep_downloads

    logger.info("Worker ready; dispatching startup sweep")
    sweep_downloads.delay()
