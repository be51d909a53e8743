"""
Celery application for Logdrop.

django-configurations must be set up before the app reads Django settings.
Only one periodic task runs here, the retention sweep; its schedule is
CELERY_BEAT_SCHEDULE in boot/settings.py.
"""

import logging
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "boot.settings")
os.environ.setdefault("DJANGO_CONFIGURATION", "Dev")

import configurations

configurations.setup()

from celery import Celery  # noqa: E402
from celery.signals import worker_ready  # noqa: E402

logger = logging.getLogger("logdrop.celery")

app = Celery("logdrop")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


@worker_ready.connect
def prepare_log_storage(sender=None, **kwargs):
    """Create the storage directories before the first sweep is scheduled."""
    from logstore.services.storage import get_storage

    storage = get_storage()
    logger.info(
        "Worker ready: storage=%s promotion=%s",
        storage.storage_path,
        storage.promotion_strategy,
    )
