"""Celery tasks for the logstore app."""

import logging
from datetime import timedelta

from django.utils import timezone

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(
    name="logstore.tasks.remove_expired_log_files_task",
    bind=True,
    ignore_result=False,
)
def remove_expired_log_files_task(self):
    """Delete stored log files older than LOG_RETENTION_HOURS.

    Runs every LOG_CLEANUP_INTERVAL_MINUTES via celery-beat. Files that
    cannot be deleted are skipped and picked up again on the next run. A
    storage directory that cannot be listed fails only this run: the error
    is logged and returned, and the next scheduled run tries again.

    Returns:
        dict: {"deleted": int, "failed": int} or, when the directory could
        not be listed, {"deleted": 0, "failed": 0, "error": str}
    """
    from django.conf import settings

    from logstore.exceptions import SweepFailed
    from logstore.services.storage import get_storage

    retention_hours = getattr(settings, "LOG_RETENTION_HOURS", 336)
    before = timezone.now() - timedelta(hours=retention_hours)

    try:
        result = get_storage().remove_expired(before)
    except SweepFailed as exc:
        logger.error("Retention sweep failed: %s", exc)
        return {"deleted": 0, "failed": 0, "error": str(exc)}

    if result["deleted"] or result["failed"]:
        logger.info(
            "Removed %d expired log files, %d could not be removed.",
            result["deleted"],
            result["failed"],
        )
    return result
