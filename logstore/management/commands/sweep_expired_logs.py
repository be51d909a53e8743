"""Run one retention sweep over stored log files."""

from datetime import timedelta

from common.management.base import LogdropBaseCommand
from django.conf import settings
from django.core.management.base import CommandError
from django.utils import timezone

from logstore.exceptions import SweepFailed
from logstore.services.storage import get_storage


class Command(LogdropBaseCommand):
    help = "Delete stored log files older than the retention window."

    supports_dry_run = True
    supports_json = True

    def add_arguments(self, parser):
        super().add_arguments(parser)
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Retention window in hours (default: LOG_RETENTION_HOURS)",
        )

    def handle(self, *args, **options):
        hours = options["hours"]
        if hours is None:
            hours = settings.LOG_RETENTION_HOURS
        if hours < 0:
            raise CommandError("--hours must not be negative.")

        before = timezone.now() - timedelta(hours=hours)
        storage = get_storage()

        try:
            if options["dry_run"]:
                expired = [str(path) for path, _ in storage.expired_files(before)]
                result = {"before": before.isoformat(), "expired": expired}
                summary = f"Dry run: {len(expired)} log file(s) would be removed."
            else:
                removed = storage.remove_expired(before)
                result = {"before": before.isoformat(), **removed}
                summary = f"Removed {result['deleted']} log file(s)."
        except SweepFailed as exc:
            raise CommandError(str(exc)) from exc

        result["elapsed_seconds"] = round(self.elapsed(), 3)
        self.report(result, options, summary=summary)
