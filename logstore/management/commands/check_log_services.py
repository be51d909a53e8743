"""Verify the storage directories and the bundle index before serving."""

from common.management.base import LogdropBaseCommand
from django.core.management.base import CommandError

from logstore.exceptions import ReadFailed
from logstore.services.index import get_index
from logstore.services.storage import get_storage


class Command(LogdropBaseCommand):
    help = "Create the staging and storage directories and ping the bundle index."

    supports_json = True

    def handle(self, *args, **options):
        try:
            storage = get_storage()
        except OSError as exc:
            raise CommandError(f"Storage directories are not usable: {exc}") from exc

        try:
            get_index().ping()
        except ReadFailed as exc:
            raise CommandError(str(exc)) from exc

        result = {
            "staging_path": str(storage.staging_path),
            "storage_path": str(storage.storage_path),
            "promotion": storage.promotion_strategy,
            "index": "ok",
        }
        self.report(result, options, summary="Log services are ready.")
