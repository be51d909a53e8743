"""
Shared base command class for Logdrop management commands.

Provides the --dry-run and --json flags and a single ``report`` helper so
every command prints its result the same way.
"""

import json
import time

from django.core.management.base import BaseCommand


class LogdropBaseCommand(BaseCommand):
    """
    Base command for Logdrop operational commands.

    Subclasses opt in to common arguments with class attributes:
        supports_dry_run = True adds --dry-run
        supports_json = True adds --json
    """

    supports_dry_run = False
    supports_json = False

    def add_arguments(self, parser):
        if self.supports_dry_run:
            parser.add_argument(
                "--dry-run",
                action="store_true",
                help="Report what would be done without changing anything",
            )
        if self.supports_json:
            parser.add_argument(
                "--json",
                action="store_true",
                dest="json_output",
                help="Print the result as JSON",
            )

    def execute(self, *args, **options):
        self._started = time.monotonic()
        return super().execute(*args, **options)

    def elapsed(self):
        """Seconds since the command started executing."""
        return time.monotonic() - getattr(self, "_started", time.monotonic())

    def report(self, result, options, summary=""):
        """Print ``result`` as JSON with --json, else as one line per key."""
        if options.get("json_output"):
            self.stdout.write(json.dumps(result, indent=2, default=str))
            return

        if summary:
            self.stdout.write(self.style.SUCCESS(summary))
        for key, value in result.items():
            if isinstance(value, list):
                self.stdout.write(f"{key}: {len(value)}")
                for item in value:
                    self.stdout.write(f"  {item}")
            else:
                self.stdout.write(f"{key}: {value}")
