"""Django AppConfig for the common app."""

from django.apps import AppConfig


class CommonConfig(AppConfig):
    """Configuration for the common app (shared utilities and base commands)."""

    name = "common"
