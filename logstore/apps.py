"""Django AppConfig for the logstore app."""

from django.apps import AppConfig


class LogstoreConfig(AppConfig):
    name = "logstore"
    verbose_name = "Log storage"
