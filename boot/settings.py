"""
Django settings for Logdrop.

Uses django-configurations for class-based settings.
See https://docs.djangoproject.com/en/6.0/ref/settings/
"""

from datetime import timedelta
from pathlib import Path

from configurations import Configuration, values


class Base(Configuration):
    """Base configuration for all environments."""

    BASE_DIR = Path(__file__).resolve().parent.parent

    SECRET_KEY = values.SecretValue()

    DEBUG = values.BooleanValue(False)

    ALLOWED_HOSTS = values.ListValue([])

    # Application definition
    INSTALLED_APPS = [
        "django.contrib.contenttypes",
        # Third-party apps
        "django_celery_results",
        "django_celery_beat",
        # Project apps
        "common",
        "logstore",
    ]

    MIDDLEWARE = [
        "django.middleware.security.SecurityMiddleware",
        "django.middleware.common.CommonMiddleware",
        "django.middleware.csrf.CsrfViewMiddleware",
        "django.middleware.clickjacking.XFrameOptionsMiddleware",
    ]

    ROOT_URLCONF = "boot.urls"

    TEMPLATES = [
        {
            "BACKEND": "django.template.backends.django.DjangoTemplates",
            "DIRS": [],
            "APP_DIRS": True,
            "OPTIONS": {
                "context_processors": [
                    "django.template.context_processors.request",
                ],
            },
        },
    ]

    WSGI_APPLICATION = "boot.wsgi.application"

    # Database (Celery results and beat schedule only)
    DATABASES = values.DatabaseURLValue("sqlite:///db.sqlite3")

    # Internationalization
    LANGUAGE_CODE = values.Value("en-us")
    TIME_ZONE = values.Value("UTC")
    USE_I18N = True
    USE_TZ = True

    # Logging
    LOG_LEVEL = values.Value("INFO", environ_name="LOG_LEVEL")

    @property
    def LOGGING(self):
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": "WARNING"},
            "loggers": {
                "logstore": {"level": self.LOG_LEVEL},
                "common": {"level": self.LOG_LEVEL},
                "logdrop": {"level": self.LOG_LEVEL},
            },
        }

    # Bundle index (Redis, shared with other readers of the same keys)
    REDIS_URL = values.Value(
        "redis://localhost:6379/0", environ_name="REDIS_CONNECTION"
    )
    LOG_INDEX_CACHE = "logstore"

    @property
    def CACHES(self):
        return {
            "default": {
                "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            },
            "logstore": {
                "BACKEND": "django.core.cache.backends.redis.RedisCache",
                "LOCATION": self.REDIS_URL,
                "KEY_FUNCTION": "logstore.cache.make_key",
                "OPTIONS": {
                    "serializer": "logstore.cache.RawSerializer",
                    "socket_connect_timeout": 10,
                    "socket_timeout": 10,
                },
            },
        }

    # Log storage
    LOG_SINGLE_FILE_SIZE_LIMIT = values.PositiveIntegerValue(
        1_048_576, environ_name="SINGLE_FILE_SIZE_LIMIT"
    )
    LOG_MAX_FILE_COUNT = values.PositiveIntegerValue(
        5, environ_name="MAX_FILE_COUNT_PER_BUNDLE"
    )
    LOG_RETENTION_HOURS = values.PositiveIntegerValue(
        336, environ_name="LOG_RETENTION_HOURS"
    )
    LOG_CLEANUP_INTERVAL_MINUTES = values.PositiveIntegerValue(
        10, environ_name="CLEANUP_INTERVAL_MINUTES"
    )
    LOG_USE_HARDLINKS = values.BooleanValue(False, environ_name="USE_HARDLINKS")
    LOG_STAGING_PATH = values.Value(
        str(BASE_DIR / "var" / "staging"), environ_name="STAGING_PATH"
    )
    LOG_STORAGE_PATH = values.Value(
        str(BASE_DIR / "var" / "storage"), environ_name="STORAGE_PATH"
    )
    # Octal text, e.g. "750". Empty means 770 for directories, 660 for files.
    LOG_DIRECTORY_PERMISSIONS = values.Value("", environ_name="DIRECTORY_UMASK")
    LOG_FILE_PERMISSIONS = values.Value("", environ_name="FILE_MASK")

    # Celery (Redis broker, separate database from the bundle index)
    CELERY_BROKER_URL = values.Value(
        "redis://localhost:6379/1",
        environ_name="CELERY_BROKER_URL",
    )
    CELERY_RESULT_BACKEND = values.Value(
        "django-db",
        environ_name="CELERY_RESULT_BACKEND",
    )
    CELERY_ACCEPT_CONTENT = ["json"]
    CELERY_TASK_SERIALIZER = "json"
    CELERY_RESULT_SERIALIZER = "json"
    CELERY_TIMEZONE = "UTC"
    CELERY_TASK_TRACK_STARTED = True
    CELERY_TASK_TIME_LIMIT = 300  # 5 min hard limit
    CELERY_TASK_SOFT_TIME_LIMIT = 240  # 4 min soft limit
    CELERY_RESULT_EXPIRES = 86400  # 24 hours
    CELERY_WORKER_HIJACK_ROOT_LOGGER = False

    # Celery Beat (database scheduler)
    CELERY_BEAT_SCHEDULER = "django_celery_beat.schedulers:DatabaseScheduler"

    @property
    def CELERY_BEAT_SCHEDULE(self):
        return {
            "remove-expired-log-files": {
                "task": "logstore.tasks.remove_expired_log_files_task",
                "schedule": timedelta(minutes=self.LOG_CLEANUP_INTERVAL_MINUTES),
                "options": {"queue": "default"},
            },
        }

    # Default field
    DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


class Dev(Base):
    """Development configuration."""

    DEBUG = True

    SECRET_KEY = values.Value("django-insecure-dev-key-change-in-production")

    ALLOWED_HOSTS = values.ListValue(["localhost", "127.0.0.1"])

    LOG_LEVEL = values.Value("DEBUG", environ_name="LOG_LEVEL")

    # Celery: eager mode for development (tasks run synchronously, no broker needed)
    CELERY_TASK_ALWAYS_EAGER = values.BooleanValue(
        True,
        environ_name="CELERY_TASK_ALWAYS_EAGER",
    )
    CELERY_TASK_EAGER_PROPAGATES = True


class Test(Base):
    """Test configuration: in-memory bundle index, eager Celery."""

    SECRET_KEY = "test-secret-key"

    ALLOWED_HOSTS = ["testserver"]

    DATABASES = values.DatabaseURLValue(
        "sqlite://:memory:", environ_name="TEST_DATABASE_URL"
    )

    @property
    def CACHES(self):
        return {
            "default": {
                "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            },
            "logstore": {
                "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                "LOCATION": "logstore-test",
                "KEY_FUNCTION": "logstore.cache.make_key",
            },
        }

    CELERY_TASK_ALWAYS_EAGER = True
    CELERY_TASK_EAGER_PROPAGATES = True
    CELERY_BROKER_URL = "memory://"
    CELERY_RESULT_BACKEND = "cache+memory://"


class Production(Base):
    """Production configuration."""

    DEBUG = False

    ALLOWED_HOSTS = values.ListValue([])

    # Security settings
    SECURE_SSL_REDIRECT = values.BooleanValue(True)
    SECURE_HSTS_SECONDS = values.IntegerValue(31536000)
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True
    CSRF_COOKIE_SECURE = True

    # Celery: disable eager mode for production
    CELERY_TASK_ALWAYS_EAGER = False
    CELERY_BROKER_CONNECTION_RETRY_ON_STARTUP = True
