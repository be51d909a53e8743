"""Shared pytest fixtures for Logdrop."""

from datetime import timedelta

import pytest


@pytest.fixture
def make_storage(tmp_path):
    """Factory fixture to create LogStorage instances under tmp_path."""
    from logstore.services.storage import LogStorage

    def _make(use_hardlinks=False):
        return LogStorage(
            staging_path=tmp_path / "staging",
            storage_path=tmp_path / "storage",
            use_hardlinks=use_hardlinks,
        )

    return _make


@pytest.fixture
def storage(make_storage):
    """LogStorage using the copy promotion strategy."""
    return make_storage()


@pytest.fixture
def index_cache():
    """The in-memory cache backing the bundle index, emptied per test."""
    from django.core.cache import caches

    cache = caches["logstore"]
    cache.clear()
    yield cache
    cache.clear()


@pytest.fixture
def index(index_cache):
    """BundleIndex over the in-memory cache with a one hour retention."""
    from logstore.services.index import BundleIndex

    return BundleIndex(index_cache, retention=timedelta(hours=1))


@pytest.fixture
def log_settings(tmp_path, settings, index_cache):
    """Point the settings-driven storage and index at temporary locations."""
    from logstore.services.index import get_index
    from logstore.services.storage import get_storage

    settings.LOG_STAGING_PATH = str(tmp_path / "staging")
    settings.LOG_STORAGE_PATH = str(tmp_path / "storage")
    settings.LOG_USE_HARDLINKS = False
    settings.LOG_SINGLE_FILE_SIZE_LIMIT = 64
    settings.LOG_MAX_FILE_COUNT = 3
    settings.LOG_RETENTION_HOURS = 24
    get_storage.cache_clear()
    get_index.cache_clear()
    yield settings
    get_storage.cache_clear()
    get_index.cache_clear()
