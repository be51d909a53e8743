"""Bundle index: key-value records for staged files and log bundles."""

import functools
import logging
import time
from datetime import UTC, datetime, timedelta

from common.utils import generate_ulid, raise_if_cancelled
from django.conf import settings
from django.core.cache import caches

from logstore.codec import STRIDE, decode_ids, encode_ids
from logstore.exceptions import (
    BundleNotFound,
    CodecError,
    DecodeFailed,
    EncodeFailed,
    ReadFailed,
    WriteFailed,
)

logger = logging.getLogger(__name__)

# Value is the staging time in UTC.
STAGED_LOGS_NAMESPACE = "stagedLogs"
# Value is the concatenated canonical text of the bundle's log file ids.
LOG_BUNDLES_NAMESPACE = "logBundles"
PING_KEY = "logdrop:ping"


def format_timestamp(nanoseconds):
    """Format nanoseconds since the epoch as RFC 3339 UTC text.

    The fraction always has nine digits and the offset is written as ``Z``.
    """
    seconds, fraction = divmod(nanoseconds, 1_000_000_000)
    moment = datetime.fromtimestamp(seconds, tz=UTC)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{fraction:09d}Z"


class BundleIndex:
    """Records staged files and bundles in a Django cache with a TTL.

    Every record expires after ``retention``, the same window after which
    the retention sweep deletes files. The two clocks are independent, so a
    bundle may briefly outlive its files or the other way around.
    """

    def __init__(self, cache, retention):
        self.cache = cache
        self.retention = retention

    @classmethod
    def from_settings(cls):
        return cls(
            cache=caches[settings.LOG_INDEX_CACHE],
            retention=timedelta(hours=settings.LOG_RETENTION_HOURS),
        )

    @property
    def timeout(self):
        return int(self.retention.total_seconds())

    def mark_staged(self, file_id, *, cancel=None):
        """Record that ``file_id`` finished staging.

        Raises:
            WriteFailed: If the cache backend rejects the write.
        """
        raise_if_cancelled(cancel, "mark log file as staged")
        key = f"{STAGED_LOGS_NAMESPACE}:{file_id}"
        value = format_timestamp(time.time_ns())
        try:
            self.cache.set(key, value, timeout=self.timeout)
        except Exception as exc:
            logger.error("Failed to set value for key: key=%s value=%s", key, value)
            raise WriteFailed(f"Failed to write {key}: {exc}") from exc

    def create_bundle(self, file_ids, *, cancel=None):
        """Store an ordered list of log file ids under a new bundle id.

        Args:
            file_ids: Non-empty ordered sequence of log file ULIDs.
            cancel: Optional handle with ``is_set()``.

        Returns:
            The new bundle's ULID.

        Raises:
            EncodeFailed: If ``file_ids`` cannot be encoded (e.g. empty).
            WriteFailed: If the record could not be written.
        """
        raise_if_cancelled(cancel, "create log bundle")
        try:
            encoded = encode_ids(file_ids)
        except CodecError as exc:
            logger.error("Failed to encode ids: error=%s", exc)
            raise EncodeFailed(str(exc)) from exc

        bundle_id = generate_ulid()
        key = f"{LOG_BUNDLES_NAMESPACE}:{bundle_id}"
        try:
            added = self.cache.add(key, encoded, timeout=self.timeout)
        except Exception as exc:
            logger.error("Failed to write log bundle: key=%s error=%s", key, exc)
            raise WriteFailed(f"Failed to write {key}: {exc}") from exc

        if not added:
            logger.error("Log bundle key already exists: key=%s", key)
            raise WriteFailed(f"Log bundle {bundle_id} already exists.")

        logger.info(
            "Log bundle created: id=%s files=%d", bundle_id, len(encoded) // STRIDE
        )
        return bundle_id

    def get_bundle(self, bundle_id, *, cancel=None):
        """Return the ordered log file ids of a bundle.

        Raises:
            BundleNotFound: If the bundle never existed or has expired.
            ReadFailed: If the cache backend cannot be read.
            DecodeFailed: If the stored record is corrupt.
        """
        raise_if_cancelled(cancel, "get log bundle")
        key = f"{LOG_BUNDLES_NAMESPACE}:{bundle_id}"
        try:
            data = self.cache.get(key)
        except Exception as exc:
            logger.error("Failed to read log bundle: key=%s error=%s", key, exc)
            raise ReadFailed(f"Failed to read {key}: {exc}") from exc

        if data is None:
            raise BundleNotFound(bundle_id)

        try:
            return decode_ids(data)
        except CodecError as exc:
            logger.error("Failed to decode log bundle: key=%s error=%s", key, exc)
            raise DecodeFailed(
                f"Failed to decode log file ids of bundle {bundle_id}: {exc}"
            ) from exc

    def ping(self, *, cancel=None):
        """Round-trip the cache backend once.

        The Redis backend's socket timeouts bound how long this can block.

        Raises:
            ReadFailed: If the backend is unreachable.
        """
        raise_if_cancelled(cancel, "ping bundle index")
        try:
            self.cache.get(PING_KEY)
        except Exception as exc:
            raise ReadFailed(f"Failed to reach the bundle index: {exc}") from exc


@functools.cache
def get_index():
    """Return the process-wide BundleIndex built from settings."""
    return BundleIndex.from_settings()
