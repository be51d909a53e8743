"""Shared utility functions used across all apps."""

import logging
import re
from contextlib import contextmanager

from ulid import ULID

# Crockford base32, 26 characters. The leading character carries only three
# bits of the 48-bit timestamp, so it can never exceed "7".
ULID_PATTERN = r"[0-7][0-9A-HJKMNP-TV-Za-hjkmnp-tv-z]{25}"

_ULID_RE = re.compile(rf"^{ULID_PATTERN}$")


def generate_ulid():
    """
    Generate a new time-ordered, globally unique 128-bit identifier.

    The first 48 bits are a millisecond timestamp, so ids sort by creation
    time; the remaining 80 bits are random.

    Returns:
        A ``ulid.ULID`` instance.
    """
    return ULID()


def parse_ulid(value):
    """
    Parse the canonical 26-character text form of a ULID.

    Lowercase input is accepted and normalized.

    Args:
        value: Text (or ASCII bytes) to parse.

    Returns:
        A ``ulid.ULID`` instance.

    Raises:
        ValueError: If ``value`` is not a valid ULID string.
    """
    if isinstance(value, bytes | bytearray | memoryview):
        value = bytes(value).decode("ascii")
    if not isinstance(value, str) or not _ULID_RE.match(value):
        raise ValueError(f"'{value}' is not a valid ULID.")
    return ULID.from_str(value.upper())


def raise_if_cancelled(cancel, operation_name):
    """
    Raise OperationCancelled if the caller's cancel handle is set.

    ``cancel`` is any object with an ``is_set()`` method (for example a
    ``threading.Event``) or None.
    """
    if cancel is not None and cancel.is_set():
        from logstore.exceptions import OperationCancelled

        raise OperationCancelled(operation_name)


@contextmanager
def safe_dispatch(operation_name, logger=None):
    """
    Context manager for operations that should never raise.

    Use around bookkeeping writes, notifications and other side-effects that
    must not break the main operation.

    Usage::

        with safe_dispatch("mark log file as staged", logger):
            index.mark_staged(file_id)
    """
    _logger = logger or logging.getLogger("logdrop.dispatch")
    try:
        yield
    except Exception as e:
        _logger.error("Failed to %s: %s", operation_name, e)
