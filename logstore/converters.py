"""URL path converters for the logstore app."""

from common.utils import ULID_PATTERN, parse_ulid


class ULIDConverter:
    """Matches a canonical ULID path segment and converts it to ``ulid.ULID``."""

    regex = ULID_PATTERN

    def to_python(self, value):
        return parse_ulid(value)

    def to_url(self, value):
        return str(value)
