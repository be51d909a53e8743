"""Error types raised by the log storage core."""


class LogStoreError(Exception):
    """Base class for all log storage errors."""


class OperationCancelled(LogStoreError):
    """The caller's cancel handle was set before the operation started."""

    def __init__(self, operation):
        self.operation = operation
        super().__init__(f"Operation '{operation}' was cancelled.")


# Codec


class CodecError(LogStoreError, ValueError):
    """Encoded bundle data does not match the codec's contract."""


class EmptyInput(CodecError):
    def __init__(self):
        super().__init__("Cannot encode an empty list of ids.")


class Truncated(CodecError):
    def __init__(self, length, stride):
        self.length = length
        self.stride = stride
        super().__init__(
            f"Input of length {length} is shorter than one encoded id "
            f"({stride} bytes)."
        )


class Misaligned(CodecError):
    def __init__(self, length, stride):
        self.length = length
        self.stride = stride
        super().__init__(f"Input of length {length} is not a multiple of {stride}.")


class MalformedId(CodecError):
    def __init__(self, offset, value):
        self.offset = offset
        self.value = value
        super().__init__(f"Invalid id {value!r} at offset {offset}.")


# Staging


class StageError(LogStoreError):
    """A file could not be written to the staging directory."""


class FileTooLarge(StageError):
    """The uploaded stream exceeded the per-file byte ceiling.

    ``actual`` is the number of bytes consumed when the overflow was
    detected, not necessarily the full size of the upload.
    """

    def __init__(self, limit, actual):
        self.limit = limit
        self.actual = actual
        super().__init__(
            f"File size of at least {actual} bytes exceeds the limit of "
            f"{limit} bytes."
        )


class AlreadyStaged(StageError):
    def __init__(self, file_id):
        self.file_id = file_id
        super().__init__(f"Log file {file_id} is already staged.")


# Promotion


class PromoteError(LogStoreError):
    """A staged file could not be moved into permanent storage."""

    def __init__(self, file_id, message):
        self.file_id = file_id
        super().__init__(message)


class LinkFailed(PromoteError):
    pass


class CopyFailed(PromoteError):
    pass


# Bundle index


class BundleIndexError(LogStoreError):
    """The bundle index could not complete a request."""


class BundleNotFound(BundleIndexError):
    def __init__(self, bundle_id):
        self.bundle_id = bundle_id
        super().__init__(f"Log bundle {bundle_id} does not exist or has expired.")


class EncodeFailed(BundleIndexError):
    pass


class DecodeFailed(BundleIndexError):
    pass


class WriteFailed(BundleIndexError):
    pass


class ReadFailed(BundleIndexError):
    pass


# Uploads and retention


class EmptyUpload(LogStoreError):
    def __init__(self):
        super().__init__("No files were uploaded.")


class TooManyFiles(LogStoreError):
    def __init__(self, limit, actual):
        self.limit = limit
        self.actual = actual
        super().__init__(
            f"Received at least {actual} files, at most {limit} are allowed "
            f"per bundle."
        )


class SweepFailed(LogStoreError):
    """The storage directory could not be listed for a retention sweep."""
