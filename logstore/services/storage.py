"""Filesystem storage for log files: staging, promotion and retention."""

import functools
import logging
import os
import shutil
import stat
from datetime import UTC, datetime, timedelta
from pathlib import Path

from common.utils import raise_if_cancelled
from django.conf import settings

from logstore.exceptions import (
    AlreadyStaged,
    CopyFailed,
    FileTooLarge,
    LinkFailed,
    SweepFailed,
)

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65_536
DEFAULT_DIRECTORY_PERMISSIONS = 0o770
DEFAULT_FILE_PERMISSIONS = 0o660

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_permissions(raw, default):
    """Parse octal permission text such as ``"0750"``; empty means default."""
    if raw in (None, "", 0, "0"):
        return default
    if isinstance(raw, int):
        return raw
    return int(str(raw), 8)


def ensure_directory(path, mode):
    """Create ``path`` (and parents) if missing.

    Raises:
        NotADirectoryError: If ``path`` exists but is not a directory.
    """
    path = Path(path)
    if not path.exists():
        path.mkdir(mode=mode, parents=True, exist_ok=True)
        logger.info("Created directory: path=%s mode=%o", path, mode)
        return path

    if not path.is_dir():
        raise NotADirectoryError(
            f"Expected a directory at '{path}' but found a file instead."
        )

    logger.info("Using existing directory: path=%s", path)
    return path


def to_nanoseconds(moment):
    """Convert an aware datetime to integer nanoseconds since the epoch."""
    return ((moment - _EPOCH) // timedelta(microseconds=1)) * 1000


def _remove_quietly(path, what):
    """Unlink ``path``, logging instead of raising on failure."""
    try:
        os.remove(path)
    except FileNotFoundError as exc:
        logger.error(
            "Cannot remove %s, it no longer exists: path=%s error=%s", what, path, exc
        )
        return False
    except OSError as exc:
        logger.error(
            "Failed to remove %s, it may still exist on disk: path=%s error=%s",
            what,
            path,
            exc,
        )
        return False
    return True


def hardlink_file(file_id, source, destination):
    """Promote by hardlinking ``destination`` to ``source`` then unlinking it.

    Only works when both paths are on the same filesystem. If linking fails
    the source is left untouched. If unlinking the source fails, the new link
    is authoritative and the stray source is only logged.

    Raises:
        LinkFailed: If the hardlink could not be created.
    """
    try:
        os.link(source, destination)
    except OSError as exc:
        raise LinkFailed(
            file_id, f"Failed to hardlink {source} to {destination}: {exc}"
        ) from exc

    _remove_quietly(source, "staged log file after hardlinking")


def copy_file(file_id, source, destination):
    """Promote by copying ``source`` into a new ``destination`` then removing it.

    The destination is created exclusively with the source's permission bits,
    so an existing stored file is never overwritten. On failure the source is
    kept and any partial destination created here is removed, so the
    promotion can be retried.

    Raises:
        CopyFailed: If the stat, open or copy step fails.
    """
    try:
        mode = stat.S_IMODE(os.stat(source).st_mode)
        fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    except OSError as exc:
        raise CopyFailed(
            file_id, f"Failed to prepare copy of {source} to {destination}: {exc}"
        ) from exc

    try:
        with os.fdopen(fd, "wb") as dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst, CHUNK_SIZE)
    except OSError as exc:
        _remove_quietly(destination, "partially copied log file")
        raise CopyFailed(
            file_id, f"Failed to copy {source} to {destination}: {exc}"
        ) from exc

    _remove_quietly(source, "staged log file after copying")


class LogStorage:
    """Staging and permanent storage directories for uploaded log files.

    Files are named by the canonical text of their ULID, without an
    extension, in both directories. The promotion strategy is chosen once
    here: ``hardlink_file`` when ``use_hardlinks`` is set, else ``copy_file``.
    """

    def __init__(
        self,
        staging_path,
        storage_path,
        use_hardlinks=False,
        directory_permissions=DEFAULT_DIRECTORY_PERMISSIONS,
        file_permissions=DEFAULT_FILE_PERMISSIONS,
    ):
        self.staging_path = Path(staging_path)
        self.storage_path = Path(storage_path)
        self.directory_permissions = directory_permissions
        self.file_permissions = file_permissions
        self._move_file = hardlink_file if use_hardlinks else copy_file

        ensure_directory(self.staging_path, self.directory_permissions)
        ensure_directory(self.storage_path, self.directory_permissions)

    @classmethod
    def from_settings(cls):
        return cls(
            staging_path=settings.LOG_STAGING_PATH,
            storage_path=settings.LOG_STORAGE_PATH,
            use_hardlinks=settings.LOG_USE_HARDLINKS,
            directory_permissions=parse_permissions(
                settings.LOG_DIRECTORY_PERMISSIONS, DEFAULT_DIRECTORY_PERMISSIONS
            ),
            file_permissions=parse_permissions(
                settings.LOG_FILE_PERMISSIONS, DEFAULT_FILE_PERMISSIONS
            ),
        )

    @property
    def promotion_strategy(self):
        return "hardlink" if self._move_file is hardlink_file else "copy"

    def staging_file(self, file_id):
        return self.staging_path / str(file_id)

    def stored_file(self, file_id):
        return self.storage_path / str(file_id)

    def stage(self, file_id, source, limit, *, cancel=None):
        """Write ``source`` to the staging directory under ``file_id``.

        Reads at most ``limit + 1`` bytes from ``source`` in CHUNK_SIZE
        pieces, so the payload is never held in memory and an oversized
        stream is detected without reading it to the end. Nothing is left in
        the staging directory when this raises.

        Args:
            file_id: ULID naming the staged file.
            source: Binary stream with a ``read(size)`` method.
            limit: Maximum accepted size in bytes.
            cancel: Optional handle with ``is_set()``, checked before writing.

        Returns:
            Number of bytes written.

        Raises:
            AlreadyStaged: If a file with this id is already staged.
            FileTooLarge: If ``source`` holds more than ``limit`` bytes.
            OSError: On any other I/O failure.
        """
        raise_if_cancelled(cancel, "stage log file")
        path = self.staging_file(file_id)
        logger.info("Staging log file: id=%s path=%s", file_id, path)

        try:
            fd = os.open(
                path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, self.file_permissions
            )
        except FileExistsError as exc:
            logger.error("Log file already staged: id=%s path=%s", file_id, path)
            raise AlreadyStaged(file_id) from exc

        written = 0
        try:
            with os.fdopen(fd, "wb") as destination:
                while True:
                    chunk = source.read(min(CHUNK_SIZE, limit + 1 - written))
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise FileTooLarge(limit, written)
                    destination.write(chunk)
        except Exception as exc:
            logger.warning(
                "Staging failed, cleaning up: id=%s bytes=%d error=%s",
                file_id,
                written,
                exc,
            )
            _remove_quietly(path, "partially staged log file")
            raise

        logger.info("Staged log file: id=%s bytes=%d", file_id, written)
        return written

    def discard_staged(self, file_ids):
        """Remove staged files of an aborted upload. Failures are only logged."""
        for file_id in file_ids:
            path = self.staging_file(file_id)
            if _remove_quietly(path, "staged log file of aborted upload"):
                logger.info("Discarded staged log file: id=%s", file_id)

    def promote(self, file_id, *, cancel=None):
        """Move a staged file into permanent storage, keeping its id.

        Raises:
            LinkFailed: Hardlink strategy could not create the link.
            CopyFailed: Copy strategy could not copy the file.
        """
        raise_if_cancelled(cancel, "promote log file")
        source = self.staging_file(file_id)
        destination = self.stored_file(file_id)
        self._move_file(file_id, source, destination)
        logger.info("Promoted log file: id=%s path=%s", file_id, destination)

    def open_stored_file(self, file_id, *, cancel=None):
        """Open a stored log file for binary reading.

        Raises:
            FileNotFoundError: If no stored file exists for ``file_id``.
        """
        raise_if_cancelled(cancel, "open log file")
        path = self.stored_file(file_id)
        try:
            return open(path, "rb")
        except OSError as exc:
            logger.error(
                "Failed to open log file for reading: path=%s error=%s", path, exc
            )
            raise

    def expired_files(self, before, *, cancel=None):
        """Yield ``(path, stat_result)`` for stored files modified before ``before``.

        Entries that cannot be stat'ed are logged and skipped.

        Raises:
            SweepFailed: If the storage directory cannot be listed at all.
        """
        raise_if_cancelled(cancel, "list expired log files")
        cutoff_ns = to_nanoseconds(before)

        entries = []
        try:
            with os.scandir(self.storage_path) as it:
                for entry in it:
                    entries.append(entry)
        except OSError as exc:
            logger.error(
                "Error while reading directory: path=%s entries=%d error=%s",
                self.storage_path,
                len(entries),
                exc,
            )
            if not entries:
                raise SweepFailed(
                    f"Failed to list storage directory {self.storage_path}: {exc}"
                ) from exc

        for entry in entries:
            raise_if_cancelled(cancel, "list expired log files")
            try:
                info = entry.stat(follow_symlinks=False)
            except OSError as exc:
                logger.error(
                    "Failed to stat log file: path=%s error=%s", entry.path, exc
                )
                continue
            if info.st_mtime_ns < cutoff_ns:
                yield Path(entry.path), info

    def remove_expired(self, before, *, cancel=None):
        """Delete stored files whose modification time is strictly before ``before``.

        A file that cannot be stat'ed or deleted is logged and skipped; the
        sweep always attempts every remaining entry.

        Args:
            before: Aware datetime cutoff. A file modified exactly at the
                cutoff is kept.
            cancel: Optional handle with ``is_set()``, checked between entries.

        Returns:
            dict: {"deleted": int, "failed": int}

        Raises:
            SweepFailed: If the storage directory cannot be listed.
        """
        logger.info("Removing log files modified before %s", before.isoformat())
        deleted = 0
        failed = 0
        for path, _info in self.expired_files(before, cancel=cancel):
            try:
                os.remove(path)
            except OSError as exc:
                logger.error(
                    "Failed to remove old log file: path=%s error=%s", path, exc
                )
                failed += 1
                continue
            logger.info("Removed old log file: path=%s", path)
            deleted += 1

        logger.info(
            "Finished removing old log files: %d deleted, %d failed.",
            deleted,
            failed,
        )
        return {"deleted": deleted, "failed": failed}


@functools.cache
def get_storage():
    """Return the process-wide LogStorage built from settings."""
    return LogStorage.from_settings()
