"""Upload service: stage every part of a request, promote, then bundle."""

import logging

from common.utils import generate_ulid, raise_if_cancelled, safe_dispatch
from django.conf import settings

from logstore.exceptions import EmptyUpload, TooManyFiles
from logstore.services.index import get_index
from logstore.services.storage import get_storage

logger = logging.getLogger(__name__)


def stage_log_files(sources, storage, index, *, size_limit, max_files, cancel=None):
    """Stage each source under a fresh id, in arrival order.

    All-or-nothing: if any source fails (too large, too many files, I/O
    error, cancellation) every file already staged for this request is
    discarded before the error propagates.

    Returns:
        list of ULIDs in the same order as ``sources``.
    """
    file_ids = []
    try:
        for source in sources:
            raise_if_cancelled(cancel, "stage uploaded log files")
            if len(file_ids) >= max_files:
                raise TooManyFiles(max_files, len(file_ids) + 1)

            file_id = generate_ulid()
            storage.stage(file_id, source, size_limit)
            file_ids.append(file_id)

            with safe_dispatch("mark log file as staged", logger):
                index.mark_staged(file_id)
    except Exception:
        if file_ids:
            logger.warning(
                "Upload aborted, discarding %d staged log file(s).", len(file_ids)
            )
            storage.discard_staged(file_ids)
        raise

    if not file_ids:
        raise EmptyUpload()
    return file_ids


def promote_log_files(file_ids, storage, *, cancel=None):
    """Promote staged files in order.

    On a promotion failure the files not yet promoted are discarded from
    staging; files already promoted stay in storage until the retention
    sweep removes them.
    """
    for position, file_id in enumerate(file_ids):
        try:
            storage.promote(file_id, cancel=cancel)
        except Exception as exc:
            logger.error(
                "Failed to store log file: id=%s promoted=%d error=%s",
                file_id,
                position,
                exc,
            )
            storage.discard_staged(file_ids[position:])
            raise


def store_log_files(
    sources,
    *,
    storage=None,
    index=None,
    size_limit=None,
    max_files=None,
    cancel=None,
):
    """Persist the files of one upload request as a new log bundle.

    Args:
        sources: Iterable of binary streams, one per uploaded file, in
            arrival order. May be lazy.
        storage: LogStorage to use. Defaults to ``get_storage()``.
        index: BundleIndex to use. Defaults to ``get_index()``.
        size_limit: Per-file byte ceiling. Defaults to
            ``settings.LOG_SINGLE_FILE_SIZE_LIMIT``.
        max_files: Maximum files per bundle. Defaults to
            ``settings.LOG_MAX_FILE_COUNT``.
        cancel: Optional handle with ``is_set()``, observed between files.

    Returns:
        A tuple of (bundle_id, file_ids).

    Raises:
        EmptyUpload: If ``sources`` yields nothing.
        TooManyFiles: If more than ``max_files`` sources are given.
        FileTooLarge: If any source exceeds ``size_limit``.
        PromoteError: If a staged file cannot be promoted.
        BundleIndexError: If the bundle record cannot be written.
    """
    storage = storage or get_storage()
    index = index or get_index()
    if size_limit is None:
        size_limit = settings.LOG_SINGLE_FILE_SIZE_LIMIT
    if max_files is None:
        max_files = settings.LOG_MAX_FILE_COUNT

    file_ids = stage_log_files(
        sources,
        storage,
        index,
        size_limit=size_limit,
        max_files=max_files,
        cancel=cancel,
    )
    promote_log_files(file_ids, storage, cancel=cancel)
    bundle_id = index.create_bundle(file_ids, cancel=cancel)

    logger.info(
        "Log files uploaded: bundle=%s files=%d",
        bundle_id,
        len(file_ids),
    )
    return bundle_id, file_ids
