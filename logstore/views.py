"""HTTP views for uploading and retrieving log files and bundles."""

import logging

from django.conf import settings
from django.http import (
    FileResponse,
    Http404,
    HttpResponse,
    HttpResponseBadRequest,
    JsonResponse,
)
from django.shortcuts import render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from logstore.exceptions import (
    BundleNotFound,
    EmptyUpload,
    FileTooLarge,
    LogStoreError,
    TooManyFiles,
)
from logstore.services.index import get_index
from logstore.services.storage import get_storage
from logstore.services.uploads import store_log_files
from logstore.uploadhandlers import ArrivalOrderUploadHandler

logger = logging.getLogger(__name__)


class HttpResponseLengthRequired(HttpResponse):
    status_code = 411


class HttpResponsePayloadTooLarge(HttpResponse):
    status_code = 413


def _internal_server_error():
    return HttpResponse(
        "Something went wrong.", status=500, content_type="text/plain"
    )


def _content_length(request):
    try:
        return int(request.META.get("CONTENT_LENGTH") or 0)
    except ValueError:
        return 0


@csrf_exempt
@require_POST
def upload_view(request):
    """Accept a multipart upload of log files and create a bundle.

    Returns the new bundle id as plain text.
    """
    size_limit = settings.LOG_SINGLE_FILE_SIZE_LIMIT
    max_files = settings.LOG_MAX_FILE_COUNT
    content_length_limit = size_limit * max_files

    content_length = _content_length(request)
    if content_length <= 0:
        return HttpResponseLengthRequired(
            "Content-Length must be set to a positive non-zero value.",
            content_type="text/plain",
        )
    if content_length > content_length_limit:
        return HttpResponsePayloadTooLarge(
            f"Content-Length of {content_length} is over the limit of "
            f"{content_length_limit} bytes.",
            content_type="text/plain",
        )

    # Must be installed before request.FILES is first read.
    arrival_order = ArrivalOrderUploadHandler(request)
    request.upload_handlers.insert(0, arrival_order)
    files = arrival_order.files_in_arrival_order(request.FILES)

    try:
        bundle_id, _file_ids = store_log_files(
            files, size_limit=size_limit, max_files=max_files
        )
    except EmptyUpload:
        return HttpResponseBadRequest("No files uploaded.", content_type="text/plain")
    except TooManyFiles as exc:
        return HttpResponsePayloadTooLarge(
            f"You're not allowed to upload more than {exc.limit} file(s).",
            content_type="text/plain",
        )
    except FileTooLarge as exc:
        return HttpResponsePayloadTooLarge(
            f"File is over the single file limit of {exc.limit} bytes.",
            content_type="text/plain",
        )
    except (LogStoreError, OSError):
        logger.exception("Unexpected error while storing uploaded log files.")
        return _internal_server_error()
    finally:
        for f in files:
            f.close()

    return HttpResponse(str(bundle_id), content_type="text/plain")


@require_GET
def file_view(request, file_id):
    """Stream a stored log file."""
    try:
        handle = get_storage().open_stored_file(file_id)
    except FileNotFoundError as exc:
        raise Http404(f"Log file {file_id} not found.") from exc
    except OSError:
        return _internal_server_error()

    response = FileResponse(handle, content_type="text/plain")
    response["Cache-Control"] = "public, max-age=31536000, immutable"
    return response


@require_GET
def bundle_view(request, bundle_id):
    """Return the log file ids of a bundle as a JSON array."""
    try:
        file_ids = get_index().get_bundle(bundle_id)
    except BundleNotFound as exc:
        raise Http404(str(exc)) from exc
    except LogStoreError:
        logger.exception("Unexpected error while reading log bundle %s.", bundle_id)
        return _internal_server_error()

    return JsonResponse([str(file_id) for file_id in file_ids], safe=False)


@require_GET
def bundle_page_view(request, bundle_id):
    """Render a page listing the files of a bundle."""
    try:
        file_ids = get_index().get_bundle(bundle_id)
    except BundleNotFound:
        return render(
            request,
            "logstore/bundle_not_found.html",
            {"bundle_id": bundle_id},
            status=404,
        )
    except LogStoreError:
        logger.exception("Unexpected error while reading log bundle %s.", bundle_id)
        return _internal_server_error()

    return render(
        request,
        "logstore/bundle.html",
        {"bundle_id": bundle_id, "file_ids": file_ids},
    )
