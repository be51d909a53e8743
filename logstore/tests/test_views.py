"""Tests for the upload and retrieval views."""

import io
from unittest import mock

import pytest
from common.utils import generate_ulid
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import Client

from logstore.services.index import get_index
from logstore.services.storage import get_storage


@pytest.fixture
def view_settings(log_settings):
    """Limits large enough for multipart overhead, small enough to exceed."""
    log_settings.LOG_SINGLE_FILE_SIZE_LIMIT = 1024
    log_settings.LOG_MAX_FILE_COUNT = 3
    return log_settings


@pytest.fixture
def client():
    return Client()


@pytest.fixture
def stored_bundle(view_settings):
    """Store two files directly and return (bundle_id, file_ids)."""
    storage = get_storage()
    file_ids = [generate_ulid(), generate_ulid()]
    for file_id, data in zip(file_ids, [b"first\n", b"second\n"], strict=True):
        storage.stage(file_id, io.BytesIO(data), limit=1024)
        storage.promote(file_id)
    return get_index().create_bundle(file_ids), file_ids


def log_file(name="app.log", data=b"log line\n"):
    return SimpleUploadedFile(name, data, content_type="text/plain")


def multipart_body(parts, boundary="LogdropBoundary"):
    """Encode (field, data) parts in the given order, field names repeating."""
    lines = []
    for n, (field, data) in enumerate(parts):
        lines += [
            f"--{boundary}".encode(),
            (
                f'Content-Disposition: form-data; name="{field}"; '
                f'filename="{n}.log"'
            ).encode(),
            b"Content-Type: text/plain",
            b"",
            data,
        ]
    lines += [f"--{boundary}--".encode(), b""]
    return b"\r\n".join(lines), f"multipart/form-data; boundary={boundary}"


class TestUploadView:
    """Tests for POST /logs/."""

    def test_upload_returns_bundle_id(self, client, view_settings):
        """The response body is the id of a bundle listing the files in order."""
        response = client.post(
            "/logs/",
            {"files": [log_file("a.log", b"aaa"), log_file("b.log", b"bbb")]},
        )

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/plain")
        bundle_id = response.content.decode()
        file_ids = get_index().get_bundle(bundle_id)
        storage = get_storage()
        assert [storage.stored_file(i).read_bytes() for i in file_ids] == [
            b"aaa",
            b"bbb",
        ]

    def test_files_from_several_fields_are_accepted(self, client, view_settings):
        response = client.post(
            "/logs/", {"first": log_file(), "second": log_file()}
        )
        assert response.status_code == 200
        assert len(get_index().get_bundle(response.content.decode())) == 2

    def test_interleaved_field_names_keep_arrival_order(self, client, view_settings):
        """Files are bundled in the order their parts arrive, not by field."""
        body, content_type = multipart_body(
            [("a", b"first"), ("b", b"second"), ("a", b"third")]
        )
        response = client.post("/logs/", body, content_type=content_type)

        assert response.status_code == 200
        file_ids = get_index().get_bundle(response.content.decode())
        storage = get_storage()
        assert [storage.stored_file(i).read_bytes() for i in file_ids] == [
            b"first",
            b"second",
            b"third",
        ]
        timestamps = [file_id.milliseconds for file_id in file_ids]
        assert timestamps == sorted(timestamps)

    def test_missing_content_length_returns_411(self, client, view_settings):
        response = client.generic("POST", "/logs/", b"", content_type="text/plain")
        assert response.status_code == 411

    def test_content_length_over_total_limit_returns_413(self, client, view_settings):
        """The total limit is the single file limit times the file count."""
        response = client.post("/logs/", {"files": log_file(data=b"x" * 4000)})
        assert response.status_code == 413
        assert b"3072" in response.content

    def test_file_over_single_limit_returns_413(self, client, view_settings):
        """One file over the limit rejects the upload and stores nothing."""
        response = client.post(
            "/logs/",
            {"files": [log_file(data=b"ok"), log_file(data=b"x" * 1025)]},
        )
        assert response.status_code == 413
        assert b"1024" in response.content
        assert list(get_storage().storage_path.iterdir()) == []
        assert list(get_storage().staging_path.iterdir()) == []

    def test_too_many_files_returns_413(self, client, view_settings):
        files = [log_file(f"{n}.log", b"x") for n in range(4)]
        response = client.post("/logs/", {"files": files})
        assert response.status_code == 413
        assert b"more than 3 file(s)" in response.content
        assert list(get_storage().storage_path.iterdir()) == []

    def test_no_files_returns_400(self, client, view_settings):
        response = client.post("/logs/", {"note": "no attachments"})
        assert response.status_code == 400

    def test_storage_failure_returns_500(self, client, view_settings):
        """Unexpected storage errors are hidden behind a generic message."""
        with mock.patch(
            "logstore.views.store_log_files", side_effect=OSError("disk full")
        ):
            response = client.post("/logs/", {"files": log_file()})
        assert response.status_code == 500
        assert b"disk full" not in response.content

    def test_get_not_allowed(self, client, view_settings):
        assert client.get("/logs/").status_code == 405


class TestFileView:
    """Tests for GET /logs/file/<id>/."""

    def test_streams_stored_file(self, client, stored_bundle):
        _, file_ids = stored_bundle
        response = client.get(f"/logs/file/{file_ids[0]}/")

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/plain")
        assert "immutable" in response["Cache-Control"]
        assert b"".join(response.streaming_content) == b"first\n"
        response.close()

    def test_lowercase_id_is_accepted(self, client, stored_bundle):
        _, file_ids = stored_bundle
        response = client.get(f"/logs/file/{str(file_ids[1]).lower()}/")
        assert response.status_code == 200
        assert b"".join(response.streaming_content) == b"second\n"
        response.close()

    def test_unknown_file_returns_404(self, client, view_settings):
        response = client.get(f"/logs/file/{generate_ulid()}/")
        assert response.status_code == 404

    def test_invalid_id_returns_404(self, client, view_settings):
        assert client.get("/logs/file/not-a-ulid/").status_code == 404


class TestBundleView:
    """Tests for GET /logs/bundle/<id>/."""

    def test_returns_file_ids_as_json(self, client, stored_bundle):
        bundle_id, file_ids = stored_bundle
        response = client.get(f"/logs/bundle/{bundle_id}/")
        assert response.status_code == 200
        assert response.json() == [str(i) for i in file_ids]

    def test_unknown_bundle_returns_404(self, client, view_settings):
        response = client.get(f"/logs/bundle/{generate_ulid()}/")
        assert response.status_code == 404


class TestBundlePageView:
    """Tests for GET /view/bundle/<id>/."""

    def test_lists_files_with_links(self, client, stored_bundle):
        bundle_id, file_ids = stored_bundle
        response = client.get(f"/view/bundle/{bundle_id}/")

        assert response.status_code == 200
        body = response.content.decode()
        for file_id in file_ids:
            assert f"/logs/file/{file_id}/" in body

    def test_unknown_bundle_renders_not_found_page(self, client, view_settings):
        bundle_id = generate_ulid()
        response = client.get(f"/view/bundle/{bundle_id}/")
        assert response.status_code == 404
        assert str(bundle_id) in response.content.decode()


class TestHealthEndpoints:
    def test_ping(self, client):
        response = client.get("/ping")
        assert response.status_code == 200
        assert response.content == b"."

    def test_healthz(self, client):
        response = client.get("/healthz/")
        assert response.json() == {"status": "ok"}
