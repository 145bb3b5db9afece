# petora/services/test_storage_service.py
import io
from unittest.mock import MagicMock

import pytest
from google.api_core import exceptions as google_exceptions
from marshmallow import ValidationError

from petora.core.errors import NotFoundError, UpstreamError
from petora.services.storage_service import StorageService


def test_url_and_blob_name_are_inverse():
    url = StorageService.url_for_blob("listings/abc.png")
    assert url == "/api/images/listings/abc.png"
    assert StorageService.blob_name_from_url(url) == "listings/abc.png"
    assert StorageService.blob_name_from_url("https://placehold.co/600x400") is None
    assert StorageService.blob_name_from_url(None) is None


def test_oversized_image_is_rejected_before_writing():
    service = StorageService()
    service.bucket = MagicMock()
    service.max_bytes = 4

    with pytest.raises(ValidationError):
        service.upload(io.BytesIO(b"12345"), "a.png", "image/png", "listings")
    service.bucket.blob.assert_not_called()


def test_upload_failure_becomes_upstream_error():
    service = StorageService()
    service.bucket = MagicMock()
    service.bucket.blob.return_value.upload_from_string.side_effect = google_exceptions.ServiceUnavailable("down")

    with pytest.raises(UpstreamError):
        service.upload(io.BytesIO(b"data"), "a.png", "image/png", "listings")


def test_open_missing_blob(storage_service):
    with pytest.raises(NotFoundError):
        storage_service.open("listings/missing.png")


def test_upload_names_blob_by_folder_and_extension(storage_service, blob_store):
    url = storage_service.upload(io.BytesIO(b"data"), "My Dog.PNG", "image/png", "posts")

    blob_name = storage_service.blob_name_from_url(url)
    assert blob_name.startswith("posts/")
    assert blob_name.endswith(".png")
    assert blob_store[blob_name] == (b"data", "image/png")


def test_delete_owned_ignores_foreign_urls(storage_service):
    storage_service.delete_owned("https://placehold.co/600x400", "alice")
    storage_service.bucket.blob.assert_not_called()


def test_upload_with_owner_uses_owner_prefix(storage_service, blob_store):
    url = storage_service.upload(io.BytesIO(b"data"), "a.png", "image/png", "posts", owner_id="alice")

    blob_name = storage_service.blob_name_from_url(url)
    assert blob_name.startswith("posts/alice/")
    assert blob_name in blob_store


@pytest.mark.parametrize("blob_name,owner_id,expected", [
    ("listings/alice/1.png", "alice", True),
    ("listings/alice/1.png", "mallory", False),
    ("listings/alice/1.png", None, False),
    ("strays/1.png", None, True),
    ("strays/1.png", "alice", False),
    ("listings/alice/../bob/1.png", "alice", False),
])
def test_is_owned_by(blob_name, owner_id, expected):
    assert StorageService.is_owned_by(blob_name, owner_id) is expected


def test_delete_owned_leaves_other_users_blobs(storage_service, blob_store):
    url = storage_service.upload(io.BytesIO(b"data"), "a.png", "image/png", "listings", owner_id="alice")

    storage_service.delete_owned(url, "mallory")
    assert len(blob_store) == 1

    storage_service.delete_owned(url, "alice")
    assert blob_store == {}
