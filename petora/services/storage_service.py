# petora/services/storage_service.py
import uuid
import logging
from datetime import timedelta
from typing import BinaryIO, Optional, Tuple

from flask import Flask
from firebase_admin import storage
from google.api_core import exceptions as google_exceptions
from marshmallow import ValidationError
from werkzeug.utils import secure_filename

from petora.core.errors import NotFoundError, UpstreamError

IMAGE_URL_PREFIX = "/api/images/"


class StorageService:
    """
    Blob store gateway backed by Firebase Storage.

    Uploaded content is copied into the bucket as-is and addressed afterwards
    by its blob name; the URL handed to clients is ``/api/images/<blob name>``,
    which this API serves back.
    """

    # upload_type -> folder used for pre-signed direct uploads
    UPLOAD_FOLDERS = {
        "pet_image": "listings",
        "group_image": "groups",
        "post_image": "posts",
        "stray_report": "strays",
    }

    def __init__(self):
        self.bucket = None
        self.max_bytes = 5 * 1024 * 1024
        self.allowed_types = ("image/jpeg", "image/jpg", "image/png", "image/webp")

    def init_app(self, app: Flask):
        bucket_name = app.config.get('FIREBASE_STORAGE_BUCKET')
        if not bucket_name:
            raise ValueError("FIREBASE_STORAGE_BUCKET must be set in .env or the config.")

        self.bucket = storage.bucket(bucket_name)
        self.configure_limits(app)
        logging.info("StorageService: Firebase Storage bucket initialised.")

    def configure_limits(self, app: Flask):
        self.max_bytes = app.config.get('MAX_IMAGE_BYTES', self.max_bytes)
        self.allowed_types = tuple(app.config.get('ALLOWED_IMAGE_TYPES', self.allowed_types))

    def _require_bucket(self):
        if not self.bucket:
            raise RuntimeError("StorageService is not initialised. Call init_app first.")

    # --- validation ---

    def validate_image(self, data: bytes, content_type: Optional[str], field_name: str = "image"):
        """Size and type checks; runs before anything is written to the bucket."""
        if not data:
            raise ValidationError({field_name: ["The uploaded file is empty."]})
        if len(data) > self.max_bytes:
            limit_mb = self.max_bytes // (1024 * 1024)
            raise ValidationError({field_name: [f"Max image size is {limit_mb}MB."]})
        if content_type not in self.allowed_types:
            raise ValidationError({field_name: ["Only .jpg, .jpeg, .png and .webp formats are supported."]})

    # --- upload / download ---

    @staticmethod
    def url_for_blob(blob_name: str) -> str:
        return f"{IMAGE_URL_PREFIX}{blob_name}"

    @staticmethod
    def blob_name_from_url(url: Optional[str]) -> Optional[str]:
        """Inverse of ``url_for_blob``; None for URLs that do not point at this store."""
        if url and url.startswith(IMAGE_URL_PREFIX):
            return url[len(IMAGE_URL_PREFIX):]
        return None

    @staticmethod
    def is_owned_by(blob_name: str, owner_id: Optional[str]) -> bool:
        """
        Blobs uploaded for a user live at ``{folder}/{owner_id}/{file}``; anonymous
        uploads (stray reports) at ``{folder}/{file}``. ``owner_id=None`` matches
        only the anonymous form.
        """
        parts = blob_name.split('/')
        if owner_id:
            return len(parts) == 3 and parts[1] == owner_id
        return len(parts) == 2

    def upload(self, stream: BinaryIO, filename: str, content_type: str, folder: str,
               owner_id: Optional[str] = None) -> str:
        """
        Copies the stream into ``{folder}/{owner_id}/{uuid}.{ext}`` (``{folder}/{uuid}.{ext}``
        without an owner) and returns the retrieval URL.
        """
        self._require_bucket()
        data = stream.read()
        self.validate_image(data, content_type)

        safe_name = secure_filename(filename or "")
        extension = safe_name.rsplit('.', 1)[-1].lower() if '.' in safe_name else 'bin'
        prefix = f"{folder}/{owner_id}" if owner_id else folder
        blob_name = f"{prefix}/{uuid.uuid4()}.{extension}"

        blob = self.bucket.blob(blob_name)
        blob.metadata = {"original_filename": safe_name}
        try:
            blob.upload_from_string(data, content_type=content_type)
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Blob upload failed ({blob_name}): {e}", exc_info=True)
            raise UpstreamError() from e

        logging.info(f"Blob uploaded: {blob_name} ({len(data)} bytes, {content_type})")
        return self.url_for_blob(blob_name)

    def open(self, blob_name: str) -> Tuple[bytes, str]:
        """Returns ``(content, content_type)`` for a stored blob."""
        self._require_bucket()
        blob = self.bucket.blob(blob_name)
        try:
            if not blob.exists():
                raise NotFoundError(f"File not found: {blob_name}")
            blob.reload()
            content = blob.download_as_bytes()
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"File not found: {blob_name}") from e
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Blob download failed ({blob_name}): {e}", exc_info=True)
            raise UpstreamError() from e
        return content, blob.content_type or "application/octet-stream"

    def delete(self, blob_name: str) -> bool:
        self._require_bucket()
        blob = self.bucket.blob(blob_name)
        try:
            if not blob.exists():
                return False
            blob.delete()
            return True
        except google_exceptions.GoogleAPICallError as e:
            logging.error(f"Blob delete failed ({blob_name}): {e}", exc_info=True)
            raise UpstreamError() from e

    def delete_owned(self, url: Optional[str], owner_id: Optional[str]) -> None:
        """
        Best-effort removal of an image an entity points at. Only blobs uploaded
        by ``owner_id`` are touched; foreign URLs and other users' blobs are left alone.
        """
        blob_name = self.blob_name_from_url(url)
        if not blob_name or not self.is_owned_by(blob_name, owner_id):
            return
        try:
            self.delete(blob_name)
        except UpstreamError:
            logging.error(f"Orphaned blob left behind: {blob_name}")

    # --- direct uploads ---

    def generate_upload_url(self, user_id: str, upload_type: str, filename: str, content_type: str) -> dict:
        """
        Creates a pre-signed PUT URL so the client can upload straight to the bucket.

        :param user_id: uploader, used as a path segment
        :param upload_type: one of UPLOAD_FOLDERS
        :param filename: original file name (for the extension)
        :param content_type: MIME type the client will send
        :return: the upload URL, the blob path and the URL to store on the entity
        """
        self._require_bucket()

        folder = self.UPLOAD_FOLDERS.get(upload_type)
        if not folder:
            raise ValidationError({"upload_type": [f"'{upload_type}' is not a valid upload type."]})
        if content_type not in self.allowed_types:
            raise ValidationError({"content_type": ["Only .jpg, .jpeg, .png and .webp formats are supported."]})

        safe_name = secure_filename(filename or "")
        extension = safe_name.rsplit('.', 1)[-1].lower() if '.' in safe_name else 'bin'
        blob_name = f"{folder}/{user_id}/{uuid.uuid4()}.{extension}"

        blob = self.bucket.blob(blob_name)
        upload_url = blob.generate_signed_url(
            version="v4",
            expiration=timedelta(minutes=15),
            method="PUT",
            content_type=content_type
        )

        return {
            "upload_url": upload_url,
            "file_path": blob_name,
            "image_url": self.url_for_blob(blob_name),
        }
