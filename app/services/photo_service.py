"""
Profile Service — Photo object storage.

Stores uploaded images in GCS under ``GCS_PHOTO_PREFIX`` and hands out
time-limited signed URLs for them.  The GCS SDK is blocking, so every call
runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import uuid

import structlog
from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError

from app.config import get_settings
from app.errors import NotFoundError, ObjectStorageError, ValidationError
from app.utils import storage

logger = structlog.get_logger("profile_service.photo_service")


class PhotoService:
    """Upload, sign and delete user photo objects."""

    ALLOWED_CONTENT_TYPES: dict[str, str] = {
        "image/jpeg": "jpg",
        "image/jpg": "jpg",
        "image/png": "png",
    }

    def __init__(self, prefix: str | None = None, url_expiry_minutes: int | None = None) -> None:
        settings = get_settings()
        self.prefix = (prefix if prefix is not None else settings.GCS_PHOTO_PREFIX).strip("/")
        self.url_expiry_minutes = url_expiry_minutes or settings.PHOTO_URL_EXPIRY_MINUTES

    def owns(self, object_name: str) -> bool:
        """True if ``object_name`` lives under this service's prefix."""
        return object_name.startswith(f"{self.prefix}/")

    async def upload_photo(self, data: bytes, content_type: str | None) -> str:
        """Store ``data`` and return its object path."""
        ext = self.ALLOWED_CONTENT_TYPES.get((content_type or "").lower())
        if ext is None:
            raise ValidationError("only jpeg/png images are allowed")
        if not data:
            raise ValidationError("photo is empty")

        object_name = f"{self.prefix}/{uuid.uuid4()}.{ext}"
        try:
            await asyncio.to_thread(storage.upload_file, object_name, data, content_type)
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.error("photo_upload_failed", object_name=object_name, error=str(exc))
            raise ObjectStorageError("upload failed") from exc

        logger.info("photo_uploaded", object_name=object_name, size=len(data))
        return object_name

    async def get_photo_url(self, object_name: str) -> str:
        if not self.owns(object_name):
            raise NotFoundError(f"Photo {object_name} not found.")
        try:
            return await asyncio.to_thread(
                storage.generate_signed_url, object_name, self.url_expiry_minutes
            )
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.error("photo_sign_failed", object_name=object_name, error=str(exc))
            raise ObjectStorageError("could not generate photo URL") from exc

    async def delete_photo(self, object_name: str) -> None:
        """Remove the stored object; failures are logged, not raised."""
        if not self.owns(object_name):
            return
        try:
            await asyncio.to_thread(storage.delete_file, object_name)
        except (GoogleAPIError, GoogleAuthError) as exc:
            logger.warning("photo_object_delete_failed", object_name=object_name, error=str(exc))
            return
        logger.info("photo_object_deleted", object_name=object_name)
