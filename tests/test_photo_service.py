"""Unit tests for PhotoService — GCS-backed photo objects."""
from unittest.mock import patch

import pytest
from google.api_core.exceptions import Forbidden, NotFound

from app.errors import NotFoundError, ObjectStorageError, ValidationError
from app.services.photo_service import PhotoService


@pytest.fixture
def photo_service():
    return PhotoService(prefix="pub", url_expiry_minutes=30)


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_jpeg(self, photo_service):
        with patch("app.utils.storage.upload_file") as upload:
            object_name = await photo_service.upload_photo(b"\xff\xd8data", "image/jpeg")

        assert object_name.startswith("pub/")
        assert object_name.endswith(".jpg")
        upload.assert_called_once_with(object_name, b"\xff\xd8data", "image/jpeg")

    @pytest.mark.asyncio
    async def test_upload_png_extension(self, photo_service):
        with patch("app.utils.storage.upload_file"):
            object_name = await photo_service.upload_photo(b"\x89PNG", "image/png")
        assert object_name.endswith(".png")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content_type", ["image/gif", "text/plain", None])
    async def test_rejects_other_types(self, photo_service, content_type):
        with patch("app.utils.storage.upload_file") as upload:
            with pytest.raises(ValidationError):
                await photo_service.upload_photo(b"data", content_type)
        upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_empty_file(self, photo_service):
        with pytest.raises(ValidationError):
            await photo_service.upload_photo(b"", "image/jpeg")

    @pytest.mark.asyncio
    async def test_storage_failure(self, photo_service):
        with patch("app.utils.storage.upload_file", side_effect=Forbidden("denied")):
            with pytest.raises(ObjectStorageError):
                await photo_service.upload_photo(b"data", "image/jpeg")


class TestUrls:

    @pytest.mark.asyncio
    async def test_signed_url(self, photo_service):
        with patch("app.utils.storage.generate_signed_url", return_value="https://signed") as sign:
            url = await photo_service.get_photo_url("pub/abc.jpg")

        assert url == "https://signed"
        sign.assert_called_once_with("pub/abc.jpg", 30)

    @pytest.mark.asyncio
    async def test_foreign_object_not_found(self, photo_service):
        with patch("app.utils.storage.generate_signed_url") as sign:
            with pytest.raises(NotFoundError):
                await photo_service.get_photo_url("private/abc.jpg")
        sign.assert_not_called()


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_owned_object(self, photo_service):
        with patch("app.utils.storage.delete_file") as delete:
            await photo_service.delete_photo("pub/abc.jpg")
        delete.assert_called_once_with("pub/abc.jpg")

    @pytest.mark.asyncio
    async def test_external_url_is_left_alone(self, photo_service):
        with patch("app.utils.storage.delete_file") as delete:
            await photo_service.delete_photo("https://cdn.example.com/abc.jpg")
        delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_failure_is_swallowed(self, photo_service):
        with patch("app.utils.storage.delete_file", side_effect=NotFound("gone")):
            await photo_service.delete_photo("pub/abc.jpg")
