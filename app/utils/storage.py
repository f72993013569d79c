"""Blocking Google Cloud Storage helpers for the photo bucket.

Callers on the event loop run these through ``asyncio.to_thread``.
"""

import datetime
from functools import lru_cache

from google.cloud import storage as gcs_storage

from app.config import get_settings


@lru_cache(maxsize=1)
def get_storage_client() -> gcs_storage.Client:
    return gcs_storage.Client(project=get_settings().GCP_PROJECT_ID or None)


def get_bucket() -> gcs_storage.Bucket:
    return get_storage_client().bucket(get_settings().GCS_BUCKET_NAME)


def upload_file(object_name: str, data: bytes, content_type: str) -> str:
    """Store ``data`` under ``object_name`` and return the object name."""
    get_bucket().blob(object_name).upload_from_string(data, content_type=content_type)
    return object_name


def generate_signed_url(object_name: str, expiry_minutes: int) -> str:
    """V4 signed GET URL valid for ``expiry_minutes``."""
    return get_bucket().blob(object_name).generate_signed_url(
        version="v4",
        expiration=datetime.timedelta(minutes=expiry_minutes),
        method="GET",
    )


def delete_file(object_name: str) -> None:
    get_bucket().blob(object_name).delete()


def bucket_exists() -> bool:
    return get_bucket().exists()
