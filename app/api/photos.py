"""
Profile Service — Photos API

Redirects a stored photo object to a short-lived signed URL.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from app.api.dependencies import get_photo_service
from app.services.photo_service import PhotoService

logger = structlog.get_logger("profile_service.api.photos")

router = APIRouter()


@router.get(
    "/{object_name:path}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Redirect to a signed photo URL",
)
async def get_photo(
    object_name: str,
    photo_service: PhotoService = Depends(get_photo_service),
) -> RedirectResponse:
    url = await photo_service.get_photo_url(object_name)
    logger.info("photo_redirect", object_name=object_name)
    return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
