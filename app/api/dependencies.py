"""
Profile Service — FastAPI dependency providers.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.messaging.publisher import get_publisher
from app.repositories.user_repository import UserRepository
from app.services.locks import get_lock_manager
from app.services.photo_service import PhotoService
from app.services.user_service import UserService

_photo_service: PhotoService | None = None


def get_photo_service() -> PhotoService:
    global _photo_service
    if _photo_service is None:
        _photo_service = PhotoService()
    return _photo_service


def get_user_service(
    db: AsyncSession = Depends(get_db),
    photo_service: PhotoService = Depends(get_photo_service),
) -> UserService:
    """Build a request-scoped orchestrator around the request's session."""
    return UserService(
        repository=UserRepository(db),
        publisher=get_publisher(),
        locks=get_lock_manager(),
        photo_service=photo_service,
    )
