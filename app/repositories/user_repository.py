"""
Profile Service — User storage collaborator.

Thin async wrapper over a SQLAlchemy ``AsyncSession`` for users, photos and
tags.  Every database failure is re-raised as :class:`StorageError` so the
service layer deals with a single error type.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import StorageError
from app.models.photo import UserPhoto
from app.models.tag import UserTag
from app.models.user import User

logger = structlog.get_logger("profile_service.repository")


class UserRepository:
    """Storage operations scoped to a single request session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("storage_failure", operation=operation, error=str(exc))
            raise StorageError(f"{operation} failed") from exc

    async def commit(self) -> None:
        async with self._guard("commit"):
            await self._session.commit()

    # ── Users ─────────────────────────────────────────────────────────────

    async def add_user(self, user: User) -> User:
        async with self._guard("add_user"):
            self._session.add(user)
            await self._session.flush()
        return user

    async def get_user(
        self, user_id: uuid.UUID, with_relations: bool = False
    ) -> User | None:
        stmt = select(User).where(User.id == user_id)
        if with_relations:
            stmt = stmt.options(selectinload(User.photos), selectinload(User.tags))
        async with self._guard("get_user"):
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none()

    async def update_user(self, user: User, fields: dict[str, Any]) -> User:
        async with self._guard("update_user"):
            for field, value in fields.items():
                setattr(user, field, value)
            await self._session.flush()
        return user

    async def delete_user(self, user: User) -> None:
        async with self._guard("delete_user"):
            await self._session.delete(user)
            await self._session.flush()

    async def set_primary_photo(self, user: User, path: str | None) -> None:
        await self.update_user(user, {"primary_photo": path})

    # ── Photos ────────────────────────────────────────────────────────────

    async def add_photo(self, photo: UserPhoto) -> UserPhoto:
        async with self._guard("add_photo"):
            self._session.add(photo)
            await self._session.flush()
        return photo

    async def list_photos(self, user_id: uuid.UUID) -> list[UserPhoto]:
        stmt = (
            select(UserPhoto)
            .where(UserPhoto.user_id == user_id)
            .order_by(UserPhoto.created_at, UserPhoto.id)
        )
        async with self._guard("list_photos"):
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

    async def get_photo(
        self, user_id: uuid.UUID, photo_id: uuid.UUID
    ) -> UserPhoto | None:
        stmt = select(UserPhoto).where(
            UserPhoto.id == photo_id, UserPhoto.user_id == user_id
        )
        async with self._guard("get_photo"):
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none()

    async def remove_photo(self, photo: UserPhoto) -> None:
        async with self._guard("remove_photo"):
            await self._session.delete(photo)
            await self._session.flush()

    # ── Tags ──────────────────────────────────────────────────────────────

    async def add_tag(self, tag: UserTag) -> UserTag:
        async with self._guard("add_tag"):
            self._session.add(tag)
            await self._session.flush()
        return tag

    async def list_tags(self, user_id: uuid.UUID) -> list[UserTag]:
        stmt = (
            select(UserTag)
            .where(UserTag.user_id == user_id)
            .order_by(UserTag.created_at, UserTag.id)
        )
        async with self._guard("list_tags"):
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

    async def get_tag(self, user_id: uuid.UUID, tag_id: uuid.UUID) -> UserTag | None:
        stmt = select(UserTag).where(UserTag.id == tag_id, UserTag.user_id == user_id)
        async with self._guard("get_tag"):
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none()

    async def remove_tag(self, tag: UserTag) -> None:
        async with self._guard("remove_tag"):
            await self._session.delete(tag)
            await self._session.flush()
