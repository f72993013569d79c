"""
Profile Service — Profile update orchestrator.

Every user-facing mutation runs the same sequence:

  1. Validate the supplied values (nothing is written on failure)
  2. Read current state through the repository
  3. Apply the mutation and commit it
  4. Publish the derived downstream event, if the mutation affects one

Events go out only after the commit succeeds.  A publish failure raises
``MessagingError`` and leaves the committed change in place, so callers must
treat such a failure as "saved, but not announced".

Mutations that read state to decide what to publish run under a per-user
lock to keep concurrent requests for the same user from interleaving.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable

import structlog

from app.errors import NotFoundError, ValidationError
from app.messaging.publisher import EventPublisher
from app.models.photo import UserPhoto
from app.models.tag import UserTag
from app.models.user import User, UserGender
from app.repositories.user_repository import UserRepository
from app.schemas.events import PhotoEvent, TagsEvent
from app.schemas.user import ProfileUpdate
from app.services.anket_policy import anket_for_new_user, anket_for_update
from app.services.locks import UserLockManager
from app.services.photo_policy import DecisionKind, select_primary_after_removal
from app.services.photo_service import PhotoService

logger = structlog.get_logger("profile_service.user_service")

JUNG_TYPES: frozenset[str] = frozenset({
    "INTJ", "INTP", "ENTJ", "ENTP",
    "INFJ", "INFP", "ENFJ", "ENFP",
    "ISTJ", "ISFJ", "ESTJ", "ESFJ",
    "ISTP", "ISFP", "ESTP", "ESFP",
})


def is_valid_jung_type(code: str) -> bool:
    return code in JUNG_TYPES


def join_tag_values(tags: Iterable[UserTag | None]) -> str:
    """Join tag values with single spaces, skipping missing or empty ones."""
    return " ".join(t.value for t in tags if t is not None and t.value)


class UserService:
    """Orchestrates validation, persistence and event publication."""

    def __init__(
        self,
        repository: UserRepository,
        publisher: EventPublisher,
        locks: UserLockManager,
        photo_service: PhotoService | None = None,
    ) -> None:
        self._repo = repository
        self._publisher = publisher
        self._locks = locks
        self._photos = photo_service

    # ══════════════════════════════════════════════════════════════════════
    # Users
    # ══════════════════════════════════════════════════════════════════════

    async def create_user(
        self,
        name: str,
        surname: str,
        about_myself: str | None = None,
        gender: UserGender | None = None,
    ) -> User:
        if not name or not surname:
            raise ValidationError("name and surname are required")

        user = User(
            id=uuid.uuid4(),
            name=name,
            surname=surname,
            about_myself=about_myself or None,
            gender=gender,
            created_at=datetime.now(timezone.utc),
            photos=[],
            tags=[],
        )
        log = logger.bind(user_id=str(user.id))
        log.info("create_user_start")

        await self._repo.add_user(user)
        await self._repo.commit()

        await self._publisher.publish_anket(anket_for_new_user(user.id, gender))
        log.info("create_user_complete")
        return user

    async def get_user(self, user_id: uuid.UUID) -> User:
        """Return the user with photos and tags loaded."""
        user = await self._repo.get_user(user_id, with_relations=True)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    async def delete_user(self, user_id: uuid.UUID) -> None:
        user = await self.require_user(user_id)
        await self._repo.delete_user(user)
        await self._repo.commit()
        logger.info("delete_user_complete", user_id=str(user_id))

    async def update_profile(self, user_id: uuid.UUID, update: ProfileUpdate) -> User:
        """Apply a partial profile update and announce demographic changes.

        Only fields present in ``update`` (and not null) are applied.
        Supplying gender and/or birth date publishes an anket; a missing
        half is taken from the stored profile via the default policy.
        """
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        log = logger.bind(user_id=str(user_id), fields=sorted(changes))
        log.info("update_profile_start")

        fields = self._validate_profile_changes(changes)

        async with self._locks.hold(user_id):
            user = await self.require_user(user_id)
            if fields:
                await self._repo.update_user(user, fields)
                await self._repo.commit()

            anket = anket_for_update(
                user_id,
                gender=changes.get("gender"),
                birth_date=changes.get("birth_date"),
                stored_gender=user.gender,
                stored_birth_date=user.birth_date,
            )
            if anket is not None:
                await self._publisher.publish_anket(anket)
                log.info("anket_published", gender=anket.gender.value)

        log.info("update_profile_complete")
        return user

    @staticmethod
    def _validate_profile_changes(changes: dict[str, Any]) -> dict[str, Any]:
        fields: dict[str, Any] = {}

        if "name" in changes:
            if changes["name"] == "":
                raise ValidationError("name cannot be empty")
            fields["name"] = changes["name"]

        if "surname" in changes:
            if changes["surname"] == "":
                raise ValidationError("surname cannot be empty")
            fields["surname"] = changes["surname"]

        if "about_myself" in changes:
            fields["about_myself"] = changes["about_myself"] or None

        for key in ("gender", "birth_date"):
            if key in changes:
                fields[key] = changes[key]

        if "jung_result" in changes:
            if not is_valid_jung_type(changes["jung_result"]):
                raise ValidationError("invalid Jung personality type")
            fields["jung_result"] = changes["jung_result"]
            fields["jung_last_attempt"] = datetime.now(timezone.utc)

        return fields

    # ══════════════════════════════════════════════════════════════════════
    # Photos
    # ══════════════════════════════════════════════════════════════════════

    async def list_photos(self, user_id: uuid.UUID) -> list[UserPhoto]:
        await self.require_user(user_id)
        return await self._repo.list_photos(user_id)

    async def add_photo(self, user_id: uuid.UUID, url: str) -> UserPhoto:
        """Attach a stored photo to the user; the primary photo is untouched."""
        if not url:
            raise ValidationError("photo URL cannot be empty")
        await self.require_user(user_id)

        photo = UserPhoto(id=uuid.uuid4(), user_id=user_id, url=url)
        await self._repo.add_photo(photo)
        await self._repo.commit()
        logger.info("add_photo_complete", user_id=str(user_id), photo_id=str(photo.id))
        return photo

    async def set_primary_photo(self, user_id: uuid.UUID, photo_id: uuid.UUID) -> None:
        log = logger.bind(user_id=str(user_id), photo_id=str(photo_id))

        async with self._locks.hold(user_id):
            user = await self.require_user(user_id)
            photo = await self._repo.get_photo(user_id, photo_id)
            if photo is None:
                log.warning("set_primary_photo_not_found")
                raise NotFoundError(f"Photo {photo_id} not found.")

            await self._repo.set_primary_photo(user, photo.url)
            await self._repo.commit()

            await self._publisher.publish_photo(PhotoEvent(user_id=user_id, image_url=photo.url))

        log.info("set_primary_photo_complete")

    async def remove_photo(self, user_id: uuid.UUID, photo_id: uuid.UUID) -> None:
        """Delete a photo, re-electing the primary photo if necessary.

        A photo event is always published: the unchanged primary when the
        removed photo was not primary, otherwise the replacement (or a null
        image when no photo remains).
        """
        log = logger.bind(user_id=str(user_id), photo_id=str(photo_id))

        async with self._locks.hold(user_id):
            user = await self.require_user(user_id)
            photo = await self._repo.get_photo(user_id, photo_id)
            if photo is None:
                log.warning("remove_photo_not_found")
                raise NotFoundError(f"Photo {photo_id} not found.")

            photos = await self._repo.list_photos(user_id)
            decision = select_primary_after_removal(user.primary_photo, photos, photo)
            log.info("primary_photo_decision", decision=decision.kind.value)

            await self._repo.remove_photo(photo)
            if decision.changes_reference:
                await self._repo.set_primary_photo(user, decision.path)
            await self._repo.commit()

            image_url = decision.path if decision.kind is not DecisionKind.NONE else None
            try:
                await self._publisher.publish_photo(PhotoEvent(user_id=user_id, image_url=image_url))
            finally:
                # Row already committed as deleted; the object follows it.
                if self._photos is not None:
                    await self._photos.delete_photo(photo.url)

        log.info("remove_photo_complete")

    # ══════════════════════════════════════════════════════════════════════
    # Tags
    # ══════════════════════════════════════════════════════════════════════

    async def list_tags(self, user_id: uuid.UUID) -> list[UserTag]:
        await self.require_user(user_id)
        return await self._repo.list_tags(user_id)

    async def add_tag(self, user_id: uuid.UUID, value: str) -> UserTag:
        if not value:
            raise ValidationError("tag cannot be empty")

        async with self._locks.hold(user_id):
            await self.require_user(user_id)
            tag = UserTag(id=uuid.uuid4(), user_id=user_id, value=value)
            await self._repo.add_tag(tag)
            await self._repo.commit()
            await self._publish_tags(user_id)

        return tag

    async def remove_tag(self, user_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        async with self._locks.hold(user_id):
            await self.require_user(user_id)
            tag = await self._repo.get_tag(user_id, tag_id)
            if tag is None:
                raise NotFoundError(f"Tag {tag_id} not found.")
            await self._repo.remove_tag(tag)
            await self._repo.commit()
            await self._publish_tags(user_id)

    async def _publish_tags(self, user_id: uuid.UUID) -> None:
        """Announce the full current tag set, not the delta."""
        tags = await self._repo.list_tags(user_id)
        joined = join_tag_values(tags)
        await self._publisher.publish_tags(TagsEvent(user_id=user_id, tags=joined))
        logger.info("tags_published", user_id=str(user_id), tag_count=len(tags))

    # ── Helpers ───────────────────────────────────────────────────────────

    async def require_user(self, user_id: uuid.UUID) -> User:
        user = await self._repo.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user
