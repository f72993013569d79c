"""Shared pytest fixtures for profile service tests."""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from app.messaging.publisher import EventPublisher
from app.models.photo import UserPhoto
from app.models.tag import UserTag
from app.models.user import User
from app.services.locks import UserLockManager
from app.services.user_service import UserService


class FakeUserRepository:
    """In-memory stand-in for ``UserRepository``.

    Photos and tags keep insertion order, which plays the role of the
    database's listing order.
    """

    def __init__(self):
        self.users: dict[uuid.UUID, User] = {}
        self.photos: list[UserPhoto] = []
        self.tags: list[UserTag] = []
        self.commits = 0

    async def commit(self):
        self.commits += 1

    async def add_user(self, user):
        self.users[user.id] = user
        return user

    async def get_user(self, user_id, with_relations=False):
        user = self.users.get(user_id)
        if user is not None and with_relations:
            user.photos = [p for p in self.photos if p.user_id == user_id]
            user.tags = [t for t in self.tags if t.user_id == user_id]
        return user

    async def update_user(self, user, fields):
        for field, value in fields.items():
            setattr(user, field, value)
        return user

    async def delete_user(self, user):
        self.users.pop(user.id, None)
        self.photos = [p for p in self.photos if p.user_id != user.id]
        self.tags = [t for t in self.tags if t.user_id != user.id]

    async def set_primary_photo(self, user, path):
        user.primary_photo = path

    async def add_photo(self, photo):
        self.photos.append(photo)
        return photo

    async def list_photos(self, user_id):
        return [p for p in self.photos if p.user_id == user_id]

    async def get_photo(self, user_id, photo_id):
        return next(
            (p for p in self.photos if p.id == photo_id and p.user_id == user_id), None
        )

    async def remove_photo(self, photo):
        self.photos.remove(photo)

    async def add_tag(self, tag):
        self.tags.append(tag)
        return tag

    async def list_tags(self, user_id):
        return [t for t in self.tags if t.user_id == user_id]

    async def get_tag(self, user_id, tag_id):
        return next(
            (t for t in self.tags if t.id == tag_id and t.user_id == user_id), None
        )

    async def remove_tag(self, tag):
        self.tags.remove(tag)


@pytest.fixture
def repository():
    return FakeUserRepository()


@pytest.fixture
def publisher():
    return AsyncMock(spec=EventPublisher)


@pytest.fixture
def user_service(repository, publisher):
    return UserService(
        repository=repository,
        publisher=publisher,
        locks=UserLockManager(timeout_seconds=1.0),
    )


@pytest.fixture
def make_user(repository):
    """Insert a user directly into the fake repository."""

    def _make(name="Anna", surname="Petrova", **fields):
        user = User(
            id=uuid.uuid4(),
            name=name,
            surname=surname,
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        repository.users[user.id] = user
        return user

    return _make


@pytest.fixture
def add_photos(repository):
    """Attach photos with the given URLs to a user, in order."""

    def _add(user, *urls):
        photos = [UserPhoto(id=uuid.uuid4(), user_id=user.id, url=url) for url in urls]
        repository.photos.extend(photos)
        return photos

    return _add


@pytest.fixture
def add_tags(repository):
    def _add(user, *values):
        tags = [UserTag(id=uuid.uuid4(), user_id=user.id, value=value) for value in values]
        repository.tags.extend(tags)
        return tags

    return _add
