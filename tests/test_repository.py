"""Unit tests for UserRepository — storage error translation."""
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import StorageError
from app.models.tag import UserTag
from app.repositories.user_repository import UserRepository


@pytest.fixture
def session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.delete = AsyncMock()
    return session


class TestUserRepository:

    @pytest.mark.asyncio
    async def test_get_user_returns_scalar(self, session):
        user = MagicMock()
        result = MagicMock()
        result.scalar_one_or_none.return_value = user
        session.execute.return_value = result

        repo = UserRepository(session)
        assert await repo.get_user(uuid.uuid4()) is user

    @pytest.mark.asyncio
    async def test_list_tags(self, session):
        tags = [MagicMock(), MagicMock()]
        result = MagicMock()
        result.scalars.return_value.all.return_value = tags
        session.execute.return_value = result

        repo = UserRepository(session)
        assert await repo.list_tags(uuid.uuid4()) == tags

    @pytest.mark.asyncio
    async def test_add_tag_flushes(self, session):
        repo = UserRepository(session)
        tag = UserTag(id=uuid.uuid4(), user_id=uuid.uuid4(), value="chess")

        await repo.add_tag(tag)

        session.add.assert_called_once_with(tag)
        session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_database_error_becomes_storage_error(self, session):
        session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        repo = UserRepository(session)
        with pytest.raises(StorageError):
            await repo.get_user(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_commit_error_becomes_storage_error(self, session):
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("down"))

        repo = UserRepository(session)
        with pytest.raises(StorageError):
            await repo.commit()

    @pytest.mark.asyncio
    async def test_update_user_sets_fields(self, session):
        user = MagicMock()
        repo = UserRepository(session)

        await repo.update_user(user, {"name": "Maria", "primary_photo": None})

        assert user.name == "Maria"
        assert user.primary_photo is None
        session.flush.assert_awaited_once()
