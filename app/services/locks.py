"""
Profile Service — Per-user advisory locks.

Read-decide-write-publish sequences for one user are serialised through
:meth:`UserLockManager.hold`.  With a Redis client the lock is shared by all
replicas; without one it falls back to an in-process ``asyncio.Lock`` per
user, which only serialises requests handled by this worker.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import structlog
from redis.exceptions import LockError, RedisError

from app.errors import ConcurrencyError, StorageError

logger = structlog.get_logger("profile_service.locks")

_REDIS_KEY_PREFIX = "profile_service:user_lock:"


class UserLockManager:
    """Hands out one lock per user id."""

    def __init__(self, redis: Any | None = None, timeout_seconds: float = 10.0) -> None:
        self._redis = redis
        self._timeout = timeout_seconds
        # user_id -> [lock, holders + waiters]
        self._local: dict[uuid.UUID, list[Any]] = {}

    @asynccontextmanager
    async def hold(self, user_id: uuid.UUID) -> AsyncIterator[None]:
        if self._redis is not None:
            async with self._hold_redis(user_id):
                yield
        else:
            async with self._hold_local(user_id):
                yield

    @asynccontextmanager
    async def _hold_redis(self, user_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._redis.lock(
            f"{_REDIS_KEY_PREFIX}{user_id}",
            timeout=self._timeout,
            blocking_timeout=self._timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as exc:
            logger.error("user_lock_redis_failure", user_id=str(user_id), error=str(exc))
            raise StorageError("Lock backend unavailable") from exc
        if not acquired:
            logger.warning("user_lock_timeout", user_id=str(user_id))
            raise ConcurrencyError(f"User {user_id} is being modified, retry later")
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # Expired while held; another holder may already own it.
                logger.warning("user_lock_expired", user_id=str(user_id))

    @asynccontextmanager
    async def _hold_local(self, user_id: uuid.UUID) -> AsyncIterator[None]:
        entry = self._local.get(user_id)
        if entry is None:
            entry = self._local[user_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            try:
                await asyncio.wait_for(entry[0].acquire(), timeout=self._timeout)
            except asyncio.TimeoutError as exc:
                logger.warning("user_lock_timeout", user_id=str(user_id))
                raise ConcurrencyError(
                    f"User {user_id} is being modified, retry later"
                ) from exc
            try:
                yield
            finally:
                entry[0].release()
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._local.pop(user_id, None)


# ── Process-wide singleton ────────────────────────────────────────────────────

_lock_manager: UserLockManager | None = None


def configure_lock_manager(redis: Any | None, timeout_seconds: float) -> UserLockManager:
    """Install the lock manager used by request handlers (called at startup)."""
    global _lock_manager
    _lock_manager = UserLockManager(redis=redis, timeout_seconds=timeout_seconds)
    logger.info("user_locks_configured", backend="redis" if redis is not None else "local")
    return _lock_manager


def get_lock_manager() -> UserLockManager:
    global _lock_manager
    if _lock_manager is None:
        _lock_manager = UserLockManager()
    return _lock_manager
