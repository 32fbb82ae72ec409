# app/core/locks.py
"""Per-enrollment mutual exclusion for scheduling operations."""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import redis.asyncio as redis

from .config import settings
from .exceptions import EnrollmentLocked

logger = logging.getLogger(__name__)


class EnrollmentLockManager:
    """Serializes scheduling work per enrollment.

    Uses a keyed ``asyncio.Lock`` inside one process. When ``distributed_locks``
    is enabled and a Redis URL is configured, a Redis lock is taken instead so
    that several API workers share the same lock.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}
        self.redis: Optional[redis.Redis] = None

    @property
    def distributed(self) -> bool:
        return bool(settings.distributed_locks and settings.redis_url)

    async def connect(self):
        """Initialize Redis connection."""
        if not self.redis:
            self.redis = redis.from_url(settings.redis_url, encoding="utf-8")

    async def disconnect(self):
        """Close Redis connection."""
        if self.redis:
            await self.redis.close()
            self.redis = None

    def is_locked(self, enrollment_id: Any) -> bool:
        lock = self._locks.get(str(enrollment_id))
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def acquire(self, enrollment_id: Any):
        key = str(enrollment_id)
        if self.distributed:
            async with self._redis_lock(key):
                yield
            return

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                self._locks.pop(key, None)

    @asynccontextmanager
    async def _redis_lock(self, key: str):
        if not self.redis:
            await self.connect()

        lock = self.redis.lock(
            f"enrollment-lock:{key}",
            timeout=settings.lock_timeout_seconds,
            blocking_timeout=settings.lock_timeout_seconds,
        )
        if not await lock.acquire():
            logger.warning(f"Timed out waiting for enrollment lock {key}")
            raise EnrollmentLocked(key)
        try:
            yield
        finally:
            await lock.release()


# Global lock manager instance
enrollment_locks = EnrollmentLockManager()
