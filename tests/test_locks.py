import asyncio

import pytest

from app.core import locks as locks_module
from app.core.config import settings
from app.core.exceptions import EnrollmentLocked
from app.core.locks import EnrollmentLockManager


async def test_same_enrollment_is_serialized():
    locks = EnrollmentLockManager()
    events = []

    async def worker(name):
        async with locks.acquire("enrollment-1"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))

    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


async def test_different_enrollments_run_concurrently():
    locks = EnrollmentLockManager()
    inside = asyncio.Event()

    async def holder():
        async with locks.acquire("enrollment-1"):
            inside.set()
            await asyncio.sleep(0.05)

    async def other():
        await inside.wait()
        async with locks.acquire("enrollment-2"):
            return locks.is_locked("enrollment-1")

    _, overlapped = await asyncio.gather(holder(), other())
    assert overlapped is True


async def test_lock_entries_are_released():
    locks = EnrollmentLockManager()

    async with locks.acquire("enrollment-1"):
        assert locks.is_locked("enrollment-1")

    assert not locks.is_locked("enrollment-1")
    assert locks._locks == {}


class FakeRedisLock:
    def __init__(self, name, acquired, timeout, blocking_timeout):
        self.name = name
        self.acquired = acquired
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout
        self.held = False
        self.released = False

    async def acquire(self):
        self.held = self.acquired
        return self.acquired

    async def release(self):
        self.held = False
        self.released = True


class FakeRedis:
    def __init__(self, acquired=True):
        self.acquired = acquired
        self.locks = {}
        self.closed = False

    def lock(self, name, timeout=None, blocking_timeout=None):
        lock = FakeRedisLock(name, self.acquired, timeout, blocking_timeout)
        self.locks[name] = lock
        return lock

    async def close(self):
        self.closed = True


@pytest.fixture
def distributed(monkeypatch):
    monkeypatch.setattr(settings, "distributed_locks", True)
    monkeypatch.setattr(settings, "redis_url", "redis://localhost:6379/0")
    monkeypatch.setattr(settings, "lock_timeout_seconds", 5)


async def test_redis_lock_is_taken_and_released(distributed, monkeypatch):
    fake = FakeRedis()
    urls = []

    def from_url(url, **kwargs):
        urls.append(url)
        return fake

    monkeypatch.setattr(locks_module.redis, "from_url", from_url)
    locks = EnrollmentLockManager()
    assert locks.distributed

    async with locks.acquire("enrollment-1"):
        lock = fake.locks["enrollment-lock:enrollment-1"]
        assert lock.held
        assert (lock.timeout, lock.blocking_timeout) == (5, 5)
        assert locks._locks == {}

    assert lock.released
    assert urls == ["redis://localhost:6379/0"]

    await locks.disconnect()
    assert fake.closed
    assert locks.redis is None


async def test_redis_lock_timeout_raises_enrollment_locked(distributed):
    fake = FakeRedis(acquired=False)
    locks = EnrollmentLockManager()
    locks.redis = fake
    entered = False

    with pytest.raises(EnrollmentLocked) as exc_info:
        async with locks.acquire("enrollment-1"):
            entered = True

    assert not entered
    assert exc_info.value.status_code == 423
    assert not fake.locks["enrollment-lock:enrollment-1"].released


async def test_in_process_lock_when_redis_is_not_configured(monkeypatch):
    monkeypatch.setattr(settings, "distributed_locks", True)
    monkeypatch.setattr(settings, "redis_url", None)
    locks = EnrollmentLockManager()

    assert not locks.distributed
    async with locks.acquire("enrollment-1"):
        assert locks.is_locked("enrollment-1")
    assert locks.redis is None
