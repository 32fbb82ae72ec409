import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import datetime, timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base, Batch, Enrollment
from app.utils.scheduling_metrics import scheduling_metrics

MON_WED_FRI = [
    {"day": "Monday", "startTime": "18:00", "endTime": "19:30"},
    {"day": "Wednesday", "startTime": "18:00", "endTime": "19:30"},
    {"day": "Friday", "startTime": "18:00", "endTime": "19:30"},
]

# Saturday before the first Monday used in the tests (2026-11-02)
BEFORE_START = datetime(2026, 10, 17, 10, 0)
FIRST_MONDAY = datetime(2026, 11, 2)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime):
        self.now = now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def reset_metrics():
    scheduling_metrics.reset()
    yield


@pytest.fixture
def clock():
    return FixedClock(BEFORE_START)


async def create_schema(url: str, **engine_kwargs):
    engine = create_async_engine(url, **engine_kwargs)

    @event.listens_for(engine.sync_engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


def sessionmaker_for(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession, autoflush=False)


@pytest.fixture
async def engine():
    engine = await create_schema("sqlite+aiosqlite://", poolclass=StaticPool)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker_for(engine)


@pytest.fixture
async def file_session_factory(tmp_path):
    """Sessions on separate connections to one SQLite file, for concurrency tests."""
    engine = await create_schema(f"sqlite+aiosqlite:///{tmp_path / 'scheduler.db'}")
    yield sessionmaker_for(engine)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_batch(db):
    async def _make_batch(schedule=None, max_capacity=20, current_enrollments=0):
        batch = Batch(
            name="U12 Football Evening",
            sport="football",
            coach_name="Coach R",
            max_capacity=max_capacity,
            current_enrollments=current_enrollments,
            schedule=MON_WED_FRI if schedule is None else schedule,
            is_active=True,
        )
        db.add(batch)
        await db.commit()
        return batch
    return _make_batch


@pytest.fixture
def make_enrollment(db):
    async def _make_enrollment(batch, sessions_total=12, start_date=FIRST_MONDAY, status="active", sessions_attended=0):
        enrollment = Enrollment(
            batch_id=batch.id,
            student_name="Asha",
            package_type="1 month",
            sessions_total=sessions_total,
            sessions_attended=sessions_attended,
            start_date=start_date,
            status=status,
        )
        db.add(enrollment)
        await db.commit()
        return enrollment
    return _make_enrollment
