import uuid
from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    BatchNotFound, DatabaseError, EmptyBatchSchedule, EnrollmentNotFound, InvalidStatusTransition,
    SchedulesAlreadyGenerated, SessionScheduleNotFound, ValidationError
)
from app.models import Enrollment, SessionSchedule
from app.services.enrollment_service import EnrollmentService
from app.services.session_schedule_service import SessionScheduleService
from app.utils.scheduling_metrics import scheduling_metrics

from conftest import FIRST_MONDAY


async def count_sessions(db, enrollment_id):
    result = await db.execute(select(SessionSchedule).where(SessionSchedule.enrollment_id == enrollment_id))
    return len(result.scalars().all())


async def test_generate_creates_numbered_occurrences(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    service = SessionScheduleService(db, clock=clock)

    ids = await service.generate_session_schedules(enrollment.id, batch.id, 12, FIRST_MONDAY)

    sessions = await service.get_session_schedules_by_enrollment(enrollment.id)
    assert len(ids) == 12
    assert [s.session_number for s in sessions] == list(range(1, 13))
    assert all(s.status == "scheduled" and not s.is_paused for s in sessions)
    assert sessions[-1].scheduled_date == datetime(2026, 11, 27, 18, 0)
    assert enrollment.end_date == datetime(2026, 11, 27, 18, 0)
    assert scheduling_metrics.sessions_generated == 12


async def test_generate_for_unknown_batch(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    enrollment_id = enrollment.id
    service = SessionScheduleService(db, clock=clock)

    with pytest.raises(BatchNotFound):
        await service.generate_session_schedules(enrollment_id, uuid.uuid4(), 12, FIRST_MONDAY)
    assert await count_sessions(db, enrollment_id) == 0


async def test_generate_for_unknown_enrollment(db, clock, make_batch):
    batch = await make_batch()
    batch_id = batch.id
    service = SessionScheduleService(db, clock=clock)

    with pytest.raises(EnrollmentNotFound):
        await service.generate_session_schedules(uuid.uuid4(), batch_id, 12, FIRST_MONDAY)


async def test_generate_with_empty_template_persists_nothing(db, clock, make_batch, make_enrollment):
    batch = await make_batch(schedule=[])
    enrollment = await make_enrollment(batch)
    enrollment_id, batch_id = enrollment.id, batch.id
    service = SessionScheduleService(db, clock=clock)

    with pytest.raises(EmptyBatchSchedule) as exc_info:
        await service.generate_session_schedules(enrollment_id, batch_id, 12, FIRST_MONDAY)

    assert exc_info.value.detail["message"] == "Batch has no schedule data"
    assert await count_sessions(db, enrollment_id) == 0


async def test_regenerate_replaces_all_occurrences(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=6)
    service = SessionScheduleService(db, clock=clock)
    old_ids = set(await service.generate_session_schedules(enrollment.id, batch.id, 6, FIRST_MONDAY))

    new_ids = set(await service.clear_and_regenerate(enrollment.id))

    assert len(new_ids) == 6
    assert not old_ids & new_ids
    assert await count_sessions(db, enrollment.id) == 6


async def test_failed_regeneration_keeps_previous_occurrences(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=6)
    enrollment_id = enrollment.id
    service = SessionScheduleService(db, clock=clock)
    await service.generate_session_schedules(enrollment_id, batch.id, 6, FIRST_MONDAY)

    batch.schedule = []
    await db.commit()

    with pytest.raises(EmptyBatchSchedule):
        await service.clear_and_regenerate(enrollment_id)
    assert await count_sessions(db, enrollment_id) == 6


async def test_extend_appends_after_existing(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    service = SessionScheduleService(db, clock=clock)
    await service.generate_session_schedules(enrollment.id, batch.id, 12, FIRST_MONDAY)

    await service.generate_additional_sessions(enrollment.id, batch.id, 3)

    sessions = await service.get_session_schedules_by_enrollment(enrollment.id)
    assert [s.session_number for s in sessions[-3:]] == [13, 14, 15]
    assert sessions[-3].scheduled_date == datetime(2026, 11, 30, 18, 0)


async def test_date_range_is_inclusive(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    service = SessionScheduleService(db, clock=clock)
    await service.generate_session_schedules(enrollment.id, batch.id, 12, FIRST_MONDAY)

    sessions = await service.get_session_schedules_by_date_range(
        enrollment.id, datetime(2026, 11, 4, 18, 0), datetime(2026, 11, 9, 18, 0)
    )
    assert [s.session_number for s in sessions] == [2, 3, 4]

    with pytest.raises(ValidationError):
        await service.get_session_schedules_by_date_range(
            enrollment.id, datetime(2026, 11, 9), datetime(2026, 11, 4)
        )


async def test_marking_completed_counts_attendance(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=2)
    service = SessionScheduleService(db, clock=clock)
    ids = await service.generate_session_schedules(enrollment.id, batch.id, 2, FIRST_MONDAY)

    session = await service.update_session_status(ids[0], "completed")
    assert session.status == "completed"
    await service.update_session_status(ids[1], "completed")

    result = await db.execute(select(Enrollment).where(Enrollment.id == enrollment.id))
    refreshed = result.scalar_one()
    assert refreshed.sessions_attended == 2
    assert refreshed.status == "completed"


async def test_missed_does_not_count_attendance(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=2)
    service = SessionScheduleService(db, clock=clock)
    ids = await service.generate_session_schedules(enrollment.id, batch.id, 2, FIRST_MONDAY)

    await service.update_session_status(ids[0], "missed")

    assert enrollment.sessions_attended == 0


async def test_only_scheduled_sessions_change_status(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=2)
    service = SessionScheduleService(db, clock=clock)
    ids = await service.generate_session_schedules(enrollment.id, batch.id, 2, FIRST_MONDAY)
    await service.update_session_status(ids[0], "cancelled")

    with pytest.raises(InvalidStatusTransition):
        await service.update_session_status(ids[0], "completed")
    with pytest.raises(SessionScheduleNotFound):
        await service.update_session_status(uuid.uuid4(), "completed")


async def test_summary_for_unknown_enrollment(db, clock):
    with pytest.raises(EnrollmentNotFound):
        await SessionScheduleService(db, clock=clock).get_schedule_summary(uuid.uuid4())


async def test_summary_matches_package(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    service = SessionScheduleService(db, clock=clock)
    await service.generate_session_schedules(enrollment.id, batch.id, 12, FIRST_MONDAY)

    summary = await service.get_schedule_summary(enrollment.id)

    assert summary["occurrences"] == 12
    assert summary["by_status"]["scheduled"] == 12
    assert summary["placed_sessions"] == 12
    assert summary["mismatch"] is False


async def test_generate_twice_keeps_session_numbers_unique(db, clock, make_batch):
    batch = await make_batch()
    enrollment = await EnrollmentService(db, clock=clock).create_enrollment(batch.id, 3, FIRST_MONDAY)
    enrollment_id, batch_id = enrollment.id, batch.id
    service = SessionScheduleService(db, clock=clock)

    with pytest.raises(SchedulesAlreadyGenerated) as exc_info:
        await service.generate_session_schedules(enrollment_id, batch_id, 3, FIRST_MONDAY)

    assert exc_info.value.status_code == 409
    sessions = await service.get_session_schedules_by_enrollment(enrollment_id)
    assert sorted(s.session_number for s in sessions) == [1, 2, 3]


async def test_generate_must_match_package_size(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=12)
    enrollment_id, batch_id = enrollment.id, batch.id

    with pytest.raises(ValidationError):
        await SessionScheduleService(db, clock=clock).generate_session_schedules(
            enrollment_id, batch_id, 20, FIRST_MONDAY
        )
    assert await count_sessions(db, enrollment_id) == 0


async def test_database_failure_during_generation_is_wrapped(db, clock, make_batch, make_enrollment, monkeypatch):
    batch = await make_batch()
    enrollment = await make_enrollment(batch)
    enrollment_id, batch_id = enrollment.id, batch.id

    async def broken_get_batch(self, batch_id):
        raise OperationalError("SELECT batches", {}, Exception("database is locked"))

    monkeypatch.setattr(SessionScheduleService, "get_batch", broken_get_batch)
    service = SessionScheduleService(db, clock=clock)

    with pytest.raises(DatabaseError):
        await service.generate_session_schedules(enrollment_id, batch_id, 12, FIRST_MONDAY)
    with pytest.raises(DatabaseError):
        await service.clear_and_regenerate(enrollment_id)
    assert await count_sessions(db, enrollment_id) == 0


async def test_regenerate_resets_end_date(db, clock, make_batch, make_enrollment):
    batch = await make_batch()
    enrollment = await make_enrollment(batch, sessions_total=6)
    service = SessionScheduleService(db, clock=clock)
    await service.generate_session_schedules(enrollment.id, batch.id, 6, FIRST_MONDAY)
    await service.generate_additional_sessions(enrollment.id, batch.id, 3)
    assert enrollment.end_date == datetime(2026, 11, 20, 18, 0)

    await service.clear_and_regenerate(enrollment.id)

    assert enrollment.end_date == datetime(2026, 11, 13, 18, 0)
