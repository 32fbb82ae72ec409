# app/routers/session_schedules.py
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..models.session_schedule import SessionSchedule
from ..schemas.schedule_schemas import (
    ExtendSchedulesRequest, GenerateSchedulesRequest, SessionScheduleIds, SessionStatusUpdate
)
from ..services.session_schedule_service import SessionScheduleService
from ..utils.day_time import Clock, get_clock

router = APIRouter(prefix="/api/v1/session-schedules", tags=["Session Schedules"])


def format_session_schedule(session: SessionSchedule, now: datetime) -> dict:
    return {
        "id": str(session.id),
        "enrollment_id": str(session.enrollment_id),
        "batch_id": str(session.batch_id),
        "session_number": session.session_number,
        "scheduled_date": session.scheduled_date.isoformat(),
        "scheduled_start_time": session.scheduled_start_time,
        "scheduled_end_time": session.scheduled_end_time,
        "status": session.status,
        "is_paused": session.is_paused,
        "paused_reason": session.paused_reason,
        "rescheduled_from": session.rescheduled_from.isoformat() if session.rescheduled_from else None,
        "can_pause": session.can_pause,
        # Recomputed on every read; can_pause is the snapshot from creation
        "pausable": session.pausable_at(now, settings.pause_cutoff_hours),
    }


@router.post("/generate", response_model=SessionScheduleIds, status_code=201)
async def generate_session_schedules(
    payload: GenerateSchedulesRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Generate the initial schedule for a confirmed enrollment"""
    service = SessionScheduleService(db, clock=clock)
    ids = await service.generate_session_schedules(
        payload.enrollment_id, payload.batch_id, payload.sessions_total, payload.start_date
    )
    return {"session_schedule_ids": [str(i) for i in ids]}


@router.post("/enrollments/{enrollment_id}/regenerate")
async def clear_and_regenerate(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Delete and regenerate every session of an enrollment"""
    service = SessionScheduleService(db, clock=clock)
    ids = await service.clear_and_regenerate(enrollment_id)
    return {
        "success": True,
        "message": "Session schedules regenerated successfully",
        "session_schedule_ids": [str(i) for i in ids],
    }


@router.post("/extend", response_model=SessionScheduleIds, status_code=201)
async def extend_session_schedules(
    payload: ExtendSchedulesRequest,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    service = SessionScheduleService(db, clock=clock)
    ids = await service.generate_additional_sessions(
        payload.enrollment_id, payload.batch_id, payload.additional_sessions, payload.anchor_date
    )
    return {"session_schedule_ids": [str(i) for i in ids]}


@router.get("/enrollments/{enrollment_id}")
async def get_session_schedules(
    enrollment_id: UUID,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    service = SessionScheduleService(db, clock=clock)
    sessions = await service.get_session_schedules_by_enrollment(enrollment_id)
    now = clock()
    return {
        "items": [format_session_schedule(s, now) for s in sessions],
        "total": len(sessions),
    }


@router.get("/enrollments/{enrollment_id}/range")
async def get_session_schedules_by_date_range(
    enrollment_id: UUID,
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    service = SessionScheduleService(db, clock=clock)
    sessions = await service.get_session_schedules_by_date_range(enrollment_id, start_date, end_date)
    now = clock()
    return {
        "items": [format_session_schedule(s, now) for s in sessions],
        "total": len(sessions),
    }


@router.get("/enrollments/{enrollment_id}/summary")
async def get_schedule_summary(enrollment_id: UUID, db: AsyncSession = Depends(get_db)):
    """Occurrence counts for reconciling an enrollment with its package size"""
    service = SessionScheduleService(db)
    return await service.get_schedule_summary(enrollment_id)


@router.patch("/{session_schedule_id}/status")
async def update_session_status(
    session_schedule_id: UUID,
    payload: SessionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Mark attendance for a scheduled session"""
    service = SessionScheduleService(db, clock=clock)
    session = await service.update_session_status(session_schedule_id, payload.status)
    return format_session_schedule(session, clock())
