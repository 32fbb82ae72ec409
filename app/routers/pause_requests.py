# app/routers/pause_requests.py
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..models.session_schedule import PauseRequest
from ..schemas.schedule_schemas import PauseRequestCreate
from ..services.pause_service import PauseService
from ..utils.day_time import Clock, get_clock

router = APIRouter(prefix="/api/v1/pause-requests", tags=["Pause Requests"])


def format_pause_request(pause_request: PauseRequest) -> dict:
    return {
        "id": str(pause_request.id),
        "enrollment_id": str(pause_request.enrollment_id),
        "session_schedule_id": str(pause_request.session_schedule_id) if pause_request.session_schedule_id else None,
        "requested_at": pause_request.requested_at.isoformat(),
        "session_date": pause_request.session_date.isoformat(),
        "reason": pause_request.reason,
        "status": pause_request.status,
        "pauses_used": pause_request.pauses_used,
        "rescheduled_to_date": (
            pause_request.rescheduled_to_date.isoformat() if pause_request.rescheduled_to_date else None
        ),
        "processed_at": pause_request.processed_at.isoformat() if pause_request.processed_at else None,
    }


@router.post("", status_code=201)
async def request_session_pause(
    payload: PauseRequestCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Pause a session (up to 2 hours before it starts) and move it to the next free slot"""
    service = PauseService(db, clock=clock)
    pause_request = await service.request_session_pause(
        payload.enrollment_id, payload.session_schedule_id, payload.reason
    )
    return format_pause_request(pause_request)


@router.get("/enrollments/{enrollment_id}")
async def get_pause_requests(enrollment_id: UUID, db: AsyncSession = Depends(get_db)):
    service = PauseService(db)
    pause_requests = await service.get_pause_requests_by_enrollment(enrollment_id)
    return {
        "items": [format_pause_request(p) for p in pause_requests],
        "total": len(pause_requests),
    }


@router.get("/enrollments/{enrollment_id}/summary")
async def get_pause_summary(enrollment_id: UUID, db: AsyncSession = Depends(get_db)):
    service = PauseService(db)
    return await service.get_pause_summary(enrollment_id)
