"""Health check endpoints."""
from fastapi import APIRouter
import logging

from ..core.config import settings
from ..core.database import health_check_db
from ..utils.scheduling_metrics import scheduling_metrics

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["Health"])

@router.get("/")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "service": "Session Scheduler API",
        "version": settings.app_version,
    }

@router.get("/db-health")
async def database_health():
    healthy = await health_check_db()
    if not healthy:
        logger.error("Database health check failed")
    return {"status": "healthy" if healthy else "unhealthy"}

@router.get("/scheduling")
async def scheduling_health():
    """Soft-degradation counters for reconciling enrollments"""
    return scheduling_metrics.get_stats()
