from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .exceptions import SchedulerException

logger = logging.getLogger(__name__)

async def scheduler_exception_handler(request: Request, exc: SchedulerException):
    """Handle scheduler exceptions"""
    if exc.status_code >= 500:
        logger.error(f"Scheduler error: {exc.detail} - Path: {request.url.path}")
    else:
        logger.info(f"Request rejected ({exc.status_code}): {exc.detail} - Path: {request.url.path}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "type": exc.__class__.__name__},
        headers=exc.headers,
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)} - Path: {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": "InternalError"}
    )

def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SchedulerException, scheduler_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
