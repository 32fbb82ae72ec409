from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
import time

from .core.config import settings
from .core.database import close_db_connections
from .core.error_handlers import register_exception_handlers
from .core.locks import enrollment_locks
from .core.logging import setup_logging

from .routers import health, session_schedules, pause_requests, enrollments

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Session Scheduler API")

    if enrollment_locks.distributed:
        await enrollment_locks.connect()
        logger.info("Distributed enrollment locks enabled")

    yield

    logger.info("Shutting down Session Scheduler API")
    await enrollment_locks.disconnect()
    await close_db_connections()
    logger.info("Shutdown complete")

app = FastAPI(
    title="Session Scheduler API",
    description="Recurring session scheduling, pauses and rescheduling for coaching enrollments",
    version=settings.app_version,
    lifespan=lifespan
)

@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    logger.info(f"{request.method} {request.url.path} - {process_time:.3f}s")
    return response

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=3600,
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(session_schedules.router)
app.include_router(pause_requests.router)
app.include_router(enrollments.router)

@app.get("/")
async def root():
    return {
        "message": "Session Scheduler API",
        "version": settings.app_version,
        "status": "active"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
