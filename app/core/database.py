# app/core/database.py
"""Database connection and session management using SQLAlchemy."""
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import text
import logging

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> dict:
    """Pool and driver options; SQLite gets the driver defaults."""
    if database_url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 60,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "echo": (settings.environment == 'development'),
        "connect_args": {
            "command_timeout": 60,
            "server_settings": {
                "jit": "off",
                "application_name": "session_scheduler",
                "idle_in_transaction_session_timeout": "60s",
                "lock_timeout": "30s",  # Enrollment rows are locked FOR UPDATE
            }
        },
    }


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    class_=AsyncSession,
    autoflush=False,  # Manual control over flushing
    autocommit=False,
)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for API requests with proper error handling"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()

async def health_check_db():
    """Fast health check"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False

async def close_db_connections():
    """Properly close all database connections"""
    await engine.dispose()
    logger.info("Database connections closed")
