# app/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    database_url: str = 'sqlite+aiosqlite:///./scheduler.db'
    redis_url: Optional[str] = None

    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'info'
    allowed_origins: List[str] = ['*']

    # Scheduling rules
    pause_cutoff_hours: int = 2
    max_pauses_per_enrollment: int = 10
    reschedule_horizon_days: int = 14

    # Per-enrollment locking
    distributed_locks: bool = False
    lock_timeout_seconds: int = 30

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

settings = Settings()
