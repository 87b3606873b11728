# backend/tutorbook/core/config.py
import logging
import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz

from .constants import (
    DEFAULT_AVAILABILITY_HORIZON_DAYS,
    DEFAULT_MIN_NOTICE_HOURS,
    DEFAULT_SESSION_DURATION_MINUTES,
    DEFAULT_SLOT_STEP_MINUTES,
    DEFAULT_TRIAL_CAP,
)

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")

    database_url: str = Field(
        default="sqlite+pysqlite:///./tutorbook.db",
        description="SQLAlchemy URL for the session store",
    )
    database_echo: bool = False

    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for per-tutor booking locks; process-local locks when unset",
    )
    lock_namespace: str = Field(default="tutorbook", description="Prefix for Redis lock keys")
    tutor_lock_ttl_seconds: int = Field(default=30, ge=1, le=600)

    # Engine policy
    min_notice_hours: int = Field(
        default=DEFAULT_MIN_NOTICE_HOURS,
        ge=0,
        description="Cancel/reschedule is blocked within this many hours of the session start",
    )
    slot_step_minutes: int = Field(
        default=DEFAULT_SLOT_STEP_MINUTES,
        ge=1,
        le=24 * 60,
        description="Distance between consecutive candidate slot starts",
    )
    trial_cap: int = Field(
        default=DEFAULT_TRIAL_CAP,
        ge=0,
        description="Trial lessons allowed per parent, independent of course",
    )
    canonical_timezone: str = Field(
        default="UTC",
        description="Zone used for day-of-week and time-of-day calculations",
    )
    availability_horizon_days: int = Field(default=DEFAULT_AVAILABILITY_HORIZON_DAYS, ge=1, le=366)
    default_session_duration_minutes: int = Field(
        default=DEFAULT_SESSION_DURATION_MINUTES, ge=1, le=24 * 60
    )

    api_prefix: str = "/api/v1"

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        env_prefix="TUTORBOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("canonical_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v


settings = Settings()
