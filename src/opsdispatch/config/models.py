"""Pydantic models for configuration sub-sections."""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import BaseModel, Field, field_validator

from opsdispatch.config.constants import (
    DATA_DIR,
    DEFAULT_BATCH_CRON,
    DEFAULT_HOST,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    DEFAULT_RUN_LOG_RETENTION,
    DEFAULT_TIMEZONE,
)


class ServerConfig(BaseModel):
    """HTTP server settings."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


class SchedulerConfig(BaseModel):
    """Background batch trigger settings."""

    enabled: bool = True
    batch_cron: str = DEFAULT_BATCH_CRON  # how often each pipeline scans for due jobs
    timezone: str = DEFAULT_TIMEZONE  # timezone job cron expressions are read in

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("batch_cron")
    @classmethod
    def validate_batch_cron(cls, value: str) -> str:
        if len(value.split()) != 5 or not croniter.is_valid(value):
            raise ValueError(f"Invalid cron expression: {value}")
        return value


class HttpConfig(BaseModel):
    """Outbound HTTP client settings."""

    timeout_seconds: float = Field(default=DEFAULT_HTTP_TIMEOUT_SECONDS, gt=0)


class StorageConfig(BaseModel):
    """Where the JSON stores live."""

    data_dir: str = str(DATA_DIR)
    run_log_retention: int = Field(default=DEFAULT_RUN_LOG_RETENTION, ge=1)
