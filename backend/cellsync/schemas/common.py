"""
CellSync Backend — Shared Response Schemas
============================================

What:  Error and health payloads shared by every router.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are UTC (SQLite drops the offset); aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "'cell' is required and must be a non-empty string",
            "details": {"field": "cell"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    live_subscribers: int = Field(description="Open live-update subscriptions in this process")
    uptime_seconds: float = Field(description="Seconds since service started")
