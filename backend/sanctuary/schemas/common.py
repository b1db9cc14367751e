"""
Sanctuary Backend — Shared Schema Building Blocks
===================================================

What:  Base model with camelCase aliases, UTC datetime normalisation, and the
       envelopes shared by every resource (errors, write results, health).
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CamelModel(BaseModel):
    """Base for API models: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DeleteResult(CamelModel):
    """Outcome of a delete: how many records were removed."""
    deleted_count: int = Field(description="Number of records removed")


class DeleteResponse(CamelModel):
    result: DeleteResult


class UpdateResult(CamelModel):
    """Outcome of a password update."""
    matched_count: int = Field(description="Records matched by the update")
    modified_count: int = Field(description="Records actually modified")


class EmailOutcome(CamelModel):
    """
    Settled result of an outbound notification.

    `delivered` is False when SMTP is not configured, the send timed out, or
    the server rejected the message; `detail` carries the server reply or
    the error description.
    """
    delivered: bool
    detail: str


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "not_found",
            "message": "Could not find a event with ID of 9b0c...",
            "request_id": "1f2e3d4c"
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
    uptime_seconds: float = Field(description="Seconds since service started")
