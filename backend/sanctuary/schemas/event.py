"""
Sanctuary Backend — Event Schemas
===================================

Request bodies for POST/PUT /api/events and the envelopes returned by the
event endpoints ({"events": [...]}, {"event": {...}}, {"event": ..., "id": ...}).
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from sanctuary.schemas.common import CamelModel, ensure_utc


class EventFields(CamelModel):
    """Every writable event field. PUT replaces all of them."""
    name: str = Field(min_length=1, max_length=255)
    details: Optional[str] = Field(default=None)
    address: str = Field(min_length=1, max_length=512)
    date: datetime = Field(description="Event date (ISO 8601); naive values are read as UTC")
    time: str = Field(min_length=1, max_length=64, description="Display time, e.g. '7:00 PM'")

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class EventResponse(CamelModel):
    id: uuid.UUID
    name: str
    details: Optional[str] = None
    address: str
    date: datetime
    time: str

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class EventEnvelope(CamelModel):
    event: EventResponse


class EventCreatedResponse(CamelModel):
    event: EventResponse
    id: uuid.UUID


class EventListResponse(CamelModel):
    events: List[EventResponse]
