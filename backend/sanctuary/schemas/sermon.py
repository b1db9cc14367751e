"""
Sanctuary Backend — Sermon Schemas
====================================

Sermon creation arrives as multipart form data (see routes/sermons.py), so
only the update body and the response envelopes are modelled here.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import Field, field_validator

from sanctuary.schemas.common import CamelModel, ensure_utc


class SermonFields(CamelModel):
    """Writable sermon fields. The audio file association is not part of it."""
    title: str = Field(min_length=1, max_length=255)
    scripture: str = Field(min_length=1, max_length=255)
    speaker: str = Field(min_length=1, max_length=255)
    date: datetime

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SermonResponse(CamelModel):
    id: uuid.UUID
    title: str
    scripture: str
    speaker: str
    date: datetime
    mp3_url: str = Field(description="Public URL of the sermon audio")

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SermonEnvelope(CamelModel):
    sermon: SermonResponse


class SermonCreatedResponse(CamelModel):
    sermon: SermonResponse
    id: uuid.UUID


class SermonListResponse(CamelModel):
    sermons: List[SermonResponse]
