"""
Sanctuary Backend — Sermon Route Handlers
===========================================

What:  /api/sermons CRUD. Creation is a multipart upload carrying the
       sermon audio.
How:   Handlers delegate to SermonService. The create handler stages the
       audio through MediaService first, so type and size are rejected
       before any database work.

Request Flow (POST /api/sermons):
    1. Bearer token checked (401)
    2. Form fields validated by FastAPI (422)
    3. Audio read into memory and staged (415 bad type, 400 empty/too large)
    4. SermonService enforces the cap, inserts, commits the staged file
    5. 201 with {"sermon": {...}, "id": ...}
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.auth import get_current_identity
from sanctuary.database import get_db_session
from sanctuary.schemas.common import DeleteResponse, ErrorResponse
from sanctuary.schemas.sermon import (
    SermonCreatedResponse,
    SermonEnvelope,
    SermonFields,
    SermonListResponse,
)
from sanctuary.services.media_service import media_service
from sanctuary.services.sermon_service import sermon_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Sermons"])

AUTH_RESPONSES = {401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}}


@router.get("/sermons", response_model=SermonListResponse, summary="List all sermons, newest first")
async def list_sermons(db: AsyncSession = Depends(get_db_session)) -> SermonListResponse:
    return await sermon_service.list_sermons(db)


@router.get(
    "/sermons/limit/{limit}",
    response_model=SermonListResponse,
    summary="List the most recent sermons",
    description="Newest first. A limit that is not a positive integer means 3.",
)
async def list_latest_sermons(
    limit: str,
    db: AsyncSession = Depends(get_db_session),
) -> SermonListResponse:
    return await sermon_service.list_latest(db, limit)


@router.get(
    "/sermons/{sermon_id}",
    response_model=SermonEnvelope,
    responses={404: {"description": "Sermon not found", "model": ErrorResponse}},
    summary="Get a single sermon",
)
async def get_sermon(sermon_id: str, db: AsyncSession = Depends(get_db_session)) -> SermonEnvelope:
    return await sermon_service.get_sermon(db, sermon_id)


@router.post(
    "/sermons",
    status_code=201,
    response_model=SermonCreatedResponse,
    responses={
        **AUTH_RESPONSES,
        400: {"description": "Sermon limit reached, or empty/oversized audio", "model": ErrorResponse},
        415: {"description": "Audio type not allowed", "model": ErrorResponse},
    },
    dependencies=[Depends(get_current_identity)],
    summary="Upload a sermon",
)
async def create_sermon(
    request: Request,
    mp3: UploadFile = File(..., description="Sermon audio (MP3)"),
    title: str = Form(..., min_length=1, max_length=255),
    scripture: str = Form(..., min_length=1, max_length=255),
    speaker: str = Form(..., min_length=1, max_length=255),
    date: datetime = Form(..., description="Sermon date (ISO 8601)"),
    db: AsyncSession = Depends(get_db_session),
) -> SermonCreatedResponse:
    """
    Create a sermon from a multipart form.

    The audio is read into memory and then checked against `max_upload_size`.
    """
    fields = SermonFields(title=title, scripture=scripture, speaker=speaker, date=date)

    try:
        content = await mp3.read()
        logger.info(
            "Received sermon upload: filename=%s, type=%s, size=%d bytes",
            mp3.filename or "unknown",
            mp3.content_type,
            len(content),
        )
        upload = await media_service.stage(
            original_name=mp3.filename,
            content_type=mp3.content_type,
            content=content,
            content_length=mp3.size,
        )
    finally:
        await mp3.close()

    return await sermon_service.create_sermon(
        db,
        fields=fields,
        upload=upload,
        base_url=str(request.base_url),
    )


@router.put(
    "/sermons/{sermon_id}",
    response_model=SermonEnvelope,
    responses={**AUTH_RESPONSES, 404: {"description": "Sermon not found", "model": ErrorResponse}},
    dependencies=[Depends(get_current_identity)],
    summary="Replace a sermon's details",
    description="Title, scripture, speaker and date are replaced; the audio is kept.",
)
async def update_sermon(
    sermon_id: str,
    fields: SermonFields,
    db: AsyncSession = Depends(get_db_session),
) -> SermonEnvelope:
    return await sermon_service.update_sermon(db, sermon_id, fields)


@router.delete(
    "/sermons/{sermon_id}",
    response_model=DeleteResponse,
    responses={
        **AUTH_RESPONSES,
        404: {"description": "Sermon not found", "model": ErrorResponse},
        500: {"description": "Audio file missing; sermon kept", "model": ErrorResponse},
    },
    dependencies=[Depends(get_current_identity)],
    summary="Delete a sermon and its audio",
)
async def delete_sermon(sermon_id: str, db: AsyncSession = Depends(get_db_session)) -> DeleteResponse:
    return await sermon_service.delete_sermon(db, sermon_id)
