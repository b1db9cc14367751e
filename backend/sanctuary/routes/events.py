"""
Sanctuary Backend — Event Route Handlers
==========================================

What:  /api/events CRUD plus bulk removal of past events.
How:   Thin handlers: parse the request, call EventService, return its
       envelope. Mutating routes require a bearer token.

Route order matters: the literal paths (/events/limit/{n},
/events/delete/old) are declared before /events/{event_id}.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.auth import get_current_identity
from sanctuary.database import get_db_session
from sanctuary.schemas.common import DeleteResponse, ErrorResponse
from sanctuary.schemas.event import (
    EventCreatedResponse,
    EventEnvelope,
    EventFields,
    EventListResponse,
)
from sanctuary.services.event_service import event_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Events"])

AUTH_RESPONSES = {401: {"description": "Missing or invalid bearer token", "model": ErrorResponse}}


@router.get(
    "/events",
    response_model=EventListResponse,
    summary="List all events, soonest first",
)
async def list_events(db: AsyncSession = Depends(get_db_session)) -> EventListResponse:
    return await event_service.list_events(db)


@router.get(
    "/events/limit/{limit}",
    response_model=EventListResponse,
    summary="List the next upcoming events",
    description="Future events only, soonest first. A limit that is not a positive integer means 3.",
)
async def list_upcoming_events(
    limit: str,
    db: AsyncSession = Depends(get_db_session),
) -> EventListResponse:
    return await event_service.list_upcoming(db, limit)


@router.get(
    "/events/{event_id}",
    response_model=EventEnvelope,
    responses={404: {"description": "Event not found", "model": ErrorResponse}},
    summary="Get a single event",
)
async def get_event(event_id: str, db: AsyncSession = Depends(get_db_session)) -> EventEnvelope:
    return await event_service.get_event(db, event_id)


@router.post(
    "/events",
    status_code=201,
    response_model=EventCreatedResponse,
    responses=AUTH_RESPONSES,
    dependencies=[Depends(get_current_identity)],
    summary="Create an event",
)
async def create_event(
    fields: EventFields,
    db: AsyncSession = Depends(get_db_session),
) -> EventCreatedResponse:
    return await event_service.create_event(db, fields)


@router.put(
    "/events/{event_id}",
    response_model=EventEnvelope,
    responses={**AUTH_RESPONSES, 404: {"description": "Event not found", "model": ErrorResponse}},
    dependencies=[Depends(get_current_identity)],
    summary="Replace every field of an event",
)
async def update_event(
    event_id: str,
    fields: EventFields,
    db: AsyncSession = Depends(get_db_session),
) -> EventEnvelope:
    return await event_service.update_event(db, event_id, fields)


@router.delete(
    "/events/delete/old",
    response_model=DeleteResponse,
    responses=AUTH_RESPONSES,
    dependencies=[Depends(get_current_identity)],
    summary="Delete every event whose date has passed",
)
async def delete_expired_events(db: AsyncSession = Depends(get_db_session)) -> DeleteResponse:
    return await event_service.delete_expired(db)


@router.delete(
    "/events/{event_id}",
    response_model=DeleteResponse,
    responses=AUTH_RESPONSES,
    dependencies=[Depends(get_current_identity)],
    summary="Delete an event",
    description="Deleting an id that does not exist succeeds with deletedCount 0.",
)
async def delete_event(event_id: str, db: AsyncSession = Depends(get_db_session)) -> DeleteResponse:
    return await event_service.delete_event(db, event_id)
