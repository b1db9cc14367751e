"""
Sanctuary Backend — Event Service
===================================

What:  CRUD over church events plus bulk removal of past events.
Who:   Called by routes/events.py.

Ordering and filtering:
    - list_events():   every event, soonest first (date ASC)
    - list_upcoming(): only events with date > now, soonest first, limited
    - delete_expired(): removes every event with date <= now
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import asc, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.exceptions import DatabaseError, NotFoundError
from sanctuary.models.event import Event
from sanctuary.schemas.common import DeleteResponse, DeleteResult
from sanctuary.schemas.event import (
    EventCreatedResponse,
    EventEnvelope,
    EventFields,
    EventListResponse,
    EventResponse,
)
from sanctuary.services.params import parse_id, parse_limit

logger = logging.getLogger(__name__)


class EventService:

    async def list_events(self, db: AsyncSession) -> EventListResponse:
        try:
            result = await db.execute(select(Event).order_by(asc(Event.date)))
            events = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing events: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve events. Please try again.")
        return EventListResponse(events=[EventResponse.model_validate(event) for event in events])

    async def list_upcoming(
        self,
        db: AsyncSession,
        raw_limit: str,
        now: Optional[datetime] = None,
    ) -> EventListResponse:
        """Next `raw_limit` future events (3 when the limit is not a positive integer)."""
        limit = parse_limit(raw_limit)
        now = now or datetime.now(timezone.utc)
        try:
            result = await db.execute(
                select(Event)
                .where(Event.date > now)
                .order_by(asc(Event.date))
                .limit(limit)
            )
            events = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing upcoming events: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve events. Please try again.")
        return EventListResponse(events=[EventResponse.model_validate(event) for event in events])

    async def get_event(self, db: AsyncSession, raw_id: str) -> EventEnvelope:
        event = await self._find(db, raw_id)
        if event is None:
            raise NotFoundError(resource="event", resource_id=raw_id)
        return EventEnvelope(event=EventResponse.model_validate(event))

    async def create_event(self, db: AsyncSession, fields: EventFields) -> EventCreatedResponse:
        event = Event(**fields.model_dump())
        try:
            db.add(event)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating event: %s", e, exc_info=True)
            raise DatabaseError(message="Could not create the event. Please try again.")
        logger.info("Event created: %s (%s)", event.id, event.name)
        return EventCreatedResponse(event=EventResponse.model_validate(event), id=event.id)

    async def update_event(
        self,
        db: AsyncSession,
        raw_id: str,
        fields: EventFields,
    ) -> EventEnvelope:
        """Replace every field of an existing event."""
        event = await self._find(db, raw_id)
        if event is None:
            raise NotFoundError(resource="event", resource_id=raw_id)

        for name, value in fields.model_dump().items():
            setattr(event, name, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating event %s: %s", raw_id, e, exc_info=True)
            raise DatabaseError(message="Could not update the event. Please try again.")
        logger.info("Event updated: %s", event.id)
        return EventEnvelope(event=EventResponse.model_validate(event))

    async def delete_event(self, db: AsyncSession, raw_id: str) -> DeleteResponse:
        """Delete by id; deleting a missing event is not an error."""
        event_id = parse_id(raw_id, "event")
        try:
            result = await db.execute(
                delete(Event)
                .where(Event.id == event_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting event %s: %s", raw_id, e, exc_info=True)
            raise DatabaseError(message="Could not delete the event. Please try again.")
        logger.info("Event delete %s: %d removed", raw_id, result.rowcount)
        return DeleteResponse(result=DeleteResult(deleted_count=result.rowcount))

    async def delete_expired(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> DeleteResponse:
        now = now or datetime.now(timezone.utc)
        try:
            result = await db.execute(
                delete(Event)
                .where(Event.date <= now)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting expired events: %s", e, exc_info=True)
            raise DatabaseError(message="Could not delete old events. Please try again.")
        logger.info("Expired events removed: %d", result.rowcount)
        return DeleteResponse(result=DeleteResult(deleted_count=result.rowcount))

    async def _find(self, db: AsyncSession, raw_id: str) -> Optional[Event]:
        event_id = parse_id(raw_id, "event")
        try:
            return await db.get(Event, event_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching event %s: %s", raw_id, e)
            raise DatabaseError(
                message="Could not retrieve the event. Please try again.",
                context={"event_id": raw_id},
            )


event_service = EventService()
