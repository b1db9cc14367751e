"""
Sanctuary Backend — Sermon Service
====================================

What:  CRUD over sermons, coupled to their audio files on disk.
Who:   Called by routes/sermons.py; uses MediaService for file handling.

Create (upload already staged by the route):
    ┌──────────────┐    ┌────────────┐    ┌──────────────┐    ┌────────────┐
    │ Count check  │───▶│ Insert row │───▶│ Commit file  │───▶│ 201 + body │
    │ (< limit?)   │    │ (flush)    │    │ (rename)     │    └────────────┘
    └──────────────┘    └────────────┘    └──────────────┘
    Any exit before the rename, including cancellation, discards the
    staged file; the session rolls back.

Delete:
    Look up record → remove audio file → delete record.
    A missing or unremovable file aborts the delete and keeps the record.
    The two steps are not atomic: if the record delete fails after the
    file was removed, the record points at a missing file.
"""

import logging
from typing import Optional
from urllib.parse import quote

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sanctuary.config import Settings, settings as default_settings
from sanctuary.exceptions import DatabaseError, LimitExceededError, NotFoundError
from sanctuary.models.sermon import Sermon
from sanctuary.schemas.common import DeleteResponse, DeleteResult
from sanctuary.schemas.sermon import (
    SermonCreatedResponse,
    SermonEnvelope,
    SermonFields,
    SermonListResponse,
    SermonResponse,
)
from sanctuary.services.media_service import MediaService, StagedUpload, media_service
from sanctuary.services.params import parse_id, parse_limit

logger = logging.getLogger(__name__)

# Public path segment under which uploaded audio is served
MEDIA_URL_PREFIX = "mp3"


def build_media_url(base_url: str, filename: str) -> str:
    """Absolute public URL for a stored audio file."""
    return f"{base_url.rstrip('/')}/{MEDIA_URL_PREFIX}/{quote(filename)}"


class SermonService:

    def __init__(self, media: Optional[MediaService] = None, config: Optional[Settings] = None):
        self.media = media or media_service
        self.config = config or default_settings

    async def list_sermons(self, db: AsyncSession) -> SermonListResponse:
        try:
            result = await db.execute(select(Sermon).order_by(desc(Sermon.date)))
            sermons = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing sermons: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve sermons. Please try again.")
        return SermonListResponse(sermons=[SermonResponse.model_validate(s) for s in sermons])

    async def list_latest(self, db: AsyncSession, raw_limit: str) -> SermonListResponse:
        """Most recent `raw_limit` sermons (3 when the limit is not a positive integer)."""
        limit = parse_limit(raw_limit)
        try:
            result = await db.execute(
                select(Sermon).order_by(desc(Sermon.date)).limit(limit)
            )
            sermons = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing latest sermons: %s", e, exc_info=True)
            raise DatabaseError(message="Could not retrieve sermons. Please try again.")
        return SermonListResponse(sermons=[SermonResponse.model_validate(s) for s in sermons])

    async def get_sermon(self, db: AsyncSession, raw_id: str) -> SermonEnvelope:
        sermon = await self._find(db, raw_id)
        if sermon is None:
            raise NotFoundError(resource="sermon", resource_id=raw_id)
        return SermonEnvelope(sermon=SermonResponse.model_validate(sermon))

    async def count_sermons(self, db: AsyncSession) -> int:
        result = await db.execute(select(func.count(Sermon.id)))
        return int(result.scalar_one())

    async def create_sermon(
        self,
        db: AsyncSession,
        fields: SermonFields,
        upload: StagedUpload,
        base_url: str,
    ) -> SermonCreatedResponse:
        """
        Create a sermon for an already staged audio upload.

        Raises:
            LimitExceededError: `sermon_limit` sermons already stored (400)
            FileStorageError: staged file could not be committed (500)
            DatabaseError: insert failed (500)
        """
        committed = False
        try:
            existing = await self.count_sermons(db)
            if existing >= self.config.sermon_limit:
                logger.warning(
                    "Sermon limit reached (%d/%d); rejecting upload %s",
                    existing,
                    self.config.sermon_limit,
                    upload.filename,
                )
                raise LimitExceededError(limit=self.config.sermon_limit)

            sermon = Sermon(
                **fields.model_dump(),
                mp3_url=build_media_url(base_url, upload.filename),
            )
            db.add(sermon)
            await db.flush()

            await upload.commit()
            committed = True
        except SQLAlchemyError as e:
            logger.error("Database error creating sermon: %s", e, exc_info=True)
            raise DatabaseError(
                message="Could not create the sermon. Please try again.",
                context={"error_type": type(e).__name__},
            )
        finally:
            # Also covers cancellation when the client goes away mid-request
            if not committed:
                await upload.discard()

        logger.info("Sermon created: %s (%s)", sermon.id, sermon.title)
        return SermonCreatedResponse(sermon=SermonResponse.model_validate(sermon), id=sermon.id)

    async def update_sermon(
        self,
        db: AsyncSession,
        raw_id: str,
        fields: SermonFields,
    ) -> SermonEnvelope:
        """Replace title, scripture, speaker and date; the audio file is kept."""
        sermon = await self._find(db, raw_id)
        if sermon is None:
            raise NotFoundError(resource="sermon", resource_id=raw_id)

        for name, value in fields.model_dump().items():
            setattr(sermon, name, value)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating sermon %s: %s", raw_id, e, exc_info=True)
            raise DatabaseError(message="Could not update the sermon. Please try again.")
        logger.info("Sermon updated: %s", sermon.id)
        return SermonEnvelope(sermon=SermonResponse.model_validate(sermon))

    async def delete_sermon(self, db: AsyncSession, raw_id: str) -> DeleteResponse:
        """
        Delete a sermon and its audio file.

        Raises:
            NotFoundError: no sermon with this id (404)
            FileStorageError: audio file missing or not removable; record kept (500)
        """
        sermon = await self._find(db, raw_id)
        if sermon is None:
            raise NotFoundError(resource="sermon", resource_id=raw_id)

        await self.media.remove(self.media.resolve_filename(sermon.mp3_url))

        try:
            result = await db.execute(
                delete(Sermon)
                .where(Sermon.id == sermon.id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error(
                "Audio for sermon %s was removed but the record delete failed: %s",
                raw_id,
                e,
                exc_info=True,
            )
            raise DatabaseError(message="Could not delete the sermon. Please try again.")
        logger.info("Sermon deleted: %s", raw_id)
        return DeleteResponse(result=DeleteResult(deleted_count=result.rowcount))

    async def _find(self, db: AsyncSession, raw_id: str) -> Optional[Sermon]:
        sermon_id = parse_id(raw_id, "sermon")
        try:
            return await db.get(Sermon, sermon_id)
        except SQLAlchemyError as e:
            logger.error("Database error fetching sermon %s: %s", raw_id, e)
            raise DatabaseError(
                message="Could not retrieve the sermon. Please try again.",
                context={"sermon_id": raw_id},
            )


sermon_service = SermonService()
