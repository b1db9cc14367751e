"""
Sanctuary Backend — Sermon SQLAlchemy Model
=============================================

What:  ORM model for the `sermons` table.

Lifecycle:
    1. Created together with an uploaded MP3 (mp3_url points at /mp3/<name>)
    2. Updated by replacing title, scripture, speaker and date (mp3_url kept)
    3. Deleted together with its audio file

Query Patterns:
    - Newest first: ORDER BY date DESC (idx_sermons_date)
    - Cap check: SELECT count(*) FROM sermons
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from sanctuary.database import Base


class Sermon(Base):
    __tablename__ = "sermons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    scripture: Mapped[str] = mapped_column(String(255), nullable=False)
    speaker: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Public URL of the stored audio: <base-url>/mp3/<derived-name>.mp3
    mp3_url: Mapped[str] = mapped_column(String(1024), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_sermons_date", date.desc()),
    )

    def __repr__(self) -> str:
        return f"<Sermon(id={self.id}, title='{self.title}', date='{self.date}')>"
