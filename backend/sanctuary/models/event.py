"""
Sanctuary Backend — Event SQLAlchemy Model
============================================

What:  ORM model for the `events` table.

`date` drives ordering, the "upcoming" filter (date > now) and bulk expiry
(date <= now). `time` is the human-readable start time shown to visitors
(e.g. "7:00 PM") and is stored verbatim.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from sanctuary.database import Base


class Event(Base):
    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    address: Mapped[str] = mapped_column(String(512), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time: Mapped[str] = mapped_column(String(64), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_events_date", date),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name='{self.name}', date='{self.date}')>"
