"""
Sanctuary Backend — User SQLAlchemy Model
===========================================

What:  ORM model for the `users` table (the credential store).

Lifecycle:
    1. Created at signup with is_approved = False
    2. Approved by an administrator outside this API
    3. password_hash replaced by forgot-password or change-password
    4. Never deleted by the API
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from sanctuary.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    # Unique index enforces one account per email address
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        unique=True,
        index=True,
    )

    # bcrypt hash; the plaintext password is never stored
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)

    is_approved: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', is_approved={self.is_approved})>"
