"""Create users, sermons and events tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: the credential store and the two content collections.
How:   PostgreSQL UUID primary keys with gen_random_uuid() defaults and
       TIMESTAMP WITH TIME ZONE for every date column.

Rollback: downgrade() drops all three tables (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _created_at_column() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column(
            "password_hash",
            sa.String(128),
            nullable=False,
            comment="bcrypt hash",
        ),
        sa.Column(
            "is_approved",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
            comment="Set by an administrator; unapproved users cannot log in",
        ),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "sermons",
        _id_column(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("scripture", sa.String(255), nullable=False),
        sa.Column("speaker", sa.String(255), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "mp3_url",
            sa.String(1024),
            nullable=False,
            comment="Public URL of the audio file under /mp3",
        ),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_sermons_date", "sermons", [sa.text("date DESC")])

    op.create_table(
        "events",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("address", sa.String(512), nullable=False),
        sa.Column("date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "time",
            sa.String(64),
            nullable=False,
            comment="Display time such as '7:00 PM'",
        ),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_events_date", "events", ["date"])


def downgrade() -> None:
    op.drop_index("idx_events_date", table_name="events")
    op.drop_table("events")
    op.drop_index("idx_sermons_date", table_name="sermons")
    op.drop_table("sermons")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
