"""Shared model mixins and utilities."""

from __future__ import annotations

from datetime import datetime, timezone

import sqlalchemy as sa
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class CreatedAtMixin(SQLModel, table=False):
    """Server-maintained creation timestamp."""

    created_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={"server_default": sa.func.now()},
    )


class TimestampMixin(CreatedAtMixin, table=False):
    """Server-maintained created/updated timestamps.

    ``updated_at`` is refreshed by SQLAlchemy on every UPDATE statement and by a
    trigger on PostgreSQL, so request payloads never carry it.
    """

    updated_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
        sa_column_kwargs={
            "server_default": sa.func.now(),
            "onupdate": sa.func.now(),
        },
    )


__all__ = ["CreatedAtMixin", "TimestampMixin", "utcnow"]
