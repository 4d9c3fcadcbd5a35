"""File metadata for objects stored against a task."""

from __future__ import annotations

import sqlalchemy as sa
from sqlmodel import Field

from .common import CreatedAtMixin


class TaskAttachment(CreatedAtMixin, table=True):
    __tablename__ = "task_attachments"
    __table_args__ = (sa.Index("ix_task_attachments_task_id", "task_id"),)

    id: int | None = Field(default=None, primary_key=True)
    task_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    file_name: str = Field(sa_column=sa.Column(sa.Text(), nullable=False))
    file_path: str = Field(sa_column=sa.Column(sa.Text(), nullable=False, unique=True))
    file_type: str = Field(sa_column=sa.Column(sa.String(length=255), nullable=False))
    file_size: int = Field(sa_column=sa.Column(sa.Integer(), nullable=False))
    uploaded_by: int = Field(sa_column=sa.Column(sa.Integer(), nullable=False))


__all__ = ["TaskAttachment"]
