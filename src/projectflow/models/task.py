"""Task domain models built with SQLModel."""

from __future__ import annotations

from datetime import date
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import TimestampMixin


class TaskStatus(str, Enum):
    """Kanban columns a task moves through."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class TaskBase(SQLModel, table=False):
    title: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    description: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.Text(), nullable=True),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(
            sa.Enum(TaskPriority, name="task_priority", native_enum=False, validate_strings=True),
            nullable=False,
            server_default=TaskPriority.MEDIUM.value,
        ),
    )
    status: TaskStatus = Field(
        default=TaskStatus.PENDING,
        sa_column=sa.Column(
            sa.Enum(TaskStatus, name="task_status", native_enum=False, validate_strings=True),
            nullable=False,
            server_default=TaskStatus.PENDING.value,
        ),
    )
    due_date: date | None = Field(default=None, sa_column=sa.Column(sa.Date(), nullable=True))
    project_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    assignee_id: int | None = Field(
        default=None,
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )


class Task(TaskBase, TimestampMixin, table=True):
    """Persistent task model."""

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.Index("ix_tasks_project_id", "project_id"),
        sa.Index("ix_tasks_assignee_id", "assignee_id"),
    )

    id: int | None = Field(default=None, primary_key=True)


__all__ = ["Task", "TaskBase", "TaskPriority", "TaskStatus"]
