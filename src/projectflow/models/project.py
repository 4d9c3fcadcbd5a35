"""Project and membership models."""

from __future__ import annotations

from datetime import date
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import CreatedAtMixin, TimestampMixin


class ProjectStatus(str, Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"


class ProjectBase(SQLModel, table=False):
    name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    description: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.Text(), nullable=True),
    )
    start_date: date | None = Field(default=None, sa_column=sa.Column(sa.Date(), nullable=True))
    end_date: date | None = Field(default=None, sa_column=sa.Column(sa.Date(), nullable=True))
    status: ProjectStatus = Field(
        default=ProjectStatus.PLANNING,
        sa_column=sa.Column(
            sa.Enum(ProjectStatus, name="project_status", native_enum=False, validate_strings=True),
            nullable=False,
            server_default=ProjectStatus.PLANNING.value,
        ),
    )
    owner_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )


class Project(ProjectBase, TimestampMixin, table=True):
    __tablename__ = "projects"
    __table_args__ = (sa.Index("ix_projects_owner_id", "owner_id"),)

    id: int | None = Field(default=None, primary_key=True)


class ProjectMember(CreatedAtMixin, table=True):
    """Many-to-many link between projects and the users working on them."""

    __tablename__ = "project_members"
    __table_args__ = (
        sa.UniqueConstraint("project_id", "user_id", name="uq_project_members_project_user"),
        sa.Index("ix_project_members_user_id", "user_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    project_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    user_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )


__all__ = ["Project", "ProjectBase", "ProjectMember", "ProjectStatus"]
