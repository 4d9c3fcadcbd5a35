"""Project-related Pydantic schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models import ProjectStatus


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus = ProjectStatus.PLANNING
    owner_id: int | None = Field(
        default=None,
        description="Defaults to the creating administrator.",
    )
    member_ids: list[int] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_dates(self) -> "ProjectCreate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date.")
        return self


class ProjectUpdate(BaseModel):
    """Partial project update.

    ``member_ids`` replaces the whole membership when present; omit it to keep
    the current members.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus | None = None
    member_ids: list[int] | None = None


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ProjectStatus
    owner_id: int
    created_at: datetime
    updated_at: datetime


class ProjectMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    avatar_url: str | None = None


__all__ = ["ProjectCreate", "ProjectMemberRead", "ProjectRead", "ProjectUpdate"]
