"""User and profile schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..models import UserRole


class UserPublic(BaseModel):
    """Public representation of a user profile."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    avatar_url: str | None = None
    is_active: bool
    role: UserRole
    created_at: datetime
    updated_at: datetime


class UserStatusUpdate(BaseModel):
    is_active: bool


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserProfileUpdate(BaseModel):
    """Fields a user may change on their own profile."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    avatar_url: str | None = None


__all__ = ["UserProfileUpdate", "UserPublic", "UserRoleUpdate", "UserStatusUpdate"]
