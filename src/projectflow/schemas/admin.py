"""Payloads for the privileged user-lifecycle endpoints."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from ..models import UserRole
from .user import UserPublic


class AdminUserCreate(BaseModel):
    """Account to create on behalf of an administrator."""

    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=255)
    role: UserRole = UserRole.USER


class AdminUserCreated(BaseModel):
    success: bool = True
    user: UserPublic


class AdminUserDeleted(BaseModel):
    success: bool = True


__all__ = ["AdminUserCreate", "AdminUserCreated", "AdminUserDeleted"]
