"""User accounts and their profile attributes."""

from __future__ import annotations

from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import TimestampMixin


class UserRole(str, Enum):
    """Roles granting row-level privileges."""

    USER = "user"
    ADMIN = "admin"


class UserBase(SQLModel, table=False):
    email: str = Field(
        max_length=320,
        sa_column=sa.Column(sa.String(length=320), nullable=False, unique=True),
    )
    name: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    avatar_url: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.Text(), nullable=True),
    )
    is_active: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    role: UserRole = Field(
        default=UserRole.USER,
        sa_column=sa.Column(
            sa.Enum(UserRole, name="app_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
            nullable=False,
            server_default=UserRole.USER.value,
        ),
    )


class User(UserBase, TimestampMixin, table=True):
    """Persistent user model (identity plus profile)."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def default_display_name(email: str) -> str:
    """Name used for accounts created without one: the email's local part."""

    return email.split("@", 1)[0]


__all__ = ["User", "UserBase", "UserRole", "default_display_name"]
