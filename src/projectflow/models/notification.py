"""In-app notifications, per-user delivery preferences and sent email log."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import CreatedAtMixin, TimestampMixin, utcnow


class NotificationType(str, Enum):
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UPDATED = "TASK_UPDATED"
    PROJECT_INVITE = "PROJECT_INVITE"
    MENTION = "MENTION"
    SYSTEM = "SYSTEM"
    EMAIL_SENT = "EMAIL_SENT"


class Notification(CreatedAtMixin, table=True):
    __tablename__ = "notifications"
    __table_args__ = (sa.Index("ix_notifications_user_id", "user_id"),)

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    type: NotificationType = Field(
        sa_column=sa.Column(
            sa.Enum(NotificationType, name="notification_type", native_enum=False, validate_strings=True),
            nullable=False,
        ),
    )
    title: str = Field(sa_column=sa.Column(sa.Text(), nullable=False))
    message: str = Field(sa_column=sa.Column(sa.Text(), nullable=False))
    is_read: bool = Field(
        default=False,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    related_id: int | None = Field(default=None, sa_column=sa.Column(sa.Integer(), nullable=True))


class NotificationSettingsBase(SQLModel, table=False):
    """Per-channel delivery switches; every flag defaults to enabled."""

    email_task_assigned: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    email_task_updated: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    email_project_invite: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    in_app_task_assigned: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    in_app_task_updated: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    in_app_project_invite: bool = Field(
        default=True,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.true()),
    )


class NotificationSettings(NotificationSettingsBase, TimestampMixin, table=True):
    __tablename__ = "notification_settings"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )


NOTIFICATION_PREFERENCE_FIELDS: tuple[str, ...] = tuple(NotificationSettingsBase.model_fields)


class EmailLog(SQLModel, table=True):
    __tablename__ = "email_logs"
    __table_args__ = (sa.Index("ix_email_logs_to_user_id", "to_user_id"),)

    id: int | None = Field(default=None, primary_key=True)
    to_user_id: int = Field(
        sa_column=sa.Column(
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
    )
    to_email: str = Field(sa_column=sa.Column(sa.String(length=320), nullable=False))
    subject: str = Field(sa_column=sa.Column(sa.Text(), nullable=False))
    body: str = Field(sa_column=sa.Column(sa.Text(), nullable=False))
    sent_at: datetime = Field(
        default_factory=utcnow,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


__all__ = [
    "NOTIFICATION_PREFERENCE_FIELDS",
    "EmailLog",
    "Notification",
    "NotificationSettings",
    "NotificationSettingsBase",
    "NotificationType",
]
