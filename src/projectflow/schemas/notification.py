"""Notification, preference and email schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..models import NotificationType


class NotificationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    is_read: bool
    related_id: int | None = None
    created_at: datetime


class UnreadCount(BaseModel):
    count: int = Field(ge=0)


class MarkedRead(BaseModel):
    updated: int = Field(ge=0)


class NotificationSettingsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    email_task_assigned: bool = True
    email_task_updated: bool = True
    email_project_invite: bool = True
    in_app_task_assigned: bool = True
    in_app_task_updated: bool = True
    in_app_project_invite: bool = True


class NotificationSettingsUpdate(BaseModel):
    email_task_assigned: bool | None = None
    email_task_updated: bool | None = None
    email_project_invite: bool | None = None
    in_app_task_assigned: bool | None = None
    in_app_task_updated: bool | None = None
    in_app_project_invite: bool | None = None


class TaskNotificationKind(str, Enum):
    ASSIGNED = "assigned"
    UPDATED = "updated"


class TaskEmailRequest(BaseModel):
    """Request to email a user about a task assignment or update."""

    user_id: int
    task_id: int
    task_title: str = Field(min_length=1)
    type: TaskNotificationKind


class TaskEmailResponse(BaseModel):
    success: bool = True
    skipped: bool = False
    reason: str | None = None
    message_id: str | None = None


class EmailLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    to_user_id: int
    to_email: str
    subject: str
    body: str
    sent_at: datetime


__all__ = [
    "EmailLogRead",
    "MarkedRead",
    "NotificationRead",
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "TaskEmailRequest",
    "TaskEmailResponse",
    "TaskNotificationKind",
    "UnreadCount",
]
