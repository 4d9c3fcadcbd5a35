"""Persistent models for the ProjectFlow schema."""

from __future__ import annotations

from .attachment import TaskAttachment
from .common import CreatedAtMixin, TimestampMixin, utcnow
from .notification import (
    NOTIFICATION_PREFERENCE_FIELDS,
    EmailLog,
    Notification,
    NotificationSettings,
    NotificationSettingsBase,
    NotificationType,
)
from .project import Project, ProjectBase, ProjectMember, ProjectStatus
from .task import Task, TaskBase, TaskPriority, TaskStatus
from .user import User, UserBase, UserRole, default_display_name

__all__ = [
    "NOTIFICATION_PREFERENCE_FIELDS",
    "CreatedAtMixin",
    "EmailLog",
    "Notification",
    "NotificationSettings",
    "NotificationSettingsBase",
    "NotificationType",
    "Project",
    "ProjectBase",
    "ProjectMember",
    "ProjectStatus",
    "Task",
    "TaskAttachment",
    "TaskBase",
    "TaskPriority",
    "TaskStatus",
    "TimestampMixin",
    "User",
    "UserBase",
    "UserRole",
    "default_display_name",
    "utcnow",
]
