"""Database repositories for encapsulating persistence logic."""

from __future__ import annotations

from .attachments import AttachmentRepository
from .notifications import EmailLogRepository, NotificationRepository, NotificationSettingsRepository
from .projects import ProjectRepository
from .tasks import TaskRepository
from .users import UserRepository

__all__ = [
    "AttachmentRepository",
    "EmailLogRepository",
    "NotificationRepository",
    "NotificationSettingsRepository",
    "ProjectRepository",
    "TaskRepository",
    "UserRepository",
]
