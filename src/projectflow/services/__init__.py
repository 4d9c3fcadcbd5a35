"""Service layer exposing business operations."""

from __future__ import annotations

from .attachments import AttachmentService
from .auth import AuthService
from .email import EmailService
from .notifications import NotificationService, NotificationSettingsService
from .projects import ProjectService
from .task_notifications import TaskNotifier
from .tasks import TaskService
from .users import AdminUserService, UserService

__all__ = [
    "AdminUserService",
    "AttachmentService",
    "AuthService",
    "EmailService",
    "NotificationService",
    "NotificationSettingsService",
    "ProjectService",
    "TaskNotifier",
    "TaskService",
    "UserService",
]
