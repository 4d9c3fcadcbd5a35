"""Pydantic schemas exposed by the HTTP API."""

from __future__ import annotations

from .admin import AdminUserCreate, AdminUserCreated, AdminUserDeleted
from .attachment import AttachmentRead
from .auth import AuthResponse, AuthTokens, RefreshRequest, SignupRequest, TokenPayload
from .notification import (
    EmailLogRead,
    MarkedRead,
    NotificationRead,
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    TaskEmailRequest,
    TaskEmailResponse,
    TaskNotificationKind,
    UnreadCount,
)
from .project import ProjectCreate, ProjectMemberRead, ProjectRead, ProjectUpdate
from .system import ErrorResponse, HealthCheckResponse, RootResponse, SuccessResponse
from .task import TaskCreate, TaskRead, TaskStatistics, TaskUpdate
from .user import UserProfileUpdate, UserPublic, UserRoleUpdate, UserStatusUpdate

__all__ = [
    "AdminUserCreate",
    "AdminUserCreated",
    "AdminUserDeleted",
    "AttachmentRead",
    "AuthResponse",
    "AuthTokens",
    "EmailLogRead",
    "ErrorResponse",
    "HealthCheckResponse",
    "MarkedRead",
    "NotificationRead",
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "ProjectCreate",
    "ProjectMemberRead",
    "ProjectRead",
    "ProjectUpdate",
    "RefreshRequest",
    "RootResponse",
    "SignupRequest",
    "SuccessResponse",
    "TaskCreate",
    "TaskEmailRequest",
    "TaskEmailResponse",
    "TaskNotificationKind",
    "TaskRead",
    "TaskStatistics",
    "TaskUpdate",
    "TokenPayload",
    "UnreadCount",
    "UserProfileUpdate",
    "UserPublic",
    "UserRoleUpdate",
    "UserStatusUpdate",
]
