"""Notification inbox and the task email endpoint."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...db.session import service_session
from ...deps import (
    CurrentUserDependency,
    DatabaseSessionDependency,
    MailerDependency,
    SettingsDependency,
)
from ...schemas import MarkedRead, NotificationRead, TaskEmailRequest, TaskEmailResponse, UnreadCount
from ...services import EmailService, NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])

UnreadOnlyQuery = Annotated[bool, Query(description="Only return unread notifications.")]
LimitQuery = Annotated[int, Query(ge=1, le=200, description="Maximum number of notifications.")]


@router.get("", response_model=list[NotificationRead], summary="List own notifications")
async def list_notifications(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    unread_only: UnreadOnlyQuery = False,
    limit: LimitQuery = 50,
) -> list[NotificationRead]:
    notifications = await NotificationService(session).list_notifications(
        current_user,
        unread_only=unread_only,
        limit=limit,
    )
    return [NotificationRead.model_validate(notification) for notification in notifications]


@router.get("/unread-count", response_model=UnreadCount, summary="Count unread notifications")
async def unread_count(session: DatabaseSessionDependency, current_user: CurrentUserDependency) -> UnreadCount:
    return UnreadCount(count=await NotificationService(session).unread_count(current_user))


@router.post("/read-all", response_model=MarkedRead, summary="Mark every notification as read")
async def mark_all_read(session: DatabaseSessionDependency, current_user: CurrentUserDependency) -> MarkedRead:
    return MarkedRead(updated=await NotificationService(session).mark_all_read(current_user))


@router.post(
    "/task-email",
    response_model=TaskEmailResponse,
    response_model_exclude_none=True,
    summary="Email a user about a task assignment or update",
)
async def send_task_email(
    payload: TaskEmailRequest,
    _: CurrentUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> TaskEmailResponse:
    """Runs with the service credential over the recipient's profile, preferences and email log."""
    async with service_session() as session:
        return await EmailService(session, mailer, settings).send_task_email(
            user_id=payload.user_id,
            task_id=payload.task_id,
            task_title=payload.task_title,
            kind=payload.type,
        )


@router.post("/{notification_id}/read", response_model=NotificationRead, summary="Mark a notification as read")
async def mark_read(
    notification_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> NotificationRead:
    notification = await NotificationService(session).mark_read(current_user, notification_id)
    return NotificationRead.model_validate(notification)


@router.delete(
    "/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> Response:
    await NotificationService(session).delete_notification(current_user, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
