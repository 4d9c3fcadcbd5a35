"""Fan-out of task assignment and update notifications."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.mail import Mailer
from ..db.session import service_session
from ..models import NotificationType, User
from ..repositories import UserRepository
from ..schemas.notification import TaskNotificationKind
from .email import EmailService, task_message
from .notifications import NotificationService, NotificationSettingsService

logger = logging.getLogger(__name__)

IN_APP_TYPES: dict[TaskNotificationKind, tuple[NotificationType, str, str]] = {
    TaskNotificationKind.ASSIGNED: (NotificationType.TASK_ASSIGNED, "New Task Assigned", "in_app_task_assigned"),
    TaskNotificationKind.UPDATED: (NotificationType.TASK_UPDATED, "Task Updated", "in_app_task_updated"),
}


@dataclass(slots=True)
class DispatchResult:
    """Which channels were eligible and which actually delivered."""

    in_app_enabled: bool
    email_enabled: bool
    in_app_sent: bool = False
    email_sent: bool = False


class TaskNotifier:
    """Decide once per channel whether a user hears about a task, then deliver.

    Delivery runs on a service session of its own, never on the caller's
    identity-bound request session. Each channel is attempted independently;
    a failure is logged and never propagated, so a committed task change is
    never undone by a notification.
    """

    def __init__(self, settings: Settings, mailer: Mailer) -> None:
        self._settings = settings
        self._mailer = mailer

    async def notify(
        self,
        *,
        actor: User | None,
        user_id: int,
        task_id: int,
        task_title: str,
        kind: TaskNotificationKind,
    ) -> DispatchResult:
        async with service_session() as session:
            return await self._dispatch(
                session,
                actor=actor,
                user_id=user_id,
                task_id=task_id,
                task_title=task_title,
                kind=kind,
            )

    async def _dispatch(
        self,
        session: AsyncSession,
        *,
        actor: User | None,
        user_id: int,
        task_id: int,
        task_title: str,
        kind: TaskNotificationKind,
    ) -> DispatchResult:
        preferences = await NotificationSettingsService(session).get_preferences(user_id)
        notification_type, title, in_app_field = IN_APP_TYPES[kind]
        email_field = "email_task_assigned" if kind is TaskNotificationKind.ASSIGNED else "email_task_updated"
        result = DispatchResult(
            in_app_enabled=bool(getattr(preferences, in_app_field)),
            email_enabled=bool(getattr(preferences, email_field)),
        )

        if result.in_app_enabled:
            try:
                await NotificationService(session).create_notification(
                    actor=actor,
                    user_id=user_id,
                    type=notification_type,
                    title=title,
                    message=task_message(kind, task_title),
                    related_id=task_id,
                )
                result.in_app_sent = True
            except Exception:
                await session.rollback()
                logger.exception(
                    "In-app task notification failed",
                    extra={"user_id": user_id, "task_id": task_id},
                )

        if result.email_enabled:
            try:
                recipient = await UserRepository(session).get(user_id)
                if recipient is None:
                    logger.warning("Task email recipient missing", extra={"user_id": user_id})
                else:
                    await EmailService(session, self._mailer, self._settings).deliver_task_email(
                        recipient,
                        task_id=task_id,
                        task_title=task_title,
                        kind=kind,
                    )
                    result.email_sent = True
            except Exception:
                await session.rollback()
                logger.exception(
                    "Task email notification failed",
                    extra={"user_id": user_id, "task_id": task_id},
                )

        return result


__all__ = ["DispatchResult", "TaskNotifier"]
