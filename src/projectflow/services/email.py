"""Transactional task emails and the email log."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.mail import MailDeliveryError, Mailer, OutgoingEmail, render_template
from ..errors import NotFoundError, UpstreamError
from ..models import EmailLog, User
from ..policies import visible_email_logs
from ..repositories import EmailLogRepository, UserRepository
from ..schemas.notification import TaskEmailResponse, TaskNotificationKind
from .notifications import NotificationSettingsService

logger = logging.getLogger(__name__)

EMAIL_SUBJECTS: dict[TaskNotificationKind, str] = {
    TaskNotificationKind.ASSIGNED: "New Task Assigned to You",
    TaskNotificationKind.UPDATED: "Task Updated",
}

EMAIL_PREFERENCE_FIELDS: dict[TaskNotificationKind, str] = {
    TaskNotificationKind.ASSIGNED: "email_task_assigned",
    TaskNotificationKind.UPDATED: "email_task_updated",
}

SKIPPED_REASON = "Email notifications disabled"


def task_message(kind: TaskNotificationKind, task_title: str) -> str:
    if kind is TaskNotificationKind.ASSIGNED:
        return f'You have been assigned to "{task_title}"'
    return f'Task "{task_title}" has been updated'


class EmailService:
    def __init__(self, session: AsyncSession, mailer: Mailer, settings: Settings) -> None:
        self._session = session
        self._mailer = mailer
        self._settings = settings
        self._users = UserRepository(session)
        self._logs = EmailLogRepository(session)

    async def send_task_email(
        self,
        *,
        user_id: int,
        task_id: int,
        task_title: str,
        kind: TaskNotificationKind,
    ) -> TaskEmailResponse:
        """Email ``user_id`` about a task unless their preference disables it."""

        recipient = await self._users.get(user_id)
        if recipient is None:
            raise NotFoundError("User profile not found", code="user_not_found")

        preferences = await NotificationSettingsService(self._session).get_preferences(user_id)
        if not getattr(preferences, EMAIL_PREFERENCE_FIELDS[kind]):
            logger.info("Email notification skipped by preference", extra={"user_id": user_id})
            return TaskEmailResponse(skipped=True, reason=SKIPPED_REASON)

        message_id = await self.deliver_task_email(
            recipient,
            task_id=task_id,
            task_title=task_title,
            kind=kind,
        )
        return TaskEmailResponse(skipped=False, message_id=message_id)

    async def deliver_task_email(
        self,
        recipient: User,
        *,
        task_id: int,
        task_title: str,
        kind: TaskNotificationKind,
    ) -> str:
        """Send the email and record it in the log; no preference check."""

        subject = EMAIL_SUBJECTS[kind]
        message = task_message(kind, task_title)
        html = render_template(
            "email/task_notification.html",
            subject=subject,
            message=message,
            task_title=task_title,
            recipient_name=recipient.name,
            product_name=self._settings.project_name,
        )
        try:
            message_id = await self._mailer.send(
                OutgoingEmail(to=recipient.email, subject=subject, html=html, text=message)
            )
        except MailDeliveryError as exc:
            logger.error("Email delivery failed", extra={"user_id": recipient.id, "task_id": task_id})
            raise UpstreamError(str(exc)) from exc

        if recipient.id is None:
            raise ValueError("Persisted user is missing an id.")
        try:
            await self._logs.add(
                EmailLog(
                    to_user_id=recipient.id,
                    to_email=recipient.email,
                    subject=subject,
                    body=message,
                )
            )
            await self._session.commit()
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UpstreamError(str(exc)) from exc
        logger.info(
            "Task email sent",
            extra={"user_id": recipient.id, "task_id": task_id, "message_id": message_id},
        )
        return message_id

    async def list_logs(self, user: User, *, limit: int = 100) -> list[EmailLog]:
        return await self._logs.list_visible(visible_email_logs(user), limit=limit)


__all__ = [
    "EMAIL_PREFERENCE_FIELDS",
    "EMAIL_SUBJECTS",
    "SKIPPED_REASON",
    "EmailService",
    "task_message",
]
