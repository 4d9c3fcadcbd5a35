"""In-app notifications and per-user delivery preferences."""

from __future__ import annotations

import logging
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from ..errors import NotFoundError
from ..models import (
    NOTIFICATION_PREFERENCE_FIELDS,
    Notification,
    NotificationSettings,
    NotificationType,
    Project,
    User,
)
from ..policies import Action, check, visible_notifications
from ..realtime import ChangeType, broker, notification_event
from ..repositories import NotificationRepository, NotificationSettingsRepository
from ..schemas.notification import NotificationSettingsRead

logger = logging.getLogger(__name__)


def default_preferences(user_id: int) -> NotificationSettingsRead:
    """Preferences of a user without a stored row: every channel enabled."""

    return NotificationSettingsRead(user_id=user_id)


class NotificationSettingsService:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = NotificationSettingsRepository(session)

    async def get_preferences(self, user_id: int) -> NotificationSettingsRead:
        stored = await self._repository.get_for_user(user_id)
        if stored is None:
            return default_preferences(user_id)
        return NotificationSettingsRead.model_validate(stored)

    async def update_preferences(self, actor: User, changes: dict[str, Any]) -> NotificationSettingsRead:
        """Upsert ``actor``'s preferences with the provided flags."""

        if actor.id is None:
            raise ValueError("Persisted user is missing an id.")
        stored = await self._repository.get_for_user(actor.id)
        if stored is None:
            stored = NotificationSettings(user_id=actor.id)
            check(Action.INSERT, "notification_settings", actor, stored)
            self._session.add(stored)
        else:
            check(Action.UPDATE, "notification_settings", actor, stored)
        for field_name in NOTIFICATION_PREFERENCE_FIELDS:
            value = changes.get(field_name)
            if value is not None:
                setattr(stored, field_name, bool(value))
        await self._session.commit()
        await self._repository.refresh(stored)
        return NotificationSettingsRead.model_validate(stored)


class NotificationService:
    """Inbox operations plus creation of notifications for any recipient."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = NotificationRepository(session)

    async def create_notification(
        self,
        *,
        actor: User | None,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        related_id: int | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_id=related_id,
        )
        check(Action.INSERT, "notifications", actor, notification)
        await self._repository.add(notification)
        await self._session.commit()
        await self._repository.refresh(notification)
        await broker.publish(notification_event(ChangeType.INSERT, notification))
        return notification

    async def list_notifications(
        self,
        user: User,
        *,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> list[Notification]:
        return await self._repository.list_visible(
            visible_notifications(user),
            unread_only=unread_only,
            limit=limit,
        )

    async def unread_count(self, user: User) -> int:
        return await self._repository.count_unread(visible_notifications(user))

    async def _get_owned(self, user: User, notification_id: int, action: Action) -> Notification:
        notification = await self._repository.get(notification_id)
        if notification is None or notification.user_id != user.id:
            raise NotFoundError("Notification not found.")
        check(action, "notifications", user, notification)
        return notification

    async def mark_read(self, user: User, notification_id: int) -> Notification:
        notification = await self._get_owned(user, notification_id, Action.UPDATE)
        if not notification.is_read:
            notification.is_read = True
            await self._session.commit()
            await self._repository.refresh(notification)
            await broker.publish(notification_event(ChangeType.UPDATE, notification))
        return notification

    async def mark_all_read(self, user: User) -> int:
        unread = await self._repository.list_visible(visible_notifications(user), unread_only=True)
        for notification in unread:
            check(Action.UPDATE, "notifications", user, notification)
            notification.is_read = True
        if unread:
            await self._session.commit()
            for notification in unread:
                await broker.publish(notification_event(ChangeType.UPDATE, notification))
        return len(unread)

    async def delete_notification(self, user: User, notification_id: int) -> None:
        notification = await self._get_owned(user, notification_id, Action.DELETE)
        event = notification_event(ChangeType.DELETE, notification)
        await self._repository.delete(notification)
        await self._session.commit()
        await broker.publish(event)

    async def notify_project_invite(self, actor: User | None, user_id: int, project: Project) -> Notification | None:
        """Tell a new member about ``project`` unless they opted out of invites."""

        preferences = await NotificationSettingsService(self._session).get_preferences(user_id)
        if not preferences.in_app_project_invite:
            logger.debug("Project invite suppressed by preference", extra={"user_id": user_id})
            return None
        return await self.create_notification(
            actor=actor,
            user_id=user_id,
            type=NotificationType.PROJECT_INVITE,
            title="Added to Project",
            message=f'You have been added to the project "{project.name}"',
            related_id=project.id,
        )


__all__ = [
    "NotificationService",
    "NotificationSettingsService",
    "default_preferences",
]
