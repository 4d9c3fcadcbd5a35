"""Repositories for notifications, notification settings and the email log."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import EmailLog, Notification, NotificationSettings
from .base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Notification)

    async def list_visible(
        self,
        visibility: ColumnElement[bool],
        *,
        unread_only: bool = False,
        limit: int | None = None,
    ) -> list[Notification]:
        query = select(Notification).where(visibility)
        if unread_only:
            query = query.where(col(Notification.is_read).is_(False))
        query = self.newest_first(query)
        if limit is not None:
            query = query.limit(limit)
        return await self.fetch_all(query)

    async def count_unread(self, visibility: ColumnElement[bool]) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(visibility, col(Notification.is_read).is_(False))
        )
        return int(result.scalar_one())


class NotificationSettingsRepository(BaseRepository[NotificationSettings]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, NotificationSettings)

    async def get_for_user(self, user_id: int) -> NotificationSettings | None:
        result = await self.session.execute(
            select(NotificationSettings).where(col(NotificationSettings.user_id) == user_id)
        )
        return result.scalar_one_or_none()


class EmailLogRepository(BaseRepository[EmailLog]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, EmailLog)

    async def list_visible(self, visibility: ColumnElement[bool], *, limit: int = 100) -> list[EmailLog]:
        query = self.newest_first(select(EmailLog).where(visibility), timestamp="sent_at")
        return await self.fetch_all(query.limit(limit))
