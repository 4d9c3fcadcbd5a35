"""Repository for task attachment metadata."""

from __future__ import annotations

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import TaskAttachment
from .base import BaseRepository


class AttachmentRepository(BaseRepository[TaskAttachment]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TaskAttachment)

    async def list_for_task(self, task_id: int) -> list[TaskAttachment]:
        """Return a task's attachments, newest first."""
        query = select(TaskAttachment).where(col(TaskAttachment.task_id) == task_id)
        return await self.fetch_all(self.newest_first(query))
