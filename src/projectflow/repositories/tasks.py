"""Repository for interacting with task persistence models."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Task, TaskStatus
from .base import BaseRepository


class TaskRepository(BaseRepository[Task]):
    """Concrete repository encapsulating ``Task`` persistence operations."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Task)

    async def list_visible(
        self,
        visibility: ColumnElement[bool],
        *,
        project_id: int | None = None,
        status: TaskStatus | None = None,
        assignee_id: int | None = None,
    ) -> list[Task]:
        """Return tasks passing ``visibility`` and the optional filters, newest first."""
        query = select(Task).where(visibility)
        if project_id is not None:
            query = query.where(col(Task.project_id) == project_id)
        if status is not None:
            query = query.where(col(Task.status) == status)
        if assignee_id is not None:
            query = query.where(col(Task.assignee_id) == assignee_id)
        return await self.fetch_all(self.newest_first(query))

    async def count_by_status(self, visibility: ColumnElement[bool]) -> dict[TaskStatus, int]:
        """Return task counts grouped by status."""
        result = await self.session.execute(
            select(Task.status, func.count()).where(visibility).group_by(col(Task.status))
        )
        counts: dict[TaskStatus, int] = {}
        for status, count in result.all():
            counts[TaskStatus(status)] = int(count)
        return counts
