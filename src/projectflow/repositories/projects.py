"""Repository for projects and their memberships."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import delete
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Project, ProjectMember, User
from .base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Project)

    async def list_visible(self, visibility: ColumnElement[bool]) -> list[Project]:
        """Return projects passing ``visibility``, newest first."""
        return await self.fetch_all(self.newest_first(select(Project).where(visibility)))

    async def list_member_ids(self, project_id: int) -> list[int]:
        result = await self.session.execute(
            select(ProjectMember.user_id)
            .where(col(ProjectMember.project_id) == project_id)
            .order_by(col(ProjectMember.id))
        )
        return list(result.scalars().all())

    async def list_members(self, project_id: int) -> list[User]:
        result = await self.session.execute(
            select(User)
            .join(ProjectMember, col(ProjectMember.user_id) == col(User.id))
            .where(col(ProjectMember.project_id) == project_id)
            .order_by(col(ProjectMember.id))
        )
        return list(result.scalars().all())

    async def add_members(self, project_id: int, user_ids: Iterable[int]) -> list[int]:
        """Insert memberships not already present and return the new member ids."""
        existing = set(await self.list_member_ids(project_id))
        added: list[int] = []
        for user_id in dict.fromkeys(user_ids):
            if user_id in existing:
                continue
            self.session.add(ProjectMember(project_id=project_id, user_id=user_id))
            added.append(user_id)
        if added:
            await self.session.flush()
        return added

    async def clear_members(self, project_id: int) -> None:
        await self.session.execute(
            delete(ProjectMember).where(col(ProjectMember.project_id) == project_id)
        )
