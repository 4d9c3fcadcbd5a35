"""Repository for interacting with user persistence models."""

from __future__ import annotations

from typing import Sequence

from sqlalchemy import func
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import User, UserRole
from .base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Concrete repository for CRUD operations on ``User`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Return a user matching the supplied email if it exists."""
        result = await self.session.execute(
            select(User).where(func.lower(col(User.email)) == email.strip().lower())
        )
        return result.scalar_one_or_none()

    async def list_ordered(self) -> list[User]:
        """Return every user, newest first."""
        return await self.fetch_all(self.newest_first(select(User)))

    async def list_by_ids(self, ids: Sequence[int]) -> list[User]:
        """Fetch all users whose IDs are contained in the provided sequence."""
        if not ids:
            return []
        return await self.fetch_all(select(User).where(col(User.id).in_(ids)))

    async def count_admins(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(User).where(col(User.role) == UserRole.ADMIN)
        )
        return int(result.scalar_one())

    async def list_admin_ids(self) -> list[int]:
        result = await self.session.execute(
            select(User.id).where(col(User.role) == UserRole.ADMIN)
        )
        return [user_id for user_id in result.scalars().all() if user_id is not None]
