"""Shared persistence helpers for the ProjectFlow repositories."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Session-bound data access for one table.

    Reads that must respect row policies take a ``visibility`` clause built by
    :mod:`projectflow.policies`; the repository never decides visibility itself.
    """

    def __init__(self, session: AsyncSession, model_type: type[ModelType]) -> None:
        self._session = session
        self._model_type = model_type

    @property
    def session(self) -> AsyncSession:
        return self._session

    def _column(self, name: str) -> Any:
        return col(getattr(self._model_type, name))

    def newest_first(self, query: Any, timestamp: str = "created_at") -> Any:
        """Order ``query`` by ``timestamp`` then id, both descending."""
        return query.order_by(self._column(timestamp).desc(), self._column("id").desc())

    async def fetch_all(self, query: Any) -> list[ModelType]:
        result = await self._session.execute(query)
        return list(result.scalars().all())

    async def get(self, entity_id: int) -> ModelType | None:
        """Retrieve a row by primary key, bypassing row policies."""
        return await self._session.get(self._model_type, entity_id)

    async def get_visible(self, entity_id: int, visibility: ColumnElement[bool]) -> ModelType | None:
        """Retrieve a row by primary key when ``visibility`` admits it."""
        result = await self._session.execute(
            select(self._model_type).where(self._column("id") == entity_id, visibility)
        )
        return result.scalar_one_or_none()

    async def add(self, instance: ModelType) -> ModelType:
        self._session.add(instance)
        await self._session.flush()
        return instance

    async def delete(self, instance: ModelType) -> None:
        await self._session.delete(instance)
        await self._session.flush()

    async def refresh(self, instance: ModelType) -> ModelType:
        await self._session.refresh(instance)
        return instance
