"""Database session management utilities."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import Session, SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import get_settings

IDENTITY_INFO_KEY = "projectflow.user_id"
_IDENTITY_SQL = text("SELECT set_config('projectflow.user_id', :user_id, true)")


class IdentityBoundSession(Session):
    """Synchronous session carrying the acting user for row-level security."""


@event.listens_for(IdentityBoundSession, "after_begin")
def _apply_identity(session: Session, transaction: Any, connection: Any) -> None:
    user_id = session.info.get(IDENTITY_INFO_KEY)
    if user_id is None or connection.dialect.name != "postgresql":
        return
    connection.execute(_IDENTITY_SQL, {"user_id": str(user_id)})


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine: AsyncEngine
async_session_maker: async_sessionmaker[AsyncSession]


def configure_engine(database_url: str | None = None, **engine_kwargs: Any) -> AsyncEngine:
    """(Re)create the module level engine and session factory."""

    global engine, async_session_maker

    settings = get_settings()
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)
    engine = create_async_engine(url, echo=settings.db_echo, **engine_kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        sync_session_class=IdentityBoundSession,
        expire_on_commit=False,
    )
    return engine


configure_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_session_maker


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an ``AsyncSession`` for request-scoped work."""
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def service_session() -> AsyncIterator[AsyncSession]:
    """Open a session acting with the elevated service credential."""
    async with async_session_maker() as session:
        yield session


async def bind_session_identity(session: AsyncSession, user_id: int | None) -> None:
    """Attach ``user_id`` to ``session`` so database policies see the caller.

    Unbound sessions act as the service role. The identity is applied to every
    transaction the session begins from now on, and to the current one when a
    transaction is already open.
    """

    if user_id is None:
        session.info.pop(IDENTITY_INFO_KEY, None)
        return
    session.info[IDENTITY_INFO_KEY] = user_id
    bind = session.bind
    if session.in_transaction() and bind is not None and bind.dialect.name == "postgresql":
        await session.execute(_IDENTITY_SQL, {"user_id": str(user_id)})


async def init_db() -> None:
    """Create all database tables (primarily for tests and local development)."""
    from .. import models  # noqa: F401

    async with engine.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    await engine.dispose()


__all__ = [
    "IDENTITY_INFO_KEY",
    "IdentityBoundSession",
    "bind_session_identity",
    "configure_engine",
    "dispose_engine",
    "get_session",
    "get_session_maker",
    "init_db",
    "service_session",
]
