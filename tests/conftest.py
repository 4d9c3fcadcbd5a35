from __future__ import annotations

import os

os.environ.setdefault("PROJECTFLOW_ENVIRONMENT", "test")
os.environ.setdefault("PROJECTFLOW_DATABASE_URL", "sqlite+aiosqlite://")

from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from dataclasses import dataclass
from itertools import count
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

from projectflow.core.cache import cache_metrics, set_cache_client
from projectflow.core.config import get_settings
from projectflow.core.mail import InMemoryMailer, set_mailer
from projectflow.core.security import clear_token_blacklist
from projectflow.core.storage import LocalObjectStorage, set_storage
from projectflow.db.session import configure_engine, dispose_engine, init_db, service_session
from projectflow.main import create_app
from projectflow.models import User, UserRole
from projectflow.realtime import broker
from projectflow.services import UserService

TEST_PUBLIC_BASE_URL = "http://testserver/api/storage"


@dataclass(slots=True)
class AuthenticatedUser:
    user: User
    email: str
    password: str
    tokens: dict[str, str] | None

    @property
    def id(self) -> int:
        if self.user.id is None:
            raise RuntimeError("Persisted user is missing an id.")
        return self.user.id

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    @property
    def access_token(self) -> str:
        if not self.tokens:
            raise RuntimeError("User has not been authenticated.")
        return self.tokens["access_token"]

    @property
    def refresh_token(self) -> str:
        if not self.tokens:
            raise RuntimeError("User has not been authenticated.")
        return self.tokens["refresh_token"]


UserFactory = Callable[..., Awaitable[AuthenticatedUser]]


@pytest.fixture(autouse=True)
async def database() -> AsyncIterator[None]:
    get_settings.cache_clear()
    configure_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db()
    set_cache_client(None)
    cache_metrics.reset()
    clear_token_blacklist()
    await broker.reset()
    try:
        yield
    finally:
        await broker.reset()
        clear_token_blacklist()
        await dispose_engine()
        get_settings.cache_clear()


@pytest.fixture()
def mailer() -> Iterator[InMemoryMailer]:
    outbox = InMemoryMailer(sender="ProjectFlow <test@example.com>")
    set_mailer(outbox)
    try:
        yield outbox
    finally:
        set_mailer(None)


@pytest.fixture()
def storage(tmp_path: Path) -> Iterator[LocalObjectStorage]:
    bucket = LocalObjectStorage(tmp_path, "task-attachments", TEST_PUBLIC_BASE_URL)
    set_storage(bucket)
    try:
        yield bucket
    finally:
        set_storage(None)


@pytest.fixture()
def app(mailer: InMemoryMailer, storage: LocalObjectStorage) -> FastAPI:
    return create_app()


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture()
def user_factory(client: AsyncClient) -> UserFactory:
    counter = count()

    async def _factory(
        *,
        email: str | None = None,
        password: str = "StrongPass123!",
        name: str | None = None,
        role: UserRole = UserRole.USER,
        is_active: bool = True,
        login: bool = True,
    ) -> AuthenticatedUser:
        actual_email = email or f"user-{next(counter)}@example.com"
        async with service_session() as session:
            user = await UserService(session).create_user(
                email=actual_email,
                password=password,
                name=name,
                is_active=is_active,
                role=role,
            )
        tokens: dict[str, str] | None = None
        if login:
            response = await client.post(
                "/api/auth/login",
                data={"username": actual_email, "password": password},
            )
            assert response.status_code == 200, response.text
            tokens = response.json()["tokens"]
        return AuthenticatedUser(user=user, email=actual_email, password=password, tokens=tokens)

    return _factory


@pytest.fixture()
async def admin(user_factory: UserFactory) -> AuthenticatedUser:
    return await user_factory(email="admin@example.com", name="Ada Admin", role=UserRole.ADMIN)


@pytest.fixture()
async def member(user_factory: UserFactory) -> AuthenticatedUser:
    return await user_factory(email="member@example.com", name="Mia Member")


@pytest.fixture()
async def outsider(user_factory: UserFactory) -> AuthenticatedUser:
    return await user_factory(email="outsider@example.com", name="Otto Outsider")
