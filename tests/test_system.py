from __future__ import annotations

from httpx import AsyncClient

from projectflow.core.config import Settings
from projectflow.core.security import verify_password
from projectflow.db.seed import ensure_bootstrap_admin
from projectflow.models import UserRole

from .conftest import UserFactory


async def test_health_reports_database(client: AsyncClient) -> None:
    response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database": "ok"}
    assert "X-Request-ID" in response.headers


def _bootstrap_settings() -> Settings:
    return Settings(
        environment="test",
        bootstrap_admin_email="root@example.com",
        bootstrap_admin_password="RootPass123!",
        bootstrap_admin_name="Root",
    )


async def test_bootstrap_admin_is_created_once() -> None:
    first = await ensure_bootstrap_admin(_bootstrap_settings())
    second = await ensure_bootstrap_admin(_bootstrap_settings())

    assert first.id == second.id
    assert second.role == UserRole.ADMIN
    assert second.name == "Root"
    assert verify_password("RootPass123!", second.hashed_password)


async def test_bootstrap_promotes_existing_account(user_factory: UserFactory) -> None:
    existing = await user_factory(email="root@example.com", login=False)
    assert existing.user.role == UserRole.USER

    promoted = await ensure_bootstrap_admin(_bootstrap_settings())

    assert promoted.id == existing.id
    assert promoted.role == UserRole.ADMIN
