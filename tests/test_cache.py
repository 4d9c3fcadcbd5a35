from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from fakeredis.aioredis import FakeRedis
from httpx import AsyncClient

from projectflow.core.cache import cache_metrics, close_cache_client, set_cache_client
from projectflow.core.config import get_settings
from projectflow.models import UserRole

from .conftest import AuthenticatedUser, UserFactory


@pytest.fixture(autouse=True)
async def fake_redis(database: None) -> AsyncIterator[FakeRedis]:
    fake = FakeRedis(decode_responses=True)
    set_cache_client(fake)
    get_settings().cache_enabled = True
    cache_metrics.reset()
    try:
        yield fake
    finally:
        await close_cache_client()
        cache_metrics.reset()


async def _project(client: AsyncClient, admin: AuthenticatedUser, member_ids: list[int]) -> int:
    response = await client.post(
        "/api/projects",
        json={"name": "Cached", "member_ids": member_ids},
        headers=admin.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def test_task_list_is_cached_until_a_task_changes(
    client: AsyncClient,
    admin: AuthenticatedUser,
) -> None:
    project_id = await _project(client, admin, [])
    cache_metrics.reset()

    first = await client.get("/api/tasks", headers=admin.headers)
    second = await client.get("/api/tasks", headers=admin.headers)

    assert first.json() == second.json() == []
    assert cache_metrics.snapshot()["misses"] == 1
    assert cache_metrics.snapshot()["hits"] == 1

    created = await client.post(
        "/api/tasks",
        json={"project_id": project_id, "title": "Fresh"},
        headers=admin.headers,
    )
    assert created.status_code == 201
    assert cache_metrics.snapshot()["invalidations"] >= 1

    refreshed = await client.get("/api/tasks", headers=admin.headers)
    assert [task["title"] for task in refreshed.json()] == ["Fresh"]
    assert cache_metrics.snapshot()["misses"] == 2


async def test_cached_lists_are_per_user(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
) -> None:
    await _project(client, admin, [member.id])

    member_view = await client.get("/api/projects", headers=member.headers)
    outsider_view = await client.get("/api/projects", headers=outsider.headers)

    assert len(member_view.json()) == 1
    assert outsider_view.json() == []


async def test_project_change_invalidates_project_and_task_lists(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    fake_redis: FakeRedis,
) -> None:
    project_id = await _project(client, admin, [])
    await client.get("/api/projects", headers=member.headers)
    await client.get("/api/tasks/statistics", headers=member.headers)
    assert await fake_redis.keys("*")

    response = await client.patch(
        f"/api/projects/{project_id}",
        json={"member_ids": [member.id]},
        headers=admin.headers,
    )
    assert response.status_code == 200, response.text

    assert await fake_redis.keys("*") == []
    projects = await client.get("/api/projects", headers=member.headers)
    assert [project["id"] for project in projects.json()] == [project_id]


async def test_cache_disabled_bypasses_redis(client: AsyncClient, admin: AuthenticatedUser, fake_redis: FakeRedis) -> None:
    get_settings().cache_enabled = False

    await client.get("/api/tasks", headers=admin.headers)

    assert cache_metrics.snapshot()["skipped"] == 1
    assert await fake_redis.keys("*") == []


async def test_role_change_invalidates_cached_lists(
    client: AsyncClient,
    admin: AuthenticatedUser,
    user_factory: UserFactory,
    fake_redis: FakeRedis,
) -> None:
    lead = await user_factory(email="lead@example.com", role=UserRole.ADMIN)
    project_id = await _project(client, admin, [])
    created = await client.post(
        "/api/tasks",
        json={"project_id": project_id, "title": "Admins only"},
        headers=admin.headers,
    )
    assert created.status_code == 201

    assert len((await client.get("/api/tasks", headers=lead.headers)).json()) == 1
    assert len((await client.get("/api/projects", headers=lead.headers)).json()) == 1
    assert await fake_redis.keys("*")

    demoted = await client.patch(f"/api/users/{lead.id}/role", json={"role": "user"}, headers=admin.headers)
    assert demoted.status_code == 200, demoted.text

    assert await fake_redis.keys("*") == []
    assert (await client.get("/api/tasks", headers=lead.headers)).json() == []
    assert (await client.get("/api/projects", headers=lead.headers)).json() == []


async def test_deactivation_and_deletion_invalidate_cached_lists(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    fake_redis: FakeRedis,
) -> None:
    await _project(client, admin, [member.id])

    await client.get("/api/projects", headers=member.headers)
    assert await fake_redis.keys("*")
    response = await client.patch(f"/api/users/{member.id}/status", json={"is_active": False}, headers=admin.headers)
    assert response.status_code == 200, response.text
    assert await fake_redis.keys("*") == []

    await client.get("/api/projects", headers=admin.headers)
    assert await fake_redis.keys("*")
    response = await client.delete(f"/api/admin/users/{member.id}", headers=admin.headers)
    assert response.status_code in (200, 204), response.text
    assert await fake_redis.keys("*") == []
