from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

from projectflow.core.mail import InMemoryMailer
from projectflow.db.session import service_session
from projectflow.models import NotificationType, TaskStatus
from projectflow.policies import visible_email_logs, visible_notifications
from projectflow.repositories import EmailLogRepository, NotificationRepository

from .conftest import AuthenticatedUser

pytestmark = pytest.mark.asyncio


async def _create_project(client: AsyncClient, admin: AuthenticatedUser, member_ids: list[int]) -> int:
    response = await client.post(
        "/api/projects",
        json={"name": "Apollo", "member_ids": member_ids},
        headers=admin.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def _create_task(client: AsyncClient, admin: AuthenticatedUser, **fields: Any) -> dict[str, Any]:
    response = await client.post("/api/tasks", json=fields, headers=admin.headers)
    assert response.status_code == 201, response.text
    return response.json()


async def _inbox(user: AuthenticatedUser) -> list:
    async with service_session() as session:
        notifications = await NotificationRepository(session).list_visible(visible_notifications(user.user))
    return [n for n in notifications if n.type != NotificationType.PROJECT_INVITE]


async def test_create_task_with_defaults(client: AsyncClient, admin: AuthenticatedUser) -> None:
    project_id = await _create_project(client, admin, [])

    task = await _create_task(client, admin, project_id=project_id, title="Draft docs")

    assert task["status"] == "PENDING"
    assert task["priority"] == "MEDIUM"
    assert task["assignee_id"] is None

    fetched = await client.get(f"/api/tasks/{task['id']}", headers=admin.headers)
    assert fetched.status_code == 200
    assert fetched.json()["title"] == "Draft docs"


async def test_create_task_requires_existing_project(client: AsyncClient, admin: AuthenticatedUser) -> None:
    response = await client.post("/api/tasks", json={"project_id": 999, "title": "Orphan"}, headers=admin.headers)

    assert response.status_code == 404


async def test_create_task_rejects_empty_title(client: AsyncClient, admin: AuthenticatedUser) -> None:
    project_id = await _create_project(client, admin, [])

    response = await client.post("/api/tasks", json={"project_id": project_id, "title": ""}, headers=admin.headers)

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


async def test_non_admin_cannot_create_task(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
) -> None:
    project_id = await _create_project(client, admin, [member.id])

    response = await client.post("/api/tasks", json={"project_id": project_id, "title": "Mine"}, headers=member.headers)

    assert response.status_code == 403


async def test_creating_assigned_task_notifies_assignee(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])

    task = await _create_task(client, admin, project_id=project_id, title="Write tests", assignee_id=member.id)

    inbox = await _inbox(member)
    assert len(inbox) == 1
    assert inbox[0].type == NotificationType.TASK_ASSIGNED
    assert inbox[0].title == "New Task Assigned"
    assert inbox[0].message == 'You have been assigned to "Write tests"'
    assert inbox[0].related_id == task["id"]

    assert [message.to for message in mailer.outbox] == [member.email]
    assert mailer.outbox[0].subject == "New Task Assigned to You"


async def test_reassignment_notifies_new_assignee(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    task = await _create_task(client, admin, project_id=project_id, title="Review", assignee_id=member.id)
    mailer.clear()

    response = await client.patch(
        f"/api/tasks/{task['id']}",
        json={"assignee_id": outsider.id, "status": "IN_PROGRESS"},
        headers=admin.headers,
    )

    assert response.status_code == 200, response.text
    assert response.json()["assignee_id"] == outsider.id
    outsider_inbox = await _inbox(outsider)
    assert [n.type for n in outsider_inbox] == [NotificationType.TASK_ASSIGNED]
    assert len(await _inbox(member)) == 1
    assert [message.to for message in mailer.outbox] == [outsider.email]


async def test_status_change_notifies_assignee(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    task = await _create_task(client, admin, project_id=project_id, title="Deploy", assignee_id=member.id)
    mailer.clear()

    response = await client.patch(
        f"/api/tasks/{task['id']}",
        json={"status": "IN_REVIEW"},
        headers=admin.headers,
    )

    assert response.status_code == 200
    inbox = await _inbox(member)
    assert [n.type for n in inbox] == [NotificationType.TASK_UPDATED, NotificationType.TASK_ASSIGNED]
    assert inbox[0].title == "Task Updated"
    assert inbox[0].message == 'Task "Deploy" has been updated'
    assert [message.subject for message in mailer.outbox] == ["Task Updated"]


async def test_unchanged_status_sends_nothing(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    task = await _create_task(client, admin, project_id=project_id, title="Idle", assignee_id=member.id)
    mailer.clear()

    same_status = await client.patch(
        f"/api/tasks/{task['id']}",
        json={"status": "PENDING"},
        headers=admin.headers,
    )
    title_only = await client.patch(
        f"/api/tasks/{task['id']}",
        json={"title": "Idle (renamed)"},
        headers=admin.headers,
    )

    assert same_status.status_code == 200
    assert title_only.status_code == 200
    assert len(await _inbox(member)) == 1
    assert mailer.outbox == []


async def test_unassigning_sends_nothing(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    task = await _create_task(client, admin, project_id=project_id, title="Drop", assignee_id=member.id)
    mailer.clear()

    response = await client.patch(f"/api/tasks/{task['id']}", json={"assignee_id": None}, headers=admin.headers)

    assert response.status_code == 200
    assert response.json()["assignee_id"] is None
    assert len(await _inbox(member)) == 1
    assert mailer.outbox == []


async def test_update_requires_a_field(client: AsyncClient, admin: AuthenticatedUser) -> None:
    project_id = await _create_project(client, admin, [])
    task = await _create_task(client, admin, project_id=project_id, title="Empty")

    response = await client.patch(f"/api/tasks/{task['id']}", json={}, headers=admin.headers)

    assert response.status_code == 400


async def test_mail_failure_does_not_undo_task(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    mailer.fail_with = "smtp down"

    task = await _create_task(client, admin, project_id=project_id, title="Fragile", assignee_id=member.id)

    assert task["assignee_id"] == member.id
    assert len(await _inbox(member)) == 1
    async with service_session() as session:
        assert await EmailLogRepository(session).list_visible(visible_email_logs(None)) == []


async def test_task_visibility_and_filters(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
) -> None:
    shared_project = await _create_project(client, admin, [member.id])
    private_project = await _create_project(client, admin, [])
    shared = await _create_task(client, admin, project_id=shared_project, title="Shared", status="DONE")
    assigned = await _create_task(
        client,
        admin,
        project_id=private_project,
        title="Assigned elsewhere",
        assignee_id=outsider.id,
    )
    hidden = await _create_task(client, admin, project_id=private_project, title="Hidden")

    member_view = await client.get("/api/tasks", headers=member.headers)
    assert [task["id"] for task in member_view.json()] == [shared["id"]]

    outsider_view = await client.get("/api/tasks", headers=outsider.headers)
    assert [task["id"] for task in outsider_view.json()] == [assigned["id"]]

    hidden_lookup = await client.get(f"/api/tasks/{hidden['id']}", headers=member.headers)
    assert hidden_lookup.status_code == 404

    by_project = await client.get(f"/api/tasks?project_id={private_project}", headers=admin.headers)
    assert {task["id"] for task in by_project.json()} == {assigned["id"], hidden["id"]}

    by_status = await client.get("/api/tasks?status=DONE", headers=admin.headers)
    assert [task["id"] for task in by_status.json()] == [shared["id"]]

    by_assignee = await client.get(f"/api/tasks?assignee_id={outsider.id}", headers=admin.headers)
    assert [task["id"] for task in by_assignee.json()] == [assigned["id"]]


async def test_statistics_count_visible_tasks(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
) -> None:
    project_id = await _create_project(client, admin, [member.id])
    other_project = await _create_project(client, admin, [])
    await _create_task(client, admin, project_id=project_id, title="One", status="DONE")
    await _create_task(client, admin, project_id=project_id, title="Two")
    await _create_task(client, admin, project_id=other_project, title="Three")

    member_stats = await client.get("/api/tasks/statistics", headers=member.headers)
    admin_stats = await client.get("/api/tasks/statistics", headers=admin.headers)

    assert member_stats.json()["total"] == 2
    assert member_stats.json()["by_status"][TaskStatus.DONE.value] == 1
    assert member_stats.json()["by_status"][TaskStatus.PENDING.value] == 1
    assert member_stats.json()["by_status"][TaskStatus.IN_REVIEW.value] == 0
    assert admin_stats.json()["total"] == 3


async def test_delete_task(client: AsyncClient, admin: AuthenticatedUser, member: AuthenticatedUser) -> None:
    project_id = await _create_project(client, admin, [member.id])
    task = await _create_task(client, admin, project_id=project_id, title="Trash")

    forbidden = await client.delete(f"/api/tasks/{task['id']}", headers=member.headers)
    assert forbidden.status_code == 403

    response = await client.delete(f"/api/tasks/{task['id']}", headers=admin.headers)
    assert response.status_code == 204

    missing = await client.get(f"/api/tasks/{task['id']}", headers=admin.headers)
    assert missing.status_code == 404
