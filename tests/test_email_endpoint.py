from __future__ import annotations

import pytest
from httpx import AsyncClient

from projectflow.core.mail import InMemoryMailer

from .conftest import AuthenticatedUser

pytestmark = pytest.mark.asyncio


def _request(user_id: int, kind: str = "assigned") -> dict:
    return {"user_id": user_id, "task_id": 12, "task_title": "Quarterly report", "type": kind}


async def test_sends_assignment_email_and_logs_it(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    response = await client.post("/api/notifications/task-email", json=_request(member.id), headers=admin.headers)

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["skipped"] is False
    assert payload["message_id"].startswith("memory-")

    (message,) = mailer.outbox
    assert message.to == member.email
    assert message.subject == "New Task Assigned to You"
    assert "Mia Member" in message.html
    assert 'You have been assigned to "Quarterly report"' in message.text

    logs = await client.get("/api/email-logs", headers=member.headers)
    assert [(log["to_email"], log["subject"]) for log in logs.json()] == [
        (member.email, "New Task Assigned to You")
    ]


async def test_update_email_subject(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    response = await client.post(
        "/api/notifications/task-email",
        json=_request(member.id, "updated"),
        headers=admin.headers,
    )

    assert response.status_code == 200
    assert mailer.outbox[0].subject == "Task Updated"
    assert mailer.outbox[0].text == 'Task "Quarterly report" has been updated'


async def test_skips_when_preference_disabled(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    await client.put(
        "/api/settings/notifications",
        json={"email_task_assigned": False},
        headers=member.headers,
    )

    response = await client.post("/api/notifications/task-email", json=_request(member.id), headers=admin.headers)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "skipped": True,
        "reason": "Email notifications disabled",
    }
    assert mailer.outbox == []
    logs = await client.get("/api/email-logs", headers=admin.headers)
    assert logs.json() == []


async def test_unknown_recipient(client: AsyncClient, admin: AuthenticatedUser, mailer: InMemoryMailer) -> None:
    response = await client.post("/api/notifications/task-email", json=_request(4040), headers=admin.headers)

    assert response.status_code == 404
    assert response.json()["error"] == "User profile not found"
    assert mailer.outbox == []


async def test_delivery_failure_is_reported(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
) -> None:
    mailer.fail_with = "mailbox unavailable"

    response = await client.post("/api/notifications/task-email", json=_request(member.id), headers=admin.headers)

    assert response.status_code == 500
    assert response.json()["error"] == "mailbox unavailable"
    logs = await client.get("/api/email-logs", headers=admin.headers)
    assert logs.json() == []


async def test_invalid_kind_is_rejected(client: AsyncClient, admin: AuthenticatedUser, member: AuthenticatedUser) -> None:
    response = await client.post(
        "/api/notifications/task-email",
        json=_request(member.id, "deleted"),
        headers=admin.headers,
    )

    assert response.status_code == 400


async def test_email_logs_are_private(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    outsider: AuthenticatedUser,
) -> None:
    await client.post("/api/notifications/task-email", json=_request(member.id), headers=admin.headers)

    outsider_logs = await client.get("/api/email-logs", headers=outsider.headers)
    admin_logs = await client.get("/api/email-logs", headers=admin.headers)

    assert outsider_logs.json() == []
    assert len(admin_logs.json()) == 1
