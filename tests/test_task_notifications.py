from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

from projectflow.core.config import get_settings
from projectflow.core.mail import InMemoryMailer
from projectflow.db.session import IDENTITY_INFO_KEY, service_session
from projectflow.models import NotificationType, Task, TaskStatus
from projectflow.policies import visible_email_logs, visible_notifications
from projectflow.repositories import (
    EmailLogRepository,
    NotificationRepository,
    NotificationSettingsRepository,
    TaskRepository,
)
from projectflow.schemas import TaskNotificationKind
from projectflow.services import NotificationService, NotificationSettingsService, TaskNotifier
from projectflow.services.tasks import notification_for_change

from .conftest import AuthenticatedUser


@pytest.fixture()
def preference_reads(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    calls: list[int] = []
    original = NotificationSettingsRepository.get_for_user

    async def _counting(self: NotificationSettingsRepository, user_id: int) -> Any:
        calls.append(user_id)
        return await original(self, user_id)

    monkeypatch.setattr(NotificationSettingsRepository, "get_for_user", _counting)
    return calls


async def _notify(mailer: InMemoryMailer, user: AuthenticatedUser, kind: TaskNotificationKind) -> Any:
    return await TaskNotifier(get_settings(), mailer).notify(
        actor=None,
        user_id=user.id,
        task_id=7,
        task_title="Write the report",
        kind=kind,
    )


async def _inbox(user: AuthenticatedUser) -> list:
    async with service_session() as session:
        return await NotificationRepository(session).list_visible(visible_notifications(user.user))


async def test_defaults_enable_both_channels(
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
    preference_reads: list[int],
) -> None:
    result = await _notify(mailer, member, TaskNotificationKind.ASSIGNED)

    assert result.in_app_enabled and result.email_enabled
    assert result.in_app_sent and result.email_sent
    assert preference_reads == [member.id]

    inbox = await _inbox(member)
    assert [n.type for n in inbox] == [NotificationType.TASK_ASSIGNED]
    assert inbox[0].related_id == 7
    assert mailer.outbox[0].to == member.email
    assert "Write the report" in mailer.outbox[0].html
    async with service_session() as session:
        logs = await EmailLogRepository(session).list_visible(visible_email_logs(member.user))
    assert [log.subject for log in logs] == ["New Task Assigned to You"]
    assert logs[0].body == 'You have been assigned to "Write the report"'


async def test_channels_follow_preferences(
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
    preference_reads: list[int],
) -> None:
    async with service_session() as session:
        await NotificationSettingsService(session).update_preferences(
            member.user,
            {"in_app_task_updated": False},
        )
    preference_reads.clear()

    result = await _notify(mailer, member, TaskNotificationKind.UPDATED)

    assert result.in_app_enabled is False
    assert result.email_sent is True
    assert preference_reads == [member.id]
    assert await _inbox(member) == []
    assert [message.subject for message in mailer.outbox] == ["Task Updated"]


async def test_all_channels_disabled(
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
    preference_reads: list[int],
) -> None:
    async with service_session() as session:
        await NotificationSettingsService(session).update_preferences(
            member.user,
            {"in_app_task_assigned": False, "email_task_assigned": False},
        )
    preference_reads.clear()

    result = await _notify(mailer, member, TaskNotificationKind.ASSIGNED)

    assert not result.in_app_sent and not result.email_sent
    assert preference_reads == [member.id]
    assert mailer.outbox == []


async def test_in_app_failure_does_not_block_email(
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _explode(self: NotificationService, **_: Any) -> None:
        raise RuntimeError("database hiccup")

    monkeypatch.setattr(NotificationService, "create_notification", _explode)

    result = await _notify(mailer, member, TaskNotificationKind.ASSIGNED)

    assert result.in_app_sent is False
    assert result.email_sent is True
    assert len(mailer.outbox) == 1


async def test_email_failure_is_reported_not_raised(member: AuthenticatedUser, mailer: InMemoryMailer) -> None:
    mailer.fail_with = "connection refused"

    result = await _notify(mailer, member, TaskNotificationKind.ASSIGNED)

    assert result.in_app_sent is True
    assert result.email_sent is False


@pytest.fixture()
def session_identities(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, Any]]:
    """Record the identity bound to the session behind each tracked repository call."""

    seen: list[tuple[str, Any]] = []

    def _track(repository: type, name: str) -> None:
        original = getattr(repository, name)

        async def _wrapped(self: Any, *args: Any, **kwargs: Any) -> Any:
            seen.append((f"{repository.__name__}.{name}", self.session.info.get(IDENTITY_INFO_KEY)))
            return await original(self, *args, **kwargs)

        monkeypatch.setattr(repository, name, _wrapped)

    _track(TaskRepository, "add")
    _track(NotificationSettingsRepository, "get_for_user")
    _track(NotificationRepository, "add")
    _track(EmailLogRepository, "add")
    return seen


async def test_delivery_runs_without_the_callers_identity(
    client: AsyncClient,
    admin: AuthenticatedUser,
    member: AuthenticatedUser,
    mailer: InMemoryMailer,
    session_identities: list[tuple[str, Any]],
) -> None:
    project = await client.post(
        "/api/projects",
        json={"name": "Delivery", "member_ids": [member.id]},
        headers=admin.headers,
    )
    assert project.status_code == 201, project.text
    task = await client.post(
        "/api/tasks",
        json={"project_id": project.json()["id"], "title": "Ship it", "assignee_id": member.id},
        headers=admin.headers,
    )
    assert task.status_code == 201, task.text
    email = await client.post(
        "/api/notifications/task-email",
        json={"user_id": member.id, "task_id": task.json()["id"], "task_title": "Ship it", "type": "updated"},
        headers=admin.headers,
    )
    assert email.status_code == 200, email.text

    assert ("TaskRepository.add", admin.id) in session_identities
    delivery = [entry for entry in session_identities if entry[0] != "TaskRepository.add"]
    assert {name for name, _ in delivery} == {
        "NotificationSettingsRepository.get_for_user",
        "NotificationRepository.add",
        "EmailLogRepository.add",
    }
    assert all(identity is None for _, identity in delivery)
    assert len(mailer.outbox) == 2
    async with service_session() as session:
        inbox = await NotificationRepository(session).list_visible(visible_notifications(member.user))
    assert {n.type for n in inbox} == {NotificationType.PROJECT_INVITE, NotificationType.TASK_ASSIGNED}


def _task(status: TaskStatus = TaskStatus.PENDING, assignee_id: int | None = None) -> Task:
    return Task(id=1, project_id=1, title="T", status=status, assignee_id=assignee_id)


def test_new_assignee_gets_assigned_notification() -> None:
    pending = notification_for_change(
        previous_assignee_id=2,
        previous_status=TaskStatus.PENDING,
        task=_task(TaskStatus.DONE, assignee_id=3),
        changes={"assignee_id": 3, "status": TaskStatus.DONE},
    )

    assert pending is not None
    assert pending.user_id == 3
    assert pending.kind is TaskNotificationKind.ASSIGNED


def test_status_change_goes_to_previous_assignee() -> None:
    pending = notification_for_change(
        previous_assignee_id=2,
        previous_status=TaskStatus.PENDING,
        task=_task(TaskStatus.IN_PROGRESS, assignee_id=2),
        changes={"status": TaskStatus.IN_PROGRESS},
    )

    assert pending is not None
    assert pending.user_id == 2
    assert pending.kind is TaskNotificationKind.UPDATED


@pytest.mark.parametrize(
    ("previous_assignee", "task", "changes"),
    [
        (None, _task(TaskStatus.DONE), {"status": TaskStatus.DONE}),
        (2, _task(TaskStatus.PENDING, 2), {"status": TaskStatus.PENDING}),
        (2, _task(TaskStatus.PENDING, 2), {"assignee_id": 2}),
        (2, _task(TaskStatus.PENDING), {"assignee_id": None}),
        (2, _task(TaskStatus.PENDING, 2), {"title": "Renamed"}),
    ],
)
def test_changes_without_notification(previous_assignee: int | None, task: Task, changes: dict) -> None:
    assert (
        notification_for_change(
            previous_assignee_id=previous_assignee,
            previous_status=TaskStatus.PENDING,
            task=task,
            changes=changes,
        )
        is None
    )
