"""Service layer encapsulating task-related operations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.cache import invalidate_task_cache
from ..core.config import Settings
from ..core.mail import Mailer
from ..errors import NotFoundError, ValidationError
from ..models import Task, TaskStatus, User
from ..policies import Action, check, visible_tasks
from ..realtime import ChangeType, broker, task_event
from ..repositories import ProjectRepository, TaskRepository, UserRepository
from ..schemas.notification import TaskNotificationKind
from .attachments import AttachmentService
from .task_notifications import TaskNotifier

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = ("title", "description", "priority", "status", "assignee_id", "due_date")


@dataclass(slots=True)
class TaskStatisticsResult:
    total: int
    by_status: dict[str, int]


@dataclass(slots=True)
class PendingNotification:
    user_id: int
    kind: TaskNotificationKind


def notification_for_change(
    *,
    previous_assignee_id: int | None,
    previous_status: TaskStatus,
    task: Task,
    changes: dict[str, Any],
) -> PendingNotification | None:
    """Decide who hears about an update.

    A change of assignee to a new user notifies that user; otherwise a status
    change notifies the assignee the task had before the update.
    """

    new_assignee = changes.get("assignee_id")
    if "assignee_id" in changes and new_assignee is not None and new_assignee != previous_assignee_id:
        return PendingNotification(user_id=new_assignee, kind=TaskNotificationKind.ASSIGNED)
    if "status" in changes and task.status != previous_status and previous_assignee_id is not None:
        return PendingNotification(user_id=previous_assignee_id, kind=TaskNotificationKind.UPDATED)
    return None


class TaskService:
    """High-level business orchestration for ``Task`` entities."""

    def __init__(self, session: AsyncSession, settings: Settings, mailer: Mailer) -> None:
        self._session = session
        self._repository = TaskRepository(session)
        self._projects = ProjectRepository(session)
        self._users = UserRepository(session)
        self._notifier = TaskNotifier(settings, mailer)

    @property
    def repository(self) -> TaskRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def _invalidate_cache(self) -> None:
        await invalidate_task_cache()

    async def _audience(self, task: Task, *extra: int | None) -> list[int | None]:
        project = await self._projects.get(task.project_id)
        members = await self._projects.list_member_ids(task.project_id)
        owner_id = project.owner_id if project is not None else None
        return [owner_id, task.assignee_id, *members, *extra]

    async def _validate_assignee(self, assignee_id: int | None) -> None:
        if assignee_id is None:
            return
        if await self._users.get(assignee_id) is None:
            raise ValidationError("Assignee does not exist.", details={"assignee_id": assignee_id})

    async def _notify(self, actor: User, pending: PendingNotification | None, task: Task) -> None:
        if pending is None or task.id is None:
            return
        task_id = task.id
        result = await self._notifier.notify(
            actor=actor,
            user_id=pending.user_id,
            task_id=task_id,
            task_title=task.title,
            kind=pending.kind,
        )
        logger.debug(
            "Task notification dispatched",
            extra={
                "task_id": task_id,
                "user_id": pending.user_id,
                "kind": pending.kind.value,
                "in_app": result.in_app_sent,
                "email": result.email_sent,
            },
        )

    async def list_tasks(
        self,
        user: User,
        *,
        project_id: int | None = None,
        status: TaskStatus | None = None,
        assignee_id: int | None = None,
    ) -> list[Task]:
        """Return the tasks ``user`` may read, newest first."""
        return await self._repository.list_visible(
            visible_tasks(user),
            project_id=project_id,
            status=status,
            assignee_id=assignee_id,
        )

    async def get_task(self, user: User, task_id: int) -> Task:
        task = await self._repository.get_visible(task_id, visible_tasks(user))
        if task is None:
            raise NotFoundError("Task not found.")
        return task

    async def get_task_statistics(self, user: User) -> TaskStatisticsResult:
        """Return counts per status over the tasks visible to ``user``."""
        counts = await self._repository.count_by_status(visible_tasks(user))
        by_status = {status.value: 0 for status in TaskStatus}
        for status, count in counts.items():
            by_status[status.value] = count
        return TaskStatisticsResult(total=sum(by_status.values()), by_status=by_status)

    async def create_task(self, actor: User, values: dict[str, Any]) -> Task:
        """Persist a new task and notify its assignee, if any."""
        task = Task(**values)
        check(Action.INSERT, "tasks", actor, task)
        if await self._projects.get(task.project_id) is None:
            raise NotFoundError("Project not found.")
        await self._validate_assignee(task.assignee_id)

        await self._repository.add(task)
        await self._session.commit()
        await self._repository.refresh(task)
        await self._invalidate_cache()
        logger.info("Task created", extra={"task_id": task.id, "project_id": task.project_id})

        await broker.publish(task_event(ChangeType.INSERT, record=task, audience=await self._audience(task)))
        if task.assignee_id is not None:
            await self._notify(
                actor,
                PendingNotification(user_id=task.assignee_id, kind=TaskNotificationKind.ASSIGNED),
                task,
            )
        return task

    async def update_task(self, actor: User, task_id: int, changes: dict[str, Any]) -> Task:
        """Apply the explicitly provided fields and notify as appropriate."""
        task = await self._repository.get(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        check(Action.UPDATE, "tasks", actor, task)
        if "assignee_id" in changes:
            await self._validate_assignee(changes["assignee_id"])

        previous = task.model_dump(mode="json")
        previous_assignee_id = task.assignee_id
        previous_status = task.status
        for field_name in _UPDATABLE_FIELDS:
            if field_name in changes:
                value = changes[field_name]
                if value is None and field_name in {"title", "priority", "status"}:
                    continue
                setattr(task, field_name, value)

        await self._session.commit()
        await self._repository.refresh(task)
        await self._invalidate_cache()
        logger.info("Task updated", extra={"task_id": task.id, "fields": sorted(changes)})

        await broker.publish(
            task_event(
                ChangeType.UPDATE,
                record=task,
                old_record=previous,
                audience=await self._audience(task, previous_assignee_id),
            )
        )
        pending = notification_for_change(
            previous_assignee_id=previous_assignee_id,
            previous_status=previous_status,
            task=task,
            changes=changes,
        )
        await self._notify(actor, pending, task)
        return task

    async def delete_task(self, actor: User, task_id: int) -> None:
        task = await self._repository.get(task_id)
        if task is None:
            raise NotFoundError("Task not found.")
        check(Action.DELETE, "tasks", actor, task)

        attachments = AttachmentService(self._session)
        object_keys = await attachments.object_keys_for_tasks([task_id])
        event = task_event(
            ChangeType.DELETE,
            old_record=task.model_dump(mode="json"),
            audience=await self._audience(task),
        )
        await self._repository.delete(task)
        await self._session.commit()
        await self._invalidate_cache()
        logger.info("Task deleted", extra={"task_id": task_id})
        await attachments.remove_objects(object_keys)
        await broker.publish(event)


__all__ = [
    "PendingNotification",
    "TaskService",
    "TaskStatisticsResult",
    "notification_for_change",
]
