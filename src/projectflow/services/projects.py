"""Service layer encapsulating project and membership operations."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlmodel import col
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.cache import invalidate_project_cache
from ..db.session import service_session
from ..errors import NotFoundError, ValidationError
from ..models import Project, ProjectStatus, Task, User
from ..policies import Action, check, visible_projects
from ..realtime import ChangeType, broker, task_event
from ..repositories import ProjectRepository, TaskRepository, UserRepository
from .attachments import AttachmentService
from .notifications import NotificationService

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("name", "description", "start_date", "end_date", "status")


class ProjectService:
    """High-level business orchestration for ``Project`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = ProjectRepository(session)
        self._users = UserRepository(session)

    @property
    def repository(self) -> ProjectRepository:
        return self._repository

    async def list_projects(self, user: User) -> list[Project]:
        """Return the projects ``user`` may read, newest first."""
        return await self._repository.list_visible(visible_projects(user))

    async def get_project(self, user: User, project_id: int) -> Project:
        project = await self._repository.get_visible(project_id, visible_projects(user))
        if project is None:
            raise NotFoundError("Project not found.")
        return project

    async def list_members(self, user: User, project_id: int) -> list[User]:
        await self.get_project(user, project_id)
        return await self._repository.list_members(project_id)

    async def _validate_users(self, user_ids: Sequence[int]) -> list[int]:
        unique_ids = list(dict.fromkeys(user_ids))
        found = {user.id for user in await self._users.list_by_ids(unique_ids)}
        missing = [user_id for user_id in unique_ids if user_id not in found]
        if missing:
            raise ValidationError("Unknown user ids.", details={"user_ids": missing})
        return unique_ids

    async def _send_invites(self, actor: User, project: Project, user_ids: Sequence[int]) -> None:
        """Notify new members on a service session; failures are logged per member."""
        if not user_ids:
            return
        async with service_session() as session:
            notifications = NotificationService(session)
            for user_id in user_ids:
                try:
                    await notifications.notify_project_invite(actor, user_id, project)
                except Exception:
                    await session.rollback()
                    logger.exception(
                        "Project invite notification failed",
                        extra={"project_id": project.id, "user_id": user_id},
                    )

    async def create_project(
        self,
        actor: User,
        *,
        name: str,
        description: str | None = None,
        start_date: Any = None,
        end_date: Any = None,
        status: ProjectStatus = ProjectStatus.PLANNING,
        owner_id: int | None = None,
        member_ids: Sequence[int] = (),
    ) -> Project:
        project = Project(
            name=name,
            description=description,
            start_date=start_date,
            end_date=end_date,
            status=status,
            owner_id=owner_id if owner_id is not None else actor.id,
        )
        check(Action.INSERT, "projects", actor, project)
        await self._validate_users([project.owner_id])
        members = await self._validate_users(member_ids)
        await self._repository.add(project)
        if project.id is None:
            raise ValueError("Project was not persisted correctly.")
        added = await self._repository.add_members(project.id, members)
        await self._session.commit()
        await self._repository.refresh(project)
        await invalidate_project_cache()
        logger.info("Project created", extra={"project_id": project.id, "members": len(added)})
        await self._send_invites(actor, project, added)
        return project

    async def update_project(self, actor: User, project_id: int, changes: dict[str, Any]) -> Project:
        """Apply non-empty field changes; ``member_ids`` replaces the membership."""

        project = await self._repository.get(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        check(Action.UPDATE, "projects", actor, project)

        for field_name in _EDITABLE_FIELDS:
            value = changes.get(field_name)
            if value is None or value == "":
                continue
            setattr(project, field_name, value)
        if project.start_date and project.end_date and project.end_date < project.start_date:
            raise ValidationError("end_date cannot be before start_date.")

        added: list[int] = []
        member_ids = changes.get("member_ids")
        if member_ids is not None:
            members = await self._validate_users(member_ids)
            previous = set(await self._repository.list_member_ids(project_id))
            await self._repository.clear_members(project_id)
            await self._repository.add_members(project_id, members)
            added = [user_id for user_id in members if user_id not in previous]

        await self._session.commit()
        await self._repository.refresh(project)
        await invalidate_project_cache()
        logger.info("Project updated", extra={"project_id": project.id})
        await self._send_invites(actor, project, added)
        return project

    async def delete_project(self, actor: User, project_id: int) -> None:
        project = await self._repository.get(project_id)
        if project is None:
            raise NotFoundError("Project not found.")
        check(Action.DELETE, "projects", actor, project)

        tasks = await TaskRepository(self._session).list_visible(
            col(Task.project_id) == project_id,
        )
        audience = [project.owner_id, *await self._repository.list_member_ids(project_id)]
        attachments = AttachmentService(self._session)
        object_keys = await attachments.object_keys_for_tasks([task.id for task in tasks if task.id is not None])
        events = [
            task_event(
                ChangeType.DELETE,
                old_record=task.model_dump(mode="json"),
                audience=[*audience, task.assignee_id],
            )
            for task in tasks
        ]

        await self._repository.delete(project)
        await self._session.commit()
        await invalidate_project_cache()
        logger.info("Project deleted", extra={"project_id": project_id, "tasks": len(tasks)})
        await attachments.remove_objects(object_keys)
        for event in events:
            await broker.publish(event)


__all__ = ["ProjectService"]
