"""Routes handling task CRUD operations."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, Response, status

from ...core.cache import (
    TASK_LIST_CACHE_NAMESPACE,
    TASK_STATISTICS_CACHE_NAMESPACE,
    cache_get_or_set,
)
from ...deps import (
    AdminUserDependency,
    CurrentUserDependency,
    DatabaseSessionDependency,
    MailerDependency,
    SettingsDependency,
)
from ...models import Task, TaskStatus
from ...schemas import TaskCreate, TaskRead, TaskStatistics, TaskUpdate
from ...services import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])

ProjectQuery = Annotated[
    int | None,
    Query(ge=1, description="Restrict results to tasks of the given project."),
]
StatusQuery = Annotated[
    TaskStatus | None,
    Query(description="Filter results to tasks matching the supplied status."),
]
AssigneeQuery = Annotated[
    int | None,
    Query(ge=1, description="Restrict results to tasks assigned to the given user."),
]


def _map_task(task: Task) -> TaskRead:
    return TaskRead.model_validate(task)


@router.get("", response_model=list[TaskRead], summary="List visible tasks")
async def list_tasks(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
    project_id: ProjectQuery = None,
    status: StatusQuery = None,
    assignee_id: AssigneeQuery = None,
) -> list[TaskRead]:
    service = TaskService(session, settings, mailer)

    async def _build_response() -> list[TaskRead]:
        tasks = await service.list_tasks(
            current_user,
            project_id=project_id,
            status=status,
            assignee_id=assignee_id,
        )
        return [_map_task(task) for task in tasks]

    status_fragment = status.value if status is not None else "all"
    cache_key = (
        f"user={current_user.id}:project={project_id or 'all'}"
        f":status={status_fragment}:assignee={assignee_id or 'all'}"
    )
    return await cache_get_or_set(
        namespace=TASK_LIST_CACHE_NAMESPACE,
        key=cache_key,
        builder=_build_response,
        model=list[TaskRead],
    )


@router.get("/statistics", response_model=TaskStatistics, summary="Task counts per status")
async def get_task_statistics(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> TaskStatistics:
    service = TaskService(session, settings, mailer)

    async def _build_statistics() -> TaskStatistics:
        stats = await service.get_task_statistics(current_user)
        return TaskStatistics(total=stats.total, by_status=stats.by_status)

    return await cache_get_or_set(
        namespace=TASK_STATISTICS_CACHE_NAMESPACE,
        key=f"user={current_user.id}",
        builder=_build_statistics,
        model=TaskStatistics,
    )


@router.get("/{task_id}", response_model=TaskRead, summary="Retrieve a task by id")
async def get_task(
    task_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> TaskRead:
    task = await TaskService(session, settings, mailer).get_task(current_user, task_id)
    return _map_task(task)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new task",
)
async def create_task(
    payload: TaskCreate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> TaskRead:
    task = await TaskService(session, settings, mailer).create_task(admin, payload.model_dump())
    return _map_task(task)


@router.patch("/{task_id}", response_model=TaskRead, summary="Update an existing task")
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> TaskRead:
    task = await TaskService(session, settings, mailer).update_task(
        admin,
        task_id,
        payload.model_dump(exclude_unset=True),
    )
    return _map_task(task)


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a task",
)
async def delete_task(
    task_id: int,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
) -> Response:
    await TaskService(session, settings, mailer).delete_task(admin, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
