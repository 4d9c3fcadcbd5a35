"""Routes handling project CRUD and membership."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from ...core.cache import PROJECT_LIST_CACHE_NAMESPACE, cache_get_or_set
from ...deps import AdminUserDependency, CurrentUserDependency, DatabaseSessionDependency
from ...schemas import ProjectCreate, ProjectMemberRead, ProjectRead, ProjectUpdate
from ...services import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=list[ProjectRead], summary="List visible projects")
async def list_projects(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> list[ProjectRead]:
    service = ProjectService(session)

    async def _build() -> list[ProjectRead]:
        projects = await service.list_projects(current_user)
        return [ProjectRead.model_validate(project) for project in projects]

    return await cache_get_or_set(
        namespace=PROJECT_LIST_CACHE_NAMESPACE,
        key=f"user={current_user.id}",
        builder=_build,
        model=list[ProjectRead],
    )


@router.get("/{project_id}", response_model=ProjectRead, summary="Retrieve a project by id")
async def get_project(
    project_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> ProjectRead:
    project = await ProjectService(session).get_project(current_user, project_id)
    return ProjectRead.model_validate(project)


@router.get(
    "/{project_id}/members",
    response_model=list[ProjectMemberRead],
    summary="List the members of a project",
)
async def list_members(
    project_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> list[ProjectMemberRead]:
    members = await ProjectService(session).list_members(current_user, project_id)
    return [ProjectMemberRead.model_validate(member) for member in members]


@router.post(
    "",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    payload: ProjectCreate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
) -> ProjectRead:
    project = await ProjectService(session).create_project(
        admin,
        name=payload.name,
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=payload.status,
        owner_id=payload.owner_id,
        member_ids=payload.member_ids,
    )
    return ProjectRead.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectRead, summary="Update a project")
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
) -> ProjectRead:
    project = await ProjectService(session).update_project(
        admin,
        project_id,
        payload.model_dump(exclude_unset=True),
    )
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete a project and its tasks",
)
async def delete_project(
    project_id: int,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
) -> Response:
    await ProjectService(session).delete_project(admin, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
