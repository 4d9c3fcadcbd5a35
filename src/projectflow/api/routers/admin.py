"""Privileged user-lifecycle endpoints.

Both endpoints resolve the caller from the bearer token (401 otherwise) and
confirm the admin role with the service credential (403 otherwise).
"""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import DatabaseSessionDependency, PrivilegedCallerDependency
from ...schemas import AdminUserCreate, AdminUserCreated, AdminUserDeleted, UserPublic
from ...services import AdminUserService

router = APIRouter(prefix="/admin/users", tags=["admin"])


@router.post("", response_model=AdminUserCreated, summary="Create a user account")
async def create_user(
    payload: AdminUserCreate,
    session: DatabaseSessionDependency,
    caller: PrivilegedCallerDependency,
) -> AdminUserCreated:
    user = await AdminUserService(session).create_user(
        caller,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        role=payload.role,
    )
    return AdminUserCreated(user=UserPublic.model_validate(user))


@router.delete("/{user_id}", response_model=AdminUserDeleted, summary="Delete a user account")
async def delete_user(
    user_id: int,
    session: DatabaseSessionDependency,
    caller: PrivilegedCallerDependency,
) -> AdminUserDeleted:
    await AdminUserService(session).delete_user(caller, user_id)
    return AdminUserDeleted()
