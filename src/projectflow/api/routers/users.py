"""User directory and profile management routes."""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import AdminUserDependency, CurrentUserDependency, DatabaseSessionDependency
from ...schemas import UserProfileUpdate, UserPublic, UserRoleUpdate, UserStatusUpdate
from ...services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserPublic, summary="Return the authenticated user")
async def read_me(current_user: CurrentUserDependency) -> UserPublic:
    return UserPublic.model_validate(current_user)


@router.get("", response_model=list[UserPublic], summary="List user profiles")
async def list_users(session: DatabaseSessionDependency, _: CurrentUserDependency) -> list[UserPublic]:
    users = await UserService(session).list_users()
    return [UserPublic.model_validate(user) for user in users]


@router.patch("/{user_id}/status", response_model=UserPublic, summary="Activate or deactivate a user")
async def update_status(
    user_id: int,
    payload: UserStatusUpdate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
) -> UserPublic:
    user = await UserService(session).update_status(admin, user_id, is_active=payload.is_active)
    return UserPublic.model_validate(user)


@router.patch("/{user_id}/role", response_model=UserPublic, summary="Change a user's role")
async def update_role(
    user_id: int,
    payload: UserRoleUpdate,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
) -> UserPublic:
    user = await UserService(session).update_role(admin, user_id, role=payload.role)
    return UserPublic.model_validate(user)


@router.patch("/{user_id}/profile", response_model=UserPublic, summary="Update profile fields")
async def update_profile(
    user_id: int,
    payload: UserProfileUpdate,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> UserPublic:
    user = await UserService(session).update_profile(
        current_user,
        user_id,
        name=payload.name,
        avatar_url=payload.avatar_url,
    )
    return UserPublic.model_validate(user)
