"""Per-user notification preferences."""

from __future__ import annotations

from fastapi import APIRouter

from ...deps import CurrentUserDependency, DatabaseSessionDependency
from ...schemas import NotificationSettingsRead, NotificationSettingsUpdate
from ...services import NotificationSettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/notifications", response_model=NotificationSettingsRead, summary="Read own preferences")
async def read_notification_settings(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> NotificationSettingsRead:
    if current_user.id is None:
        raise ValueError("Persisted user is missing an id.")
    return await NotificationSettingsService(session).get_preferences(current_user.id)


@router.put("/notifications", response_model=NotificationSettingsRead, summary="Update own preferences")
async def update_notification_settings(
    payload: NotificationSettingsUpdate,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
) -> NotificationSettingsRead:
    return await NotificationSettingsService(session).update_preferences(
        current_user,
        payload.model_dump(exclude_none=True),
    )
