"""Read access to the sent-email log."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from ...deps import CurrentUserDependency, DatabaseSessionDependency, MailerDependency, SettingsDependency
from ...schemas import EmailLogRead
from ...services import EmailService

router = APIRouter(prefix="/email-logs", tags=["notifications"])


@router.get("", response_model=list[EmailLogRead], summary="List sent emails")
async def list_email_logs(
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    settings: SettingsDependency,
    mailer: MailerDependency,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[EmailLogRead]:
    logs = await EmailService(session, mailer, settings).list_logs(current_user, limit=limit)
    return [EmailLogRead.model_validate(log) for log in logs]
