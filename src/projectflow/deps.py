"""Reusable FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel.ext.asyncio.session import AsyncSession

from .core.config import Settings, get_settings
from .core.context import bind_actor_id
from .core.mail import Mailer, get_mailer
from .core.security import TokenType
from .core.storage import ObjectStorage, get_storage
from .db.session import bind_session_identity, get_session
from .errors import ForbiddenError, UnauthenticatedError
from .models import User, UserRole
from .repositories import UserRepository
from .services.auth import parse_token

SettingsDependency = Annotated[Settings, Depends(get_settings)]
DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_session)]
MailerDependency = Annotated[Mailer, Depends(get_mailer)]
StorageDependency = Annotated[ObjectStorage, Depends(get_storage)]

_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth/login", auto_error=False)

BearerTokenDependency = Annotated[str | None, Depends(_oauth2_scheme)]


async def resolve_user(token: str | None, session: AsyncSession, settings: Settings) -> User:
    """Return the active user identified by an access ``token``.

    The lookup runs before the identity is bound, i.e. with the service
    credential.
    """

    if not token:
        raise UnauthenticatedError("Unauthorized")
    payload = parse_token(token, TokenType.ACCESS, settings)
    try:
        user_id = int(payload.sub)
    except ValueError as exc:
        raise UnauthenticatedError("Invalid token subject.") from exc
    user = await UserRepository(session).get(user_id)
    if user is None:
        raise UnauthenticatedError("Unauthorized")
    if not user.is_active:
        raise ForbiddenError("User account is inactive.")
    return user


async def get_current_user(
    token: BearerTokenDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> User:
    """Resolve the caller and bind it to the session and log context."""

    user = await resolve_user(token, session, settings)
    await bind_session_identity(session, user.id)
    bind_actor_id(user.id)
    return user


CurrentUserDependency = Annotated[User, Depends(get_current_user)]


async def get_admin_user(user: CurrentUserDependency) -> User:
    if user.role != UserRole.ADMIN:
        raise ForbiddenError("Forbidden")
    return user


AdminUserDependency = Annotated[User, Depends(get_admin_user)]


async def get_privileged_caller(
    token: BearerTokenDependency,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> User:
    """Resolve the caller of an admin endpoint using the service credential.

    The role is read with the elevated session so that a caller whose own row
    is unreadable still gets a precise 401/403 instead of an empty result.
    """

    user = await resolve_user(token, session, settings)
    if user.role != UserRole.ADMIN:
        raise ForbiddenError("Forbidden")
    return user


PrivilegedCallerDependency = Annotated[User, Depends(get_privileged_caller)]


__all__ = [
    "AdminUserDependency",
    "BearerTokenDependency",
    "CurrentUserDependency",
    "DatabaseSessionDependency",
    "MailerDependency",
    "PrivilegedCallerDependency",
    "SettingsDependency",
    "StorageDependency",
    "get_admin_user",
    "get_current_user",
    "get_privileged_caller",
    "resolve_user",
]
