"""Authentication service encapsulating registration and token flows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timezone

from pydantic import ValidationError as PydanticValidationError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import (
    ExpiredSignatureError,
    GeneratedToken,
    JWTError,
    TokenType,
    blacklist_token,
    create_token,
    decode_token,
    is_token_blacklisted,
    verify_password,
)
from ..errors import ApplicationError, ForbiddenError, UnauthenticatedError
from ..models import User, UserRole
from ..schemas.auth import TokenPayload
from .users import UserService


@dataclass(slots=True)
class TokenPair:
    """Container for access and refresh tokens."""

    access: GeneratedToken
    refresh: GeneratedToken


def parse_token(token: str, token_type: TokenType, settings: Settings) -> TokenPayload:
    """Decode and validate ``token``; revoked or mistyped tokens are rejected."""

    try:
        claims = decode_token(token=token, token_type=token_type, settings=settings)
    except ExpiredSignatureError as exc:
        raise UnauthenticatedError("Token has expired.") from exc
    except JWTError as exc:
        raise UnauthenticatedError("Could not validate credentials.") from exc
    try:
        payload = TokenPayload.model_validate(claims)
    except PydanticValidationError as exc:
        raise UnauthenticatedError("Could not validate credentials.") from exc
    if payload.type is not token_type:
        raise UnauthenticatedError("Invalid token type.")
    if is_token_blacklisted(payload.jti):
        raise UnauthenticatedError("Token has been revoked.")
    return payload


def revoke(payload: TokenPayload) -> None:
    expires_at = payload.exp
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    blacklist_token(payload.jti, expires_at)


class AuthService:
    """High-level authentication workflows."""

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings
        self._user_service = UserService(session)

    async def register_user(self, *, email: str, password: str, name: str | None = None) -> User:
        if not self._settings.allow_signup:
            raise ForbiddenError("Signups are disabled.")
        return await self._user_service.create_user(
            email=email,
            password=password,
            name=name,
            is_active=True,
            role=UserRole.USER,
        )

    async def authenticate_user(self, email: str, password: str) -> User:
        user = await self._user_service.get_user_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            raise UnauthenticatedError("Incorrect email or password.")
        if not user.is_active:
            raise ForbiddenError("User account is inactive.")
        return user

    def build_token_pair(self, user: User) -> TokenPair:
        if user.id is None:
            raise ApplicationError("User must be persisted before issuing tokens.")
        access = create_token(
            subject=user.id,
            role=user.role.value,
            settings=self._settings,
            token_type=TokenType.ACCESS,
        )
        refresh = create_token(
            subject=user.id,
            role=user.role.value,
            settings=self._settings,
            token_type=TokenType.REFRESH,
        )
        return TokenPair(access=access, refresh=refresh)

    async def refresh_from_token(self, refresh_token: str) -> tuple[User, TokenPair]:
        payload = parse_token(refresh_token, TokenType.REFRESH, self._settings)
        try:
            user_id = int(payload.sub)
        except ValueError as exc:
            raise UnauthenticatedError("Invalid token subject.") from exc
        user = await self._user_service.get_user(user_id)
        if user is None:
            raise UnauthenticatedError("User no longer exists.")
        if not user.is_active:
            raise ForbiddenError("User account is inactive.")

        revoke(payload)
        return user, self.build_token_pair(user)

    def logout(self, access_token: str) -> None:
        revoke(parse_token(access_token, TokenType.ACCESS, self._settings))


__all__ = ["AuthService", "TokenPair", "parse_token", "revoke"]
