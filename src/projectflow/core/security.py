"""Password hashing and JWT issuance for ProjectFlow identities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from threading import Lock
from typing import Any
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import Settings

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(slots=True)
class GeneratedToken:
    """A signed token plus the metadata needed to revoke it later."""

    token: str
    expires_at: datetime
    jti: str


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def _secret_for(token_type: TokenType, settings: Settings) -> str:
    if token_type is TokenType.ACCESS:
        return settings.jwt_secret_key
    return settings.jwt_refresh_secret_key


def create_token(
    *,
    subject: int,
    role: str,
    settings: Settings,
    token_type: TokenType,
    expires_delta: timedelta | None = None,
) -> GeneratedToken:
    """Sign a token for ``subject`` carrying its role claim."""

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        minutes = (
            settings.access_token_expire_minutes
            if token_type is TokenType.ACCESS
            else settings.refresh_token_expire_minutes
        )
        expires_delta = timedelta(minutes=minutes)
    expire = now + expires_delta
    payload: dict[str, Any] = {
        "sub": str(subject),
        "iat": now,
        "exp": expire,
        "role": role,
        "type": token_type.value,
        "jti": uuid4().hex,
    }
    token = jwt.encode(payload, _secret_for(token_type, settings), algorithm=settings.jwt_algorithm)
    return GeneratedToken(token=token, expires_at=expire, jti=payload["jti"])


def decode_token(*, token: str, token_type: TokenType, settings: Settings) -> dict[str, Any]:
    """Verify the signature and expiry of ``token`` and return its claims."""

    return jwt.decode(token, _secret_for(token_type, settings), algorithms=[settings.jwt_algorithm])


class TokenBlacklist:
    """Revoked token identifiers, kept until the token would have expired."""

    def __init__(self) -> None:
        self._revoked: dict[str, datetime] = {}
        self._lock = Lock()

    def add(self, jti: str, expires_at: datetime) -> None:
        with self._lock:
            self._purge_locked(datetime.now(timezone.utc))
            self._revoked[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        with self._lock:
            self._purge_locked(datetime.now(timezone.utc))
            return jti in self._revoked

    def _purge_locked(self, current: datetime) -> None:
        expired = [key for key, expiry in self._revoked.items() if expiry <= current]
        for key in expired:
            self._revoked.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._revoked.clear()


_token_blacklist = TokenBlacklist()


def blacklist_token(jti: str, expires_at: datetime) -> None:
    _token_blacklist.add(jti, expires_at)


def is_token_blacklisted(jti: str) -> bool:
    return _token_blacklist.is_revoked(jti)


def clear_token_blacklist() -> None:
    _token_blacklist.clear()


__all__ = [
    "ExpiredSignatureError",
    "GeneratedToken",
    "JWTError",
    "TokenBlacklist",
    "TokenType",
    "blacklist_token",
    "clear_token_blacklist",
    "create_token",
    "decode_token",
    "get_password_hash",
    "is_token_blacklisted",
    "verify_password",
]
