"""Service layer orchestrating user accounts and their lifecycle."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.cache import invalidate_project_cache
from ..core.security import get_password_hash
from ..errors import ApplicationError, NotFoundError, UpstreamError, ValidationError
from ..models import User, UserRole, default_display_name
from ..policies import Action, check, ensure_admin_remains, ensure_not_self, require_admin
from ..repositories import UserRepository

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "A user with this email address has already been registered"


class UserService:
    """High-level business operations for ``User`` entities."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repository = UserRepository(session)

    @property
    def repository(self) -> UserRepository:
        """Expose the underlying repository for advanced scenarios."""
        return self._repository

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        name: str | None = None,
        is_active: bool = True,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create and persist a new user record."""
        normalized_email = email.strip().lower()
        if await self._repository.get_by_email(normalized_email) is not None:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE, code="email_exists")
        user = User(
            email=normalized_email,
            name=(name or "").strip() or default_display_name(normalized_email),
            is_active=is_active,
            role=role,
            hashed_password=get_password_hash(password),
        )
        try:
            await self._repository.add(user)
            await self._session.commit()
        except IntegrityError as exc:
            await self._session.rollback()
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE, code="email_exists") from exc
        await self._repository.refresh(user)
        return user

    async def get_user(self, user_id: int) -> User | None:
        """Fetch a user by primary key."""
        return await self._repository.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._repository.get_by_email(email)

    async def list_users(self) -> list[User]:
        """Return all registered users, newest first."""
        return await self._repository.list_ordered()

    async def list_users_by_ids(self, ids: Sequence[int]) -> list[User]:
        return await self._repository.list_by_ids(ids)

    async def _require_user(self, user_id: int) -> User:
        user = await self._repository.get(user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return user

    async def update_status(self, actor: User, user_id: int, *, is_active: bool) -> User:
        require_admin(actor)
        user = await self._require_user(user_id)
        if not is_active and user.id == actor.id:
            raise ValidationError("Cannot deactivate your own account")
        user.is_active = is_active
        await self._session.commit()
        await self._repository.refresh(user)
        await invalidate_project_cache()
        logger.info("User status updated", extra={"user_id": user.id, "is_active": is_active})
        return user

    async def update_role(self, actor: User, user_id: int, *, role: UserRole) -> User:
        require_admin(actor)
        user = await self._require_user(user_id)
        if role != UserRole.ADMIN:
            ensure_admin_remains(
                user,
                await self._repository.count_admins(),
                message="Cannot remove the last admin user",
            )
        user.role = role
        await self._session.commit()
        await self._repository.refresh(user)
        # Cached lists were filtered under the previous role.
        await invalidate_project_cache()
        logger.info("User role updated", extra={"user_id": user.id, "role": role.value})
        return user

    async def update_profile(
        self,
        actor: User,
        user_id: int,
        *,
        name: str | None = None,
        avatar_url: str | None = None,
    ) -> User:
        user = await self._require_user(user_id)
        check(Action.UPDATE, "users", actor, user)
        if name is not None:
            user.name = name.strip() or user.name
        if avatar_url is not None:
            user.avatar_url = avatar_url or None
        await self._session.commit()
        await self._repository.refresh(user)
        return user


class AdminUserService:
    """Privileged account creation and deletion.

    The caller has already been resolved and confirmed as an administrator;
    every unexpected backend failure surfaces as :class:`UpstreamError`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UserService(session)
        self._repository = self._users.repository

    async def create_user(
        self,
        caller: User,
        *,
        email: str,
        password: str,
        name: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        check(Action.INSERT, "users", caller, None)
        try:
            user = await self._users.create_user(email=email, password=password, name=name)
        except ApplicationError:
            raise
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UpstreamError(str(exc)) from exc

        if role == UserRole.ADMIN:
            try:
                user.role = UserRole.ADMIN
                await self._session.commit()
                await self._repository.refresh(user)
            except SQLAlchemyError:
                await self._session.rollback()
                logger.exception("Failed to grant admin role", extra={"user_id": user.id})
                await self._repository.refresh(user)

        logger.info(
            "User created by admin",
            extra={"user_id": user.id, "created_by": caller.id, "role": user.role.value},
        )
        return user

    async def delete_user(self, caller: User, user_id: int) -> None:
        check(Action.DELETE, "users", caller, None)
        ensure_not_self(caller, user_id)
        try:
            target = await self._repository.get(user_id)
            if target is None:
                raise ValidationError("User not found", code="user_not_found")
            ensure_admin_remains(
                target,
                await self._repository.count_admins(),
                message="Cannot delete the last admin user",
            )
            await self._repository.delete(target)
            await self._session.commit()
        except ApplicationError:
            raise
        except SQLAlchemyError as exc:
            await self._session.rollback()
            raise UpstreamError(str(exc)) from exc
        await invalidate_project_cache()
        logger.info("User deleted by admin", extra={"user_id": user_id, "deleted_by": caller.id})


__all__ = ["DUPLICATE_EMAIL_MESSAGE", "AdminUserService", "UserService"]
