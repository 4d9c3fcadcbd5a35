"""Seed script creating the bootstrap administrator."""

from __future__ import annotations

import asyncio
import logging

from ..core.config import Settings, get_settings
from ..core.logging import configure_logging
from ..models import User, UserRole
from ..services import UserService
from .session import init_db, service_session

logger = logging.getLogger(__name__)


async def ensure_bootstrap_admin(settings: Settings | None = None) -> User:
    """Create the configured admin account, or promote it when it exists."""

    settings = settings or get_settings()
    async with service_session() as session:
        service = UserService(session)
        user = await service.get_user_by_email(settings.bootstrap_admin_email)
        if user is None:
            user = await service.create_user(
                email=settings.bootstrap_admin_email,
                password=settings.bootstrap_admin_password,
                name=settings.bootstrap_admin_name,
                role=UserRole.ADMIN,
            )
            logger.info("Bootstrap admin created", extra={"user_id": user.id})
        elif user.role != UserRole.ADMIN:
            user.role = UserRole.ADMIN
            await session.commit()
            await session.refresh(user)
            logger.info("Bootstrap admin promoted", extra={"user_id": user.id})
        return user


async def seed() -> None:
    await init_db()
    await ensure_bootstrap_admin()


def main() -> None:
    """Entry-point hook for ``python -m`` execution."""
    configure_logging(get_settings())
    asyncio.run(seed())


if __name__ == "__main__":  # pragma: no cover - manual execution entry-point
    main()
