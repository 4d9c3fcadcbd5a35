"""Router registrations for the ProjectFlow API."""

from __future__ import annotations

from fastapi import APIRouter

from .admin import router as admin_router
from .attachments import router as attachments_router
from .auth import router as auth_router
from .email_logs import router as email_logs_router
from .health import router as health_router
from .notifications import router as notifications_router
from .projects import router as projects_router
from .realtime import router as realtime_router
from .settings import router as settings_router
from .storage import router as storage_router
from .tasks import router as tasks_router
from .users import router as users_router

api_router = APIRouter()
api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(admin_router)
api_router.include_router(projects_router)
api_router.include_router(tasks_router)
api_router.include_router(attachments_router)
api_router.include_router(notifications_router)
api_router.include_router(email_logs_router)
api_router.include_router(settings_router)
api_router.include_router(realtime_router)
api_router.include_router(storage_router)

__all__ = ["api_router", "health_router"]
