"""Health and readiness endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ...deps import DatabaseSessionDependency
from ...schemas.system import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get(
    "/healthz",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
)
async def read_health(session: DatabaseSessionDependency) -> HealthCheckResponse:
    """Return a heartbeat payload including database reachability."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Database health check failed", exc_info=True)
        return HealthCheckResponse(status="degraded", database="unavailable")
    return HealthCheckResponse(status="ok", database="ok")
