"""Realtime change feed over Server-Sent Events and websockets."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Mapping

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import StreamingResponse

from ...deps import DatabaseSessionDependency, SettingsDependency, resolve_user
from ...errors import ApplicationError, UpstreamError
from ...models import UserRole
from ...realtime import ChangeEvent, ConnectionLimitExceeded, broker

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLOSE_CODE = 4401

router = APIRouter(prefix="/realtime", tags=["realtime"])


def _extract_authorization_token(headers: Mapping[str, str]) -> str | None:
    auth = headers.get("authorization")
    if not auth:
        return None
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def _serialise(event: ChangeEvent) -> str:
    return json.dumps(event.model_dump(mode="json"))


@router.get("/sse", summary="Stream visible row changes via Server-Sent Events")
async def change_stream(
    request: Request,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    token: str | None = Query(default=None),
) -> StreamingResponse:
    user = await resolve_user(token or _extract_authorization_token(request.headers), session, settings)
    if user.id is None:
        raise ValueError("Persisted user is missing an id.")
    try:
        subscriber = await broker.subscribe(
            user_id=user.id,
            is_admin=user.role == UserRole.ADMIN,
            settings=settings,
        )
    except ConnectionLimitExceeded as exc:
        raise UpstreamError(str(exc), code="realtime_unavailable") from exc

    async def event_source() -> AsyncIterator[str]:
        try:
            yield "event: ready\ndata: {}\n\n"
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(
                        subscriber.queue.get(), timeout=settings.realtime_heartbeat_seconds
                    )
                except asyncio.TimeoutError:
                    yield "event: heartbeat\ndata: {}\n\n"
                    continue
                yield f"id: {event.id}\nevent: {event.table}\ndata: {_serialise(event)}\n\n"
        finally:
            await broker.unsubscribe(subscriber)

    response = StreamingResponse(event_source(), media_type="text/event-stream")
    response.headers["Cache-Control"] = "no-store"
    response.headers["Connection"] = "keep-alive"
    response.headers["X-Accel-Buffering"] = "no"
    return response


@router.websocket("/ws")
async def change_socket(
    websocket: WebSocket,
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
) -> None:
    """Push visible row changes to a websocket client."""

    token = websocket.query_params.get("token") or _extract_authorization_token(websocket.headers)
    try:
        user = await resolve_user(token, session, settings)
    except ApplicationError:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return
    if user.id is None:
        await websocket.close(code=UNAUTHORIZED_CLOSE_CODE)
        return
    await session.close()

    try:
        subscriber = await broker.subscribe(
            user_id=user.id,
            is_admin=user.role == UserRole.ADMIN,
            settings=settings,
        )
    except ConnectionLimitExceeded:
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    await websocket.accept()
    await websocket.send_json({"kind": "ready", "user_id": user.id})

    async def _pump() -> None:
        while True:
            event = await subscriber.queue.get()
            await websocket.send_json(event.model_dump(mode="json"))

    async def _listen() -> None:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"kind": "pong"})

    tasks = {asyncio.create_task(_pump()), asyncio.create_task(_listen())}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                logger.error(
                    "Realtime websocket failed",
                    extra={"user_id": user.id},
                    exc_info=(type(exc), exc, exc.__traceback__),
                )
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await broker.unsubscribe(subscriber)
        logger.debug("Realtime subscriber disconnected", extra={"user_id": user.id})
