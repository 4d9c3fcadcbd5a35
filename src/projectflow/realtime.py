"""Row change feed for tasks and notifications.

Services publish a :class:`ChangeEvent` after their transaction commits. Each
subscriber (one per websocket or SSE stream) owns a queue, and the broker only
enqueues events the subscriber is allowed to read.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable
from uuid import uuid4

from pydantic import BaseModel, Field

from .core.config import Settings
from .models import Notification, Task

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
NOTIFICATIONS_TABLE = "notifications"


class ConnectionLimitExceeded(RuntimeError):
    """Raised when the realtime subscriber pool is exhausted."""


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """A committed row change as seen by subscribers."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    table: str
    type: ChangeType
    record: dict[str, Any] | None = None
    old_record: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    audience: frozenset[int] = Field(default_factory=frozenset, exclude=True)


@dataclass(eq=False, slots=True)
class Subscriber:
    user_id: int
    is_admin: bool
    queue: asyncio.Queue[ChangeEvent] = field(default_factory=asyncio.Queue)


def _row_owner(event: ChangeEvent) -> int | None:
    row = event.record or event.old_record or {}
    owner = row.get("user_id")
    return int(owner) if owner is not None else None


def can_receive(subscriber: Subscriber, event: ChangeEvent) -> bool:
    """Apply the read policy of ``event.table`` to ``subscriber``."""

    if event.table == NOTIFICATIONS_TABLE:
        return _row_owner(event) == subscriber.user_id
    if event.table == TASKS_TABLE:
        return subscriber.is_admin or subscriber.user_id in event.audience
    return False


class RealtimeBroker:
    """Tracks realtime subscribers and fans out change events."""

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = asyncio.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, *, user_id: int, is_admin: bool, settings: Settings) -> Subscriber:
        async with self._lock:
            if len(self._subscribers) >= settings.realtime_max_connections:
                raise ConnectionLimitExceeded("Realtime connection limit reached.")
            subscriber = Subscriber(user_id=user_id, is_admin=is_admin)
            self._subscribers.append(subscriber)
        return subscriber

    async def unsubscribe(self, subscriber: Subscriber) -> None:
        async with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

    async def publish(self, event: ChangeEvent) -> int:
        """Queue ``event`` for every subscriber allowed to see it."""

        async with self._lock:
            targets = [subscriber for subscriber in self._subscribers if can_receive(subscriber, event)]
        for subscriber in targets:
            subscriber.queue.put_nowait(event)
        logger.debug(
            "Published change event",
            extra={"table": event.table, "change": event.type.value, "recipients": len(targets)},
        )
        return len(targets)

    async def reset(self) -> None:
        """Drop all subscribers (used by tests)."""

        async with self._lock:
            self._subscribers.clear()


broker = RealtimeBroker()


def task_event(
    change_type: ChangeType,
    *,
    record: Task | None = None,
    old_record: dict[str, Any] | None = None,
    audience: Iterable[int | None] = (),
) -> ChangeEvent:
    return ChangeEvent(
        table=TASKS_TABLE,
        type=change_type,
        record=record.model_dump(mode="json") if record is not None else None,
        old_record=old_record,
        audience=frozenset(user_id for user_id in audience if user_id is not None),
    )


def notification_event(
    change_type: ChangeType,
    notification: Notification,
    *,
    old_record: dict[str, Any] | None = None,
) -> ChangeEvent:
    snapshot = notification.model_dump(mode="json")
    return ChangeEvent(
        table=NOTIFICATIONS_TABLE,
        type=change_type,
        record=None if change_type is ChangeType.DELETE else snapshot,
        old_record=snapshot if change_type is ChangeType.DELETE else old_record,
        audience=frozenset({notification.user_id}),
    )


__all__ = [
    "ChangeEvent",
    "ChangeType",
    "ConnectionLimitExceeded",
    "RealtimeBroker",
    "Subscriber",
    "broker",
    "can_receive",
    "notification_event",
    "task_event",
]
