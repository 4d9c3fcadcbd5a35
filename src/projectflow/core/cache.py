"""Redis-backed response cache with namespace invalidation."""

from __future__ import annotations

import asyncio
import json
import logging
from threading import Lock
from typing import Any, Awaitable, Callable, TypeVar, cast

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, TypeAdapter
from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings

T = TypeVar("T")

logger = logging.getLogger(__name__)

TASK_LIST_CACHE_NAMESPACE = "tasks:list"
TASK_STATISTICS_CACHE_NAMESPACE = "tasks:statistics"
PROJECT_LIST_CACHE_NAMESPACE = "projects:list"


class CacheMetrics:
    """In-memory counters describing cache behaviour."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.hits = 0
        self.misses = 0
        self.stores = 0
        self.invalidations = 0
        self.skipped = 0

    def _bump(self, attribute: str, amount: int = 1) -> None:
        with self._lock:
            setattr(self, attribute, getattr(self, attribute) + amount)

    def record_hit(self) -> None:
        self._bump("hits")

    def record_miss(self) -> None:
        self._bump("misses")

    def record_store(self) -> None:
        self._bump("stores")

    def record_invalidation(self, amount: int = 1) -> None:
        self._bump("invalidations", amount)

    def record_skipped(self) -> None:
        self._bump("skipped")

    def reset(self) -> None:
        with self._lock:
            self.hits = 0
            self.misses = 0
            self.stores = 0
            self.invalidations = 0
            self.skipped = 0

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "hits": self.hits,
                "misses": self.misses,
                "stores": self.stores,
                "invalidations": self.invalidations,
                "skipped": self.skipped,
            }


cache_metrics = CacheMetrics()

_redis_client: Redis | None = None
_redis_lock = asyncio.Lock()
_connection_error_logged = False


def set_cache_client(client: Redis | None) -> None:
    """Inject a Redis client instance (tests use ``fakeredis``)."""

    global _redis_client, _connection_error_logged
    _redis_client = client
    _connection_error_logged = False


async def close_cache_client() -> None:
    global _redis_client
    client = _redis_client
    if client is not None:
        await client.aclose()
    _redis_client = None


async def _create_redis_client() -> Redis | None:
    global _connection_error_logged

    settings = get_settings()
    client = Redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    try:
        await client.ping()
    except (RedisError, OSError):
        if not _connection_error_logged:
            logger.warning("Redis cache unavailable; caching will be bypassed.", exc_info=True)
            _connection_error_logged = True
        await client.aclose()
        return None
    _connection_error_logged = False
    return client


async def get_cache_client() -> Redis | None:
    """Return a connected Redis client or ``None`` when caching is off."""

    settings = get_settings()
    if not settings.cache_enabled:
        return None

    global _redis_client
    if _redis_client is not None:
        return _redis_client

    async with _redis_lock:
        if _redis_client is None:
            _redis_client = await _create_redis_client()
        return _redis_client


async def cache_get_or_set(
    *,
    namespace: str,
    key: str,
    builder: Callable[[], Awaitable[T]],
    ttl: int | None = None,
    model: Any | None = None,
) -> T:
    """Return a cached value or compute, store and return it.

    ``model`` may be a pydantic model class or any type understood by
    ``TypeAdapter`` (for example ``list[ProjectRead]``); cached payloads are
    validated back into it on a hit.
    """

    settings = get_settings()
    client = await get_cache_client()
    if client is None:
        cache_metrics.record_skipped()
        return await builder()

    cache_key = f"{namespace}:{key}"

    try:
        cached_payload = await client.get(cache_key)
    except RedisError:
        logger.warning("Failed to read cache key %s; bypassing cache.", cache_key, exc_info=True)
        cached_payload = None

    if cached_payload is not None:
        cache_metrics.record_hit()
        logger.debug("Cache hit for %s", cache_key)
        data = json.loads(cached_payload)
        if model is None:
            return cast(T, data)
        if isinstance(model, type) and issubclass(model, BaseModel):
            return cast(T, model.model_validate(data))
        return cast(T, TypeAdapter(model).validate_python(data))

    cache_metrics.record_miss()
    logger.debug("Cache miss for %s", cache_key)

    result = await builder()
    serialized = json.dumps(jsonable_encoder(result))
    expires: int | None = ttl if ttl is not None else settings.cache_default_ttl_seconds
    if expires is not None and expires <= 0:
        expires = None

    try:
        await client.set(cache_key, serialized, ex=expires)
    except RedisError:
        logger.warning("Failed to store cache key %s", cache_key, exc_info=True)
    else:
        cache_metrics.record_store()

    return result


async def invalidate_namespace(namespace: str, match: str = "*") -> None:
    """Remove cached entries under ``namespace``."""

    client = await get_cache_client()
    if client is None:
        return

    pattern = f"{namespace}:{match}"
    try:
        keys = [key async for key in client.scan_iter(match=pattern)]
        if keys:
            await client.delete(*keys)
    except RedisError:
        logger.warning("Failed to invalidate cache keys for pattern %s", pattern, exc_info=True)
        return

    if keys:
        cache_metrics.record_invalidation(len(keys))
        logger.debug("Invalidated %d cache entries for pattern %s", len(keys), pattern)


async def invalidate_task_cache() -> None:
    await invalidate_namespace(TASK_LIST_CACHE_NAMESPACE)
    await invalidate_namespace(TASK_STATISTICS_CACHE_NAMESPACE)


async def invalidate_project_cache() -> None:
    # Project visibility drives task visibility, so both go together.
    await invalidate_namespace(PROJECT_LIST_CACHE_NAMESPACE)
    await invalidate_task_cache()


__all__ = [
    "PROJECT_LIST_CACHE_NAMESPACE",
    "TASK_LIST_CACHE_NAMESPACE",
    "TASK_STATISTICS_CACHE_NAMESPACE",
    "cache_get_or_set",
    "cache_metrics",
    "close_cache_client",
    "get_cache_client",
    "invalidate_namespace",
    "invalidate_project_cache",
    "invalidate_task_cache",
    "set_cache_client",
]
