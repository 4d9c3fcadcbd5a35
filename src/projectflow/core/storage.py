"""Object storage for task attachments."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from starlette.concurrency import run_in_threadpool

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when an object cannot be written, read or removed."""


class ObjectStorage(Protocol):
    bucket: str

    async def put(self, key: str, data: bytes, content_type: str) -> None: ...

    async def get(self, key: str) -> bytes: ...

    async def delete(self, key: str) -> None: ...

    def public_url(self, key: str) -> str: ...


class LocalObjectStorage:
    """Bucket stored as a directory tree on the local filesystem."""

    def __init__(self, root: Path, bucket: str, public_base_url: str) -> None:
        self.root = Path(root)
        self.bucket = bucket
        self._public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        bucket_root = (self.root / self.bucket).resolve()
        candidate = (bucket_root / key).resolve()
        if bucket_root not in candidate.parents:
            raise StorageError(f"Invalid object key: {key!r}")
        return candidate

    def _write(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path_for(key)
        try:
            await run_in_threadpool(self._write, path, data)
        except OSError as exc:
            raise StorageError(f"Failed to store object {key!r}") from exc
        logger.debug("Stored object", extra={"key": key, "bytes": len(data), "content_type": content_type})

    async def get(self, key: str) -> bytes:
        path = self._path_for(key)
        try:
            return await run_in_threadpool(path.read_bytes)
        except FileNotFoundError as exc:
            raise StorageError(f"Object {key!r} does not exist") from exc
        except OSError as exc:
            raise StorageError(f"Failed to read object {key!r}") from exc

    async def delete(self, key: str) -> None:
        path = self._path_for(key)
        try:
            await run_in_threadpool(path.unlink, True)
        except OSError as exc:
            raise StorageError(f"Failed to delete object {key!r}") from exc

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{quote(self.bucket)}/{quote(key)}"


_storage_override: ObjectStorage | None = None


def set_storage(storage: ObjectStorage | None) -> None:
    global _storage_override
    _storage_override = storage


def build_storage(settings: Settings) -> ObjectStorage:
    return LocalObjectStorage(
        root=settings.storage_root,
        bucket=settings.storage_bucket,
        public_base_url=settings.storage_public_base_url,
    )


def get_storage() -> ObjectStorage:
    if _storage_override is not None:
        return _storage_override
    return build_storage(get_settings())


__all__ = [
    "LocalObjectStorage",
    "ObjectStorage",
    "StorageError",
    "build_storage",
    "get_storage",
    "set_storage",
]
