"""Public read access to the attachment bucket."""

from __future__ import annotations

import mimetypes

from fastapi import APIRouter, Response

from ...core.storage import StorageError
from ...deps import StorageDependency
from ...errors import NotFoundError

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/{bucket}/{key:path}", summary="Fetch a stored object by its public URL")
async def read_object(bucket: str, key: str, storage: StorageDependency) -> Response:
    if bucket != storage.bucket:
        raise NotFoundError("Bucket not found.")
    try:
        data = await storage.get(key)
    except StorageError as exc:
        raise NotFoundError("Object not found.") from exc
    media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
    return Response(content=data, media_type=media_type)
