"""Task attachments backed by object storage."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass

from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.storage import ObjectStorage, StorageError, get_storage
from ..errors import NotFoundError, PayloadTooLargeError, UpstreamError, ValidationError
from ..models import TaskAttachment, User
from ..policies import Action, check, visible_tasks
from ..repositories import AttachmentRepository, TaskRepository

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def build_object_key(task_id: int, file_name: str, *, now_ms: int | None = None) -> str:
    """Return ``"<task_id>/<epoch_ms>-<file_name>"``."""

    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    safe_name = file_name.replace("/", "_").replace("\\", "_").strip() or "file"
    return f"{task_id}/{stamp}-{safe_name}"


@dataclass(slots=True)
class AttachmentContent:
    attachment: TaskAttachment
    data: bytes


class AttachmentService:
    def __init__(
        self,
        session: AsyncSession,
        storage: ObjectStorage | None = None,
        *,
        max_upload_bytes: int | None = None,
    ) -> None:
        self._session = session
        self._storage = storage
        self._max_upload_bytes = max_upload_bytes
        self._repository = AttachmentRepository(session)

    @property
    def storage(self) -> ObjectStorage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    def public_url(self, attachment: TaskAttachment) -> str:
        return self.storage.public_url(attachment.file_path)

    async def list_for_task(self, user: User, task_id: int) -> list[TaskAttachment]:
        attachments = await self._repository.list_for_task(task_id)
        for attachment in attachments:
            check(Action.READ, "task_attachments", user, attachment)
        return attachments

    async def upload(
        self,
        actor: User,
        task_id: int,
        *,
        file_name: str,
        content_type: str | None,
        data: bytes,
    ) -> TaskAttachment:
        """Store the object first, then record its metadata.

        When the record cannot be written the object is removed again.
        """

        if actor.id is None:
            raise ValueError("Persisted user is missing an id.")
        check(Action.INSERT, "task_attachments", actor, None)
        task = await TaskRepository(self._session).get_visible(task_id, visible_tasks(actor))
        if task is None:
            raise NotFoundError("Task not found.")
        if not file_name:
            raise ValidationError("A file name is required.")
        if self._max_upload_bytes is not None and len(data) > self._max_upload_bytes:
            raise PayloadTooLargeError(
                "Attachment exceeds the upload limit.",
                details={"max_bytes": self._max_upload_bytes, "size": len(data)},
            )

        key = build_object_key(task_id, file_name)
        file_type = content_type or DEFAULT_CONTENT_TYPE
        try:
            await self.storage.put(key, data, file_type)
        except StorageError as exc:
            raise UpstreamError(str(exc)) from exc

        attachment = TaskAttachment(
            task_id=task_id,
            file_name=file_name,
            file_path=key,
            file_type=file_type,
            file_size=len(data),
            uploaded_by=actor.id,
        )
        try:
            await self._repository.add(attachment)
            await self._session.commit()
        except Exception:
            await self._session.rollback()
            await self.remove_objects([key])
            raise
        await self._repository.refresh(attachment)
        logger.info("Attachment uploaded", extra={"task_id": task_id, "key": key, "bytes": len(data)})
        return attachment

    async def _require(self, attachment_id: int) -> TaskAttachment:
        attachment = await self._repository.get(attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment not found.")
        return attachment

    async def download(self, user: User, attachment_id: int) -> AttachmentContent:
        attachment = await self._require(attachment_id)
        check(Action.READ, "task_attachments", user, attachment)
        try:
            data = await self.storage.get(attachment.file_path)
        except StorageError as exc:
            raise NotFoundError("Attachment content not found.") from exc
        return AttachmentContent(attachment=attachment, data=data)

    async def delete(self, actor: User, attachment_id: int) -> None:
        """Remove the object first, then its metadata row."""

        attachment = await self._require(attachment_id)
        check(Action.DELETE, "task_attachments", actor, attachment)
        try:
            await self.storage.delete(attachment.file_path)
        except StorageError as exc:
            raise UpstreamError(str(exc)) from exc
        await self._repository.delete(attachment)
        await self._session.commit()
        logger.info("Attachment deleted", extra={"attachment_id": attachment_id})

    async def object_keys_for_tasks(self, task_ids: Sequence[int]) -> list[str]:
        if not task_ids:
            return []
        result = await self._session.execute(
            select(TaskAttachment.file_path).where(col(TaskAttachment.task_id).in_(task_ids))
        )
        return list(result.scalars().all())

    async def remove_objects(self, keys: Sequence[str]) -> None:
        """Best-effort cleanup of objects whose rows were removed by a cascade."""

        for key in keys:
            try:
                await self.storage.delete(key)
            except StorageError:
                logger.warning("Failed to remove orphaned object", extra={"key": key}, exc_info=True)


__all__ = ["AttachmentContent", "AttachmentService", "build_object_key"]
