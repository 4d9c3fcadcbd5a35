"""Routes for task attachments."""

from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, File, Response, UploadFile, status

from ...deps import (
    AdminUserDependency,
    CurrentUserDependency,
    DatabaseSessionDependency,
    SettingsDependency,
    StorageDependency,
)
from ...errors import PayloadTooLargeError
from ...models import TaskAttachment
from ...schemas import AttachmentRead
from ...services import AttachmentService

router = APIRouter(tags=["attachments"])


def _map_attachment(service: AttachmentService, attachment: TaskAttachment) -> AttachmentRead:
    read = AttachmentRead.model_validate(attachment)
    read.url = service.public_url(attachment)
    return read


@router.get(
    "/tasks/{task_id}/attachments",
    response_model=list[AttachmentRead],
    summary="List a task's attachments",
)
async def list_attachments(
    task_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    storage: StorageDependency,
) -> list[AttachmentRead]:
    service = AttachmentService(session, storage)
    attachments = await service.list_for_task(current_user, task_id)
    return [_map_attachment(service, attachment) for attachment in attachments]


@router.post(
    "/tasks/{task_id}/attachments",
    response_model=AttachmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an attachment",
)
async def upload_attachment(
    task_id: int,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    storage: StorageDependency,
    settings: SettingsDependency,
    file: UploadFile = File(...),
) -> AttachmentRead:
    limit = settings.max_upload_bytes
    data = await file.read(limit + 1)
    await file.close()
    if len(data) > limit:
        raise PayloadTooLargeError(
            "Attachment exceeds the upload limit.",
            details={"max_bytes": limit},
        )
    service = AttachmentService(session, storage, max_upload_bytes=limit)
    attachment = await service.upload(
        admin,
        task_id,
        file_name=file.filename or "",
        content_type=file.content_type,
        data=data,
    )
    return _map_attachment(service, attachment)


@router.get("/attachments/{attachment_id}/content", summary="Download an attachment")
async def download_attachment(
    attachment_id: int,
    session: DatabaseSessionDependency,
    current_user: CurrentUserDependency,
    storage: StorageDependency,
) -> Response:
    content = await AttachmentService(session, storage).download(current_user, attachment_id)
    attachment = content.attachment
    disposition = f"attachment; filename*=UTF-8''{quote(attachment.file_name)}"
    return Response(
        content=content.data,
        media_type=attachment.file_type,
        headers={"Content-Disposition": disposition},
    )


@router.delete(
    "/attachments/{attachment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an attachment",
)
async def delete_attachment(
    attachment_id: int,
    session: DatabaseSessionDependency,
    admin: AdminUserDependency,
    storage: StorageDependency,
) -> Response:
    await AttachmentService(session, storage).delete(admin, attachment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
