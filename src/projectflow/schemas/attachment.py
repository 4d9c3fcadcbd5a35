"""Attachment schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AttachmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    task_id: int
    file_name: str
    file_path: str
    file_type: str
    file_size: int
    uploaded_by: int
    created_at: datetime
    url: str | None = None


__all__ = ["AttachmentRead"]
