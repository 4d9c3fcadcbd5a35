"""Task-related Pydantic schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models import TaskPriority, TaskStatus

TASK_READ_EXAMPLE = {
    "id": 1,
    "project_id": 3,
    "title": "Draft product documentation",
    "description": "Outline sections for the public API guide.",
    "priority": TaskPriority.MEDIUM.value,
    "status": TaskStatus.PENDING.value,
    "assignee_id": 42,
    "due_date": "2024-05-01",
    "created_at": "2024-01-01T12:00:00Z",
    "updated_at": "2024-01-02T08:30:00Z",
}


class TaskCreate(BaseModel):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "project_id": 3,
                "title": "Draft product documentation",
                "priority": TaskPriority.HIGH.value,
                "assignee_id": 42,
            }
        }
    )

    project_id: int
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assignee_id: int | None = None
    due_date: date | None = None


class TaskUpdate(BaseModel):
    """Payload for partially updating an existing task.

    Sending ``assignee_id: null`` explicitly unassigns the task.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    assignee_id: int | None = None
    due_date: date | None = None

    @model_validator(mode="after")
    def _ensure_payload_not_empty(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update.")
        return self


class TaskRead(BaseModel):
    """Public representation of a task."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": TASK_READ_EXAMPLE},
    )

    id: int
    project_id: int
    title: str
    description: str | None = None
    priority: TaskPriority
    status: TaskStatus
    assignee_id: int | None = None
    due_date: date | None = None
    created_at: datetime
    updated_at: datetime


class TaskStatistics(BaseModel):
    """Task counts per status for the dashboard."""

    total: int = Field(ge=0)
    by_status: dict[str, int] = Field(default_factory=dict)


__all__ = ["TaskCreate", "TaskRead", "TaskStatistics", "TaskUpdate"]
