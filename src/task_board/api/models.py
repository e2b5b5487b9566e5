"""API models for TaskBoard."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class TaskResponse(BaseModel):
    """API response model for tasks."""

    id: str
    title: str
    description: str
    status: str
    priority: str
    due_date: datetime | str | None
    overdue: bool
    assigned_to: list[str]
    assigned_to_names: list[str]
    account_id: str | None
    account_name: str | None
    category_id: str | None
    category_name: str | None
    tags: list[str]
    progress: int
    created_at: datetime | None
    updated_at: datetime | None


class ColumnResponse(BaseModel):
    """One board column with its badge count."""

    status: str
    title: str
    count: int
    tasks: list[TaskResponse]


class AnomalyResponse(BaseModel):
    """A task that could not be placed on the board."""

    task_id: str
    status: str
    message: str


class BoardResponse(BaseModel):
    """Board view: columns in lifecycle order plus data-integrity anomalies."""

    columns: list[ColumnResponse]
    anomalies: list[AnomalyResponse]
    total: int


class UpdateStatusRequest(BaseModel):
    """Request model for updating task status."""

    status: str


class TaskChange(BaseModel):
    """WebSocket notification telling clients to re-derive views holding task_id.

    `status_changed` comes from the status endpoint and carries the new
    status; the file events come from the task folder watcher.
    """

    type: Literal["status_changed", "created", "modified", "deleted", "moved"]
    task_id: str
    status: str | None = None
