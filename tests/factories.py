"""Task builders shared by the test modules."""

from datetime import datetime, timedelta, timezone
from typing import Any

from task_board.models import Task, TaskPriority, TaskStatus

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_task(task_id: str, **fields: Any) -> Task:
    """Build a task with sensible defaults; due dates default to NOW + 1 day."""
    fields.setdefault("title", f"Task {task_id}")
    fields.setdefault("status", TaskStatus.TODO)
    fields.setdefault("priority", TaskPriority.MEDIUM)
    fields.setdefault("due_date", NOW + timedelta(days=1))
    return Task(id=task_id, **fields)
