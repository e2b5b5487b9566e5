"""Task domain model for TaskBoard."""

import math
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any


class TaskStatus(str, Enum):
    """Task lifecycle status.

    Declaration order is the board column order.
    """

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @classmethod
    def parse(cls, value: Any) -> "TaskStatus | None":
        """Return the matching status, or None if value is not one of the four."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower().replace("_", " ").replace("-", " ")
        for status in cls:
            if status.value.lower() == normalized:
                return status
        # Accept "todo" / "inprogress" spellings
        compact = normalized.replace(" ", "")
        for status in cls:
            if status.value.lower().replace(" ", "") == compact:
                return status
        return None


class TaskPriority(str, Enum):
    """Task priority."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"

    @classmethod
    def parse(cls, value: Any) -> "TaskPriority | None":
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        for priority in cls:
            if priority.value.lower() == value.strip().lower():
                return priority
        return None


@dataclass(frozen=True)
class Task:
    """A unit of work.

    `status` holds a TaskStatus for every well-formed task. A raw string only
    survives here when the persistence layer produced a value outside the
    enumeration; the board reports those as data-integrity anomalies.
    """

    id: str
    title: str
    description: str = ""
    status: TaskStatus | str = TaskStatus.TODO
    priority: TaskPriority | str = TaskPriority.MEDIUM
    due_date: datetime | str | None = None  # Raw string only when unparseable
    assigned_to: frozenset[str] = field(default_factory=frozenset)
    account_id: str | None = None
    account_name: str | None = None  # Denormalized copy, directory wins when present
    category_id: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    progress: int = 0
    created_at: datetime | None = None  # Owned by the store
    updated_at: datetime | None = None  # Owned by the store


def normalize_assignees(value: Any) -> frozenset[str]:
    """Normalize a single assignee or a collection of assignees to a set."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset([value]) if value else frozenset()
    if isinstance(value, Iterable):
        return frozenset(str(v) for v in value if v is not None and str(v))
    return frozenset([str(value)])


def normalize_tags(value: Any) -> frozenset[str]:
    """Normalize tags (list, comma separated string or None) to a set."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset(t.strip() for t in value.split(",") if t.strip())
    if isinstance(value, Iterable):
        return frozenset(str(t).strip() for t in value if t is not None and str(t).strip())
    return frozenset()


def clamp_progress(value: Any) -> int:
    """Clamp progress to [0, 100]; unparseable values become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    return max(0, min(100, int(number)))


def parse_instant(value: Any) -> datetime:
    """Convert a datetime, date or ISO string to an aware UTC datetime.

    Naive values are taken as UTC; a bare date means midnight UTC.

    Raises:
        ValueError: If the value is empty or not an ISO date/datetime
        TypeError: If the value has an unsupported type
    """
    if isinstance(value, datetime):
        instant = value
    elif isinstance(value, date):
        instant = datetime.combine(value, time.min)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        # Python < 3.11 fromisoformat does not accept a trailing Z
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        instant = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Cannot interpret {type(value).__name__} as a date")

    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)
