"""Errors raised or reported by the task board engine."""

from typing import Any


class DataIntegrityError(ValueError):
    """A task reached the board with a status outside the enumeration."""

    def __init__(self, task_id: str, status: Any) -> None:
        self.task_id = task_id
        self.status = status
        super().__init__(f"Task {task_id} has invalid status: {status!r}")


class PersistenceError(RuntimeError):
    """The task store rejected a status change issued after a drop."""

    def __init__(self, task_id: str, status: str, cause: BaseException) -> None:
        self.task_id = task_id
        self.status = status
        self.cause = cause
        super().__init__(f"Failed to persist status {status!r} for task {task_id}: {cause}")
