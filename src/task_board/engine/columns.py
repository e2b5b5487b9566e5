"""Board projection: partition an ordered task list into status columns."""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace

from task_board.engine.errors import DataIntegrityError
from task_board.models import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Column:
    """One board column: a status and its tasks in pipeline order."""

    status: TaskStatus
    tasks: tuple[Task, ...] = ()

    @property
    def count(self) -> int:
        """Badge count."""
        return len(self.tasks)

    @property
    def title(self) -> str:
        return self.status.value


@dataclass(frozen=True)
class BoardProjection:
    """Columns in TaskStatus order plus tasks that could not be placed."""

    columns: tuple[Column, ...]
    anomalies: tuple[DataIntegrityError, ...] = field(default_factory=tuple)

    def column(self, status: TaskStatus) -> Column:
        for column in self.columns:
            if column.status == status:
                return column
        raise KeyError(status)

    def find_task(self, task_id: str) -> Task | None:
        for column in self.columns:
            for task in column.tasks:
                if task.id == task_id:
                    return task
        return None

    @property
    def total(self) -> int:
        return sum(column.count for column in self.columns)


def project_to_columns(ordered_tasks: Iterable[Task]) -> BoardProjection:
    """Bucket tasks into the four status columns, keeping relative order.

    A task whose status is not one of the TaskStatus values is left out of the columns,
    logged, and reported in `anomalies`; the remaining tasks are still
    projected.
    """
    buckets: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    anomalies: list[DataIntegrityError] = []

    for task in ordered_tasks:
        try:
            status = TaskStatus(task.status)
        except (TypeError, ValueError):
            error = DataIntegrityError(task.id, task.status)
            logger.warning(f"[Board] {error}")
            anomalies.append(error)
            continue
        buckets[status].append(task)

    return BoardProjection(
        columns=tuple(Column(status=status, tasks=tuple(buckets[status])) for status in TaskStatus),
        anomalies=tuple(anomalies),
    )


def move_task(
    columns: Sequence[Column], task_id: str, target: TaskStatus
) -> tuple[tuple[Column, ...], Task | None]:
    """Remove task_id from every column and append it to target.

    Returns the new columns and the moved task (with its status updated), or
    the unchanged columns and None if the task is not on the board.
    """
    moved: Task | None = None
    for column in columns:
        for task in column.tasks:
            if task.id == task_id:
                moved = replace(task, status=target)
                break
        if moved is not None:
            break

    if moved is None:
        return tuple(columns), None

    new_columns = []
    for column in columns:
        remaining = tuple(t for t in column.tasks if t.id != task_id)
        if column.status == target:
            remaining = remaining + (moved,)
        new_columns.append(Column(status=column.status, tasks=remaining))
    return tuple(new_columns), moved
