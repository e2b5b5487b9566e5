"""Task API endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from task_board.api.models import (
    AnomalyResponse,
    BoardResponse,
    ColumnResponse,
    TaskChange,
    TaskResponse,
    UpdateStatusRequest,
)
from task_board.directory import Directory
from task_board.engine.columns import project_to_columns
from task_board.engine.pipeline import project
from task_board.engine.predicates import is_overdue
from task_board.engine.view_config import DueIn, DueUnit, SortDirection, SortSpec, ViewConfig
from task_board.factory import (
    get_authorizer,
    get_broadcaster,
    get_default_sort,
    get_directory,
    get_task_store,
)
from task_board.models import Task, TaskPriority, TaskStatus
from task_board.permissions import TASKS_READ, TASKS_UPDATE

logger = logging.getLogger(__name__)

router = APIRouter()


def _split(value: str | None) -> list[str]:
    """Parse a comma-separated query value."""
    if not value:
        return []
    return [s.strip() for s in value.split(",") if s.strip()]


def _require(permission: str) -> None:
    if not get_authorizer().can(permission):
        raise HTTPException(status_code=403, detail=f"Missing permission: {permission}")


def _build_view_config(
    search: str | None,
    status: str | None,
    priority: str | None,
    assigned_to: str | None,
    account_id: str | None,
    category_id: str | None,
    tags: str | None,
    due_from: datetime | None,
    due_to: datetime | None,
    due_in: int | None,
    due_in_unit: str,
    progress_min: int,
    progress_max: int,
    show_overdue: bool,
    show_completed: bool,
) -> ViewConfig:
    """Translate query parameters into a ViewConfig.

    Raises:
        ValueError: If a status, priority, unit or range is invalid
    """
    statuses = []
    for value in _split(status):
        parsed = TaskStatus.parse(value)
        if parsed is None:
            raise ValueError(f"Invalid status: {value}")
        statuses.append(parsed.value)

    priorities = []
    for value in _split(priority):
        parsed_priority = TaskPriority.parse(value)
        if parsed_priority is None:
            raise ValueError(f"Invalid priority: {value}")
        priorities.append(parsed_priority.value)

    config = (
        ViewConfig()
        .with_search(search)
        .with_status(statuses)
        .with_priority(priorities)
        .with_assigned_to(_split(assigned_to))
        .with_account_id(_split(account_id))
        .with_category_id(_split(category_id))
        .with_tags(_split(tags))
        .with_due_date_range(due_from, due_to)
        .with_progress_range(progress_min, progress_max)
        .with_show_overdue(show_overdue)
        .with_show_completed(show_completed)
    )
    if due_in is not None:
        config = config.with_due_in(DueIn(value=due_in, unit=DueUnit(due_in_unit)))
    return config


def _build_sort(sort: str | None, direction: str | None) -> SortSpec:
    default = get_default_sort()
    return SortSpec(
        key=sort or default.key,
        direction=SortDirection(direction) if direction else default.direction,
    )


def _project_tasks(
    config: ViewConfig, sort: SortSpec, directory: Directory, now: datetime
) -> list[Task]:
    store = get_task_store()
    return project(store.list_tasks(), config, sort, now, accounts=directory)


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    search: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
    account_id: str | None = None,
    category_id: str | None = None,
    tags: str | None = None,
    due_from: datetime | None = None,
    due_to: datetime | None = None,
    due_in: int | None = None,
    due_in_unit: str = "days",
    progress_min: int = 0,
    progress_max: int = 100,
    show_overdue: bool = False,
    show_completed: bool = True,
    sort: str | None = None,
    direction: str | None = None,
) -> list[TaskResponse]:
    """List tasks matching the filters, in sort order.

    Multi-valued filters (status, priority, assigned_to, account_id,
    category_id, tags) are comma-separated; an omitted filter does not
    restrict the result.

    Returns:
        Filtered and sorted tasks

    Raises:
        HTTPException: 400 on invalid filter values, 403 without read permission
    """
    _require(TASKS_READ)
    try:
        config = _build_view_config(
            search, status, priority, assigned_to, account_id, category_id, tags,
            due_from, due_to, due_in, due_in_unit, progress_min, progress_max,
            show_overdue, show_completed,
        )
        sort_spec = _build_sort(sort, direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    now = datetime.now(timezone.utc)
    directory = get_directory()
    tasks = _project_tasks(config, sort_spec, directory, now)
    return [_task_to_response(task, directory, now) for task in tasks]


@router.get("/board", response_model=BoardResponse)
async def get_board(
    search: str | None = None,
    status: str | None = None,
    priority: str | None = None,
    assigned_to: str | None = None,
    account_id: str | None = None,
    category_id: str | None = None,
    tags: str | None = None,
    due_from: datetime | None = None,
    due_to: datetime | None = None,
    due_in: int | None = None,
    due_in_unit: str = "days",
    progress_min: int = 0,
    progress_max: int = 100,
    show_overdue: bool = False,
    show_completed: bool = True,
    sort: str | None = None,
    direction: str | None = None,
) -> BoardResponse:
    """Board view: the filtered, sorted tasks bucketed by status.

    Takes the same filters as GET /tasks.
    """
    _require(TASKS_READ)
    try:
        config = _build_view_config(
            search, status, priority, assigned_to, account_id, category_id, tags,
            due_from, due_to, due_in, due_in_unit, progress_min, progress_max,
            show_overdue, show_completed,
        )
        sort_spec = _build_sort(sort, direction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    now = datetime.now(timezone.utc)
    directory = get_directory()
    board = project_to_columns(_project_tasks(config, sort_spec, directory, now))

    return BoardResponse(
        columns=[
            ColumnResponse(
                status=column.status.value,
                title=column.title,
                count=column.count,
                tasks=[_task_to_response(task, directory, now) for task in column.tasks],
            )
            for column in board.columns
        ],
        anomalies=[
            AnomalyResponse(task_id=error.task_id, status=str(error.status), message=str(error))
            for error in board.anomalies
        ],
        total=board.total,
    )


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str) -> TaskResponse:
    """Read a single task.

    Raises:
        HTTPException: 404 if the task does not exist
    """
    _require(TASKS_READ)
    try:
        task = get_task_store().read_task(task_id)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return _task_to_response(task, get_directory(), datetime.now(timezone.utc))


@router.patch("/tasks/{task_id}/status")
async def update_task_status(task_id: str, request: UpdateStatusRequest) -> dict[str, str]:
    """Update task status (the write behind a board drop).

    Raises:
        HTTPException: 400 on invalid status, 403 without update permission,
            404 if the task does not exist
    """
    _require(TASKS_UPDATE)
    parsed = TaskStatus.parse(request.status)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"Invalid status: {request.status}")

    try:
        get_task_store().update_task_status(task_id, parsed.value)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except Exception as e:
        logger.exception(f"Error updating status of {task_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e

    await get_broadcaster().publish(
        TaskChange(type="status_changed", task_id=task_id, status=parsed.value)
    )
    return {"status": "success", "task_id": task_id, "task_status": parsed.value}


@router.post("/directory/reload")
async def reload_directory() -> dict[str, dict[str, int]]:
    """Force directory reload for debugging/recovery.

    Raises:
        HTTPException: 403 without read permission

    Returns:
        {"counts": {"accounts": 12, "categories": 3, "users": 8}}
    """
    _require(TASKS_READ)
    directory = get_directory()
    directory.reload()
    return {"counts": directory.counts()}


def _task_to_response(task: Task, directory: Directory, now: datetime) -> TaskResponse:
    """Convert Task to TaskResponse, resolving directory names."""
    try:
        overdue = is_overdue(task, now)
    except (TypeError, ValueError):
        overdue = False

    assignees = sorted(task.assigned_to)
    account_name = (directory.account_name(task.account_id) if task.account_id else None) or task.account_name

    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status.value if isinstance(task.status, TaskStatus) else str(task.status),
        priority=task.priority.value if isinstance(task.priority, TaskPriority) else str(task.priority),
        due_date=task.due_date,
        overdue=overdue,
        assigned_to=assignees,
        assigned_to_names=[directory.user_name(user_id) or user_id for user_id in assignees],
        account_id=task.account_id,
        account_name=account_name,
        category_id=task.category_id,
        category_name=directory.category_name(task.category_id) if task.category_id else None,
        tags=sorted(task.tags),
        progress=task.progress,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
