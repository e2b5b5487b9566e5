"""Drag session state machine for moving tasks between board columns.

A drag goes Idle -> Dragging -> (Dropped | Cancelled) -> Idle. The
transition functions below are pure: they take the current columns and
return the new columns together with the effect to perform.
`DragSessionController` drives them, applies the optimistic move and
persists it in the background.
"""

import asyncio
import itertools
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Protocol

from task_board.engine.columns import BoardProjection, Column, move_task
from task_board.engine.errors import PersistenceError
from task_board.models import Task, TaskStatus
from task_board.permissions import TASKS_UPDATE, Authorizer

logger = logging.getLogger(__name__)

DEFAULT_ACTIVATION_DISTANCE = 8.0


class TaskStatusWriter(Protocol):
    """The part of the task store the drag controller writes through."""

    def update_task_status(self, task_id: str, status: str) -> None:
        """Persist a new status for the task. Raises on failure."""
        ...


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class DragResult(str, Enum):
    DROPPED = "dropped"
    CANCELLED = "cancelled"
    IGNORED = "ignored"  # drag end without an active session


@dataclass(frozen=True)
class DragSession:
    active_task_id: str
    origin_status: TaskStatus


@dataclass(frozen=True)
class DropTarget:
    """What the pointer was over when released.

    Resolution order: task under the pointer, explicit column id, then a
    `status` entry in the generic drop-target data.
    """

    task_id: str | None = None
    column_id: str | None = None
    data: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class StatusChange:
    """Effect of a drop: persist to_status for task_id."""

    task_id: str
    from_status: TaskStatus
    to_status: TaskStatus


@dataclass(frozen=True)
class DragOutcome:
    result: DragResult
    columns: tuple[Column, ...]
    effect: StatusChange | None = None
    reason: str = ""


def _find_task(columns: Sequence[Column], task_id: str) -> Task | None:
    for column in columns:
        for task in column.tasks:
            if task.id == task_id:
                return task
    return None


def _status_or_none(value: Any) -> TaskStatus | None:
    try:
        return TaskStatus(value)
    except (TypeError, ValueError):
        return None


def begin_drag(
    columns: Sequence[Column],
    task_id: str,
    distance: float,
    activation_distance: float = DEFAULT_ACTIVATION_DISTANCE,
) -> DragSession | None:
    """Start a session once the pointer has travelled far enough.

    Returns None for a click (distance below the threshold) or for a task
    that is not on the board.
    """
    if distance < activation_distance:
        return None
    task = _find_task(columns, task_id)
    if task is None:
        return None
    origin = _status_or_none(task.status)
    if origin is None:
        return None
    return DragSession(active_task_id=task_id, origin_status=origin)


def resolve_target_status(columns: Sequence[Column], target: DropTarget | None) -> TaskStatus | None:
    """Resolve the status implied by a drop target, or None."""
    if target is None:
        return None
    if target.task_id is not None:
        over_task = _find_task(columns, target.task_id)
        if over_task is not None:
            status = _status_or_none(over_task.status)
            if status is not None:
                return status
    if target.column_id is not None:
        status = _status_or_none(target.column_id)
        if status is not None:
            return status
    if target.data is not None:
        return _status_or_none(target.data.get("status"))
    return None


def end_drag(
    session: DragSession | None, columns: Sequence[Column], target: DropTarget | None
) -> DragOutcome:
    """Resolve a drop into a new column layout and the effect to perform.

    Cancelled and ignored outcomes return the columns untouched and no
    effect.
    """
    current = tuple(columns)
    if session is None:
        return DragOutcome(DragResult.IGNORED, current, reason="no active drag")

    target_status = resolve_target_status(current, target)
    if target_status is None:
        return DragOutcome(DragResult.CANCELLED, current, reason="no valid drop target")
    if target_status == session.origin_status:
        return DragOutcome(DragResult.CANCELLED, current, reason="same status")

    new_columns, moved = move_task(current, session.active_task_id, target_status)
    if moved is None:
        return DragOutcome(DragResult.CANCELLED, current, reason="task left the board")

    return DragOutcome(
        DragResult.DROPPED,
        new_columns,
        effect=StatusChange(
            task_id=session.active_task_id,
            from_status=session.origin_status,
            to_status=target_status,
        ),
    )


@dataclass
class PendingMove:
    """Tentative status not yet confirmed by the store."""

    seq: int
    change: StatusChange
    confirmed_status: TaskStatus  # Status to restore if this move is rejected


class DragSessionController:
    """Drives drag sessions over an in-memory board.

    Drops update the board synchronously, then the status write runs as a
    background task; writes for the same task run one at a time in drop
    order. Moves stay pending until the store confirms them; a
    rejected move is rolled back to the last confirmed status (unless
    rollback is disabled) and reported through `on_persist_error`.
    """

    def __init__(
        self,
        store: TaskStatusWriter,
        board: BoardProjection,
        *,
        activation_distance: float = DEFAULT_ACTIVATION_DISTANCE,
        rollback_on_failure: bool = True,
        on_persist_error: Callable[[PersistenceError], None] | None = None,
        authorizer: Authorizer | None = None,
    ) -> None:
        self._store = store
        self._board = board
        self._activation_distance = activation_distance
        self._rollback_on_failure = rollback_on_failure
        self._on_persist_error = on_persist_error
        self._authorizer = authorizer
        self._state = DragState.IDLE
        self._session: DragSession | None = None
        self._pending: dict[str, PendingMove] = {}
        self._seq = itertools.count(1)
        self._background_tasks: set[asyncio.Task[None]] = set()
        self._write_locks: dict[str, asyncio.Lock] = {}

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def board(self) -> BoardProjection:
        return self._board

    @property
    def columns(self) -> tuple[Column, ...]:
        return self._board.columns

    def is_pending(self, task_id: str) -> bool:
        return task_id in self._pending

    @property
    def pending(self) -> dict[str, PendingMove]:
        return dict(self._pending)

    def load(self, board: BoardProjection) -> None:
        """Replace the board after a refresh from the store."""
        self._board = board

    def overlay(self, tasks: Iterable[Task]) -> list[Task]:
        """Apply pending statuses to a freshly loaded task collection.

        Keeps unconfirmed moves visible when the view is re-derived from the
        store before the write has landed.
        """
        result = []
        for task in tasks:
            pending = self._pending.get(task.id)
            if pending is not None and task.status != pending.change.to_status:
                task = replace(task, status=pending.change.to_status)
            result.append(task)
        return result

    # ---- gesture hooks

    def on_drag_start(self, task_id: str, distance: float) -> bool:
        """Begin dragging task_id if the pointer passed the activation distance.

        Returns:
            True if a session started
        """
        if self._state is DragState.DRAGGING:
            logger.debug(f"[Drag] Ignoring start for {task_id}: {self._session} already active")
            return False
        if self._authorizer is not None and not self._authorizer.can(TASKS_UPDATE):
            logger.info(f"[Drag] Not starting drag for {task_id}: missing {TASKS_UPDATE}")
            return False

        session = begin_drag(self.columns, task_id, distance, self._activation_distance)
        if session is None:
            return False
        self._session = session
        self._state = DragState.DRAGGING
        logger.debug(f"[Drag] Started: {task_id} from {session.origin_status.value}")
        return True

    def on_drag_cancel(self) -> DragOutcome:
        """Abort the gesture with no side effects."""
        self._session = None
        self._state = DragState.IDLE
        return DragOutcome(DragResult.CANCELLED, self.columns, reason="cancelled by user")

    def on_drag_end(self, target: DropTarget | None) -> DragOutcome:
        """Finish the gesture over target.

        On a drop to a different status the board is updated before the
        write is scheduled. Must be called from a running event loop when a
        drop can happen. The controller is always idle afterwards.
        """
        session = self._session
        try:
            outcome = end_drag(session, self.columns, target)
            if outcome.result is not DragResult.DROPPED or outcome.effect is None:
                logger.debug(f"[Drag] {outcome.result.value}: {outcome.reason}")
                return outcome

            loop = asyncio.get_running_loop()
            change = outcome.effect
            self._board = replace(self._board, columns=outcome.columns)
            self._register_pending(change)
            logger.info(
                f"[Drag] Moved {change.task_id}: {change.from_status.value} -> {change.to_status.value}"
            )

            pending = self._pending[change.task_id]
            task = loop.create_task(self._persist(pending.seq, change))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)
            return outcome
        finally:
            self._session = None
            self._state = DragState.IDLE

    async def drain(self) -> None:
        """Wait for every outstanding status write to settle."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ---- two-phase persistence

    def _register_pending(self, change: StatusChange) -> None:
        previous = self._pending.get(change.task_id)
        confirmed = previous.confirmed_status if previous else change.from_status
        self._pending[change.task_id] = PendingMove(
            seq=next(self._seq), change=change, confirmed_status=confirmed
        )

    async def _persist(self, seq: int, change: StatusChange) -> None:
        # Writes for one task land in drop order
        lock = self._write_locks.setdefault(change.task_id, asyncio.Lock())
        async with lock:
            try:
                await asyncio.to_thread(
                    self._store.update_task_status, change.task_id, change.to_status.value
                )
            except Exception as e:
                logger.error(
                    f"[Drag] Failed to persist {change.task_id} -> {change.to_status.value}: {e}",
                    exc_info=True,
                )
                self._reject(seq, change, e)
            else:
                self._confirm(seq, change)
        # No pending move means no queued write for this task either
        if change.task_id not in self._pending and not lock.locked():
            self._write_locks.pop(change.task_id, None)

    def _confirm(self, seq: int, change: StatusChange) -> None:
        pending = self._pending.get(change.task_id)
        if pending is None:
            return
        if pending.seq == seq:
            del self._pending[change.task_id]
            logger.debug(f"[Drag] Confirmed {change.task_id} -> {change.to_status.value}")
        elif pending.seq > seq:
            # A newer move is still in flight; this one is now the fallback
            pending.confirmed_status = change.to_status

    def _reject(self, seq: int, change: StatusChange, cause: Exception) -> None:
        error = PersistenceError(change.task_id, change.to_status.value, cause)
        pending = self._pending.get(change.task_id)
        if pending is not None and pending.seq == seq:
            del self._pending[change.task_id]
            if self._rollback_on_failure:
                columns, moved = move_task(self.columns, change.task_id, pending.confirmed_status)
                if moved is not None:
                    self._board = replace(self._board, columns=columns)
                    logger.warning(
                        f"[Drag] Rolled back {change.task_id} to {pending.confirmed_status.value}"
                    )
        else:
            logger.debug(f"[Drag] Rejected move of {change.task_id} was already superseded")

        if self._on_persist_error is not None:
            try:
                self._on_persist_error(error)
            except Exception as callback_error:
                logger.error(f"[Drag] Persist error callback failed: {callback_error}", exc_info=True)
