"""Tests for the drag session state machine and controller."""

import asyncio
import threading

import pytest

from factories import make_task
from task_board.engine.columns import BoardProjection, project_to_columns
from task_board.engine.drag import (
    DragResult,
    DragSession,
    DragSessionController,
    DragState,
    DropTarget,
    begin_drag,
    end_drag,
    resolve_target_status,
)
from task_board.engine.errors import PersistenceError
from task_board.models import TaskStatus
from task_board.permissions import StaticAuthorizer


class FakeStore:
    """Records status writes; fails for ids in fail_ids or statuses in fail_statuses."""

    def __init__(
        self, fail_ids: set[str] | None = None, fail_statuses: set[str] | None = None
    ) -> None:
        self.calls: list[tuple[str, str]] = []
        self.stored: dict[str, str] = {}
        self.fail_ids = fail_ids or set()
        self.fail_statuses = fail_statuses or set()
        self.gate: threading.Event | None = None
        self.first_write_gate: threading.Event | None = None

    def update_task_status(self, task_id: str, status: str) -> None:
        if self.first_write_gate is not None and not self.calls:
            self.first_write_gate.wait(timeout=5)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self.calls.append((task_id, status))
        if task_id in self.fail_ids or status in self.fail_statuses:
            raise ConnectionError("store unavailable")
        self.stored[task_id] = status


def _board() -> BoardProjection:
    return project_to_columns(
        [
            make_task("a", status=TaskStatus.TODO),
            make_task("b", status=TaskStatus.IN_PROGRESS),
            make_task("c", status=TaskStatus.COMPLETED),
        ]
    )


def _ids(board: BoardProjection, status: TaskStatus) -> list[str]:
    return [t.id for t in board.column(status).tasks]


# ---- pure transitions


def test_begin_drag_requires_activation_distance() -> None:
    columns = _board().columns

    assert begin_drag(columns, "a", distance=3, activation_distance=8) is None
    session = begin_drag(columns, "a", distance=8, activation_distance=8)
    assert session == DragSession(active_task_id="a", origin_status=TaskStatus.TODO)


def test_begin_drag_unknown_task() -> None:
    assert begin_drag(_board().columns, "zzz", distance=50) is None


def test_target_precedence_task_over_column_over_data() -> None:
    columns = _board().columns

    target = DropTarget(task_id="c", column_id="In Progress", data={"status": "Cancelled"})
    assert resolve_target_status(columns, target) == TaskStatus.COMPLETED

    target = DropTarget(task_id="unknown", column_id="In Progress", data={"status": "Cancelled"})
    assert resolve_target_status(columns, target) == TaskStatus.IN_PROGRESS

    target = DropTarget(column_id="not-a-column", data={"status": "Cancelled"})
    assert resolve_target_status(columns, target) == TaskStatus.CANCELLED

    assert resolve_target_status(columns, DropTarget(data={"other": 1})) is None
    assert resolve_target_status(columns, None) is None


def test_end_drag_same_status_is_cancelled() -> None:
    columns = _board().columns
    session = DragSession("a", TaskStatus.TODO)

    outcome = end_drag(session, columns, DropTarget(column_id="To Do"))

    assert outcome.result is DragResult.CANCELLED
    assert outcome.effect is None
    assert outcome.columns == columns


def test_end_drag_without_target_is_cancelled() -> None:
    outcome = end_drag(DragSession("a", TaskStatus.TODO), _board().columns, None)

    assert outcome.result is DragResult.CANCELLED
    assert outcome.effect is None


def test_end_drag_without_session_is_ignored() -> None:
    outcome = end_drag(None, _board().columns, DropTarget(column_id="Completed"))

    assert outcome.result is DragResult.IGNORED


def test_end_drag_moves_task_and_returns_effect() -> None:
    board = _board()

    outcome = end_drag(DragSession("a", TaskStatus.TODO), board.columns, DropTarget(task_id="b"))

    assert outcome.result is DragResult.DROPPED
    assert outcome.effect is not None
    assert outcome.effect.to_status == TaskStatus.IN_PROGRESS
    moved = {c.status: [t.id for t in c.tasks] for c in outcome.columns}
    assert moved[TaskStatus.TODO] == []
    assert moved[TaskStatus.IN_PROGRESS] == ["b", "a"]
    # Input untouched
    assert _ids(board, TaskStatus.TODO) == ["a"]


# ---- controller


def test_click_does_not_start_drag() -> None:
    controller = DragSessionController(FakeStore(), _board(), activation_distance=8)

    assert controller.on_drag_start("a", distance=2) is False
    assert controller.state is DragState.IDLE


def test_unauthorized_actor_cannot_drag() -> None:
    controller = DragSessionController(
        FakeStore(), _board(), authorizer=StaticAuthorizer(["tasks:read"])
    )

    assert controller.on_drag_start("a", distance=20) is False
    assert controller.state is DragState.IDLE


@pytest.mark.asyncio
async def test_drop_on_own_status_makes_no_mutation_or_call() -> None:
    store = FakeStore()
    board = _board()
    controller = DragSessionController(store, board)

    assert controller.on_drag_start("a", distance=20)
    assert controller.state is DragState.DRAGGING
    outcome = controller.on_drag_end(DropTarget(column_id="To Do"))
    await controller.drain()

    assert outcome.result is DragResult.CANCELLED
    assert controller.board is board
    assert store.calls == []
    assert controller.state is DragState.IDLE


def test_cancel_has_no_side_effects() -> None:
    store = FakeStore()
    board = _board()
    controller = DragSessionController(store, board)
    controller.on_drag_start("a", distance=20)

    outcome = controller.on_drag_cancel()

    assert outcome.result is DragResult.CANCELLED
    assert controller.board is board
    assert controller.state is DragState.IDLE
    assert controller.session is None
    assert store.calls == []


@pytest.mark.asyncio
async def test_drop_applies_optimistic_move_before_persisting() -> None:
    store = FakeStore()
    store.gate = threading.Event()
    controller = DragSessionController(store, _board())

    controller.on_drag_start("a", distance=20)
    outcome = controller.on_drag_end(DropTarget(column_id="Completed"))

    # Board already reflects the move while the write is blocked
    assert outcome.result is DragResult.DROPPED
    assert controller.state is DragState.IDLE
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c", "a"]
    assert controller.is_pending("a")
    assert store.calls == []

    store.gate.set()
    await controller.drain()

    assert store.calls == [("a", "Completed")]
    assert not controller.is_pending("a")
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c", "a"]


@pytest.mark.asyncio
async def test_failed_persist_rolls_back_and_reports() -> None:
    errors: list[PersistenceError] = []
    store = FakeStore(fail_ids={"a"})
    controller = DragSessionController(store, _board(), on_persist_error=errors.append)

    controller.on_drag_start("a", distance=20)
    controller.on_drag_end(DropTarget(task_id="c"))
    await controller.drain()

    assert _ids(controller.board, TaskStatus.TODO) == ["a"]
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c"]
    assert not controller.is_pending("a")
    assert len(errors) == 1
    assert errors[0].task_id == "a"
    assert isinstance(errors[0].cause, ConnectionError)


@pytest.mark.asyncio
async def test_failed_persist_without_rollback_keeps_optimistic_state() -> None:
    errors: list[PersistenceError] = []
    controller = DragSessionController(
        FakeStore(fail_ids={"a"}),
        _board(),
        rollback_on_failure=False,
        on_persist_error=errors.append,
    )

    controller.on_drag_start("a", distance=20)
    controller.on_drag_end(DropTarget(column_id="Cancelled"))
    await controller.drain()

    assert _ids(controller.board, TaskStatus.CANCELLED) == ["a"]
    assert len(errors) == 1


@pytest.mark.asyncio
async def test_overlay_keeps_pending_status_on_refresh() -> None:
    store = FakeStore()
    store.gate = threading.Event()
    controller = DragSessionController(store, _board())

    controller.on_drag_start("b", distance=20)
    controller.on_drag_end(DropTarget(column_id="Completed"))

    stale = [make_task("a"), make_task("b", status=TaskStatus.IN_PROGRESS)]
    refreshed = controller.overlay(stale)
    assert [t.status for t in refreshed] == [TaskStatus.TODO, TaskStatus.COMPLETED]

    store.gate.set()
    await controller.drain()
    assert controller.overlay(stale)[1].status == TaskStatus.IN_PROGRESS


def test_drop_outside_event_loop_returns_to_idle() -> None:
    controller = DragSessionController(FakeStore(), _board())
    controller.on_drag_start("a", distance=20)

    with pytest.raises(RuntimeError):
        controller.on_drag_end(DropTarget(column_id="Completed"))

    assert controller.state is DragState.IDLE
    assert _ids(controller.board, TaskStatus.TODO) == ["a"]


@pytest.mark.asyncio
async def test_second_drag_ignored_while_dragging() -> None:
    controller = DragSessionController(FakeStore(), _board())

    assert controller.on_drag_start("a", distance=20)
    assert controller.on_drag_start("b", distance=20) is False
    assert controller.session is not None
    assert controller.session.active_task_id == "a"
    controller.on_drag_cancel()
    await asyncio.sleep(0)


def _drag(controller: DragSessionController, task_id: str, column: str) -> None:
    assert controller.on_drag_start(task_id, distance=20)
    controller.on_drag_end(DropTarget(column_id=column))


@pytest.mark.asyncio
async def test_consecutive_moves_of_one_task_persist_in_drop_order() -> None:
    store = FakeStore()
    store.first_write_gate = threading.Event()
    controller = DragSessionController(store, _board())

    _drag(controller, "a", "In Progress")
    _drag(controller, "a", "Completed")
    # Give a second, unordered write the chance to overtake the held one
    await asyncio.sleep(0.05)
    assert store.calls == []

    store.first_write_gate.set()
    await controller.drain()

    assert store.calls == [("a", "In Progress"), ("a", "Completed")]
    assert store.stored["a"] == "Completed"
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c", "a"]
    assert controller.pending == {}


@pytest.mark.asyncio
async def test_rejected_second_move_rolls_back_to_first_landed_status() -> None:
    errors: list[PersistenceError] = []
    store = FakeStore(fail_statuses={"Completed"})
    store.first_write_gate = threading.Event()
    controller = DragSessionController(store, _board(), on_persist_error=errors.append)

    _drag(controller, "a", "In Progress")
    _drag(controller, "a", "Completed")
    await asyncio.sleep(0.05)

    store.first_write_gate.set()
    await controller.drain()

    assert store.stored["a"] == "In Progress"
    assert _ids(controller.board, TaskStatus.IN_PROGRESS) == ["b", "a"]
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c"]
    assert controller.pending == {}
    assert [e.status for e in errors] == ["Completed"]


@pytest.mark.asyncio
async def test_rejected_first_move_does_not_undo_newer_move() -> None:
    errors: list[PersistenceError] = []
    store = FakeStore(fail_statuses={"In Progress"})
    controller = DragSessionController(store, _board(), on_persist_error=errors.append)

    _drag(controller, "a", "In Progress")
    _drag(controller, "a", "Completed")
    await controller.drain()

    assert store.stored["a"] == "Completed"
    assert _ids(controller.board, TaskStatus.COMPLETED) == ["c", "a"]
    assert controller.pending == {}
    assert len(errors) == 1
