"""Dependency injection factory."""

import asyncio
import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from task_board.api.models import TaskChange
from task_board.config import Config
from task_board.directory import Directory
from task_board.engine.columns import BoardProjection
from task_board.engine.drag import DragSessionController
from task_board.engine.errors import PersistenceError
from task_board.engine.view_config import SortSpec
from task_board.permissions import StaticAuthorizer
from task_board.store.task_store import MarkdownTaskStore, TaskStore
from task_board.store.task_watcher import TaskWatcher
from task_board.websocket.change_broadcaster import ChangeBroadcaster

logger = logging.getLogger(__name__)

# Global config instance for dependency injection
_config: Config | None = None

# Global singletons
_broadcaster: ChangeBroadcaster | None = None
_directory: Directory | None = None
_watcher: TaskWatcher | None = None


def get_config() -> Config:
    """Get or create Config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_task_store() -> TaskStore:
    """Create task store for the configured folder."""
    return MarkdownTaskStore(get_config().tasks_dir)


def get_authorizer() -> StaticAuthorizer:
    """Create authorizer from the configured permission grants."""
    return StaticAuthorizer(get_config().permissions)


def get_default_sort() -> SortSpec:
    """Initial sort of the list view."""
    config = get_config()
    return SortSpec(key=config.default_sort_key, direction=config.default_sort_direction)


def create_drag_controller(
    board: BoardProjection,
    on_persist_error: Callable[[PersistenceError], None] | None = None,
) -> DragSessionController:
    """Create a drag controller over `board` wired to the store and config."""
    config = get_config()
    return DragSessionController(
        get_task_store(),
        board,
        activation_distance=config.drag_activation_distance,
        rollback_on_failure=config.rollback_on_persist_failure,
        on_persist_error=on_persist_error,
        authorizer=get_authorizer(),
    )


def get_broadcaster() -> ChangeBroadcaster:
    """Get or create ChangeBroadcaster singleton."""
    global _broadcaster
    if _broadcaster is None:
        _broadcaster = ChangeBroadcaster()
    return _broadcaster


def get_directory() -> Directory:
    """Get or create Directory singleton, loading the configured file once."""
    global _directory
    if _directory is None:
        _directory = Directory()
        directory_file = get_config().directory_file
        if directory_file:
            _directory.load(Path(directory_file))
    return _directory


def start_task_watcher() -> None:
    """Start the file watcher on the task folder and broadcast changes."""
    global _watcher
    config = get_config()
    broadcaster = get_broadcaster()

    # Get the running event loop to schedule coroutines from the watcher thread
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.error("[Factory] No running event loop found")
        return

    tasks_dir = Path(config.tasks_dir)
    if not tasks_dir.exists():
        logger.warning(f"[Factory] Tasks folder not found: {tasks_dir}")
        return

    def callback(event_type: str, task_id: str) -> None:
        change = TaskChange(type=event_type, task_id=task_id)
        asyncio.run_coroutine_threadsafe(broadcaster.publish(change), loop)

    try:
        watcher = TaskWatcher(tasks_dir)
        watcher.set_callback(callback)
        watcher.start()
        _watcher = watcher
    except Exception as e:
        logger.error(f"[Factory] Failed to start watcher for {tasks_dir}: {e}", exc_info=True)


def stop_task_watcher() -> None:
    """Stop the running file watcher."""
    global _watcher
    if _watcher is None:
        return
    try:
        _watcher.stop()
    except Exception as e:
        logger.error(f"[Factory] Failed to stop watcher: {e}")
    _watcher = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    logger.info("[Lifespan] Loading directory...")
    get_directory()

    logger.info("[Lifespan] Starting task watcher...")
    start_task_watcher()
    try:
        yield
    finally:
        logger.info("[Lifespan] Stopping task watcher...")
        stop_task_watcher()


def create_app() -> FastAPI:
    """Create FastAPI application (composition root)."""
    from task_board.api.tasks import router as tasks_router
    from task_board.api.websocket import router as ws_router

    app = FastAPI(
        title="TaskBoard",
        description="Filtered task lists and status boards",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(tasks_router, prefix="/api")
    app.include_router(ws_router)  # WebSocket at /ws

    return app
