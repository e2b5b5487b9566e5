"""File system watcher for the task folder."""

import logging
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

logger = logging.getLogger(__name__)

TaskChangeCallback = Callable[[str, str], None]


class TaskWatcher:
    """Watches the task folder and reports (event_type, task_id) changes."""

    def __init__(self, tasks_dir: Path):
        """Initialize watcher for a task folder.

        Args:
            tasks_dir: Folder holding the task markdown files
        """
        self.tasks_dir = tasks_dir
        self._observer: BaseObserver | None = None
        self._callback: TaskChangeCallback | None = None

    def set_callback(self, callback: TaskChangeCallback) -> None:
        """Set callback for file system events.

        Args:
            callback: Function(event_type, task_id) called on events
        """
        self._callback = callback

    def start(self) -> None:
        """Start watching in the observer's background thread."""
        handler = _TaskEventHandler(self._callback)
        self._observer = Observer()
        self._observer.schedule(handler, str(self.tasks_dir), recursive=False)
        logger.info(f"[TaskWatcher] Watching {self.tasks_dir}")
        self._observer.start()

    def stop(self) -> None:
        """Stop watching and clean up resources."""
        if self._observer:
            logger.info(f"[TaskWatcher] Stopping watcher for {self.tasks_dir}")
            self._observer.stop()
            self._observer.join()
            self._observer = None


class _TaskEventHandler(FileSystemEventHandler):
    """Internal handler translating file events into task ids."""

    def __init__(self, callback: TaskChangeCallback | None):
        self.callback = callback

    def _extract_task_id(self, file_path: str) -> str | None:
        path = Path(file_path)
        if path.suffix == ".md":
            return path.stem
        return None

    def _handle_event(self, event_type: str, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        # Convert bytes to str if needed
        src_path = event.src_path
        if isinstance(src_path, bytes):
            src_path = src_path.decode("utf-8")

        task_id = self._extract_task_id(src_path)
        if not task_id:
            return

        logger.debug(f"[TaskEventHandler] {event_type}: {task_id}")

        if self.callback:
            try:
                self.callback(event_type, task_id)
            except Exception as e:
                logger.error(f"[TaskEventHandler] Callback error: {e}", exc_info=True)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle_event("modified", event)

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle_event("created", event)

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event("deleted", event)

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle_event("moved", event)
