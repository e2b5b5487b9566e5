"""Fan-out of task changes to WebSocket clients."""

import logging
import time
from collections.abc import Callable

from fastapi import WebSocket

from task_board.api.models import TaskChange

logger = logging.getLogger(__name__)

# A file event this soon after a status write is that write's echo
ECHO_WINDOW_SECONDS = 2.0


class ChangeBroadcaster:
    """Pushes TaskChange notifications to every connected client.

    A status write through the API is published once as `status_changed`;
    the `modified` events the task folder watcher reports for the same
    file within the echo window are dropped.
    """

    def __init__(
        self,
        echo_window: float = ECHO_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clients: list[WebSocket] = []
        self._echo_window = echo_window
        self._clock = clock
        self._recent_writes: dict[str, float] = {}

    @property
    def client_count(self) -> int:
        return len(self._clients)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._clients.append(websocket)
        logger.info(f"[Broadcaster] Client connected (total: {self.client_count})")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._clients:
            self._clients.remove(websocket)
            logger.info(f"[Broadcaster] Client disconnected (total: {self.client_count})")

    def _is_echo(self, change: TaskChange, now: float) -> bool:
        # Forget writes older than the window
        self._recent_writes = {
            task_id: written_at
            for task_id, written_at in self._recent_writes.items()
            if now - written_at <= self._echo_window
        }
        if change.type == "status_changed":
            self._recent_writes[change.task_id] = now
            return False
        return change.type == "modified" and change.task_id in self._recent_writes

    async def publish(self, change: TaskChange) -> bool:
        """Send change to every client.

        Returns:
            False if the change was dropped as the echo of a status write
        """
        if self._is_echo(change, self._clock()):
            logger.debug(f"[Broadcaster] Dropping echo of status write: {change.task_id}")
            return False

        payload = change.model_dump_json(exclude_none=True)
        logger.debug(f"[Broadcaster] {change.type} {change.task_id} -> {self.client_count} clients")

        for websocket in list(self._clients):
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.warning(f"[Broadcaster] Dropping client after failed send: {e}")
                self.disconnect(websocket)
        return True
