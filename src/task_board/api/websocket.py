"""WebSocket API endpoint for real-time task changes."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from task_board.factory import get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """Push task change notifications so clients re-derive their views.

    Args:
        websocket: WebSocket connection
    """
    broadcaster = get_broadcaster()
    await broadcaster.connect(websocket)
    try:
        while True:
            # Keep connection alive, answer client pings
            data = await websocket.receive_text()
            logger.debug(f"[WebSocket] Received from client: {data}")
            if data == "ping":
                await websocket.send_text("pong")

    except WebSocketDisconnect:
        logger.info("[WebSocket] Client disconnected normally")
        broadcaster.disconnect(websocket)
    except Exception as e:
        logger.error(f"[WebSocket] Error: {e}", exc_info=True)
        broadcaster.disconnect(websocket)
