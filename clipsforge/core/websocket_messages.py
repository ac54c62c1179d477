"""
WebSocket Message Utilities

Centralized WebSocket message sending. A client that went away must not
break the pipeline, so send failures are logged and swallowed here.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


# WebSocket message types
WS_MSG_TYPE_LOG = "log"
WS_MSG_TYPE_PROGRESS = "progress"
WS_MSG_TYPE_ERROR = "error"
WS_MSG_TYPE_DONE = "done"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def send_log(websocket: WebSocket, message: str) -> None:
    """
    Send a timestamped log message via WebSocket.

    Args:
        websocket: WebSocket connection
        message: Log message to send
    """
    try:
        await websocket.send_json({
            "type": WS_MSG_TYPE_LOG,
            "message": message,
            "timestamp": _now(),
        })
    except Exception as e:
        logger.warning(f"Failed to send log message via WebSocket: {e}")


async def send_error(
    websocket: WebSocket,
    message: str,
    details: Optional[str] = None,
) -> None:
    try:
        await websocket.send_json({
            "type": WS_MSG_TYPE_ERROR,
            "message": message,
            "details": details,
            "timestamp": _now(),
        })
    except Exception as e:
        logger.warning(f"Failed to send error message via WebSocket: {e}")


async def send_progress(websocket: WebSocket, value: int, stage: Optional[str] = None) -> None:
    """Send a 0-100 progress value, optionally tagged with the pipeline stage."""
    payload = {"type": WS_MSG_TYPE_PROGRESS, "value": value}
    if stage:
        payload["stage"] = stage
    try:
        await websocket.send_json(payload)
    except Exception as e:
        logger.warning(f"Failed to send progress update via WebSocket: {e}")


async def send_done(websocket: WebSocket, video_id: str, clips_generated: int = 0) -> None:
    try:
        await websocket.send_json({
            "type": WS_MSG_TYPE_DONE,
            "videoId": video_id,
            "clipsGenerated": clips_generated,
        })
    except Exception as e:
        logger.warning(f"Failed to send done message via WebSocket: {e}")
