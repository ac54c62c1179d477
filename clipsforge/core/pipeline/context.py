"""
Data structures for the processing pipeline.

Progress goes to a reporter: the WebSocket client when the pipeline runs
interactively, or the log when it runs as a background task.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from clipsforge.core.repositories.models import ProcessingPreferences, VideoRecord
from clipsforge.core.websocket_messages import send_done, send_error, send_log, send_progress

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Reports pipeline progress to the log."""

    def __init__(self, video_id: str = ""):
        self.video_id = video_id

    async def log(self, message: str) -> None:
        logger.info(f"[{self.video_id}] {message}")

    async def progress(self, value: int, stage: Optional[str] = None) -> None:
        logger.debug(f"[{self.video_id}] progress {value}% ({stage or '-'})")

    async def error(self, message: str, details: Optional[str] = None) -> None:
        logger.error(f"[{self.video_id}] {message}")

    async def done(self, video_id: str, clips_generated: int) -> None:
        logger.info(f"[{video_id}] processing finished with {clips_generated} clips")


class WebSocketReporter(ProgressReporter):
    """Forwards progress to a connected WebSocket client."""

    def __init__(self, websocket: WebSocket, video_id: str = ""):
        super().__init__(video_id)
        self.websocket = websocket

    async def log(self, message: str) -> None:
        await send_log(self.websocket, message)

    async def progress(self, value: int, stage: Optional[str] = None) -> None:
        await send_progress(self.websocket, value, stage)

    async def error(self, message: str, details: Optional[str] = None) -> None:
        await send_error(self.websocket, message, details)

    async def done(self, video_id: str, clips_generated: int) -> None:
        await send_done(self.websocket, video_id, clips_generated)


@dataclass
class ProcessingContext:
    """State shared by the steps of one pipeline run."""

    user_id: str
    video: VideoRecord
    reporter: ProgressReporter
    preferences: ProcessingPreferences = field(default_factory=ProcessingPreferences)
    stage: str = "init"

    @property
    def video_id(self) -> str:
        return self.video.video_id
