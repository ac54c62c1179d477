"""
Video processing pipeline package.

Module Structure:
- context.py: ProcessingContext and progress reporters
- transcription.py: Whisper transcription step (with cache)
- analysis.py: LLM analysis step
- processor.py: Orchestration of transcribe -> analyze -> generate
"""

from clipsforge.core.pipeline.context import (
    ProcessingContext,
    ProgressReporter,
    WebSocketReporter,
)
from clipsforge.core.pipeline.transcription import transcribe_video
from clipsforge.core.pipeline.analysis import analyze_video
from clipsforge.core.pipeline.processor import (
    load_processable_video,
    merge_preferences,
    process_video,
)

__all__ = [
    "ProcessingContext",
    "ProgressReporter",
    "WebSocketReporter",
    "transcribe_video",
    "analyze_video",
    "load_processable_video",
    "merge_preferences",
    "process_video",
]
