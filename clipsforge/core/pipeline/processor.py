"""
Main video processing workflow.

Runs transcribe -> analyze -> generate for one uploaded video. Every step
persists its result before the next one starts, so a failure leaves the
video in ``error`` with the message of the step that failed.
"""

import logging
import traceback
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from clipsforge.config import (
    PROGRESS_ANALYZED,
    PROGRESS_COMPLETE,
    PROGRESS_INITIAL,
    PROGRESS_TRANSCRIBED,
)
from clipsforge.core.analysis import ContentAnalyzer
from clipsforge.core.cache import TTLCache
from clipsforge.core.clip_generation import SUGGESTIONS_PER_RUN, generate_clips
from clipsforge.core.exceptions import ProcessingConflictError
from clipsforge.core.pipeline.analysis import analyze_video
from clipsforge.core.pipeline.context import ProcessingContext, ProgressReporter
from clipsforge.core.pipeline.transcription import transcribe_video
from clipsforge.core.repositories import (
    ClipRepository,
    NotFoundError,
    ProfileRepository,
    VideoRepository,
)
from clipsforge.core.repositories.models import ProcessingPreferences, VideoRecord
from clipsforge.core.security import ValidationError
from clipsforge.core.shotstack_client import ShotstackClient
from clipsforge.core.whisper_client import WhisperClient

logger = logging.getLogger(__name__)

RUNNING_STATUSES = frozenset({"transcribing", "analyzing", "generating"})
PROCESSABLE_STATUSES = frozenset({"uploaded", "demo_mode", "completed", "error"})


def load_processable_video(videos: VideoRepository, video_id: str) -> VideoRecord:
    """Fetch the video and make sure a pipeline run may start on it."""
    video = videos.get_video(video_id)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    if video.status in RUNNING_STATUSES:
        raise ProcessingConflictError(f"Video {video_id} is already being processed ({video.status})")
    if video.status not in PROCESSABLE_STATUSES:
        raise ProcessingConflictError(f"Video {video_id} upload has not been confirmed yet")
    return video


async def process_video(
    user_id: str,
    video_id: str,
    reporter: Optional[ProgressReporter] = None,
    preferences: Optional[ProcessingPreferences] = None,
    *,
    videos: Optional[VideoRepository] = None,
    clips: Optional[ClipRepository] = None,
    profiles: Optional[ProfileRepository] = None,
    whisper: Optional[WhisperClient] = None,
    analyzer: Optional[ContentAnalyzer] = None,
    shotstack: Optional[ShotstackClient] = None,
    cache: Optional[TTLCache] = None,
) -> int:
    """
    Process an uploaded video end to end.

    Args:
        user_id: Owner of the video
        video_id: Video to process
        reporter: Where progress goes (log or WebSocket)
        preferences: Clip preferences; the profile's saved ones by default

    Returns:
        Number of clips generated. Failures are reported to ``reporter``
        and stored on the video instead of being raised, except for the
        checks that run before the pipeline starts.
    """
    reporter = reporter or ProgressReporter(video_id)
    videos = videos or VideoRepository(user_id)
    clips = clips or ClipRepository(user_id)

    video = load_processable_video(videos, video_id)
    if preferences is None:
        profiles = profiles or ProfileRepository(user_id)
        preferences = profiles.get_or_create().processing_preferences

    ctx = ProcessingContext(user_id=user_id, video=video, reporter=reporter, preferences=preferences)
    logger.info(f"Starting pipeline for video {video_id} (user {user_id})")

    try:
        await reporter.log(f"Starting processing for {video.title}")
        await reporter.progress(PROGRESS_INITIAL, "init")

        ctx.stage = "transcribing"
        transcription = await transcribe_video(ctx, videos=videos, whisper=whisper, cache=cache)
        ctx.video = ctx.video.model_copy(update={"transcription": transcription})
        await reporter.progress(PROGRESS_TRANSCRIBED, ctx.stage)

        ctx.stage = "analyzing"
        analysis = await analyze_video(ctx, transcription, videos=videos, analyzer=analyzer)
        await reporter.progress(PROGRESS_ANALYZED, ctx.stage)

        ctx.stage = "generating"
        await reporter.log("Generating clips...")
        created = await generate_clips(
            ctx.video,
            analysis.suggestions[:SUGGESTIONS_PER_RUN],
            preferences,
            clips=clips,
            videos=videos,
            shotstack=shotstack,
        )

        ctx.stage = "completed"
        await reporter.progress(PROGRESS_COMPLETE, ctx.stage)
        await reporter.log(f"All done! {len(created)} clips generated")
        await reporter.done(video_id, len(created))
        return len(created)

    except Exception as e:
        logger.error(f"Pipeline failed for video {video_id} at {ctx.stage}: {e}\n{traceback.format_exc()}")
        message = getattr(e, "message", None) or str(e) or e.__class__.__name__
        try:
            videos.update_status(video_id, "error", error_message=f"{ctx.stage}: {message}")
        except Exception as status_error:
            logger.error(f"Could not store error status for video {video_id}: {status_error}")
        await reporter.error(f"Processing failed while {ctx.stage}: {message}")
        return 0


def merge_preferences(base: ProcessingPreferences, overrides: Optional[Dict[str, Any]] = None) -> ProcessingPreferences:
    """Apply per-request overrides on top of the saved preferences."""
    if not overrides:
        return base
    try:
        return ProcessingPreferences.model_validate({**base.model_dump(), **overrides})
    except PydanticValidationError as e:
        first = e.errors()[0]
        raise ValidationError(first.get("msg", "Invalid preferences"), field="preferences") from e
