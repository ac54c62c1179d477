"""
Transcription step.

Whisper results are cached by the SHA-256 of the media URL, so re-running a
video (or uploading the same file twice) does not pay for a second call.
"""

import asyncio
import logging
import time
from typing import Optional

from clipsforge.core import storage
from clipsforge.core.cache import TTLCache, content_hash, get_transcription_cache
from clipsforge.core.pipeline.context import ProcessingContext
from clipsforge.core.repositories import VideoRepository
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import Transcription, TranscriptionLog, VideoRecord
from clipsforge.core.whisper_client import (
    PROVIDER,
    WhisperClient,
    detect_language,
    simulate_transcription,
    transcription_confidence,
)

logger = logging.getLogger(__name__)

# Estimated USD per MB of source media
COST_PER_MB = 0.006


def transcript_duration(video: VideoRecord, transcription: Transcription) -> float:
    if video.duration_seconds:
        return video.duration_seconds
    if transcription.segments:
        return transcription.segments[-1].end
    return 0.0


async def transcribe_video(
    ctx: ProcessingContext,
    *,
    videos: VideoRepository,
    whisper: Optional[WhisperClient] = None,
    cache: Optional[TTLCache] = None,
) -> Transcription:
    """Transcribe the video, store the transcript and move it to ``analyzing``."""
    whisper = whisper or WhisperClient()
    cache = cache if cache is not None else get_transcription_cache()
    video = ctx.video

    videos.update_status(video.video_id, "transcribing")
    started = time.monotonic()
    source = video.cloudinary_secure_url
    cached = False

    if whisper.configured and source:
        key = content_hash(source)
        transcription = cache.get(key)
        if transcription is not None:
            cached = True
            await ctx.reporter.log("Reusing cached transcription")
        else:
            await ctx.reporter.log("Transcribing audio with Whisper...")
            transcription = await whisper.transcribe(source)
            cache.set(key, transcription)
        provider = PROVIDER
    else:
        await ctx.reporter.log("Transcription service not configured, using a simulated transcript")
        transcription = simulate_transcription(video.video_id)
        provider = "simulation"

    language = detect_language(transcription.text)
    confidence = transcription_confidence(transcription)
    videos.save_transcription(video.video_id, transcription, language, confidence)

    await asyncio.to_thread(
        storage.archive_json,
        ctx.user_id,
        video.video_id,
        "transcript",
        {"language": language, "confidence": confidence, **transcription.model_dump()},
    )

    videos.log_transcription(TranscriptionLog(
        video_id=video.video_id,
        user_id=ctx.user_id,
        provider=provider,
        language=language,
        word_count=transcription.word_count,
        segment_count=len(transcription.segments),
        duration_seconds=transcript_duration(video, transcription),
        processing_seconds=round(time.monotonic() - started, 2),
        cost_estimate_usd=round(video.file_size_mb * COST_PER_MB, 4) if provider == PROVIDER and not cached else 0.0,
        cached=cached,
        created_at=utcnow(),
    ))

    await ctx.reporter.log(
        f"Transcribed {transcription.word_count} words ({language}, confidence {confidence:.2f})"
    )
    return transcription
