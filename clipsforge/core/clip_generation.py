"""
Clip generation from analysis suggestions.

Each suggestion becomes one clip per target platform. Clips are rendered
by Shotstack when it is configured; otherwise (or when a render is refused)
the clip is served as a trimmed Cloudinary URL straight away.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from clipsforge.core.cloudinary_client import clip_url, thumbnail_url
from clipsforge.core.exceptions import ProviderError
from clipsforge.core.repositories import ClipRepository, NotFoundError, VideoRepository
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import (
    ClipRecord,
    ClipSuggestion,
    ProcessingPreferences,
    VideoRecord,
)
from clipsforge.core.security import ValidationError, sanitize_text, validate_platform
from clipsforge.core.shotstack_client import PENDING_STATES, ShotstackClient, build_edit, platform_output

logger = logging.getLogger(__name__)

SUGGESTIONS_PER_RUN = 5
MAX_MANUAL_CLIP_SECONDS = 120
MANUAL_CLIP_SCORE = 7.5


def clip_window(suggestion: ClipSuggestion, preferences: ProcessingPreferences, video_duration: Optional[float]):
    """Start and end of the clip, with the length clamped to the preferred range."""
    start = suggestion.start_time
    duration = min(max(suggestion.end_time - start, preferences.min_duration), preferences.max_duration)
    end = start + duration
    if video_duration and end > video_duration:
        end = video_duration
    return round(start, 1), round(end, 1)


def subtitles_for(video: VideoRecord, start: float, end: float, fallback: Optional[str] = None) -> str:
    """Transcript text of the segments overlapping ``[start, end]``."""
    if video.transcription and video.transcription.segments:
        text = " ".join(
            seg.text for seg in video.transcription.segments
            if seg.end > start and seg.start < end and seg.text
        )
        if text:
            return text[:500]
    return (fallback or "")[:500]


async def render_clip(clip: ClipRecord, video: VideoRecord, shotstack: ShotstackClient) -> ClipRecord:
    """
    Start the render for ``clip`` and fill in its delivery fields.

    Returns the same record, updated in place.
    """
    source = video.cloudinary_secure_url
    if source and shotstack.configured:
        edit = build_edit(
            source,
            clip.start_time_seconds,
            clip.duration_seconds,
            clip.title,
            subtitles=clip.subtitles or "",
            platform=clip.platform,
        )
        try:
            clip.render_id = await shotstack.render(edit)
            clip.render_provider = "shotstack"
            clip.render_status = "queued"
            clip.status = "processing"
            return clip
        except ProviderError as e:
            logger.warning(f"Shotstack render refused for clip {clip.clip_id}, using Cloudinary: {e}")

    return apply_fallback(clip, source)


def apply_fallback(clip: ClipRecord, source: Optional[str]) -> ClipRecord:
    """Serve the clip through a Cloudinary trim of the source video."""
    clip.render_provider = "cloudinary" if source else "simulation"
    clip.status = "ready"
    clip.ready_at = utcnow()
    if source:
        clip.url = clip_url(source, clip.start_time_seconds, clip.end_time_seconds)
        clip.thumbnail_url = thumbnail_url(source, clip.start_time_seconds + 1)
    return clip


def _new_clip(
    video: VideoRecord,
    clip_number: int,
    title: str,
    start: float,
    end: float,
    platform: str,
    **fields: Any,
) -> ClipRecord:
    now = utcnow()
    return ClipRecord(
        clip_id=uuid.uuid4().hex,
        video_id=video.video_id,
        user_id=video.user_id,
        clip_number=clip_number,
        title=title[:500],
        platform=platform,
        aspect_ratio=platform_output(platform)["aspect_ratio"],
        start_time_seconds=start,
        end_time_seconds=end,
        created_at=now,
        updated_at=now,
        **fields,
    )


async def generate_clips(
    video: VideoRecord,
    suggestions: Sequence[ClipSuggestion],
    preferences: Optional[ProcessingPreferences] = None,
    *,
    clips: Optional[ClipRepository] = None,
    videos: Optional[VideoRepository] = None,
    shotstack: Optional[ShotstackClient] = None,
) -> List[ClipRecord]:
    """
    Create up to ``preferences.max_clips`` clips and mark the video completed.

    Suggestions are taken in order and expanded across the preferred
    platforms until the clip budget is spent.
    """
    preferences = preferences or ProcessingPreferences()
    clips = clips or ClipRepository(video.user_id)
    videos = videos or VideoRepository(video.user_id)
    shotstack = shotstack or ShotstackClient()

    next_number = clips.next_clip_number(video.video_id)
    created: List[ClipRecord] = []

    for suggestion in suggestions:
        if len(created) >= preferences.max_clips:
            break
        start, end = clip_window(suggestion, preferences, video.duration_seconds)
        if end <= start:
            logger.warning(f"Skipping suggestion {suggestion.title!r} outside the video")
            continue

        for platform in preferences.platforms:
            if len(created) >= preferences.max_clips:
                break
            clip = _new_clip(
                video,
                next_number,
                f"{suggestion.title} - {platform.upper()}",
                start,
                end,
                platform,
                description=suggestion.description,
                ai_viral_score=suggestion.viral_score,
                hashtags=suggestion.hashtags,
                subtitles=subtitles_for(video, start, end, suggestion.key_moment),
            )
            created.append(await render_clip(clip, video, shotstack))
            next_number += 1

    clips.create_batch(created)
    videos.update_status(video.video_id, "completed", extra={"clips_generated": len(created)})
    logger.info(f"Generated {len(created)} clips for video {video.video_id}")
    return created


async def regenerate_clips(
    user_id: str,
    video_id: str,
    preferences: Optional[ProcessingPreferences] = None,
    keep_existing: bool = False,
    *,
    clips: Optional[ClipRepository] = None,
    videos: Optional[VideoRepository] = None,
    shotstack: Optional[ShotstackClient] = None,
) -> List[ClipRecord]:
    """Generate clips again from the stored analysis."""
    clips = clips or ClipRepository(user_id)
    videos = videos or VideoRepository(user_id)

    video = videos.get_video(video_id)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    analysis = videos.get_analysis(video_id)
    if analysis is None or not analysis.suggestions:
        raise NotFoundError(f"No analysis stored for video {video_id}")

    if not keep_existing:
        removed = clips.delete_for_video(video_id)
        logger.info(f"Removed {removed} existing clips before regenerating video {video_id}")

    videos.update_status(video_id, "generating")
    return await generate_clips(
        video,
        analysis.suggestions[:SUGGESTIONS_PER_RUN],
        preferences,
        clips=clips,
        videos=videos,
        shotstack=shotstack,
    )


async def create_manual_clip(
    user_id: str,
    video_id: str,
    title: str,
    start_time: float,
    end_time: float,
    subtitles: Optional[str] = None,
    platform: str = "tiktok",
    *,
    clips: Optional[ClipRepository] = None,
    videos: Optional[VideoRepository] = None,
    shotstack: Optional[ShotstackClient] = None,
) -> ClipRecord:
    """Cut a clip from user-chosen times."""
    title = sanitize_text(title, 500)
    if not title:
        raise ValidationError("Title is required", field="title")
    if start_time < 0:
        raise ValidationError("start_time must not be negative", field="start_time")
    length = end_time - start_time
    if length <= 0 or length > MAX_MANUAL_CLIP_SECONDS:
        raise ValidationError(
            f"Clip length must be between 0 and {MAX_MANUAL_CLIP_SECONDS} seconds",
            field="end_time",
        )
    platform = validate_platform(platform)

    clips = clips or ClipRepository(user_id)
    videos = videos or VideoRepository(user_id)
    shotstack = shotstack or ShotstackClient()

    video = videos.get_video(video_id)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    if video.duration_seconds and end_time > video.duration_seconds:
        raise ValidationError("end_time is past the end of the video", field="end_time")

    clip = _new_clip(
        video,
        clips.next_clip_number(video_id),
        title,
        round(start_time, 1),
        round(end_time, 1),
        platform,
        ai_viral_score=MANUAL_CLIP_SCORE,
        subtitles=sanitize_text(subtitles or "", 500) or None,
        created_manually=True,
    )
    clip = await render_clip(clip, video, shotstack)
    clips.create(clip)
    logger.info(f"Manual clip {clip.clip_id} created for video {video_id} ({clip.status})")
    return clip


async def sync_render_status(
    user_id: str,
    *,
    clips: Optional[ClipRepository] = None,
    videos: Optional[VideoRepository] = None,
    shotstack: Optional[ShotstackClient] = None,
) -> Dict[str, int]:
    """
    Poll Shotstack for every clip still rendering.

    Returns counters of what happened: ``checked``, ``ready``, ``failed``
    and ``processing``.
    """
    clips = clips or ClipRepository(user_id)
    videos = videos or VideoRepository(user_id)
    shotstack = shotstack or ShotstackClient()

    summary = {"checked": 0, "ready": 0, "failed": 0, "processing": 0}
    pending = clips.list_pending_renders()
    if not pending or not shotstack.configured:
        summary["processing"] = len(pending)
        return summary

    sources: Dict[str, Optional[str]] = {}
    for clip in pending:
        summary["checked"] += 1
        try:
            render = await shotstack.get_render(clip.render_id)
        except ProviderError as e:
            logger.warning(f"Could not poll render {clip.render_id} for clip {clip.clip_id}: {e}")
            summary["processing"] += 1
            continue

        state = render["status"]
        error = render.get("error")
        if state == "done" and not render.get("url"):
            state, error = "failed", error or "Render finished without a URL"

        if state == "done":
            clips.update(clip.clip_id, {
                "status": "ready",
                "render_status": state,
                "url": render["url"],
                "ready_at": utcnow(),
            })
            summary["ready"] += 1
        elif state == "failed":
            if clip.video_id not in sources:
                video = videos.get_video(clip.video_id)
                sources[clip.video_id] = video.cloudinary_secure_url if video else None
            source = sources[clip.video_id]
            if source:
                fallback = apply_fallback(clip.model_copy(), source)
                clips.update(clip.clip_id, {
                    "status": "ready",
                    "render_status": state,
                    "render_provider": fallback.render_provider,
                    "url": fallback.url,
                    "thumbnail_url": fallback.thumbnail_url,
                    "ready_at": fallback.ready_at,
                    "error_message": error,
                })
                summary["ready"] += 1
            else:
                clips.update(clip.clip_id, {
                    "status": "failed",
                    "render_status": state,
                    "error_message": error or "Render failed",
                })
                summary["failed"] += 1
        else:
            if state != clip.render_status and state in PENDING_STATES:
                clips.update(clip.clip_id, {"render_status": state})
            summary["processing"] += 1

    logger.info(f"Render sync for user {user_id}: {summary}")
    return summary
