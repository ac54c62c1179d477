"""Analysis step: transcript in, stored clip suggestions out."""

import asyncio
import logging
from typing import Optional

from clipsforge.core import storage
from clipsforge.core.analysis import ContentAnalyzer
from clipsforge.core.pipeline.context import ProcessingContext
from clipsforge.core.repositories import VideoRepository
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import ContentAnalysis, Transcription

logger = logging.getLogger(__name__)


async def analyze_video(
    ctx: ProcessingContext,
    transcription: Transcription,
    *,
    videos: VideoRepository,
    analyzer: Optional[ContentAnalyzer] = None,
) -> ContentAnalysis:
    """Find viral moments, persist the analysis and move the video to ``generating``."""
    analyzer = analyzer or ContentAnalyzer()
    video = ctx.video

    await ctx.reporter.log("Looking for the most viral moments...")
    result = await analyzer.analyze(
        transcription.text,
        video.duration_seconds,
        preferences=ctx.preferences.model_dump(),
        seed=video.video_id,
    )

    analysis = ContentAnalysis(
        video_id=video.video_id,
        user_id=ctx.user_id,
        suggestions=result.suggestions,
        main_topics=result.main_topics,
        key_moments=result.key_moments,
        summary=result.summary,
        content_type=result.content_type,
        sentiment=result.sentiment,
        target_audience=result.target_audience,
        provider=result.provider,
        model=result.model,
        created_at=utcnow(),
    )
    videos.save_analysis(analysis)
    await asyncio.to_thread(
        storage.archive_json,
        ctx.user_id,
        video.video_id,
        "analysis",
        analysis.model_dump(mode="json"),
    )
    videos.update_status(video.video_id, "generating")

    await ctx.reporter.log(
        f"Found {len(analysis.suggestions)} moments ({analysis.content_type}, via {analysis.provider})"
    )
    return analysis
