"""
Dashboard analytics.

Everything is computed in memory from the user's records created inside the
requested period; the previous period of equal length is loaded as well so
the upload trend can be reported.
"""

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from clipsforge.core.repositories import (
    ClipRepository,
    SocialAccountRepository,
    SocialPostRepository,
    VideoRepository,
)
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import ClipRecord, SocialAccount, SocialPost, VideoRecord
from clipsforge.core.security import ValidationError

logger = logging.getLogger(__name__)

PERIOD_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
DAILY_ACTIVITY_DAYS = 7

IN_PROGRESS_STATUSES = frozenset({"uploading", "demo_mode", "uploaded", "transcribing", "analyzing", "generating"})
SCORE_RANGES = ((0, 2), (2, 4), (4, 6), (6, 8), (8, 10))

LOW_SCORE_THRESHOLD = 6.0
HIGH_ERROR_RATE = 20


def period_window(period: str, now: Optional[datetime] = None):
    if period not in PERIOD_DAYS:
        raise ValidationError(
            f"Invalid period. Allowed: {', '.join(PERIOD_DAYS)}",
            field="period",
        )
    end = now or utcnow()
    return end - timedelta(days=PERIOD_DAYS[period]), end


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def _average(values: Sequence[float], digits: int = 1) -> float:
    return round(sum(values) / len(values), digits) if values else 0.0


def score_distribution(clips: Sequence[ClipRecord]) -> List[Dict[str, Any]]:
    """Clip counts per two-point score band; 10 falls in the last band."""
    counts = [0] * len(SCORE_RANGES)
    for clip in clips:
        index = min(int(clip.ai_viral_score // 2), len(SCORE_RANGES) - 1)
        counts[index] += 1
    return [
        {"range": f"{low}-{high}", "count": counts[i]}
        for i, (low, high) in enumerate(SCORE_RANGES)
    ]


def upload_trend(current: int, previous: int) -> Dict[str, Any]:
    if previous == 0:
        change = 100 if current else 0
    else:
        change = round((current - previous) / previous * 100)
    direction = "up" if change > 0 else "down" if change < 0 else "flat"
    return {"current": current, "previous": previous, "change_percent": change, "direction": direction}


def daily_activity(
    videos: Sequence[VideoRecord],
    clips: Sequence[ClipRecord],
    posts: Sequence[SocialPost],
    now: datetime,
) -> List[Dict[str, Any]]:
    """Per-day (UTC) counts for the last seven days, oldest first."""
    days = [(now - timedelta(days=i)).date() for i in range(DAILY_ACTIVITY_DAYS - 1, -1, -1)]
    buckets: Dict[str, Counter] = defaultdict(Counter)
    for kind, records in (("videos", videos), ("clips", clips), ("posts", posts)):
        for record in records:
            buckets[record.created_at.date().isoformat()][kind] += 1
    return [
        {
            "date": day.isoformat(),
            "videos": buckets[day.isoformat()]["videos"],
            "clips": buckets[day.isoformat()]["clips"],
            "posts": buckets[day.isoformat()]["posts"],
        }
        for day in days
    ]


def best_platform(posts: Sequence[SocialPost]) -> Optional[str]:
    """Platform with the most engagement on published posts (post count breaks ties)."""
    stats: Dict[str, List[int]] = defaultdict(lambda: [0, 0])
    for post in posts:
        if post.status != "posted":
            continue
        stats[post.platform][0] += post.engagement
        stats[post.platform][1] += 1
    if not stats:
        return None
    return max(stats, key=lambda p: (stats[p][0], stats[p][1]))


def build_recommendations(
    total_videos: int,
    avg_score: float,
    total_clips: int,
    connected_accounts: int,
    error_rate: int,
) -> List[Dict[str, str]]:
    tips = []
    if total_clips and avg_score < LOW_SCORE_THRESHOLD:
        tips.append({
            "type": "content",
            "message": "Average viral score is below 6. Try videos with a strong hook in the first seconds.",
        })
    if connected_accounts == 0:
        tips.append({
            "type": "social",
            "message": "Connect a social account to start publishing your clips.",
        })
    if error_rate > HIGH_ERROR_RATE:
        tips.append({
            "type": "processing",
            "message": f"{error_rate}% of your videos failed to process. Check the file format and length.",
        })
    if total_videos == 0:
        tips.append({
            "type": "activity",
            "message": "No videos uploaded in this period. Upload a video to generate new clips.",
        })
    return tips


def compute_analytics(
    videos: Sequence[VideoRecord],
    clips: Sequence[ClipRecord],
    posts: Sequence[SocialPost],
    accounts: Sequence[SocialAccount],
    start: datetime,
    end: datetime,
    previous_videos: int = 0,
) -> Dict[str, Any]:
    total_videos = len(videos)
    completed = sum(1 for v in videos if v.status == "completed")
    processing = sum(1 for v in videos if v.status in IN_PROGRESS_STATUSES)
    errors = sum(1 for v in videos if v.status == "error")
    error_rate = _percent(errors, total_videos)

    scores = [c.ai_viral_score for c in clips]
    avg_score = _average(scores)
    durations = [v.duration_seconds for v in videos if v.duration_seconds]

    posts_by_status = Counter(p.status for p in posts)
    engagement = sum(p.engagement for p in posts)
    reach = sum(p.views for p in posts)
    connected = [a for a in accounts if a.is_active and a.connection_status == "connected"]

    return {
        "period": {
            "start": start.isoformat(),
            "end": end.isoformat(),
            "days": max(1, round((end - start).total_seconds() / 86400)),
        },
        "overview": {
            "total_videos": total_videos,
            "total_clips": len(clips),
            "total_posts": len(posts),
            "processing_videos": processing,
            "completed_videos": completed,
            "error_videos": errors,
            "avg_viral_score": avg_score,
            "success_rate": _percent(completed, total_videos),
        },
        "videos": {
            "upload_trend": upload_trend(total_videos, previous_videos),
            "avg_duration_seconds": round(_average(durations, 0)),
        },
        "clips": {
            "high_score": sum(1 for s in scores if s >= 8),
            "medium_score": sum(1 for s in scores if 6 <= s < 8),
            "low_score": sum(1 for s in scores if s < 6),
            "by_platform": dict(Counter(c.platform for c in clips)),
            "avg_duration_seconds": round(_average([c.duration_seconds for c in clips], 0)),
        },
        "social": {
            "posts_by_status": dict(posts_by_status),
            "success_rate": _percent(posts_by_status.get("posted", 0), len(posts)),
            "total_engagement": engagement,
            "total_reach": reach,
            "best_platform": best_platform(posts),
            "connected_accounts": len(connected),
            "accounts_by_platform": dict(Counter(a.platform for a in connected)),
        },
        "daily_activity": daily_activity(videos, clips, posts, end),
        "viral_score_distribution": score_distribution(clips),
        "recommendations": build_recommendations(total_videos, avg_score, len(clips), len(connected), error_rate),
    }


def get_analytics(
    user_id: str,
    period: str = "month",
    *,
    videos: Optional[VideoRepository] = None,
    clips: Optional[ClipRepository] = None,
    posts: Optional[SocialPostRepository] = None,
    accounts: Optional[SocialAccountRepository] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    start, end = period_window(period, now)
    videos = videos or VideoRepository(user_id)
    clips = clips or ClipRepository(user_id)
    posts = posts or SocialPostRepository(user_id)
    accounts = accounts or SocialAccountRepository(user_id)

    window = end - start
    recent_videos = videos.list_created_between(start - window, end)
    current = [v for v in recent_videos if v.created_at >= start]

    result = compute_analytics(
        current,
        clips.list_created_between(start, end),
        posts.list_created_between(start, end),
        accounts.list_accounts(),
        start,
        end,
        previous_videos=len(recent_videos) - len(current),
    )
    result["period"]["name"] = period
    logger.debug(f"Analytics computed for user {user_id} ({period})")
    return result
