"""
Tests for dashboard analytics.

Run with: pytest tests/test_analytics.py -v
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from clipsforge.core import analytics
from clipsforge.core.security import ValidationError

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def days_ago(n: float) -> datetime:
    return NOW - timedelta(days=n)


@pytest.fixture
def repos(make_video, make_clip, make_post, make_account):
    videos = Mock()
    videos.list_created_between.return_value = [
        make_video(video_id="v1", status="completed", created_at=days_ago(1)),
        make_video(video_id="v2", status="error", created_at=days_ago(2)),
        make_video(video_id="v3", status="transcribing", created_at=days_ago(0)),
        make_video(video_id="v0", status="completed", created_at=days_ago(10)),
    ]
    clips = Mock()
    clips.list_created_between.return_value = [
        make_clip(clip_id="c1", ai_viral_score=9.0, platform="tiktok", created_at=days_ago(1)),
        make_clip(clip_id="c2", ai_viral_score=7.0, platform="instagram", created_at=days_ago(1)),
        make_clip(clip_id="c3", ai_viral_score=4.0, platform="tiktok", created_at=days_ago(1)),
        make_clip(clip_id="c4", ai_viral_score=10.0, platform="tiktok", created_at=days_ago(3)),
    ]
    posts = Mock()
    posts.list_created_between.return_value = [
        make_post(post_id="p1", status="posted", platform="tiktok", views=1000, likes=50, comments=5, shares=5),
        make_post(post_id="p2", status="posted", platform="instagram", views=400, likes=100),
        make_post(post_id="p3", status="failed", platform="tiktok"),
    ]
    accounts = Mock()
    accounts.list_accounts.return_value = [
        make_account(),
        make_account(account_id="acc_2", platform="instagram", connection_status="disconnected", is_active=False),
    ]
    return {"videos": videos, "clips": clips, "posts": posts, "accounts": accounts}


class TestHelpers:
    def test_period_window(self):
        start, end = analytics.period_window("week", NOW)
        assert end - start == timedelta(days=7)

    def test_invalid_period(self):
        with pytest.raises(ValidationError) as exc:
            analytics.period_window("decade", NOW)
        assert exc.value.field == "period"

    @pytest.mark.parametrize("current, previous, change, direction", [
        (3, 1, 200, "up"),
        (1, 2, -50, "down"),
        (0, 0, 0, "flat"),
        (2, 0, 100, "up"),
    ])
    def test_upload_trend(self, current, previous, change, direction):
        trend = analytics.upload_trend(current, previous)
        assert trend["change_percent"] == change
        assert trend["direction"] == direction

    def test_score_distribution(self, make_clip):
        clips = [make_clip(ai_viral_score=s) for s in (1.5, 8.0, 9.9, 10.0)]
        assert [b["count"] for b in analytics.score_distribution(clips)] == [1, 0, 0, 0, 3]


class TestGetAnalytics:
    def test_week(self, repos):
        result = analytics.get_analytics("user_1", "week", now=NOW, **repos)

        start = NOW - timedelta(days=7)
        repos["videos"].list_created_between.assert_called_once_with(start - timedelta(days=7), NOW)
        assert result["period"]["name"] == "week"
        assert result["period"]["days"] == 7

        overview = result["overview"]
        assert overview["total_videos"] == 3
        assert overview["completed_videos"] == 1
        assert overview["error_videos"] == 1
        assert overview["processing_videos"] == 1
        assert overview["success_rate"] == 33
        assert overview["total_clips"] == 4
        assert overview["avg_viral_score"] == 7.5

        assert result["videos"]["upload_trend"] == {
            "current": 3, "previous": 1, "change_percent": 200, "direction": "up",
        }
        assert result["videos"]["avg_duration_seconds"] == 300

        assert result["clips"]["high_score"] == 2
        assert result["clips"]["medium_score"] == 1
        assert result["clips"]["low_score"] == 1
        assert result["clips"]["by_platform"] == {"tiktok": 3, "instagram": 1}
        assert result["viral_score_distribution"][-1] == {"range": "8-10", "count": 2}

        social = result["social"]
        assert social["posts_by_status"] == {"posted": 2, "failed": 1}
        assert social["success_rate"] == 67
        assert social["total_engagement"] == 160
        assert social["total_reach"] == 1400
        assert social["best_platform"] == "instagram"
        assert social["connected_accounts"] == 1
        assert social["accounts_by_platform"] == {"tiktok": 1}

        activity = result["daily_activity"]
        assert len(activity) == 7
        assert activity[-1]["date"] == "2026-03-10"
        assert activity[-2] == {"date": "2026-03-09", "videos": 1, "clips": 3, "posts": 0}

        assert [tip["type"] for tip in result["recommendations"]] == ["processing"]

    def test_empty_account(self):
        empty = Mock()
        empty.list_created_between.return_value = []
        empty.list_accounts.return_value = []
        result = analytics.get_analytics(
            "user_1", "month", videos=empty, clips=empty, posts=empty, accounts=empty, now=NOW,
        )
        assert result["overview"]["avg_viral_score"] == 0.0
        assert result["overview"]["success_rate"] == 0
        assert result["social"]["best_platform"] is None
        assert result["videos"]["upload_trend"]["direction"] == "flat"
        assert [tip["type"] for tip in result["recommendations"]] == ["social", "activity"]

    def test_low_scores_recommendation(self):
        tips = analytics.build_recommendations(
            total_videos=2, avg_score=5.2, total_clips=4, connected_accounts=1, error_rate=0,
        )
        assert [tip["type"] for tip in tips] == ["content"]
