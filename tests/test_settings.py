"""
Tests for profile settings, usage and plan limits.

Run with: pytest tests/test_settings.py -v
"""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from clipsforge.core import settings
from clipsforge.core.plans import MB, PlanService
from clipsforge.core.repositories.models import ProcessingPreferences
from clipsforge.core.security import ValidationError

FUTURE = datetime(2099, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def profiles(make_profile):
    repo = Mock()
    repo.get_or_create.return_value = make_profile(
        usage_reset_date=FUTURE,
        usage_storage_bytes=512 * MB,
        processing_preferences=ProcessingPreferences(max_clips=4),
    )
    return repo


class TestUsage:
    def test_free_plan(self, make_profile):
        plan = PlanService().get_plan("free")
        usage = settings.plan_usage(plan, make_profile(usage_storage_bytes=512 * MB, usage_reset_date=FUTURE))
        assert usage["videos_remaining"] == 1
        assert usage["storage_mb"] == 512.0
        assert usage["storage_percent"] == 50.0
        assert usage["reset_date"] == FUTURE.isoformat()

    def test_over_quota_is_capped(self, make_profile):
        plan = PlanService().get_plan("free")
        usage = settings.plan_usage(plan, make_profile(usage_videos_current_month=3, usage_storage_bytes=2048 * MB))
        assert usage["videos_remaining"] == 0
        assert usage["storage_percent"] == 100.0

    def test_unlimited_plan(self, make_profile):
        plan = PlanService().get_plan("agency")
        assert settings.plan_usage(plan, make_profile())["videos_remaining"] is None
        assert settings.plan_limits(plan)["videos_per_month"] is None

    def test_limits(self):
        limits = settings.plan_limits(PlanService().get_plan("pro"))
        assert limits == {
            "videos_per_month": 10,
            "max_file_size_mb": 2048,
            "max_duration_minutes": 120,
            "max_storage_mb": 50 * 1024,
            "social_accounts": {
                "tiktok": 5, "instagram": 5, "youtube": 3,
                "twitter": 3, "linkedin": 2, "facebook": 3,
            },
        }


class TestGetSettings:
    def test_shape(self, profiles):
        data = settings.get_settings("user_1", email="user@example.com", profiles=profiles, plans=PlanService())
        profiles.get_or_create.assert_called_once_with(email="user@example.com")
        assert data["profile"]["user_id"] == "user_1"
        assert data["plan"] == {"id": "free", "name": "Free"}
        assert data["usage"]["storage_percent"] == 50.0
        assert data["processing_preferences"]["max_clips"] == 4


class TestUpdateSettings:
    def test_partial_preferences(self, profiles):
        settings.update_settings("user_1", preferences={"platforms": ["youtube"]}, profiles=profiles, plans=PlanService())
        fields = profiles.update.call_args.args[0]
        assert fields["processing_preferences"]["platforms"] == ["youtube"]
        assert fields["processing_preferences"]["max_clips"] == 4
        assert "display_name" not in fields

    def test_blank_display_name_clears_it(self, profiles):
        settings.update_settings("user_1", display_name="", profiles=profiles, plans=PlanService())
        profiles.update.assert_called_once_with({"display_name": None})

    def test_nothing_to_update(self, profiles):
        data = settings.update_settings("user_1", profiles=profiles, plans=PlanService())
        profiles.update.assert_not_called()
        assert data["plan"]["id"] == "free"

    def test_invalid_preferences(self, profiles):
        with pytest.raises(ValidationError):
            settings.update_settings("user_1", preferences={"max_clips": 0}, profiles=profiles, plans=PlanService())
        profiles.update.assert_not_called()
