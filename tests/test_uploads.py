"""
Tests for plan limits and the upload lifecycle.

Run with: pytest tests/test_uploads.py -v
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock, patch

import pytest

from clipsforge.core import uploads
from clipsforge.core.cloudinary_client import CloudinaryClient
from clipsforge.core.exceptions import (
    ProcessingConflictError,
    ProviderError,
    QuotaExceededError,
    UploadRejectedError,
)
from clipsforge.core.plans import PlanService, next_usage_reset
from clipsforge.core.plans.models import MB
from clipsforge.core.repositories import NotFoundError
from clipsforge.core.security import ValidationError

FUTURE = datetime(2099, 1, 1, tzinfo=timezone.utc)


def unconfigured_cloudinary() -> CloudinaryClient:
    return CloudinaryClient(cloud_name="", api_key="", api_secret="")


@pytest.fixture
def profiles(make_profile):
    repo = Mock()
    repo.get_or_create.return_value = make_profile(usage_reset_date=FUTURE)
    return repo


class TestPlans:
    def test_unknown_plan_is_free(self):
        assert PlanService().get_plan("enterprise").id == "free"

    def test_free_plan_limits(self):
        plan = PlanService().get_plan("free")
        assert plan.max_file_size_mb == 500
        assert plan.max_duration_seconds == 1800
        assert plan.allows_more_videos(0)
        assert not plan.allows_more_videos(1)
        assert plan.account_limit("youtube") == 0

    def test_agency_is_unlimited(self):
        assert PlanService().get_plan("agency").allows_more_videos(10_000)

    def test_next_reset(self):
        assert next_usage_reset(datetime(2026, 12, 15, tzinfo=timezone.utc)) == datetime(2027, 1, 1, tzinfo=timezone.utc)
        assert next_usage_reset(datetime(2026, 3, 31, tzinfo=timezone.utc)) == datetime(2026, 4, 1, tzinfo=timezone.utc)


class TestLimits:
    def test_file_too_large(self, make_profile):
        plan = PlanService().get_plan("free")
        with pytest.raises(UploadRejectedError) as exc:
            uploads.check_upload_limits(plan, make_profile(), 600 * MB)
        assert exc.value.status_code == 413

    def test_monthly_quota(self, make_profile):
        plan = PlanService().get_plan("free")
        with pytest.raises(QuotaExceededError) as exc:
            uploads.check_upload_limits(plan, make_profile(usage_videos_current_month=1), 10 * MB)
        assert exc.value.status_code == 429

    def test_storage_quota(self, make_profile):
        plan = PlanService().get_plan("free")
        with pytest.raises(QuotaExceededError):
            uploads.check_upload_limits(plan, make_profile(usage_storage_bytes=1000 * MB), 100 * MB)

    def test_usage_window_reset(self, make_profile, now):
        repo = Mock()
        profile = make_profile(usage_videos_current_month=4, usage_reset_date=now)
        updated = uploads.ensure_usage_window(repo, profile, now=now)
        assert updated.usage_videos_current_month == 0
        assert updated.usage_reset_date == datetime(2026, 4, 1, tzinfo=timezone.utc)
        repo.reset_monthly_usage.assert_called_once_with(updated.usage_reset_date)

    def test_usage_window_still_open(self, make_profile, now):
        repo = Mock()
        profile = make_profile(usage_reset_date=FUTURE)
        assert uploads.ensure_usage_window(repo, profile, now=now) is profile
        repo.reset_monthly_usage.assert_not_called()


class TestInitUpload:
    def test_demo_mode_without_cloudinary(self, profiles):
        videos = Mock()
        ticket = uploads.init_upload(
            "user_1", "Minha aula.mp4", "video/mp4", 20 * MB,
            videos=videos, profiles=profiles, cloudinary=unconfigured_cloudinary(), plans=PlanService(),
        )
        assert ticket.demo_mode
        assert ticket.upload_params is None
        assert ticket.video.status == "demo_mode"
        assert ticket.video.title == "Minha aula"
        assert ticket.video.format == "mp4"
        videos.create_video.assert_called_once_with(ticket.video)
        profiles.record_upload.assert_called_once_with(20 * MB)

    def test_signed_upload(self, profiles):
        videos = Mock()
        cloudinary = CloudinaryClient(cloud_name="demo", api_key="k", api_secret="s", upload_preset="")
        ticket = uploads.init_upload(
            "user_1", "a.mov", "video/quicktime", 5 * MB, title="Título",
            videos=videos, profiles=profiles, cloudinary=cloudinary, plans=PlanService(),
        )
        assert not ticket.demo_mode
        assert ticket.video.status == "uploading"
        assert ticket.upload_url == "https://api.cloudinary.com/v1_1/demo/video/upload"
        assert ticket.upload_params["public_id"].startswith(f"videos/user_1/{ticket.video.video_id}_")
        assert ticket.upload_params["folder"] == "videos/user_1"
        assert ticket.video.cloudinary_public_id == ticket.upload_params["public_id"]
        videos.create_video.assert_called_once_with(ticket.video)

    def test_rejects_bad_file_before_touching_storage(self, profiles):
        videos = Mock()
        with pytest.raises(ValidationError):
            uploads.init_upload(
                "user_1", "a.exe", "application/x-msdownload", 1,
                videos=videos, profiles=profiles, cloudinary=unconfigured_cloudinary(), plans=PlanService(),
            )
        videos.create_video.assert_not_called()

    def test_quota_blocks_creation(self, make_profile):
        profiles = Mock()
        profiles.get_or_create.return_value = make_profile(usage_videos_current_month=1, usage_reset_date=FUTURE)
        videos = Mock()
        with pytest.raises(QuotaExceededError):
            uploads.init_upload(
                "user_1", "a.mp4", "video/mp4", MB,
                videos=videos, profiles=profiles, cloudinary=unconfigured_cloudinary(), plans=PlanService(),
            )
        videos.create_video.assert_not_called()
        profiles.record_upload.assert_not_called()


PUBLIC_ID = "videos/user_1/vid_1_1700000000000_ab12cd34_aula"
SECURE_URL = f"https://res.cloudinary.com/demo/video/upload/v1/{PUBLIC_ID}.mp4"


def demo_cloud() -> CloudinaryClient:
    return CloudinaryClient(cloud_name="demo", api_key="k", api_secret="s", upload_preset="")


class TestConfirmUpload:
    @pytest.fixture
    def videos(self, make_video):
        repo = Mock()
        repo.get_video.return_value = make_video(
            status="uploading", cloudinary_public_id=PUBLIC_ID, cloudinary_secure_url=None,
        )
        return repo

    def confirm(self, videos, profiles, result):
        return uploads.confirm_upload(
            "user_1", "vid_1", result,
            videos=videos, profiles=profiles, plans=PlanService(), cloudinary=demo_cloud(),
        )

    def test_marks_uploaded(self, videos, profiles):
        result = {
            "secure_url": SECURE_URL,
            "public_id": PUBLIC_ID,
            "duration": 125.456,
            "bytes": 1234,
            "format": "mp4",
        }
        self.confirm(videos, profiles, result)

        args, kwargs = videos.update_status.call_args
        assert args == ("vid_1", "uploaded")
        extra = kwargs["extra"]
        assert extra["duration_seconds"] == 125.46
        assert extra["file_size_bytes"] == 1234
        assert extra["thumbnail_url"] == (
            f"https://res.cloudinary.com/demo/video/upload/so_1/v1/{PUBLIC_ID}.jpg"
        )

    def test_folder_prefixed_public_id(self, videos, profiles):
        self.confirm(videos, profiles, {"secure_url": SECURE_URL, "public_id": f"videos/user_1/{PUBLIC_ID}"})
        assert videos.update_status.call_args.args[1] == "uploaded"

    def test_too_long_for_plan(self, videos, profiles):
        with pytest.raises(UploadRejectedError) as exc:
            self.confirm(videos, profiles, {"secure_url": SECURE_URL, "public_id": PUBLIC_ID, "duration": 3600})
        assert exc.value.status_code == 413
        assert videos.update_status.call_args[0][1] == "error"

    def test_missing_secure_url(self, videos, profiles):
        with pytest.raises(UploadRejectedError):
            self.confirm(videos, profiles, {})

    @pytest.mark.parametrize("secure_url", [
        "http://169.254.169.254/latest/upload/meta.mp4",
        "https://evil.test/demo/video/upload/a.mp4",
        "https://res.cloudinary.com/other/video/upload/a.mp4",
        "file:///etc/passwd",
    ])
    def test_rejects_foreign_urls(self, videos, profiles, secure_url):
        with pytest.raises((UploadRejectedError, ValidationError)):
            self.confirm(videos, profiles, {"secure_url": secure_url, "public_id": PUBLIC_ID})
        videos.update_status.assert_not_called()

    def test_rejects_other_public_id(self, videos, profiles):
        with pytest.raises(UploadRejectedError):
            self.confirm(videos, profiles, {"secure_url": SECURE_URL, "public_id": "videos/user_2/other"})
        videos.update_status.assert_not_called()

    @pytest.mark.parametrize("status", ["completed", "uploaded", "transcribing", "demo_mode", "error"])
    def test_only_pending_uploads(self, make_video, profiles, status):
        videos = Mock()
        videos.get_video.return_value = make_video(status=status)
        with pytest.raises(ProcessingConflictError) as exc:
            self.confirm(videos, profiles, {"secure_url": SECURE_URL, "public_id": PUBLIC_ID})
        assert exc.value.status_code == 409
        videos.update_status.assert_not_called()

    def test_unknown_video(self, profiles):
        videos = Mock()
        videos.get_video.return_value = None
        with pytest.raises(NotFoundError):
            uploads.confirm_upload("user_1", "nope", {"secure_url": "x"}, videos=videos, profiles=profiles)


class TestDeleteVideo:
    def test_deletes_and_releases_storage(self, make_video, profiles):
        videos = Mock()
        videos.get_video.return_value = make_video(file_size_bytes=10 * MB)
        videos.delete_video.return_value = True
        cloudinary = Mock()
        cloudinary.destroy = AsyncMock(side_effect=ProviderError("cloudinary", "down"))

        deleted = asyncio.run(uploads.delete_video(
            "user_1", "vid_1", videos=videos, profiles=profiles, cloudinary=cloudinary,
        ))
        assert deleted
        cloudinary.destroy.assert_awaited_once_with("clipsforge/user_1/vid_1")
        videos.delete_video.assert_called_once_with("vid_1", delete_clips=True)
        profiles.release_storage.assert_called_once_with(10 * MB)

    def test_archive_failure_does_not_block(self, make_video, profiles):
        videos = Mock()
        videos.get_video.return_value = make_video(cloudinary_public_id=None)
        videos.delete_video.return_value = True
        with patch("clipsforge.core.uploads.storage.delete_video_artifacts", side_effect=RuntimeError("r2")):
            assert asyncio.run(uploads.delete_video("user_1", "vid_1", videos=videos, profiles=profiles))

    def test_missing_video(self, profiles):
        videos = Mock()
        videos.get_video.return_value = None
        assert asyncio.run(uploads.delete_video("user_1", "x", videos=videos, profiles=profiles)) is False
