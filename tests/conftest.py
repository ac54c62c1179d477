"""
Shared fixtures.

Vendor credentials are blanked before the application is imported so every
client starts in simulation mode unless a test passes its own key.
"""

import os
import tempfile
from datetime import datetime, timezone

import pytest

for _name in (
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
    "CLOUDINARY_UPLOAD_PRESET",
    "HUGGINGFACE_API_KEY",
    "GROQ_API_KEY",
    "GEMINI_API_KEY",
    "SHOTSTACK_API_KEY",
    "AYRSHARE_API_KEY",
    "AYRSHARE_DOMAIN",
    "AYRSHARE_PRIVATE_KEY",
    "R2_ACCOUNT_ID",
    "R2_BUCKET_NAME",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_ENDPOINT_URL",
):
    os.environ[_name] = ""

os.environ["ENVIRONMENT"] = "test"
os.environ["ALLOWED_HOSTS"] = "testserver,localhost"
os.environ.setdefault(
    "LOG_FILE_PATH",
    os.path.join(tempfile.gettempdir(), "clipsforge-tests", "clipsforge.log"),
)

from clipsforge.core.repositories.models import (  # noqa: E402
    ClipRecord,
    Profile,
    SocialAccount,
    SocialPost,
    VideoRecord,
)
from clipsforge.core.security import get_api_rate_limiter, get_ws_rate_limiter  # noqa: E402

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    get_api_rate_limiter().reset()
    get_ws_rate_limiter().reset()
    yield


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_video():
    def _make(**overrides) -> VideoRecord:
        data = {
            "video_id": "vid_1",
            "user_id": "user_1",
            "title": "Aula de marketing",
            "original_filename": "aula.mp4",
            "content_type": "video/mp4",
            "file_size_bytes": 50 * 1024 * 1024,
            "duration_seconds": 300.0,
            "status": "uploaded",
            "cloudinary_public_id": "clipsforge/user_1/vid_1",
            "cloudinary_secure_url": "https://res.cloudinary.com/demo/video/upload/v1/clipsforge/user_1/vid_1.mp4",
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        return VideoRecord(**data)

    return _make


@pytest.fixture
def make_clip():
    def _make(**overrides) -> ClipRecord:
        data = {
            "clip_id": "clip_1",
            "video_id": "vid_1",
            "user_id": "user_1",
            "title": "Momento viral",
            "description": "O melhor trecho",
            "start_time_seconds": 10.0,
            "end_time_seconds": 40.0,
            "status": "ready",
            "url": "https://res.cloudinary.com/demo/video/upload/so_10,eo_40/v1/clip.mp4",
            "ai_viral_score": 8.0,
            "hashtags": ["#viral", "#marketing"],
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        return ClipRecord(**data)

    return _make


@pytest.fixture
def make_account():
    def _make(**overrides) -> SocialAccount:
        data = {
            "account_id": "acc_1",
            "user_id": "user_1",
            "platform": "tiktok",
            "username": "criador",
            "connection_status": "connected",
            "is_active": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        return SocialAccount(**data)

    return _make


@pytest.fixture
def make_post():
    def _make(**overrides) -> SocialPost:
        data = {
            "post_id": "post_1",
            "user_id": "user_1",
            "clip_id": "clip_1",
            "video_id": "vid_1",
            "social_account_id": "acc_1",
            "platform": "tiktok",
            "content": "Confira!",
            "status": "scheduled",
            "schedule_type": "now",
            "scheduled_for": NOW,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        return SocialPost(**data)

    return _make


@pytest.fixture
def make_profile():
    def _make(**overrides) -> Profile:
        data = {
            "user_id": "user_1",
            "email": "user@example.com",
            "display_name": "Criador",
            "plan_type": "free",
            "usage_reset_date": NOW,
            "created_at": NOW,
            "updated_at": NOW,
        }
        data.update(overrides)
        return Profile(**data)

    return _make
