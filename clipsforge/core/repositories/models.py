"""
Pydantic models for repository data structures.

Provides type safety and validation for documents stored under
``users/{uid}`` in Firestore.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VIDEO_STATUSES = (
    "uploading",
    "demo_mode",
    "uploaded",
    "transcribing",
    "analyzing",
    "generating",
    "completed",
    "error",
)
CLIP_STATUSES = ("processing", "ready", "failed")
POST_STATUSES = ("scheduled", "posting", "posted", "failed", "cancelled")
CONNECTION_STATUSES = ("pending", "connected", "disconnected", "error")
PLAN_TYPES = ("free", "pro", "agency")


class FirestoreModel(BaseModel):
    """Shared (de)serialization for Firestore documents."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create from Firestore document dictionary."""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Firestore-compatible dictionary (datetimes stay native)."""
        return self.model_dump(mode="python")


# -----------------------------------------------------------------------------
# Videos
# -----------------------------------------------------------------------------

class TranscriptSegment(BaseModel):
    start: float = Field(..., ge=0)
    end: float = Field(..., ge=0)
    text: str = ""


class Transcription(BaseModel):
    text: str = ""
    segments: List[TranscriptSegment] = Field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.text.split())


class VideoRecord(FirestoreModel):
    """Uploaded source video and its processing state."""

    video_id: str = Field(..., min_length=1, max_length=100)
    user_id: str = Field(..., min_length=1, max_length=128)

    title: str = Field(..., min_length=1, max_length=500)
    original_filename: str = Field(..., min_length=1, max_length=255)
    content_type: Optional[str] = None
    file_size_bytes: int = Field(default=0, ge=0)
    duration_seconds: Optional[float] = Field(None, ge=0)
    format: Optional[str] = None

    # Processing state
    status: str = Field(default="uploading")
    error_message: Optional[str] = Field(None, max_length=1000)

    # Cloudinary
    cloudinary_public_id: Optional[str] = None
    cloudinary_secure_url: Optional[str] = None
    thumbnail_url: Optional[str] = None

    # Transcription
    transcription: Optional[Transcription] = None
    transcription_language: Optional[str] = None
    transcription_confidence: Optional[float] = Field(None, ge=0, le=1)

    clips_generated: int = Field(default=0, ge=0)

    # Timestamps
    created_at: datetime
    updated_at: datetime
    uploaded_at: Optional[datetime] = None
    transcribed_at: Optional[datetime] = None
    analyzed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VIDEO_STATUSES:
            raise ValueError(f"Invalid status: {v}. Must be one of: {', '.join(VIDEO_STATUSES)}")
        return v

    @property
    def file_size_mb(self) -> float:
        return round(self.file_size_bytes / (1024 * 1024), 2)


# -----------------------------------------------------------------------------
# Content analysis
# -----------------------------------------------------------------------------

class ClipSuggestion(BaseModel):
    """A candidate moment picked by the LLM."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    start_time: float = Field(..., ge=0)
    end_time: float = Field(..., gt=0)
    viral_score: float = Field(default=5.0, ge=1, le=10)
    hook_strength: int = Field(default=50, ge=0, le=100)
    reason: str = ""
    topic: Optional[str] = None
    key_moment: Optional[str] = None
    hashtags: List[str] = Field(default_factory=list, max_length=5)
    best_platforms: List[str] = Field(default_factory=lambda: ["TikTok"])

    @property
    def duration(self) -> float:
        return round(self.end_time - self.start_time, 1)

    @model_validator(mode="after")
    def check_range(self) -> "ClipSuggestion":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class ContentAnalysis(FirestoreModel):
    """Stored result of the analyze step for one video."""

    video_id: str
    user_id: str
    suggestions: List[ClipSuggestion] = Field(default_factory=list)
    main_topics: List[str] = Field(default_factory=list)
    key_moments: List[str] = Field(default_factory=list)
    summary: str = ""
    content_type: str = "geral"
    sentiment: Optional[str] = None
    target_audience: Optional[str] = None
    provider: str = "simulation"
    model: Optional[str] = None
    created_at: datetime


# -----------------------------------------------------------------------------
# Clips
# -----------------------------------------------------------------------------

class ClipRecord(FirestoreModel):
    """Short clip rendered from a source video."""

    clip_id: str = Field(..., min_length=1, max_length=100)
    video_id: str = Field(..., min_length=1, max_length=100)
    user_id: str = Field(..., min_length=1, max_length=128)

    clip_number: int = Field(default=1, ge=1)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = Field(default="", max_length=5000)
    platform: str = "tiktok"
    aspect_ratio: str = "9:16"

    start_time_seconds: float = Field(..., ge=0)
    end_time_seconds: float = Field(..., gt=0)
    duration_seconds: float = Field(default=0, ge=0)

    status: str = Field(default="processing")
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    render_provider: str = "cloudinary"
    render_id: Optional[str] = None
    render_status: Optional[str] = None
    error_message: Optional[str] = None

    ai_viral_score: float = Field(default=5.0, ge=0, le=10)
    hashtags: List[str] = Field(default_factory=list)
    subtitles: Optional[str] = None
    created_manually: bool = False
    total_posts: int = Field(default=0, ge=0)

    created_at: datetime
    updated_at: datetime
    ready_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def fill_duration(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("duration_seconds"):
            start = data.get("start_time_seconds")
            end = data.get("end_time_seconds")
            if start is not None and end is not None:
                data["duration_seconds"] = round(float(end) - float(start), 1)
        return data

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in CLIP_STATUSES:
            raise ValueError(f"Invalid status: {v}. Must be one of: {', '.join(CLIP_STATUSES)}")
        return v


# -----------------------------------------------------------------------------
# Social
# -----------------------------------------------------------------------------

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


class PostingSchedule(BaseModel):
    """Per-account posting rules; days use ISO weekdays (1 = Monday)."""

    times: List[str] = Field(default_factory=lambda: ["09:00", "15:00", "21:00"])
    timezone: str = "America/Sao_Paulo"
    days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    max_posts_per_day: int = Field(default=3, ge=1, le=50)
    min_interval_minutes: int = Field(default=180, ge=0, le=1440)
    randomize_minutes: int = Field(default=30, ge=0, le=120)

    @field_validator("times")
    @classmethod
    def validate_times(cls, v: List[str]) -> List[str]:
        for item in v:
            if not _TIME_PATTERN.match(item):
                raise ValueError(f"Invalid time {item!r}, expected HH:MM")
        return sorted(set(v))

    @field_validator("days")
    @classmethod
    def validate_days(cls, v: List[int]) -> List[int]:
        if not v:
            raise ValueError("At least one posting day is required")
        for day in v:
            if day < 1 or day > 7:
                raise ValueError(f"Invalid weekday {day}, expected 1-7")
        return sorted(set(v))


class SocialAccount(FirestoreModel):
    account_id: str = Field(..., min_length=1, max_length=100)
    user_id: str = Field(..., min_length=1, max_length=128)
    platform: str

    username: Optional[str] = None
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    platform_user_id: Optional[str] = None
    ayrshare_profile_key: Optional[str] = None

    connection_status: str = "pending"
    is_active: bool = True
    is_demo: bool = False
    posting_schedule: PostingSchedule = Field(default_factory=PostingSchedule)
    default_hashtags: List[str] = Field(default_factory=list, max_length=30)

    total_posts: int = Field(default=0, ge=0)
    last_post_at: Optional[datetime] = None
    last_refreshed_at: Optional[datetime] = None
    last_error_message: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    @field_validator("connection_status")
    @classmethod
    def validate_connection_status(cls, v: str) -> str:
        if v not in CONNECTION_STATUSES:
            raise ValueError(f"Invalid connection status: {v}")
        return v


class SocialPost(FirestoreModel):
    post_id: str = Field(..., min_length=1, max_length=100)
    user_id: str = Field(..., min_length=1, max_length=128)
    clip_id: str
    video_id: Optional[str] = None
    social_account_id: str
    platform: str

    content: str = ""
    hashtags: List[str] = Field(default_factory=list)
    mentions: List[str] = Field(default_factory=list)

    status: str = "scheduled"
    schedule_type: str = "now"
    scheduled_for: datetime
    posted_at: Optional[datetime] = None
    ayrshare_post_id: Optional[str] = None
    platform_post_url: Optional[str] = None
    failure_reason: Optional[str] = None

    # Engagement, filled in by analytics sync
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    comments: int = Field(default=0, ge=0)
    shares: int = Field(default=0, ge=0)

    created_at: datetime
    updated_at: datetime

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in POST_STATUSES:
            raise ValueError(f"Invalid status: {v}. Must be one of: {', '.join(POST_STATUSES)}")
        return v

    @property
    def engagement(self) -> int:
        return self.likes + self.comments + self.shares


# -----------------------------------------------------------------------------
# Profile
# -----------------------------------------------------------------------------

class ProcessingPreferences(BaseModel):
    """Clip generation defaults; durations stay inside the 15-90s clip range."""

    platforms: List[str] = Field(default_factory=lambda: ["tiktok", "instagram"])
    max_clips: int = Field(default=3, ge=1, le=20)
    min_duration: int = Field(default=15, ge=15, le=90)
    max_duration: int = Field(default=60, ge=15, le=90)
    language: Optional[str] = None

    @model_validator(mode="after")
    def check_bounds(self) -> "ProcessingPreferences":
        if self.min_duration > self.max_duration:
            raise ValueError("min_duration must not exceed max_duration")
        return self


class Profile(FirestoreModel):
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    plan_type: str = "free"

    usage_videos_current_month: int = Field(default=0, ge=0)
    usage_storage_bytes: int = Field(default=0, ge=0)
    usage_reset_date: datetime

    processing_preferences: ProcessingPreferences = Field(default_factory=ProcessingPreferences)

    created_at: datetime
    updated_at: datetime

    @field_validator("plan_type")
    @classmethod
    def normalize_plan(cls, v: str) -> str:
        return v if v in PLAN_TYPES else "free"


class TranscriptionLog(FirestoreModel):
    video_id: str
    user_id: str
    provider: str
    language: str
    word_count: int = Field(default=0, ge=0)
    segment_count: int = Field(default=0, ge=0)
    duration_seconds: float = Field(default=0, ge=0)
    processing_seconds: float = Field(default=0, ge=0)
    cost_estimate_usd: float = Field(default=0, ge=0)
    cached: bool = False
    created_at: datetime
