"""
Pydantic models for request/response validation.

Provides type-safe, validated data structures for all API endpoints.
Stored records (videos, clips, accounts, posts) are returned as their
repository models; the schemas here cover what the client sends and the
envelopes around those records.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from clipsforge.core.repositories.models import (
    ClipRecord,
    ContentAnalysis,
    SocialAccount,
    SocialPost,
    VideoRecord,
)
from clipsforge.core.security import (
    MAX_DESCRIPTION_LENGTH,
    MAX_FILENAME_LENGTH,
    MAX_HASHTAGS,
    MAX_TITLE_LENGTH,
    sanitize_text,
    validate_platform,
    validate_platforms,
    validate_resource_id,
    validate_schedule_type,
    validate_video_id,
)


# -----------------------------------------------------------------------------
# Base Models
# -----------------------------------------------------------------------------

class BaseSchema(BaseModel):
    """Base schema with common configuration."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        str_min_length=0,
    )


def _optional_text(v: Optional[str], max_length: int) -> Optional[str]:
    if v:
        return sanitize_text(v, max_length)
    return v


# -----------------------------------------------------------------------------
# WebSocket Messages
# -----------------------------------------------------------------------------

class WSProcessRequest(BaseSchema):
    """WebSocket video processing request."""
    token: str = Field(..., min_length=1, description="Firebase auth token")
    video_id: str = Field(..., min_length=1, description="Uploaded video to process")
    preferences: Optional["PreferencesPayload"] = None

    @field_validator("video_id")
    @classmethod
    def validate_video_id_field(cls, v: str) -> str:
        return validate_video_id(v)


# -----------------------------------------------------------------------------
# Shared payloads
# -----------------------------------------------------------------------------

class PreferencesPayload(BaseSchema):
    """Clip generation preferences sent by the client."""
    platforms: Optional[List[str]] = Field(default=None, max_length=6)
    max_clips: Optional[int] = Field(default=None, ge=1, le=20)
    min_duration: Optional[int] = Field(default=None, ge=15, le=90)
    max_duration: Optional[int] = Field(default=None, ge=15, le=90)
    language: Optional[str] = Field(default=None, max_length=10)

    @field_validator("platforms")
    @classmethod
    def validate_platforms_field(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return validate_platforms(v)

    def overrides(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


WSProcessRequest.model_rebuild()


# -----------------------------------------------------------------------------
# Videos
# -----------------------------------------------------------------------------

class UploadInitRequest(BaseSchema):
    filename: str = Field(..., min_length=1, max_length=MAX_FILENAME_LENGTH)
    content_type: str = Field(..., min_length=1, max_length=100)
    file_size_bytes: int = Field(..., gt=0)
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v, MAX_TITLE_LENGTH)


class UploadInitResponse(BaseModel):
    video_id: str
    demo_mode: bool
    upload_url: Optional[str] = None
    upload_params: Optional[Dict[str, Any]] = None
    video: VideoRecord


class UploadConfirmRequest(BaseSchema):
    """Result of the browser's direct upload to Cloudinary."""
    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    secure_url: Optional[str] = Field(default=None, max_length=2048)
    public_id: Optional[str] = Field(default=None, max_length=500)
    bytes: Optional[int] = Field(default=None, ge=0)
    duration: Optional[float] = Field(default=None, ge=0)
    format: Optional[str] = Field(default=None, max_length=20)

    def upload_result(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class VideoListResponse(BaseModel):
    videos: List[VideoRecord]


class VideoDetailResponse(BaseModel):
    video: VideoRecord
    analysis: Optional[ContentAnalysis] = None
    clips: List[ClipRecord] = Field(default_factory=list)


class DeleteVideoResponse(BaseModel):
    success: bool
    video_id: str
    message: str


class ProcessVideoRequest(BaseSchema):
    preferences: Optional[PreferencesPayload] = None


class ProcessVideoResponse(BaseModel):
    video_id: str
    status: str
    message: str


# -----------------------------------------------------------------------------
# Clips
# -----------------------------------------------------------------------------

class ClipListResponse(BaseModel):
    clips: List[ClipRecord]


class RegenerateClipsRequest(BaseSchema):
    preferences: Optional[PreferencesPayload] = None
    keep_existing: bool = False


class ManualClipRequest(BaseSchema):
    video_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=MAX_TITLE_LENGTH)
    start_time: float = Field(..., ge=0)
    end_time: float = Field(..., gt=0)
    subtitles: Optional[str] = Field(default=None, max_length=500)
    platform: str = "tiktok"

    @field_validator("video_id")
    @classmethod
    def validate_video_id_field(cls, v: str) -> str:
        return validate_video_id(v)

    @field_validator("platform")
    @classmethod
    def validate_platform_field(cls, v: str) -> str:
        return validate_platform(v)


class ClipResponse(BaseModel):
    clip: ClipRecord


class RenderStatusResponse(BaseModel):
    checked: int
    ready: int
    failed: int
    processing: int


# -----------------------------------------------------------------------------
# Social
# -----------------------------------------------------------------------------

class ConnectAccountRequest(BaseSchema):
    platform: str

    @field_validator("platform")
    @classmethod
    def validate_platform_field(cls, v: str) -> str:
        return validate_platform(v)


class ConnectAccountResponse(BaseModel):
    account: SocialAccount
    link_url: Optional[str] = None
    demo_mode: bool = False


class AccountListResponse(BaseModel):
    accounts: List[SocialAccount]


class AccountResponse(BaseModel):
    account: SocialAccount


class AccountSettingsRequest(BaseSchema):
    posting_schedule: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None
    default_hashtags: Optional[List[str]] = Field(default=None, max_length=MAX_HASHTAGS)

    @model_validator(mode="after")
    def require_change(self) -> "AccountSettingsRequest":
        if self.posting_schedule is None and self.is_active is None and self.default_hashtags is None:
            raise ValueError("Nothing to update")
        return self


class SchedulePostRequest(BaseSchema):
    clip_id: str = Field(..., min_length=1)
    account_ids: List[str] = Field(..., min_length=1, max_length=20)
    schedule_type: str = "now"
    scheduled_for: Optional[datetime] = None
    title: Optional[str] = Field(default=None, max_length=MAX_TITLE_LENGTH)
    description: Optional[str] = Field(default=None, max_length=MAX_DESCRIPTION_LENGTH)
    hashtags: List[str] = Field(default_factory=list, max_length=MAX_HASHTAGS)
    mentions: List[str] = Field(default_factory=list, max_length=20)

    @field_validator("clip_id")
    @classmethod
    def validate_clip_id(cls, v: str) -> str:
        return validate_resource_id(v, field="clip_id")

    @field_validator("account_ids")
    @classmethod
    def validate_account_ids(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(validate_resource_id(a, field="account_id") for a in v))

    @field_validator("schedule_type")
    @classmethod
    def validate_schedule_type_field(cls, v: str) -> str:
        return validate_schedule_type(v)

    @field_validator("title")
    @classmethod
    def sanitize_title(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v, MAX_TITLE_LENGTH)

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v, MAX_DESCRIPTION_LENGTH)

    @model_validator(mode="after")
    def require_custom_time(self) -> "SchedulePostRequest":
        if self.schedule_type == "custom" and self.scheduled_for is None:
            raise ValueError("scheduled_for is required when schedule_type is custom")
        return self


class SchedulePostResponse(BaseModel):
    success: bool
    posts: List[SocialPost]
    errors: List[Dict[str, str]] = Field(default_factory=list)


class PostListResponse(BaseModel):
    posts: List[SocialPost]


class PostResponse(BaseModel):
    post: SocialPost


# -----------------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------------

class SettingsUpdateRequest(BaseSchema):
    """Request to update profile settings."""
    display_name: Optional[str] = Field(default=None, max_length=100)
    processing_preferences: Optional[PreferencesPayload] = None

    @field_validator("display_name")
    @classmethod
    def sanitize_display_name(cls, v: Optional[str]) -> Optional[str]:
        return _optional_text(v, 100)


class SettingsResponse(BaseModel):
    profile: Dict[str, Any]
    plan: Dict[str, Any]
    usage: Dict[str, Any]
    limits: Dict[str, Any]
    processing_preferences: Dict[str, Any]


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime


class ReadinessResponse(BaseModel):
    status: str
    integrations: Dict[str, str]
