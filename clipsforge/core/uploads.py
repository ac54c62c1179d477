"""
Video upload lifecycle.

The browser uploads straight to Cloudinary. The API only checks plan limits,
creates the video record and signs the upload; the browser then reports the
Cloudinary result back through :func:`confirm_upload`.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from clipsforge.core import storage
from clipsforge.core.cloudinary_client import CloudinaryClient, thumbnail_url
from clipsforge.core.exceptions import (
    ProcessingConflictError,
    ProviderError,
    QuotaExceededError,
    UploadRejectedError,
)
from clipsforge.core.plans import PlanService, get_plan_service, next_usage_reset
from clipsforge.core.plans.models import Plan
from clipsforge.core.repositories import NotFoundError, ProfileRepository, VideoRepository
from clipsforge.core.repositories.base import utcnow
from clipsforge.core.repositories.models import Profile, VideoRecord
from clipsforge.core.security import (
    MAX_TITLE_LENGTH,
    sanitize_text,
    validate_media_url,
    validate_upload_file,
)

logger = logging.getLogger(__name__)

THUMBNAIL_OFFSET_SECONDS = 1.0


@dataclass
class UploadTicket:
    """What the browser needs to upload the file."""

    video: VideoRecord
    demo_mode: bool
    upload_url: Optional[str] = None
    upload_params: Optional[Dict[str, Any]] = None


def ensure_usage_window(profiles: ProfileRepository, profile: Profile, now: Optional[datetime] = None) -> Profile:
    """Reset the monthly counters once ``usage_reset_date`` has passed."""
    now = now or utcnow()
    if profile.usage_reset_date > now:
        return profile

    next_reset = next_usage_reset(now)
    profiles.reset_monthly_usage(next_reset)
    logger.info(f"Reset monthly usage for user {profile.user_id}, next reset {next_reset.date()}")
    return profile.model_copy(update={"usage_videos_current_month": 0, "usage_reset_date": next_reset})


def check_upload_limits(plan: Plan, profile: Profile, file_size_bytes: int) -> None:
    """
    Raise when the upload would break a plan limit.

    Raises:
        UploadRejectedError: (413) the file is larger than the plan allows.
        QuotaExceededError: (429) monthly video count or storage is exhausted.
    """
    if file_size_bytes > plan.max_file_size_bytes:
        raise UploadRejectedError(
            f"File too large. Maximum for the {plan.name} plan is {plan.max_file_size_mb}MB",
            status_code=413,
        )

    if not plan.allows_more_videos(profile.usage_videos_current_month):
        raise QuotaExceededError(
            f"Monthly limit reached: {plan.videos_per_month} video(s) per month on the {plan.name} plan"
        )

    if profile.usage_storage_bytes + file_size_bytes > plan.max_storage_bytes:
        raise QuotaExceededError(f"Storage limit reached for the {plan.name} plan")


def init_upload(
    user_id: str,
    filename: str,
    content_type: Optional[str],
    file_size_bytes: int,
    title: Optional[str] = None,
    *,
    videos: Optional[VideoRepository] = None,
    profiles: Optional[ProfileRepository] = None,
    cloudinary: Optional[CloudinaryClient] = None,
    plans: Optional[PlanService] = None,
    email: Optional[str] = None,
) -> UploadTicket:
    """Validate, enforce limits, create the video record and sign the upload."""
    extension = validate_upload_file(filename, content_type)

    videos = videos or VideoRepository(user_id)
    profiles = profiles or ProfileRepository(user_id)
    cloudinary = cloudinary or CloudinaryClient()
    plans = plans or get_plan_service()

    profile = ensure_usage_window(profiles, profiles.get_or_create(email=email))
    plan = plans.get_plan(profile.plan_type)
    check_upload_limits(plan, profile, file_size_bytes)

    demo_mode = not cloudinary.configured
    now = utcnow()
    video = VideoRecord(
        video_id=uuid.uuid4().hex,
        user_id=user_id,
        title=sanitize_text(title or filename.rsplit(".", 1)[0], MAX_TITLE_LENGTH) or "Untitled video",
        original_filename=filename,
        content_type=content_type,
        file_size_bytes=file_size_bytes,
        format=extension.lstrip(".") or None,
        status="demo_mode" if demo_mode else "uploading",
        created_at=now,
        updated_at=now,
    )

    ticket = UploadTicket(video=video, demo_mode=demo_mode)
    if not demo_mode:
        ticket.upload_url = cloudinary.upload_url
        ticket.upload_params = cloudinary.build_upload_params(user_id, video.video_id, filename)
        # confirm_upload only accepts a result for this public id
        video.cloudinary_public_id = ticket.upload_params["public_id"]
    else:
        logger.info(f"Cloudinary not configured, video {video.video_id} created in demo mode")

    videos.create_video(video)
    profiles.record_upload(file_size_bytes)
    logger.info(
        f"Upload initialized: user={user_id} video={video.video_id} "
        f"size={video.file_size_mb}MB plan={plan.id}"
    )
    return ticket


def _check_upload_result(
    video: VideoRecord,
    secure_url: str,
    public_id: Optional[str],
    cloudinary: CloudinaryClient,
) -> str:
    """The validated ``secure_url`` of a result that belongs to ``video``."""
    secure_url = validate_media_url(secure_url, field="secure_url")
    if not cloudinary.is_delivery_url(secure_url):
        raise UploadRejectedError("secure_url is not a Cloudinary delivery URL")

    # Cloudinary may prefix the signed public id with the folder
    expected = video.cloudinary_public_id
    if expected and not (public_id or "").endswith(expected):
        raise UploadRejectedError("Upload result does not belong to this video")
    return secure_url


def confirm_upload(
    user_id: str,
    video_id: str,
    result: Dict[str, Any],
    *,
    videos: Optional[VideoRepository] = None,
    profiles: Optional[ProfileRepository] = None,
    plans: Optional[PlanService] = None,
    cloudinary: Optional[CloudinaryClient] = None,
) -> VideoRecord:
    """
    Store the Cloudinary upload result and mark the video ``uploaded``.

    ``result`` is the Cloudinary upload response (``secure_url``,
    ``public_id``, ``bytes``, ``duration``, ``format``). Only a video still
    in ``uploading`` can be confirmed, and only with a URL on this cloud.
    """
    videos = videos or VideoRepository(user_id)
    profiles = profiles or ProfileRepository(user_id)
    plans = plans or get_plan_service()
    cloudinary = cloudinary or CloudinaryClient()

    video = videos.get_video(video_id)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")

    if video.status != "uploading":
        raise ProcessingConflictError(f"Video {video_id} is not awaiting an upload ({video.status})")

    if not result.get("secure_url"):
        raise UploadRejectedError("Upload result has no secure_url")
    secure_url = _check_upload_result(video, result["secure_url"], result.get("public_id"), cloudinary)

    duration = result.get("duration")
    plan = plans.get_plan(profiles.get_or_create().plan_type)
    if duration is not None and float(duration) > plan.max_duration_seconds:
        message = f"Video too long. Maximum for the {plan.name} plan is {plan.max_duration_minutes} minutes"
        videos.update_status(video_id, "error", error_message=message)
        raise UploadRejectedError(message, status_code=413)

    fields: Dict[str, Any] = {
        "cloudinary_secure_url": secure_url,
        "cloudinary_public_id": result.get("public_id"),
        "thumbnail_url": thumbnail_url(secure_url, THUMBNAIL_OFFSET_SECONDS),
        "format": result.get("format") or video.format,
    }
    if duration is not None:
        fields["duration_seconds"] = round(float(duration), 2)
    if result.get("bytes"):
        fields["file_size_bytes"] = int(result["bytes"])

    videos.update_status(video_id, "uploaded", extra=fields)
    logger.info(f"Upload confirmed for video {video_id} ({fields.get('duration_seconds')}s)")
    return videos.get_video(video_id) or video


async def delete_video(
    user_id: str,
    video_id: str,
    *,
    videos: Optional[VideoRepository] = None,
    profiles: Optional[ProfileRepository] = None,
    cloudinary: Optional[CloudinaryClient] = None,
) -> bool:
    """
    Delete a video with its clips and analysis.

    The Cloudinary asset and R2 artifacts are removed on a best-effort basis;
    failures there are logged and do not block the database deletion.
    """
    videos = videos or VideoRepository(user_id)
    profiles = profiles or ProfileRepository(user_id)
    cloudinary = cloudinary or CloudinaryClient()

    video = videos.get_video(video_id)
    if video is None:
        return False

    if video.cloudinary_public_id:
        try:
            await cloudinary.destroy(video.cloudinary_public_id)
        except ProviderError as e:
            logger.warning(f"Failed to delete Cloudinary asset for {video_id}: {e}")

    try:
        await asyncio.to_thread(storage.delete_video_artifacts, user_id, video_id)
    except Exception as e:
        logger.warning(f"Failed to delete archived artifacts for {video_id}: {e}")

    deleted = videos.delete_video(video_id, delete_clips=True)
    if deleted:
        profiles.release_storage(video.file_size_bytes)
    return deleted

