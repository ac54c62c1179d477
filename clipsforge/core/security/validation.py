"""
Input Validation Module

Validates and sanitizes user inputs to prevent security issues.
"""

import re
from pathlib import PurePosixPath
from typing import Iterable, List, Optional
from urllib.parse import urlparse

from clipsforge.core.security.constants import (
    ALLOWED_VIDEO_EXTENSIONS,
    ALLOWED_VIDEO_MIME_TYPES,
    MAX_FILENAME_LENGTH,
    MAX_URL_LENGTH,
    MIME_EXTENSIONS,
    SCHEDULE_TYPES,
    SUPPORTED_PLATFORMS,
)

_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


class ValidationError(ValueError):
    """Raised when input validation fails (a ValueError, so schema validators report it per field)."""
    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        super().__init__(message)


def validate_resource_id(value: str, field: str = "id") -> str:
    """
    Validate a document ID (prevents path traversal in Firestore paths).

    IDs should be alphanumeric with hyphens/underscores only.
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required", field=field)

    value = value.strip()

    if not _ID_PATTERN.match(value):
        raise ValidationError(f"Invalid {field} format", field=field)

    if len(value) > 100:
        raise ValidationError(f"{field} too long", field=field)

    return value


def validate_video_id(video_id: str) -> str:
    return validate_resource_id(video_id, field="video_id")


def validate_upload_file(filename: str, content_type: Optional[str]) -> str:
    """
    Validate an upload by extension or declared MIME type.

    Either one being recognised is enough.

    Returns:
        The lower-cased file extension (e.g. ``".mp4"``), taken from the MIME
        type when the name has none we know, or ``""`` when neither tells.
    """
    if not filename or not isinstance(filename, str):
        raise ValidationError("File name is required", field="filename")

    if len(filename) > MAX_FILENAME_LENGTH:
        raise ValidationError("File name too long", field="filename")

    extension = PurePosixPath(filename.strip().lower()).suffix
    mime = (content_type or "").split(";")[0].strip().lower()

    if extension in ALLOWED_VIDEO_EXTENSIONS:
        return extension
    if mime in ALLOWED_VIDEO_MIME_TYPES:
        return MIME_EXTENSIONS.get(mime, "")

    raise ValidationError(
        "Unsupported file type. Use MP4, MOV, AVI, WebM or MKV",
        field="filename",
    )


def sanitize_filename(filename: str, max_length: int = 100) -> str:
    """Reduce a file name to characters that are safe inside a Cloudinary public id."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    name = re.sub(r"[^a-zA-Z0-9._-]", "_", name)
    name = re.sub(r"_+", "_", name).strip("._")
    return name[:max_length] or "video"


def validate_platform(platform: str) -> str:
    if not platform or not isinstance(platform, str):
        raise ValidationError("Platform is required", field="platform")

    platform = platform.strip().lower()

    if platform not in SUPPORTED_PLATFORMS:
        raise ValidationError(
            f"Unsupported platform. Allowed: {', '.join(sorted(SUPPORTED_PLATFORMS))}",
            field="platform",
        )

    return platform


def validate_platforms(platforms: Iterable[str]) -> List[str]:
    """Validate a list of platforms, dropping duplicates but keeping order."""
    result: List[str] = []
    for platform in platforms:
        validated = validate_platform(platform)
        if validated not in result:
            result.append(validated)
    if not result:
        raise ValidationError("At least one platform is required", field="platforms")
    return result


def validate_schedule_type(schedule_type: str) -> str:
    schedule_type = (schedule_type or "").strip().lower()
    if schedule_type not in SCHEDULE_TYPES:
        raise ValidationError(
            f"Invalid schedule type. Allowed: {', '.join(sorted(SCHEDULE_TYPES))}",
            field="schedule_type",
        )
    return schedule_type


def validate_media_url(url: str, field: str = "url") -> str:
    """Validate an absolute http(s) URL returned by a media host."""
    if not url or not isinstance(url, str):
        raise ValidationError("URL is required", field=field)

    url = url.strip()

    if len(url) > MAX_URL_LENGTH:
        raise ValidationError(f"URL exceeds maximum length of {MAX_URL_LENGTH}", field=field)

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Invalid URL", field=field)

    return url


def sanitize_text(text: str, max_length: int = 1000) -> str:
    """
    Sanitize text input by removing potentially dangerous characters.

    Preserves most Unicode for internationalization.
    """
    if not text:
        return ""

    # Remove null bytes and control characters (except newlines/tabs)
    text = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", text)

    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
