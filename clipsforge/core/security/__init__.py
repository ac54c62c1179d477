"""
Security module for ClipsForge.

Provides:
- Rate limiting (in-memory, per process)
- Input validation and sanitization
- Request ID tracking
- Security utilities
"""

from clipsforge.core.security.constants import (
    ALLOWED_VIDEO_EXTENSIONS,
    ALLOWED_VIDEO_MIME_TYPES,
    MAX_DESCRIPTION_LENGTH,
    MAX_FILENAME_LENGTH,
    MAX_HASHTAGS,
    MAX_TITLE_LENGTH,
    MAX_URL_LENGTH,
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW,
    WEBSOCKET_RATE_LIMIT,
    WEBSOCKET_RATE_WINDOW,
    REQUEST_ID_HEADER,
    SCHEDULE_TYPES,
    SUPPORTED_PLATFORMS,
)
from clipsforge.core.security.rate_limiting import (
    RateLimiter,
    get_api_rate_limiter,
    get_ws_rate_limiter,
    check_rate_limit,
    check_ws_rate_limit,
)
from clipsforge.core.security.validation import (
    ValidationError,
    validate_resource_id,
    validate_video_id,
    validate_upload_file,
    sanitize_filename,
    validate_platform,
    validate_platforms,
    validate_schedule_type,
    validate_media_url,
    sanitize_text,
)
from clipsforge.core.security.utils import (
    generate_request_id,
    get_request_id,
    get_client_ip,
    hash_token,
    mask_sensitive_data,
    log_security_event,
)

__all__ = [
    # Constants
    "ALLOWED_VIDEO_EXTENSIONS",
    "ALLOWED_VIDEO_MIME_TYPES",
    "MAX_DESCRIPTION_LENGTH",
    "MAX_FILENAME_LENGTH",
    "MAX_HASHTAGS",
    "MAX_TITLE_LENGTH",
    "MAX_URL_LENGTH",
    "DEFAULT_RATE_LIMIT",
    "DEFAULT_RATE_WINDOW",
    "WEBSOCKET_RATE_LIMIT",
    "WEBSOCKET_RATE_WINDOW",
    "REQUEST_ID_HEADER",
    "SCHEDULE_TYPES",
    "SUPPORTED_PLATFORMS",
    # Rate limiting
    "RateLimiter",
    "get_api_rate_limiter",
    "get_ws_rate_limiter",
    "check_rate_limit",
    "check_ws_rate_limit",
    # Validation
    "ValidationError",
    "validate_resource_id",
    "validate_video_id",
    "validate_upload_file",
    "sanitize_filename",
    "validate_platform",
    "validate_platforms",
    "validate_schedule_type",
    "validate_media_url",
    "sanitize_text",
    # Utils
    "generate_request_id",
    "get_request_id",
    "get_client_ip",
    "hash_token",
    "mask_sensitive_data",
    "log_security_event",
]
