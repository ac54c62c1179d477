"""
Security Constants

Centralized constants for security module.
"""

from clipsforge.config import (
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    WS_RATE_LIMIT_CONNECTIONS,
    WS_RATE_LIMIT_WINDOW,
)

# Accepted uploads
ALLOWED_VIDEO_MIME_TYPES = frozenset({
    "video/mp4",
    "video/quicktime",
    "video/x-msvideo",
    "video/webm",
    "video/x-matroska",
    "application/octet-stream",  # browsers send this for .mkv
})
ALLOWED_VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".webm", ".mkv"})

# Extension recorded for a file whose name does not carry a known one
MIME_EXTENSIONS = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
    "video/webm": ".webm",
    "video/x-matroska": ".mkv",
}

# Social platforms we can publish to
SUPPORTED_PLATFORMS = frozenset({
    "tiktok",
    "instagram",
    "youtube",
    "twitter",
    "linkedin",
    "facebook",
})

SCHEDULE_TYPES = frozenset({"now", "optimal", "custom"})

# Maximum lengths for user inputs
MAX_URL_LENGTH = 2048
MAX_FILENAME_LENGTH = 255
MAX_TITLE_LENGTH = 500
MAX_DESCRIPTION_LENGTH = 5000
MAX_HASHTAGS = 30

# Rate limiting defaults
DEFAULT_RATE_LIMIT = RATE_LIMIT_REQUESTS  # requests per window
DEFAULT_RATE_WINDOW = RATE_LIMIT_WINDOW  # seconds
WEBSOCKET_RATE_LIMIT = WS_RATE_LIMIT_CONNECTIONS  # connections per window
WEBSOCKET_RATE_WINDOW = WS_RATE_LIMIT_WINDOW  # seconds

# Request ID header
REQUEST_ID_HEADER = "X-Request-ID"
