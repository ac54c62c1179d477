"""
HTTP middleware stack for ClipsForge.

Provides:
- Request ID injection
- IP rate limiting
- Security headers
- Request/response logging
- Error sanitization
"""

from clipsforge.middleware.request_id import RequestIDMiddleware
from clipsforge.middleware.rate_limit import RateLimitMiddleware
from clipsforge.middleware.security_headers import SecurityHeadersMiddleware
from clipsforge.middleware.logging import RequestLoggingMiddleware
from clipsforge.middleware.error_sanitization import ErrorSanitizationMiddleware

__all__ = [
    "RequestIDMiddleware",
    "RateLimitMiddleware",
    "SecurityHeadersMiddleware",
    "RequestLoggingMiddleware",
    "ErrorSanitizationMiddleware",
]
