"""
Rate Limiting Middleware

Per-IP limit on every HTTP route. Routes that call paid vendors add a
per-user limit on top with ``check_rate_limit``.
"""

from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from clipsforge.core.security import get_api_rate_limiter, log_security_event

DEFAULT_EXCLUDED_PREFIXES = frozenset({"/health", "/healthz", "/ready"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, exclude_paths: Optional[set] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or DEFAULT_EXCLUDED_PREFIXES

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if any(path.startswith(p) for p in self.exclude_paths):
            return await call_next(request)

        # WebSocket upgrades have their own connection limiter
        if request.headers.get("upgrade", "").lower() == "websocket":
            return await call_next(request)

        limiter = get_api_rate_limiter()
        key = limiter.get_key_for_request(request)
        allowed, remaining, reset = limiter.is_allowed(key)

        if not allowed:
            log_security_event(
                "rate_limit_exceeded",
                request=request,
                details={"key": key, "reset_seconds": reset},
            )
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Please try again later."},
                headers={
                    "Retry-After": str(reset),
                    "X-RateLimit-Limit": str(limiter.limit),
                    "X-RateLimit-Remaining": "0",
                    "X-RateLimit-Reset": str(reset),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limiter.limit)
        response.headers["X-RateLimit-Remaining"] = str(remaining)
        response.headers["X-RateLimit-Reset"] = str(reset)
        return response
