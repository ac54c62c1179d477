"""
Rate Limiting Module

Thread-safe in-memory rate limiter. Each worker keeps its own counters,
so limits are per process.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Optional, Tuple

from fastapi import HTTPException, Request, status
from starlette.requests import HTTPConnection

from clipsforge.core.security.constants import (
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW,
    WEBSOCKET_RATE_LIMIT,
    WEBSOCKET_RATE_WINDOW,
)
from clipsforge.core.security.utils import get_client_ip, log_security_event


@dataclass
class RateLimitEntry:
    """Tracks rate limit state for a single key."""
    count: int = 0
    window_start: float = field(default_factory=time.time)


class RateLimiter:
    """Fixed-window counter keyed by user or client IP."""

    def __init__(self, limit: int = DEFAULT_RATE_LIMIT, window: int = DEFAULT_RATE_WINDOW):
        self._limit = limit
        self._window = window
        self._entries: Dict[str, RateLimitEntry] = defaultdict(RateLimitEntry)
        self._lock = Lock()
        self._cleanup_counter = 0
        self._cleanup_threshold = 1000  # checks between sweeps

    @property
    def limit(self) -> int:
        return self._limit

    def _cleanup_expired(self) -> None:
        now = time.time()
        expired_keys = [
            key for key, entry in self._entries.items()
            if now - entry.window_start > self._window * 2
        ]
        for key in expired_keys:
            del self._entries[key]

    def is_allowed(self, key: str) -> Tuple[bool, int, int]:
        """
        Check if request is allowed under rate limit.

        Returns:
            Tuple of (allowed, remaining, seconds_until_reset)
        """
        now = time.time()

        with self._lock:
            self._cleanup_counter += 1
            if self._cleanup_counter >= self._cleanup_threshold:
                self._cleanup_expired()
                self._cleanup_counter = 0

            entry = self._entries[key]

            if now - entry.window_start > self._window:
                entry.count = 0
                entry.window_start = now

            reset_time = max(int(entry.window_start + self._window - now), 1)

            if entry.count >= self._limit:
                return False, 0, reset_time

            entry.count += 1
            return True, self._limit - entry.count, reset_time

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_key_for_request(self, conn: HTTPConnection, user_id: Optional[str] = None) -> str:
        if user_id:
            return f"user:{user_id}"
        return f"ip:{get_client_ip(conn)}"


# Global rate limiters
_api_limiter = RateLimiter(limit=DEFAULT_RATE_LIMIT, window=DEFAULT_RATE_WINDOW)
_ws_limiter = RateLimiter(limit=WEBSOCKET_RATE_LIMIT, window=WEBSOCKET_RATE_WINDOW)


def get_api_rate_limiter() -> RateLimiter:
    """Get the global API rate limiter."""
    return _api_limiter


def get_ws_rate_limiter() -> RateLimiter:
    """Get the global WebSocket rate limiter."""
    return _ws_limiter


def check_rate_limit(request: Request, user_id: Optional[str] = None) -> None:
    """
    Apply the API limit for a user, raising 429 when exhausted.

    Routes that fan out to paid vendors call this with the caller's uid
    in addition to the IP limit applied by the middleware.
    """
    limiter = get_api_rate_limiter()
    key = limiter.get_key_for_request(request, user_id)
    allowed, remaining, reset = limiter.is_allowed(key)

    request.state.rate_limit_remaining = remaining
    request.state.rate_limit_reset = reset

    if not allowed:
        log_security_event(
            "rate_limit_exceeded",
            request=request,
            user_id=user_id,
            details={"key": key, "reset_seconds": reset},
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit exceeded. Try again in {reset} seconds.",
            headers={
                "Retry-After": str(reset),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(reset),
            },
        )


def check_ws_rate_limit(conn: HTTPConnection, user_id: Optional[str] = None) -> bool:
    """Return True if a new WebSocket connection is allowed."""
    limiter = get_ws_rate_limiter()
    key = limiter.get_key_for_request(conn, user_id)
    allowed, _, reset = limiter.is_allowed(key)

    if not allowed:
        log_security_event(
            "ws_rate_limit_exceeded",
            request=conn,
            user_id=user_id,
            details={"key": key, "reset_seconds": reset},
        )

    return allowed
