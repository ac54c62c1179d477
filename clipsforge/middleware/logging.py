"""
Request Logging Middleware

One line per request and one per response, correlated by request ID.
"""

import time
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from clipsforge.config import logger
from clipsforge.core.security.utils import get_client_ip

DEFAULT_EXCLUDED_PATHS = frozenset({"/health", "/healthz", "/ready"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, exclude_paths: Optional[set] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or DEFAULT_EXCLUDED_PATHS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        started = time.perf_counter()
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            "Request: %s %s | client=%s | request_id=%s",
            request.method,
            request.url.path,
            get_client_ip(request),
            request_id,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed: %s %s | error=%s | duration=%.2fms | request_id=%s",
                request.method,
                request.url.path,
                exc,
                (time.perf_counter() - started) * 1000,
                request_id,
            )
            raise

        logger.info(
            "Response: %s %s | status=%d | duration=%.2fms | request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
            request_id,
        )
        return response
