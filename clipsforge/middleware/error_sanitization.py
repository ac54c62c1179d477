"""
Error Sanitization Middleware

Replaces 5xx bodies with a generic message outside debug mode. The full
error is only ever written to the server log.
"""

from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from clipsforge.config import logger


def internal_error_response(request: Request) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Sanitizes server errors.

    Vendor failures (502) keep their body: the detail names the provider,
    not internals. Everything else at 500 or above is replaced.
    """

    passthrough_statuses = frozenset({502, 503})

    def __init__(self, app: ASGIApp, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:
            request_id = getattr(request.state, "request_id", "unknown")
            logger.exception("Unhandled exception in request %s: %s", request_id, exc)
            if self.debug:
                raise
            return internal_error_response(request)

        if (
            response.status_code >= 500
            and response.status_code not in self.passthrough_statuses
            and not self.debug
        ):
            return internal_error_response(request)
        return response
