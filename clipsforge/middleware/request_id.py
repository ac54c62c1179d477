"""
Request ID Middleware

Every request carries an ID (the caller's X-Request-ID when well formed)
that is echoed back, used in sanitized errors and stamped on every log line
written while the request is served, background processing included.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from clipsforge.config import request_id_var
from clipsforge.core.security.constants import REQUEST_ID_HEADER
from clipsforge.core.security.utils import get_request_id


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = get_request_id(request)
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
