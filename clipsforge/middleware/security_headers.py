"""
Security Headers Middleware

The service is a JSON API consumed by a separate frontend, so the CSP
denies everything and API responses are never cached.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"

PERMISSIONS_POLICY = ", ".join([
    "camera=()",
    "geolocation=()",
    "microphone=()",
    "payment=()",
    "usb=()",
])


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, hsts_max_age: int = 31536000, include_subdomains: bool = True):
        super().__init__(app)
        hsts = f"max-age={hsts_max_age}"
        if include_subdomains:
            hsts += "; includeSubDomains"
        self.hsts_header = hsts

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Strict-Transport-Security", self.hsts_header)
        response.headers.setdefault("Permissions-Policy", PERMISSIONS_POLICY)

        # Interactive docs need scripts and styles
        if not request.url.path.startswith(("/docs", "/redoc")):
            response.headers.setdefault("Content-Security-Policy", API_CSP)

        if request.url.path.startswith("/api"):
            response.headers.setdefault("Cache-Control", "no-store, no-cache, must-revalidate, private")
            response.headers.setdefault("Pragma", "no-cache")
        return response
