"""ClipsForge - FastAPI Application Entry Point.

Production-hardened with:
- Security middleware stack
- Rate limiting
- Request ID tracking
- Error sanitization
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from clipsforge.config import ALLOWED_HOSTS, CORS_ORIGINS, DEBUG, logger
from clipsforge.core import storage
from clipsforge.core.analysis import ContentAnalyzer
from clipsforge.core.ayrshare_client import AyrshareClient
from clipsforge.core.cloudinary_client import CloudinaryClient
from clipsforge.core.shotstack_client import ShotstackClient
from clipsforge.core.whisper_client import WhisperClient
from clipsforge.middleware import (
    ErrorSanitizationMiddleware,
    RateLimitMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from clipsforge.routers import analytics, clips, processing, settings, social, videos
from clipsforge.schemas import HealthResponse, ReadinessResponse
from clipsforge.version import __version__

HEALTH_PATHS = {"/health", "/healthz", "/ready"}


def integration_modes() -> dict:
    """``live`` or ``simulation`` for every vendor integration."""

    def mode(configured: bool) -> str:
        return "live" if configured else "simulation"

    return {
        "cloudinary": mode(CloudinaryClient().configured),
        "whisper": mode(WhisperClient().configured),
        "analysis": mode(not ContentAnalyzer().simulated),
        "shotstack": mode(ShotstackClient().configured),
        "ayrshare": mode(AyrshareClient().configured),
        "archive": mode(storage.is_configured()),
    }


# -----------------------------------------------------------------------------
# Application Lifespan
# -----------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Starting ClipsForge v%s", __version__)
    simulated = [name for name, value in integration_modes().items() if value == "simulation"]
    if simulated:
        logger.warning("Running in simulation mode for: %s", ", ".join(simulated))
    yield
    logger.info("Shutting down ClipsForge")


# -----------------------------------------------------------------------------
# Application Factory
# -----------------------------------------------------------------------------

def create_app(debug: bool = DEBUG) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="ClipsForge",
        version=__version__,
        lifespan=lifespan,
        # Docs only outside production
        docs_url="/docs" if debug else None,
        redoc_url="/redoc" if debug else None,
        openapi_url="/openapi.json" if debug else None,
    )

    # -------------------------------------------------------------------------
    # Middleware Stack (order matters - first added = last executed)
    # -------------------------------------------------------------------------

    # 1. Error sanitization (outermost - catches all errors)
    app.add_middleware(ErrorSanitizationMiddleware, debug=debug)

    # 2. Request logging
    app.add_middleware(RequestLoggingMiddleware, exclude_paths=HEALTH_PATHS)

    # 3. Security headers
    app.add_middleware(SecurityHeadersMiddleware)

    # 4. Rate limiting
    app.add_middleware(RateLimitMiddleware, exclude_paths=HEALTH_PATHS)

    # 5. Request ID injection
    app.add_middleware(RequestIDMiddleware)

    # 6. Trusted hosts
    if ALLOWED_HOSTS and ALLOWED_HOSTS != ["*"]:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=ALLOWED_HOSTS)

    # 7. CORS (innermost middleware for preflight handling)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
        max_age=600,
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Pydantic validation errors with clean messages (at most five)."""
        clean_errors = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()[:5]
        ]
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": clean_errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    # -------------------------------------------------------------------------
    # Health Check Endpoints
    # -------------------------------------------------------------------------

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    @app.get("/healthz", response_model=HealthResponse, include_in_schema=False)
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers and orchestrators."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc),
        )

    @app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
    async def readiness_check() -> ReadinessResponse:
        """Which vendor integrations are live and which are simulated."""
        return ReadinessResponse(status="ready", integrations=integration_modes())

    # -------------------------------------------------------------------------
    # Routers
    # -------------------------------------------------------------------------

    app.include_router(videos.router)
    app.include_router(processing.router)
    app.include_router(clips.router)
    app.include_router(social.router)
    app.include_router(analytics.router)
    app.include_router(settings.router)

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "clipsforge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=DEBUG,
        limit_concurrency=100,
    )
