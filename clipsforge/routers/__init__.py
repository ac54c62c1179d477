"""API routers."""

from clipsforge.routers import analytics, clips, processing, settings, social, videos

__all__ = ["analytics", "clips", "processing", "settings", "social", "videos"]
