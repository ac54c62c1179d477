"""
Shotstack rendering.

A clip is described as a Shotstack edit: the trimmed source video at the
bottom, with title, subtitle and call-to-action overlays above it. Renders
are asynchronous; the id returned here is polled later.
"""

from typing import Any, Dict, List, Optional

import httpx

from clipsforge.config import SHOTSTACK_API_KEY, SHOTSTACK_ENVIRONMENT, VENDOR_TIMEOUT_SECONDS, logger
from clipsforge.core.exceptions import ProviderError

PROVIDER = "shotstack"

PLATFORM_OUTPUTS: Dict[str, Dict[str, Any]] = {
    "tiktok": {"width": 1080, "height": 1920, "aspect_ratio": "9:16"},
    "instagram": {"width": 1080, "height": 1080, "aspect_ratio": "1:1"},
    "youtube": {"width": 1920, "height": 1080, "aspect_ratio": "16:9"},
    "stories": {"width": 1080, "height": 1920, "aspect_ratio": "9:16"},
}
OUTPUT_FPS = 30
TITLE_SECONDS = 4
SUBTITLE_START = 1
CTA_SECONDS = 3
CTA_MIN_CLIP_SECONDS = 8
CTA_TEXT = "Siga para mais!"

# Shotstack render states that are still in flight
PENDING_STATES = frozenset({"queued", "fetching", "rendering", "saving"})


def platform_output(platform: str) -> Dict[str, Any]:
    return PLATFORM_OUTPUTS.get(platform.lower(), PLATFORM_OUTPUTS["tiktok"])


def build_edit(
    video_url: str,
    start: float,
    duration: float,
    title: str,
    subtitles: str = "",
    platform: str = "tiktok",
) -> Dict[str, Any]:
    """Build the Shotstack edit JSON for one clip."""
    output = platform_output(platform)
    overlays: List[Dict[str, Any]] = [
        {
            "clips": [{
                "asset": {"type": "title", "text": title, "style": "minimal", "size": "small"},
                "start": 0,
                "length": min(TITLE_SECONDS, duration),
                "position": "top",
                "transition": {"in": "fade", "out": "fade"},
            }]
        }
    ]

    if subtitles and duration > SUBTITLE_START:
        overlays.append({
            "clips": [{
                "asset": {"type": "title", "text": subtitles, "style": "subtitle", "size": "x-small"},
                "start": SUBTITLE_START,
                "length": round(duration - SUBTITLE_START, 2),
                "position": "bottom",
            }]
        })

    if duration > CTA_MIN_CLIP_SECONDS:
        overlays.append({
            "clips": [{
                "asset": {"type": "title", "text": CTA_TEXT, "style": "minimal", "size": "small"},
                "start": round(duration - CTA_SECONDS, 2),
                "length": CTA_SECONDS,
                "position": "center",
                "transition": {"in": "fade"},
            }]
        })

    video_track = {
        "clips": [{
            "asset": {"type": "video", "src": video_url, "trim": round(start, 2), "volume": 0.8},
            "start": 0,
            "length": round(duration, 2),
            "fit": "crop",
        }]
    }

    return {
        # Earlier tracks render on top
        "timeline": {"background": "#000000", "tracks": overlays + [video_track]},
        "output": {
            "format": "mp4",
            "fps": OUTPUT_FPS,
            "size": {"width": output["width"], "height": output["height"]},
            "quality": "medium",
        },
    }


class ShotstackClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        environment: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else SHOTSTACK_API_KEY
        self.environment = environment or SHOTSTACK_ENVIRONMENT
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def base_url(self) -> str:
        return f"https://api.shotstack.io/edit/{self.environment}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=VENDOR_TIMEOUT_SECONDS,
            transport=self._transport,
            headers={"x-api-key": self.api_key},
        )

    async def render(self, edit: Dict[str, Any]) -> str:
        """Queue a render and return its id."""
        try:
            async with self._client() as client:
                response = await client.post(f"{self.base_url}/render", json=edit)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                PROVIDER,
                f"render rejected: HTTP {exc.response.status_code} {exc.response.text[:200]}",
                upstream_status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"request failed: {exc}", retryable=True) from exc

        render_id = (response.json().get("response") or {}).get("id")
        if not render_id:
            raise ProviderError(PROVIDER, "render response has no id")
        logger.info("Shotstack render queued: %s", render_id)
        return render_id

    async def get_render(self, render_id: str) -> Dict[str, Any]:
        """Return ``{"status": ..., "url": ..., "error": ...}`` for a render."""
        try:
            async with self._client() as client:
                response = await client.get(f"{self.base_url}/render/{render_id}")
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                PROVIDER,
                f"status check failed: HTTP {exc.response.status_code}",
                upstream_status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"request failed: {exc}", retryable=True) from exc

        data = response.json().get("response") or {}
        return {
            "status": data.get("status", "unknown"),
            "url": data.get("url"),
            "error": data.get("error"),
        }
