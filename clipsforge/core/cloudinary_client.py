"""
Cloudinary integration.

Browsers upload source videos straight to Cloudinary with parameters signed
here, so the API never proxies video bytes. Clips that are not rendered by
Shotstack are served through Cloudinary trim transformations.
"""

import hashlib
import re
import secrets
import time
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import httpx

from clipsforge.config import (
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
    CLOUDINARY_CLOUD_NAME,
    CLOUDINARY_UPLOAD_PRESET,
    VENDOR_TIMEOUT_SECONDS,
    logger,
)
from clipsforge.core.exceptions import ProviderError
from clipsforge.core.security import sanitize_filename

API_BASE_URL = "https://api.cloudinary.com/v1_1"
DELIVERY_HOST = "res.cloudinary.com"

# Only these upload parameters take part in the signature
SIGNED_PARAMS = ("context", "folder", "public_id", "timestamp", "type", "upload_preset")


def format_seconds(value: float) -> str:
    """Render an offset the way Cloudinary expects (``12`` or ``12.5``)."""
    rounded = round(float(value), 1)
    return str(int(rounded)) if rounded.is_integer() else str(rounded)


def clip_url(secure_url: str, start: float, end: float) -> str:
    """Trimmed delivery URL for ``[start, end]`` of an uploaded video."""
    return secure_url.replace(
        "/upload/",
        f"/upload/so_{format_seconds(start)},eo_{format_seconds(end)}/",
        1,
    )


def thumbnail_url(secure_url: str, offset: float = 1.0) -> str:
    """JPEG frame grabbed at ``offset`` seconds."""
    url = secure_url.replace("/upload/", f"/upload/so_{format_seconds(offset)}/", 1)
    return re.sub(r"\.[A-Za-z0-9]+$", ".jpg", url)


def sign_params(params: Dict[str, Any], api_secret: str) -> str:
    """
    Cloudinary request signature.

    Non-empty signable params are sorted by key, serialized as ``k=v``
    joined with ``&``, suffixed with the API secret and hashed with SHA-1.
    """
    to_sign = "&".join(
        f"{key}={params[key]}"
        for key in sorted(params)
        if key in SIGNED_PARAMS and params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class CloudinaryClient:
    """Signed upload parameters and asset management for one Cloudinary cloud."""

    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        upload_preset: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else CLOUDINARY_CLOUD_NAME
        self.api_key = api_key if api_key is not None else CLOUDINARY_API_KEY
        self.api_secret = api_secret if api_secret is not None else CLOUDINARY_API_SECRET
        self.upload_preset = upload_preset if upload_preset is not None else CLOUDINARY_UPLOAD_PRESET
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    @property
    def upload_url(self) -> str:
        return f"{API_BASE_URL}/{self.cloud_name}/video/upload"

    def is_delivery_url(self, url: str) -> bool:
        """True for an https URL served from this cloud's delivery host."""
        parsed = urlparse(url)
        if parsed.scheme != "https" or parsed.hostname != DELIVERY_HOST:
            return False
        return not self.cloud_name or parsed.path.startswith(f"/{self.cloud_name}/")

    @staticmethod
    def build_public_id(user_id: str, video_id: str, filename: str, timestamp_ms: Optional[int] = None) -> str:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        stem = sanitize_filename(filename.rsplit(".", 1)[0])
        return f"videos/{user_id}/{video_id}_{timestamp_ms}_{secrets.token_hex(4)}_{stem}"

    def build_upload_params(
        self,
        user_id: str,
        video_id: str,
        filename: str,
        timestamp: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Parameters the browser posts to :attr:`upload_url` alongside the file."""
        if not self.configured:
            raise ProviderError("cloudinary", "Cloudinary credentials are not configured")

        timestamp = timestamp if timestamp is not None else int(time.time())
        params: Dict[str, Any] = {
            "public_id": self.build_public_id(user_id, video_id, filename, timestamp * 1000),
            "folder": f"videos/{user_id}",
            "timestamp": timestamp,
            "type": "upload",
            "context": "|".join([
                f"user_id={user_id}",
                f"original_filename={sanitize_filename(filename)}",
                "upload_source=clipsforge",
            ]),
        }
        if self.upload_preset:
            params["upload_preset"] = self.upload_preset

        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        params["resource_type"] = "video"
        return params

    async def destroy(self, public_id: str) -> bool:
        """Delete an uploaded video and its derived assets."""
        if not self.configured:
            return False
        params: Dict[str, Any] = {"public_id": public_id, "timestamp": int(time.time())}
        params["signature"] = sign_params(params, self.api_secret)
        params["api_key"] = self.api_key
        params["invalidate"] = "true"

        url = f"{API_BASE_URL}/{self.cloud_name}/video/destroy"
        try:
            async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(url, data=params)
                response.raise_for_status()
                result = response.json().get("result")
        except httpx.HTTPError as exc:
            raise ProviderError("cloudinary", f"destroy failed: {exc}") from exc

        logger.info("Cloudinary destroy %s -> %s", public_id, result)
        return result == "ok"
