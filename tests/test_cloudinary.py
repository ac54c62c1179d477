"""
Tests for Cloudinary signing and delivery URLs.

Run with: pytest tests/test_cloudinary.py -v
"""

import asyncio
import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from clipsforge.core.cloudinary_client import (
    CloudinaryClient,
    clip_url,
    format_seconds,
    sign_params,
    thumbnail_url,
)
from clipsforge.core.exceptions import ProviderError

SECURE_URL = "https://res.cloudinary.com/demo/video/upload/v1/videos/u/v.mp4"


def make_client(transport=None) -> CloudinaryClient:
    return CloudinaryClient(
        cloud_name="demo",
        api_key="key123",
        api_secret="shh",
        upload_preset="",
        transport=transport,
    )


class TestDeliveryUrls:
    def test_format_seconds(self):
        assert format_seconds(12.0) == "12"
        assert format_seconds(12.46) == "12.5"

    def test_clip_url_inserts_trim(self):
        assert clip_url(SECURE_URL, 10, 42.5) == (
            "https://res.cloudinary.com/demo/video/upload/so_10,eo_42.5/v1/videos/u/v.mp4"
        )

    def test_thumbnail_is_jpeg_frame(self):
        assert thumbnail_url(SECURE_URL) == (
            "https://res.cloudinary.com/demo/video/upload/so_1/v1/videos/u/v.jpg"
        )


class TestSignature:
    def test_matches_cloudinary_algorithm(self):
        params = {"timestamp": 1700000000, "public_id": "abc", "api_key": "ignored", "folder": ""}
        expected = hashlib.sha1(b"public_id=abc&timestamp=1700000000shh").hexdigest()
        assert sign_params(params, "shh") == expected

    def test_order_does_not_matter(self):
        a = sign_params({"timestamp": 1, "type": "upload"}, "s")
        b = sign_params({"type": "upload", "timestamp": 1}, "s")
        assert a == b


class TestUploadParams:
    def test_requires_credentials(self):
        client = CloudinaryClient(cloud_name="", api_key="", api_secret="")
        assert not client.configured
        with pytest.raises(ProviderError):
            client.build_upload_params("u1", "v1", "aula.mp4")

    def test_signed_params(self):
        client = make_client()
        params = client.build_upload_params("u1", "v1", "Minha Aula.mp4", timestamp=1700000000)

        assert params["api_key"] == "key123"
        assert params["resource_type"] == "video"
        assert params["type"] == "upload"
        assert params["public_id"].startswith("videos/u1/v1_1700000000000_")
        assert params["public_id"].endswith("_Minha_Aula")
        assert params["folder"] == "videos/u1"
        assert "user_id=u1" in params["context"]
        assert "upload_preset" not in params

        signable = {k: params[k] for k in ("public_id", "folder", "timestamp", "type", "context")}
        assert params["signature"] == sign_params(signable, "shh")

    def test_upload_preset_is_signed(self):
        client = CloudinaryClient(cloud_name="demo", api_key="k", api_secret="s", upload_preset="clips")
        params = client.build_upload_params("u1", "v1", "a.mp4", timestamp=1)
        assert params["upload_preset"] == "clips"

    def test_upload_url(self):
        assert make_client().upload_url == "https://api.cloudinary.com/v1_1/demo/video/upload"

    @pytest.mark.parametrize("url, expected", [
        (SECURE_URL, True),
        ("http://res.cloudinary.com/demo/video/upload/v1/a.mp4", False),
        ("https://res.cloudinary.com/other/video/upload/v1/a.mp4", False),
        ("https://res.cloudinary.com.evil.test/demo/video/upload/a.mp4", False),
        ("http://169.254.169.254/latest/upload/meta.mp4", False),
    ])
    def test_delivery_url(self, url, expected):
        assert make_client().is_delivery_url(url) is expected


class TestDestroy:
    def test_unconfigured_is_noop(self):
        client = CloudinaryClient(cloud_name="", api_key="", api_secret="")
        assert asyncio.run(client.destroy("videos/u/v")) is False

    def test_posts_signed_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["form"] = parse_qs(request.content.decode())
            return httpx.Response(200, json={"result": "ok"})

        client = make_client(httpx.MockTransport(handler))
        assert asyncio.run(client.destroy("videos/u/v")) is True
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/video/destroy"
        assert seen["form"]["public_id"] == ["videos/u/v"]
        assert seen["form"]["invalidate"] == ["true"]
        assert "signature" in seen["form"]

    def test_not_found_result(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"result": "not found"}))
        assert asyncio.run(make_client(transport).destroy("x")) is False

    def test_http_error_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, json={}))
        with pytest.raises(ProviderError):
            asyncio.run(make_client(transport).destroy("x"))
