"""
Tests for Shotstack edit building and render calls.

Run with: pytest tests/test_shotstack.py -v
"""

import asyncio
import json

import httpx
import pytest

from clipsforge.core.exceptions import ProviderError
from clipsforge.core.shotstack_client import CTA_TEXT, ShotstackClient, build_edit, platform_output

SOURCE = "https://res.cloudinary.com/demo/video/upload/v1/a.mp4"


def client_for(handler) -> ShotstackClient:
    return ShotstackClient(api_key="ss_key", environment="stage", transport=httpx.MockTransport(handler))


class TestBuildEdit:
    def test_track_order(self):
        edit = build_edit(SOURCE, 12.5, 30, "Título", subtitles="texto", platform="tiktok")
        tracks = edit["timeline"]["tracks"]
        assert len(tracks) == 4
        assert tracks[0]["clips"][0]["asset"]["text"] == "Título"
        assert tracks[1]["clips"][0]["asset"]["style"] == "subtitle"
        assert tracks[2]["clips"][0]["asset"]["text"] == CTA_TEXT
        assert tracks[2]["clips"][0]["start"] == 27

        video = tracks[-1]["clips"][0]
        assert video["asset"]["src"] == SOURCE
        assert video["asset"]["trim"] == 12.5
        assert video["length"] == 30

    def test_short_clip_has_no_cta(self):
        edit = build_edit(SOURCE, 0, 6, "Curto")
        tracks = edit["timeline"]["tracks"]
        assert len(tracks) == 2
        assert tracks[0]["clips"][0]["length"] == 4

    def test_output_size_per_platform(self):
        assert build_edit(SOURCE, 0, 20, "t", platform="youtube")["output"]["size"] == {"width": 1920, "height": 1080}
        assert build_edit(SOURCE, 0, 20, "t", platform="instagram")["output"]["size"] == {"width": 1080, "height": 1080}

    def test_unknown_platform_is_vertical(self):
        assert platform_output("myspace")["aspect_ratio"] == "9:16"


class TestRender:
    def test_queues_render(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"success": True, "response": {"id": "render-1"}})

        edit = build_edit(SOURCE, 0, 20, "t")
        assert asyncio.run(client_for(handler).render(edit)) == "render-1"
        assert seen["url"] == "https://api.shotstack.io/edit/stage/render"
        assert seen["key"] == "ss_key"
        assert seen["body"]["output"]["format"] == "mp4"

    def test_rejected_render(self):
        client = client_for(lambda request: httpx.Response(400, json={"message": "bad"}))
        with pytest.raises(ProviderError) as exc:
            asyncio.run(client.render({}))
        assert exc.value.upstream_status == 400

    def test_missing_id(self):
        client = client_for(lambda request: httpx.Response(201, json={"response": {}}))
        with pytest.raises(ProviderError):
            asyncio.run(client.render({}))

    def test_get_render(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/edit/stage/render/render-1"
            return httpx.Response(200, json={"response": {"status": "done", "url": "https://cdn.test/r.mp4"}})

        result = asyncio.run(client_for(handler).get_render("render-1"))
        assert result == {"status": "done", "url": "https://cdn.test/r.mp4", "error": None}
