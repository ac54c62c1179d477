"""
Tests for the Ayrshare client.

Run with: pytest tests/test_ayrshare.py -v
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest

from clipsforge.core.ayrshare_client import AyrshareClient
from clipsforge.core.exceptions import ProviderError


def client_for(handler) -> AyrshareClient:
    return AyrshareClient(api_key="ayr_key", base_url="https://ayr.test/api/", transport=httpx.MockTransport(handler))


class TestRequests:
    def test_post_sends_bearer(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "success", "id": "ayr-1"})

        body = asyncio.run(client_for(handler).post({"post": "hi", "platforms": ["tiktok"]}))
        assert body["id"] == "ayr-1"
        assert seen["url"] == "https://ayr.test/api/post"
        assert seen["auth"] == "Bearer ayr_key"
        assert seen["body"]["platforms"] == ["tiktok"]

    def test_profile_key_header(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Profile-Key"] == "pk_1"
            return httpx.Response(200, json={"activeSocialAccounts": ["tiktok"]})

        body = asyncio.run(client_for(handler).get_user("pk_1"))
        assert body["activeSocialAccounts"] == ["tiktok"]

    def test_error_status_in_body(self):
        client = client_for(lambda request: httpx.Response(200, json={"status": "error", "message": "Not linked"}))
        with pytest.raises(ProviderError) as exc:
            asyncio.run(client.post({}))
        assert "Not linked" in str(exc.value)

    def test_error_list(self):
        client = client_for(lambda request: httpx.Response(400, json={"errors": [{"message": "Video too long"}]}))
        with pytest.raises(ProviderError) as exc:
            asyncio.run(client.post({}))
        assert "Video too long" in str(exc.value)
        assert exc.value.upstream_status == 400

    def test_non_json_error(self):
        client = client_for(lambda request: httpx.Response(502, text="<html>"))
        with pytest.raises(ProviderError):
            asyncio.run(client.post({}))


class TestLinking:
    def test_no_link_url_without_domain(self):
        client = client_for(lambda request: httpx.Response(500))
        assert not client.can_link_accounts
        assert asyncio.run(client.generate_link_url("pk")) is None

    def test_link_url(self):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            assert body["domain"] == "clipsforge"
            assert body["profileKey"] == "pk"
            return httpx.Response(200, json={"status": "success", "url": "https://profile.ayrshare.com/x"})

        with patch("clipsforge.core.ayrshare_client.AYRSHARE_DOMAIN", "clipsforge"), \
                patch("clipsforge.core.ayrshare_client.AYRSHARE_PRIVATE_KEY", "-----KEY-----"):
            url = asyncio.run(client_for(handler).generate_link_url("pk"))
        assert url == "https://profile.ayrshare.com/x"

    def test_unconfigured(self):
        assert not AyrshareClient(api_key="").configured
