"""
Ayrshare social publishing API.

One Ayrshare user profile is created per connected account; its profile key
is sent with every call that acts on that account.
"""

from typing import Any, Dict, List, Optional

import httpx

from clipsforge.config import (
    AYRSHARE_API_KEY,
    AYRSHARE_API_URL,
    AYRSHARE_DOMAIN,
    AYRSHARE_PRIVATE_KEY,
    AYRSHARE_REDIRECT_URL,
    VENDOR_TIMEOUT_SECONDS,
    logger,
)
from clipsforge.core.exceptions import ProviderError
from clipsforge.core.security import hash_token

PROVIDER = "ayrshare"


class AyrshareClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else AYRSHARE_API_KEY
        self.base_url = (base_url or AYRSHARE_API_URL).rstrip("/")
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def can_link_accounts(self) -> bool:
        """Whether hosted social-linking URLs (JWT) can be issued."""
        return bool(self.configured and AYRSHARE_DOMAIN and AYRSHARE_PRIVATE_KEY)

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        profile_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if profile_key:
            headers["Profile-Key"] = profile_key

        try:
            async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.request(method, f"{self.base_url}{endpoint}", json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"request failed: {exc}", retryable=True) from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400 or body.get("status") == "error":
            message = body.get("message") or _first_error(body) or response.reason_phrase
            logger.warning(
                "Ayrshare %s %s failed (%s) profile=%s",
                method, endpoint, response.status_code,
                hash_token(profile_key) if profile_key else "-",
            )
            raise ProviderError(PROVIDER, str(message), upstream_status=response.status_code)

        return body

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    async def create_profile(self, title: str) -> Dict[str, Any]:
        """Create a user profile; the response carries ``profileKey``."""
        return await self._request("POST", "/profiles/profile", json={"title": title})

    async def delete_profile(self, profile_key: str) -> Dict[str, Any]:
        return await self._request("DELETE", "/profiles/profile", json={"profileKey": profile_key})

    async def generate_link_url(self, profile_key: str) -> Optional[str]:
        """Hosted page where the user links their social network."""
        if not self.can_link_accounts:
            return None
        payload: Dict[str, Any] = {
            "domain": AYRSHARE_DOMAIN,
            "privateKey": AYRSHARE_PRIVATE_KEY,
            "profileKey": profile_key,
        }
        if AYRSHARE_REDIRECT_URL:
            payload["redirect"] = AYRSHARE_REDIRECT_URL
        body = await self._request("POST", "/profiles/generateJWT", json=payload)
        return body.get("url")

    async def get_user(self, profile_key: str) -> Dict[str, Any]:
        """Linked networks (``activeSocialAccounts``) and their ``displayNames``."""
        return await self._request("GET", "/user", profile_key=profile_key)

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    async def post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Publish or schedule a post. ``profileKeys`` in the payload selects the accounts."""
        return await self._request("POST", "/post", json=payload)

    async def delete_post(self, ayrshare_post_id: str, profile_key: Optional[str] = None) -> Dict[str, Any]:
        return await self._request("DELETE", "/post", json={"id": ayrshare_post_id}, profile_key=profile_key)

    async def post_analytics(
        self,
        ayrshare_post_id: str,
        platforms: List[str],
        profile_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/analytics/post",
            json={"id": ayrshare_post_id, "platforms": platforms},
            profile_key=profile_key,
        )


def _first_error(body: Dict[str, Any]) -> Optional[str]:
    errors = body.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            return first.get("message")
        return str(first)
    return None
