"""Chat-completions client for Groq's OpenAI-compatible endpoint."""

import json
from typing import Any, Dict, Optional

import httpx

from clipsforge.config import GROQ_API_KEY, GROQ_API_URL, GROQ_MODEL, VENDOR_TIMEOUT_SECONDS, logger
from clipsforge.core.exceptions import ProviderError, ResponseFormatError
from clipsforge.core.gemini import strip_json_fences

PROVIDER = "groq"


class GroqClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else GROQ_API_KEY
        self.model = model or GROQ_MODEL
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def complete_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> Dict[str, Any]:
        """Run a JSON-mode completion and return the decoded object."""
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(GROQ_API_URL, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                PROVIDER,
                f"HTTP {exc.response.status_code}: {exc.response.text[:200]}",
                upstream_status=exc.response.status_code,
                retryable=exc.response.status_code in (429, 503),
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"request failed: {exc}", retryable=True) from exc

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ProviderError(PROVIDER, "Malformed completion response") from exc

        usage = body.get("usage") or {}
        logger.info("Groq completion used %s tokens", usage.get("total_tokens", "?"))

        try:
            data = json.loads(strip_json_fences(content or ""))
        except ValueError as exc:
            raise ResponseFormatError(PROVIDER, "Completion is not valid JSON") from exc
        if not isinstance(data, dict):
            raise ResponseFormatError(PROVIDER, "Completion is not a JSON object")
        return data
