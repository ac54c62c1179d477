import json
import logging
from typing import Any, Dict, Optional

import google.generativeai as genai

from clipsforge.config import GEMINI_API_KEY
from clipsforge.core.exceptions import ProviderError

logger = logging.getLogger(__name__)


def strip_json_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


class GeminiClient:
    """
    Wrapper around the Gemini API with fallback support for multiple models.

    Used as the second opinion when Groq is unavailable.
    """

    FALLBACK_MODELS = [
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.5-pro",
    ]

    def __init__(self, api_key: Optional[str] = None):
        api_key = api_key or GEMINI_API_KEY
        if not api_key:
            raise ProviderError("gemini", "GEMINI_API_KEY is not set")
        genai.configure(api_key=api_key)
        self.last_model: Optional[str] = None

    def generate_json(self, prompt: str) -> Dict[str, Any]:
        """Ask each model in turn for a JSON object; blocking, run it in a thread."""
        last_error: Optional[Exception] = None

        for model_name in self.FALLBACK_MODELS:
            logger.info(f"Attempting analysis with model: {model_name}")
            try:
                model = genai.GenerativeModel(model_name)
                response = model.generate_content(
                    prompt,
                    generation_config={"response_mime_type": "application/json"},
                )
                data = json.loads(strip_json_fences(response.text))
                if not isinstance(data, dict):
                    raise ValueError("Model returned a non-object JSON value")
                self.last_model = model_name
                logger.info(f"Success with {model_name}")
                return data
            except Exception as e:
                logger.warning(f"Failed with {model_name}: {e}")
                last_error = e
                continue

        raise ProviderError("gemini", f"All Gemini models failed. Last error: {last_error}")
