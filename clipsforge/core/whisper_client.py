"""
Speech-to-text through the Hugging Face hosted Whisper model.

Without an API key the client produces a deterministic simulated transcript
so the rest of the pipeline can be exercised in development.
"""

import hashlib
import re
from typing import Any, Dict, List, Optional

import httpx

from clipsforge.config import (
    HUGGINGFACE_API_KEY,
    VENDOR_TIMEOUT_SECONDS,
    WHISPER_MODEL_URL,
    logger,
)
from clipsforge.core.exceptions import ProviderError
from clipsforge.core.repositories.models import TranscriptSegment, Transcription

PROVIDER = "huggingface"

SIMULATED_WORDS_PER_SEGMENT = 15
SIMULATED_SEGMENT_SECONDS = 8

SIMULATED_TRANSCRIPTS = (
    "Olá pessoal, hoje eu vou mostrar para vocês três estratégias que mudaram completamente "
    "a forma como eu crio conteúdo. A primeira é muito simples: comece sempre com uma pergunta "
    "que prende a atenção. A segunda estratégia é contar uma história real, com começo, meio e "
    "fim. E a terceira, que quase ninguém faz, é terminar com uma chamada para ação clara. "
    "Se você aplicar isso nos seus vídeos, vai perceber a diferença já na primeira semana.",
    "Você sabia que a maioria das pessoas desiste dos seus objetivos em menos de um mês? "
    "Eu também já passei por isso. O segredo não é motivação, é consistência. Todos os dias "
    "eu faço uma coisa pequena que me aproxima do meu objetivo. Parece pouco, mas depois de um "
    "ano isso vira uma transformação enorme. Então não desista, comece pequeno e continue.",
    "Welcome back to the channel. Today we are breaking down the one mistake that keeps most "
    "creators from growing. It is not the camera and it is not the editing. It is the first "
    "three seconds. If you do not hook your viewer right away, nothing else matters. Let me "
    "show you exactly how we rewrote our intros and doubled our watch time in a month.",
)

_COMMON_WORDS = {
    "pt": {"que", "não", "uma", "para", "com", "você", "está", "isso", "muito", "mais", "são", "também", "eu"},
    "en": {"the", "and", "you", "that", "this", "with", "have", "for", "are", "what", "not", "it", "is"},
    "es": {"que", "los", "las", "una", "para", "con", "está", "pero", "muy", "usted", "es", "también", "yo"},
}
DEFAULT_LANGUAGE = "pt"


def detect_language(text: str) -> str:
    """Guess pt/en/es by counting common-word hits; ties fall back to Portuguese."""
    words = re.findall(r"[a-zà-ÿ]+", text.lower())
    scores = {lang: sum(1 for w in words if w in vocab) for lang, vocab in _COMMON_WORDS.items()}
    best = max(scores.values(), default=0)
    if best == 0 or scores[DEFAULT_LANGUAGE] == best:
        return DEFAULT_LANGUAGE
    return max(scores, key=scores.get)


def transcription_confidence(transcription: Transcription) -> float:
    return 0.85 if transcription.segments else 0.8


def _segments_from_chunks(chunks: List[Dict[str, Any]]) -> List[TranscriptSegment]:
    segments = []
    for chunk in chunks:
        timestamp = chunk.get("timestamp") or [0, 0]
        start = float(timestamp[0] or 0)
        # the final chunk may come back with an open end
        end = float(timestamp[1]) if len(timestamp) > 1 and timestamp[1] is not None else start
        segments.append(TranscriptSegment(start=start, end=max(end, start), text=(chunk.get("text") or "").strip()))
    return segments


def parse_whisper_response(payload: Any) -> Transcription:
    """Normalize the inference API payload (object or list form) into a Transcription."""
    if isinstance(payload, list):
        items = [item for item in payload if isinstance(item, dict)]
        text = " ".join((item.get("text") or "").strip() for item in items).strip()
        chunks: List[Dict[str, Any]] = []
        for item in items:
            chunks.extend(item.get("chunks") or [])
        return Transcription(text=text, segments=_segments_from_chunks(chunks))

    if not isinstance(payload, dict):
        raise ProviderError(PROVIDER, "Unexpected transcription payload")

    text = (payload.get("text") or "").strip()
    if payload.get("chunks"):
        segments = _segments_from_chunks(payload["chunks"])
    else:
        segments = [
            TranscriptSegment(
                start=float(seg.get("start", 0)),
                end=float(seg.get("end", seg.get("start", 0))),
                text=(seg.get("text") or "").strip(),
            )
            for seg in payload.get("segments") or []
        ]
    return Transcription(text=text, segments=segments)


def simulate_transcription(seed: str) -> Transcription:
    """Pick a canned transcript for ``seed`` and split it into 8-second segments."""
    index = int(hashlib.sha256(seed.encode("utf-8")).hexdigest(), 16) % len(SIMULATED_TRANSCRIPTS)
    text = SIMULATED_TRANSCRIPTS[index]
    words = text.split()
    segments = []
    for i in range(0, len(words), SIMULATED_WORDS_PER_SEGMENT):
        n = i // SIMULATED_WORDS_PER_SEGMENT
        segments.append(TranscriptSegment(
            start=n * SIMULATED_SEGMENT_SECONDS,
            end=(n + 1) * SIMULATED_SEGMENT_SECONDS,
            text=" ".join(words[i:i + SIMULATED_WORDS_PER_SEGMENT]),
        ))
    return Transcription(text=text, segments=segments)


class WhisperClient:
    """Client for ``openai/whisper-large-v3`` on the Hugging Face inference API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else HUGGINGFACE_API_KEY
        self.model_url = model_url or WHISPER_MODEL_URL
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def transcribe(self, media_url: str) -> Transcription:
        """
        Transcribe a publicly reachable media URL with timestamps.

        Raises:
            ProviderError: ``retryable=True`` while the model is still loading.
        """
        payload = {"inputs": media_url, "parameters": {"return_timestamps": True}}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=VENDOR_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(self.model_url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ProviderError(PROVIDER, f"request failed: {exc}", retryable=True) from exc

        if response.status_code == 503 or (response.status_code >= 400 and "loading" in response.text.lower()):
            logger.warning("Whisper model is loading, retry later")
            raise ProviderError(
                PROVIDER,
                "Whisper model is loading, try again in a few seconds",
                upstream_status=response.status_code,
                retryable=True,
            )
        if response.status_code >= 400:
            raise ProviderError(
                PROVIDER,
                f"HTTP {response.status_code}: {response.text[:200]}",
                upstream_status=response.status_code,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(PROVIDER, "Response is not JSON") from exc

        if isinstance(body, dict) and body.get("error"):
            raise ProviderError(PROVIDER, str(body["error"]), retryable="loading" in str(body["error"]).lower())

        transcription = parse_whisper_response(body)
        if not transcription.text:
            raise ProviderError(PROVIDER, "Empty transcription")
        return transcription
