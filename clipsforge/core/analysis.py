"""
Viral-moment analysis of a transcript.

The LLM proposes clip candidates; everything it returns is re-validated here
before it reaches the database. When no LLM is configured the analyzer falls
back to keyword heuristics so development environments still get clips.
"""

import asyncio
import random
import textwrap
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from clipsforge.config import GEMINI_API_KEY, logger
from clipsforge.core.exceptions import ProviderError, ResponseFormatError
from clipsforge.core.gemini import GeminiClient
from clipsforge.core.groq_client import GroqClient
from clipsforge.core.repositories.models import ClipSuggestion

DEFAULT_VIDEO_DURATION = 300
MIN_SUGGESTION_SECONDS = 10
MAX_SUGGESTION_SECONDS = 120
MAX_SUGGESTIONS = 10
MAX_HASHTAGS_PER_CLIP = 5

SYSTEM_PROMPT = (
    "You are a short-form video strategist. You pick the moments of a long video "
    "that will perform best as standalone clips on TikTok, Instagram Reels and "
    "YouTube Shorts. Always answer with a single JSON object."
)

VIRAL_TRIGGERS = (
    "dica", "segredo", "truque", "como", "primeiro", "segundo", "terceiro",
    "importante", "crucial", "secret", "tip", "mistake", "how to",
)

_CONTENT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("educativo", ("como", "tutorial", "ensinar", "aprender", "how to", "step")),
    ("humor", ("rir", "piada", "engraçado", "funny", "joke")),
    ("motivacional", ("motivação", "sucesso", "inspirar", "desista", "success", "mindset")),
    ("informativo", ("notícia", "aconteceu", "evento", "news", "update")),
)

_TITLES = {
    "educativo": ["Dica {n}: Como Fazer Isso Direito", "Passo {n} Que Ninguém Te Conta", "Segredo {n} Revelado"],
    "motivacional": ["Mindset {n} Para o Sucesso", "Estratégia {n} Que Funciona", "Lição {n} Que Mudou Tudo"],
    "humor": ["Momento Hilário {n}", "Comédia Pura - Parte {n}", "Situação Engraçada {n}"],
    "informativo": ["O Que Aconteceu - Parte {n}", "Resumo {n} em Segundos", "Fato {n} Que Você Precisa Saber"],
    "geral": ["Momento {n} Imperdível", "Clip Viral {n}", "Momento {n} Épico"],
}

_HASHTAGS = {
    "educativo": ["#dicas", "#tutorial", "#aprender", "#educacao"],
    "motivacional": ["#motivacao", "#sucesso", "#mindset", "#foco"],
    "humor": ["#humor", "#comedia", "#engracado", "#risos"],
    "informativo": ["#noticias", "#informacao", "#atualidades", "#fatos"],
    "geral": ["#viral", "#conteudo", "#video", "#clip"],
}


@dataclass
class AnalysisResult:
    """Validated suggestions plus the video-level analysis."""

    suggestions: List[ClipSuggestion]
    content_type: str = "geral"
    summary: str = ""
    sentiment: Optional[str] = None
    target_audience: Optional[str] = None
    provider: str = "simulation"
    model: Optional[str] = None
    main_topics: List[str] = field(default_factory=list)
    key_moments: List[str] = field(default_factory=list)


def build_analysis_prompt(transcript: str, duration: float, preferences: Optional[Dict[str, Any]] = None) -> str:
    preferences = preferences or {}
    min_len = preferences.get("min_duration", 15)
    max_len = preferences.get("max_duration", 60)
    return textwrap.dedent(
        f"""
        Analyze this video transcript and find the best moments to turn into viral clips.

        VIDEO DURATION: {round(duration)} seconds

        TRANSCRIPT:
        {transcript}

        INSTRUCTIONS:
        1. Pick 3-5 segments of {min_len}-{max_len} seconds with viral potential.
        2. Times are in seconds from the start of the video and must stay inside the video.
        3. For each segment provide: start_time, end_time, title, description,
           viral_score (1-10), hook_strength (0-100), hashtags, reason, topic,
           key_moment (one sentence) and best_platforms (TikTok, Instagram, YouTube).
        4. Answer in the language of the transcript.

        RESPOND WITH JSON ONLY:
        {{
          "clips": [
            {{
              "start_time": 0,
              "end_time": 30,
              "title": "Catchy title",
              "description": "What happens in the clip",
              "viral_score": 8.5,
              "hook_strength": 90,
              "hashtags": ["#viral", "#tips"],
              "reason": "Why this moment works",
              "topic": "Main topic",
              "key_moment": "The sentence that hooks the viewer",
              "best_platforms": ["TikTok", "Instagram"]
            }}
          ],
          "analysis": {{
            "content_type": "educativo",
            "summary": "Two sentence summary",
            "sentiment": "positive",
            "target_audience": "Who will watch this"
          }}
        }}
        """
    ).strip()


def normalize_viral_score(raw: Any) -> float:
    """Map the model's score onto 1-10; percentages (>10) are scaled down."""
    try:
        score = float(raw)
    except (TypeError, ValueError):
        return 5.0
    if score > 10:
        score = score / 10
    return round(min(10.0, max(1.0, score)), 1)


def _clamp_int(raw: Any, low: int, high: int, default: int) -> int:
    try:
        value = int(round(float(raw)))
    except (TypeError, ValueError):
        return default
    return min(high, max(low, value))


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _normalize_hashtag(tag: Any) -> Optional[str]:
    text = str(tag or "").strip().replace(" ", "")
    if not text or text == "#":
        return None
    return text if text.startswith("#") else f"#{text}"


def validate_and_enhance_clips(raw_clips: Any, duration: float) -> List[ClipSuggestion]:
    """
    Keep only usable suggestions and fill in defaults.

    A clip survives when ``0 <= start < end <= duration`` and its length is
    between 10 and 120 seconds. Results are sorted by viral score and capped
    at ten.
    """
    if not isinstance(raw_clips, list):
        return []

    suggestions: List[ClipSuggestion] = []
    for raw in raw_clips:
        if not isinstance(raw, dict):
            continue
        try:
            start = float(raw.get("start_time"))
            end = float(raw.get("end_time"))
        except (TypeError, ValueError):
            continue

        length = end - start
        if start < 0 or end > duration or start >= end:
            continue
        if length < MIN_SUGGESTION_SECONDS or length > MAX_SUGGESTION_SECONDS:
            continue

        hashtags = [h for h in (_normalize_hashtag(t) for t in _as_list(raw.get("hashtags"))) if h]
        platforms = raw.get("best_platforms")
        if not isinstance(platforms, list) or not platforms:
            platforms = ["TikTok"]

        suggestions.append(ClipSuggestion(
            title=str(raw.get("title") or "Clip sem título")[:500],
            description=str(raw.get("description") or ""),
            start_time=round(start, 1),
            end_time=round(end, 1),
            viral_score=normalize_viral_score(raw.get("viral_score")),
            hook_strength=_clamp_int(raw.get("hook_strength"), 0, 100, 50),
            reason=str(raw.get("reason") or "Momento interessante"),
            topic=str(raw.get("topic") or "Geral"),
            key_moment=str(raw["key_moment"]) if raw.get("key_moment") else None,
            hashtags=hashtags[:MAX_HASHTAGS_PER_CLIP],
            best_platforms=[str(p) for p in platforms],
        ))

    suggestions.sort(key=lambda s: s.viral_score, reverse=True)
    return suggestions[:MAX_SUGGESTIONS]


def generate_fallback_clips(duration: float) -> List[ClipSuggestion]:
    """Evenly spaced 30-second clips, one per minute of video (max five)."""
    count = max(1, min(5, int(duration // 60)))
    clips = []
    for i in range(count):
        start = float(int((duration / count) * i))
        end = min(start + 30, duration)
        if end <= start:
            continue
        clips.append(ClipSuggestion(
            title=f"Momento {i + 1}",
            start_time=start,
            end_time=end,
            viral_score=6.0,
            hook_strength=50,
            hashtags=["#clip", "#video"],
            reason="Gerado automaticamente",
            topic="Geral",
            best_platforms=["TikTok", "Instagram"],
        ))
    return clips


def detect_content_type(text: str) -> str:
    lower = text.lower()
    for content_type, keywords in _CONTENT_KEYWORDS:
        if any(keyword in lower for keyword in keywords):
            return content_type
    return "geral"


def simulate_suggestions(transcript: str, duration: float, seed: str = "") -> List[ClipSuggestion]:
    """Heuristic suggestions used when no LLM is configured."""
    rng = random.Random(seed or transcript)
    content_type = detect_content_type(transcript)
    has_trigger = any(trigger in transcript.lower() for trigger in VIRAL_TRIGGERS)

    count = max(1, min(5, int(duration // 30)))
    segment = min(60.0, duration / count)
    titles = _TITLES.get(content_type, _TITLES["geral"])

    clips = []
    for i in range(count):
        start = float(int((duration / count) * i))
        end = round(min(start + segment, duration), 1)
        if end <= start:
            continue
        score = rng.uniform(7.5, 9.4) if has_trigger else rng.uniform(6.0, 8.4)
        clips.append(ClipSuggestion(
            title=titles[i % len(titles)].format(n=i + 1),
            description=f"Trecho {i + 1} do vídeo",
            start_time=start,
            end_time=end,
            viral_score=round(score, 1),
            hook_strength=rng.randint(70, 89),
            hashtags=_HASHTAGS.get(content_type, _HASHTAGS["geral"]),
            reason=(
                "Contém gatilhos virais e palavras-chave que geram engajamento"
                if has_trigger else "Segmento interessante com boa dinâmica"
            ),
            topic=content_type,
            best_platforms=["TikTok", "Instagram", "YouTube"],
        ))

    clips.sort(key=lambda s: s.viral_score, reverse=True)
    return clips


def _timestamp(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes:02d}:{secs:02d}"


def summarize(suggestions: List[ClipSuggestion]) -> Tuple[List[str], List[str]]:
    """Up to five unique topics and one key-moment line per suggestion."""
    topics: List[str] = []
    for suggestion in suggestions:
        if suggestion.topic and suggestion.topic not in topics:
            topics.append(suggestion.topic)
    key_moments = [
        f"{_timestamp(s.start_time)} - {s.key_moment or s.title}"
        for s in suggestions
    ]
    return topics[:5], key_moments


class ContentAnalyzer:
    """Groq first, Gemini as fallback, heuristics when neither is configured."""

    def __init__(
        self,
        groq: Optional[GroqClient] = None,
        gemini_factory: Optional[Callable[[], GeminiClient]] = None,
        gemini_enabled: Optional[bool] = None,
    ):
        self.groq = groq or GroqClient()
        self.gemini_factory = gemini_factory or GeminiClient
        self.gemini_enabled = bool(GEMINI_API_KEY) if gemini_enabled is None else gemini_enabled

    @property
    def simulated(self) -> bool:
        return not self.groq.configured and not self.gemini_enabled

    async def _ask_llm(self, prompt: str) -> Tuple[Dict[str, Any], str, Optional[str]]:
        if self.groq.configured:
            try:
                data = await self.groq.complete_json(SYSTEM_PROMPT, prompt)
                return data, "groq", self.groq.model
            except ResponseFormatError:
                raise
            except ProviderError as exc:
                if not self.gemini_enabled:
                    raise
                logger.warning("Groq analysis failed (%s), falling back to Gemini", exc)

        gemini = self.gemini_factory()
        data = await asyncio.to_thread(gemini.generate_json, f"{SYSTEM_PROMPT}\n\n{prompt}")
        return data, "gemini", getattr(gemini, "last_model", None)

    async def analyze(
        self,
        transcript: str,
        duration: Optional[float],
        preferences: Optional[Dict[str, Any]] = None,
        seed: str = "",
    ) -> AnalysisResult:
        duration = float(duration or DEFAULT_VIDEO_DURATION)

        if self.simulated:
            logger.info("No LLM configured, generating simulated suggestions")
            suggestions = simulate_suggestions(transcript, duration, seed=seed)
            result = AnalysisResult(
                suggestions=suggestions,
                content_type=detect_content_type(transcript),
                summary=transcript[:280],
            )
        else:
            prompt = build_analysis_prompt(transcript, duration, preferences)
            try:
                data, provider, model = await self._ask_llm(prompt)
            except ResponseFormatError as exc:
                logger.warning("Unparseable analysis (%s), using fallback clips", exc)
                data, provider, model = {}, "fallback", self.groq.model

            suggestions = validate_and_enhance_clips(data.get("clips"), duration)
            if not suggestions:
                logger.warning("No valid clip suggestions, using fallback clips")
                suggestions = generate_fallback_clips(duration)
                provider = "fallback"

            analysis = data.get("analysis") if isinstance(data.get("analysis"), dict) else {}
            result = AnalysisResult(
                suggestions=suggestions,
                content_type=str(analysis.get("content_type") or detect_content_type(transcript)),
                summary=str(analysis.get("summary") or ""),
                sentiment=analysis.get("sentiment"),
                target_audience=analysis.get("target_audience"),
                provider=provider,
                model=model,
            )

        result.main_topics, result.key_moments = summarize(result.suggestions)
        return result
