"""
Tests for clip suggestion validation and the LLM analyzer.

Run with: pytest tests/test_analysis.py -v
"""

import asyncio
import json
from unittest.mock import Mock

import httpx
import pytest

from clipsforge.core.analysis import (
    ContentAnalyzer,
    build_analysis_prompt,
    detect_content_type,
    generate_fallback_clips,
    normalize_viral_score,
    simulate_suggestions,
    summarize,
    validate_and_enhance_clips,
)
from clipsforge.core.exceptions import ProviderError
from clipsforge.core.gemini import strip_json_fences
from clipsforge.core.groq_client import GroqClient

LLM_ANSWER = {
    "clips": [
        {
            "start_time": 10,
            "end_time": 40,
            "title": "Como prender a atenção",
            "viral_score": 7.2,
            "hook_strength": 88,
            "hashtags": ["dicas", "#viral"],
            "topic": "Ganchos",
            "key_moment": "Comece com uma pergunta",
        },
        {"start_time": 60, "end_time": 95, "title": "A história", "viral_score": 92, "topic": "Histórias"},
        {"start_time": 200, "end_time": 205, "title": "Curto demais"},
    ],
    "analysis": {"content_type": "educativo", "summary": "Três dicas", "sentiment": "positive"},
}


def groq_returning(content, status_code=200) -> GroqClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if status_code >= 400:
            return httpx.Response(status_code, json={"error": {"message": "busy"}})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}], "usage": {"total_tokens": 42}})

    return GroqClient(api_key="gsk_test", model="llama-test", transport=httpx.MockTransport(handler))


class TestViralScore:
    @pytest.mark.parametrize("raw, expected", [(8.46, 8.5), (85, 8.5), (0, 1.0), (150, 10.0), ("7", 7.0), (None, 5.0), ("high", 5.0)])
    def test_normalization(self, raw, expected):
        assert normalize_viral_score(raw) == expected


class TestValidateClips:
    def test_filters_and_sorts(self):
        clips = validate_and_enhance_clips(LLM_ANSWER["clips"], duration=300)
        assert [c.title for c in clips] == ["A história", "Como prender a atenção"]
        assert clips[0].viral_score == 9.2
        assert clips[1].hashtags == ["#dicas", "#viral"]
        assert clips[1].hook_strength == 88

    def test_drops_clips_outside_video(self):
        raw = [{"start_time": 280, "end_time": 320, "title": "x"}, {"start_time": -5, "end_time": 20, "title": "y"}]
        assert validate_and_enhance_clips(raw, duration=300) == []

    def test_drops_too_long(self):
        assert validate_and_enhance_clips([{"start_time": 0, "end_time": 150}], duration=600) == []

    def test_caps_results_and_hashtags(self):
        raw = [
            {"start_time": i * 20, "end_time": i * 20 + 15, "viral_score": 5 + i * 0.1, "hashtags": list("abcdefg")}
            for i in range(12)
        ]
        clips = validate_and_enhance_clips(raw, duration=1000)
        assert len(clips) == 10
        assert all(len(c.hashtags) == 5 for c in clips)
        assert clips[0].viral_score >= clips[-1].viral_score

    def test_defaults(self):
        clip = validate_and_enhance_clips([{"start_time": 0, "end_time": 30}], duration=60)[0]
        assert clip.title == "Clip sem título"
        assert clip.best_platforms == ["TikTok"]
        assert clip.viral_score == 5.0

    def test_non_list(self):
        assert validate_and_enhance_clips({"clips": []}, duration=60) == []


class TestFallbacks:
    def test_one_clip_per_minute(self):
        clips = generate_fallback_clips(300)
        assert len(clips) == 5
        assert [(c.start_time, c.end_time) for c in clips[:2]] == [(0.0, 30.0), (60.0, 90.0)]
        assert all(c.viral_score == 6.0 for c in clips)

    def test_short_video(self):
        clips = generate_fallback_clips(20)
        assert len(clips) == 1
        assert clips[0].end_time == 20

    def test_content_type(self):
        assert detect_content_type("Hoje vou ensinar como editar") == "educativo"
        assert detect_content_type("Que piada boa") == "humor"
        assert detect_content_type("Bom dia") == "geral"

    def test_simulated_suggestions_are_deterministic(self):
        text = "Uma dica importante sobre como gravar"
        first = simulate_suggestions(text, 180, seed="vid_1")
        assert first == simulate_suggestions(text, 180, seed="vid_1")
        assert all(7.5 <= c.viral_score <= 9.4 for c in first)
        assert all(c.end_time <= 180 for c in first)

    def test_summarize(self):
        clips = validate_and_enhance_clips(LLM_ANSWER["clips"], duration=300)
        topics, moments = summarize(clips)
        assert topics == ["Histórias", "Ganchos"]
        assert moments == ["01:00 - A história", "00:10 - Comece com uma pergunta"]


class TestPrompt:
    def test_includes_preferences(self):
        prompt = build_analysis_prompt("texto", 125.4, {"min_duration": 20, "max_duration": 45})
        assert "VIDEO DURATION: 125 seconds" in prompt
        assert "20-45 seconds" in prompt

    def test_strip_fences(self):
        assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'


class TestGroqClient:
    def test_returns_object(self):
        data = asyncio.run(groq_returning(json.dumps({"clips": []})).complete_json("sys", "user"))
        assert data == {"clips": []}

    def test_rate_limited_is_retryable(self):
        with pytest.raises(ProviderError) as exc:
            asyncio.run(groq_returning("", status_code=429).complete_json("sys", "user"))
        assert exc.value.retryable


class TestContentAnalyzer:
    def test_simulated_without_keys(self):
        analyzer = ContentAnalyzer(groq=GroqClient(api_key=""), gemini_enabled=False)
        assert analyzer.simulated
        result = asyncio.run(analyzer.analyze("Como fazer uma dica", 120, seed="v"))
        assert result.provider == "simulation"
        assert result.content_type == "educativo"
        assert result.suggestions

    def test_groq_answer(self):
        analyzer = ContentAnalyzer(groq=groq_returning(json.dumps(LLM_ANSWER)), gemini_enabled=False)
        result = asyncio.run(analyzer.analyze("texto", 300))
        assert result.provider == "groq"
        assert result.model == "llama-test"
        assert result.content_type == "educativo"
        assert result.summary == "Três dicas"
        assert len(result.suggestions) == 2
        assert result.main_topics == ["Histórias", "Ganchos"]

    def test_unparseable_answer_uses_fallback_clips(self):
        analyzer = ContentAnalyzer(groq=groq_returning("not json"), gemini_enabled=False)
        result = asyncio.run(analyzer.analyze("texto", 180))
        assert result.provider == "fallback"
        assert len(result.suggestions) == 3

    def test_no_valid_clips_uses_fallback(self):
        analyzer = ContentAnalyzer(groq=groq_returning(json.dumps({"clips": []})), gemini_enabled=False)
        result = asyncio.run(analyzer.analyze("texto", 60))
        assert result.provider == "fallback"
        assert len(result.suggestions) == 1

    def test_falls_back_to_gemini(self):
        gemini = Mock()
        gemini.generate_json.return_value = LLM_ANSWER
        gemini.last_model = "gemini-2.5-flash"
        analyzer = ContentAnalyzer(
            groq=groq_returning("", status_code=503),
            gemini_factory=lambda: gemini,
            gemini_enabled=True,
        )
        result = asyncio.run(analyzer.analyze("texto", 300))
        assert result.provider == "gemini"
        assert result.model == "gemini-2.5-flash"
        gemini.generate_json.assert_called_once()

    def test_groq_error_without_gemini_propagates(self):
        analyzer = ContentAnalyzer(groq=groq_returning("", status_code=500), gemini_enabled=False)
        with pytest.raises(ProviderError):
            asyncio.run(analyzer.analyze("texto", 300))

    def test_gemini_only(self):
        gemini = Mock()
        gemini.generate_json.return_value = {"clips": [{"start_time": 0, "end_time": 30, "title": "A"}]}
        analyzer = ContentAnalyzer(groq=GroqClient(api_key=""), gemini_factory=lambda: gemini, gemini_enabled=True)
        assert not analyzer.simulated
        result = asyncio.run(analyzer.analyze("texto", 60))
        assert result.provider == "gemini"
        assert result.suggestions[0].title == "A"
