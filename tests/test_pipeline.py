"""
Tests for the transcribe -> analyze -> generate pipeline.

Run with: pytest tests/test_pipeline.py -v
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from clipsforge.core.analysis import ContentAnalyzer
from clipsforge.core.cache import TTLCache
from clipsforge.core.exceptions import ProcessingConflictError, ProviderError
from clipsforge.core.groq_client import GroqClient
from clipsforge.core.pipeline import (
    ProcessingContext,
    ProgressReporter,
    analyze_video,
    load_processable_video,
    merge_preferences,
    process_video,
    transcribe_video,
)
from clipsforge.core.repositories import NotFoundError
from clipsforge.core.repositories.models import ProcessingPreferences, TranscriptSegment, Transcription
from clipsforge.core.security import ValidationError
from clipsforge.core.shotstack_client import ShotstackClient
from clipsforge.core.whisper_client import WhisperClient


class RecordingReporter(ProgressReporter):
    """Keeps every event so tests can assert on the sequence."""

    def __init__(self):
        super().__init__("test")
        self.logs = []
        self.progress_values = []
        self.errors = []
        self.finished = []

    async def log(self, message):
        self.logs.append(message)

    async def progress(self, value, stage=None):
        self.progress_values.append((value, stage))

    async def error(self, message, details=None):
        self.errors.append(message)

    async def done(self, video_id, clips_generated):
        self.finished.append((video_id, clips_generated))


def offline_analyzer() -> ContentAnalyzer:
    return ContentAnalyzer(groq=GroqClient(api_key=""), gemini_enabled=False)


def live_whisper(text="this is what you need to know") -> Mock:
    whisper = Mock()
    whisper.configured = True
    whisper.transcribe = AsyncMock(return_value=Transcription(
        text=text,
        segments=[TranscriptSegment(start=0, end=4, text=text)],
    ))
    return whisper


@pytest.fixture
def videos(make_video):
    repo = Mock()
    repo.get_video.return_value = make_video()
    return repo


@pytest.fixture
def clips_repo():
    repo = Mock()
    repo.next_clip_number.return_value = 1
    return repo


@pytest.fixture
def profiles(make_profile):
    repo = Mock()
    repo.get_or_create.return_value = make_profile()
    return repo


class TestProcessableVideo:
    @pytest.mark.parametrize("status", ["uploaded", "demo_mode", "completed", "error"])
    def test_allowed_statuses(self, make_video, status):
        videos = Mock()
        videos.get_video.return_value = make_video(status=status)
        assert load_processable_video(videos, "vid_1").status == status

    @pytest.mark.parametrize("status", ["transcribing", "analyzing", "generating"])
    def test_running_video_conflicts(self, make_video, status):
        videos = Mock()
        videos.get_video.return_value = make_video(status=status)
        with pytest.raises(ProcessingConflictError) as exc:
            load_processable_video(videos, "vid_1")
        assert "already being processed" in exc.value.message
        assert exc.value.status_code == 409

    def test_unconfirmed_upload(self, make_video):
        videos = Mock()
        videos.get_video.return_value = make_video(status="uploading")
        with pytest.raises(ProcessingConflictError):
            load_processable_video(videos, "vid_1")

    def test_missing_video(self):
        videos = Mock()
        videos.get_video.return_value = None
        with pytest.raises(NotFoundError):
            load_processable_video(videos, "vid_1")


class TestMergePreferences:
    def test_overrides_apply(self):
        merged = merge_preferences(ProcessingPreferences(), {"max_clips": 5, "platforms": ["youtube"]})
        assert merged.max_clips == 5
        assert merged.platforms == ["youtube"]
        assert merged.max_duration == 60

    def test_no_overrides(self):
        base = ProcessingPreferences(max_clips=2)
        assert merge_preferences(base, None) is base

    def test_invalid_overrides(self):
        with pytest.raises(ValidationError) as exc:
            merge_preferences(ProcessingPreferences(), {"min_duration": 80, "max_duration": 20})
        assert exc.value.field == "preferences"


class TestTranscriptionStep:
    def test_simulated_transcript(self, make_video, videos):
        reporter = RecordingReporter()
        ctx = ProcessingContext(user_id="user_1", video=make_video(), reporter=reporter)
        transcription = asyncio.run(transcribe_video(
            ctx, videos=videos, whisper=WhisperClient(api_key=""), cache=TTLCache(),
        ))

        assert transcription.text
        videos.update_status.assert_called_once_with("vid_1", "transcribing")
        args = videos.save_transcription.call_args.args
        assert args[0] == "vid_1"
        assert args[2] in ("pt", "en")
        log = videos.log_transcription.call_args.args[0]
        assert log.provider == "simulation"
        assert log.cost_estimate_usd == 0.0
        assert log.duration_seconds == 300.0
        assert reporter.logs[-1].startswith("Transcribed ")

    def test_whisper_result_is_cached(self, make_video, videos):
        whisper = live_whisper()
        cache = TTLCache()
        for _ in range(2):
            ctx = ProcessingContext(user_id="user_1", video=make_video(), reporter=RecordingReporter())
            asyncio.run(transcribe_video(ctx, videos=videos, whisper=whisper, cache=cache))

        whisper.transcribe.assert_awaited_once_with(make_video().cloudinary_secure_url)
        first, second = [call.args[0] for call in videos.log_transcription.call_args_list]
        assert first.provider == "huggingface"
        assert first.cost_estimate_usd == 0.3
        assert not first.cached
        assert second.cached
        assert second.cost_estimate_usd == 0.0

    def test_whisper_needs_a_source(self, make_video, videos):
        whisper = live_whisper()
        ctx = ProcessingContext(
            user_id="user_1",
            video=make_video(status="demo_mode", cloudinary_secure_url=None),
            reporter=RecordingReporter(),
        )
        asyncio.run(transcribe_video(ctx, videos=videos, whisper=whisper, cache=TTLCache()))
        whisper.transcribe.assert_not_called()


class TestAnalysisStep:
    def test_stores_analysis(self, make_video, videos):
        reporter = RecordingReporter()
        ctx = ProcessingContext(user_id="user_1", video=make_video(), reporter=reporter)
        analysis = asyncio.run(analyze_video(
            ctx, Transcription(text="Uma dica sobre como gravar"), videos=videos, analyzer=offline_analyzer(),
        ))

        assert analysis.provider == "simulation"
        assert analysis.content_type == "educativo"
        assert analysis.suggestions
        videos.save_analysis.assert_called_once_with(analysis)
        videos.update_status.assert_called_once_with("vid_1", "generating")
        assert reporter.logs[-1].startswith(f"Found {len(analysis.suggestions)} moments")


class TestProcessVideo:
    def run_pipeline(self, videos, clips_repo, profiles, reporter, **kwargs):
        params = {
            "whisper": WhisperClient(api_key=""),
            "analyzer": offline_analyzer(),
            "shotstack": ShotstackClient(api_key=""),
            "cache": TTLCache(),
        }
        params.update(kwargs)
        return asyncio.run(process_video(
            "user_1", "vid_1", reporter,
            videos=videos, clips=clips_repo, profiles=profiles, **params,
        ))

    def test_end_to_end_in_simulation(self, videos, clips_repo, profiles):
        reporter = RecordingReporter()
        count = self.run_pipeline(videos, clips_repo, profiles, reporter)

        assert count == 3
        assert reporter.progress_values == [
            (5, "init"), (35, "transcribing"), (65, "analyzing"), (100, "completed"),
        ]
        assert reporter.finished == [("vid_1", 3)]
        assert reporter.errors == []
        assert reporter.logs[0] == "Starting processing for Aula de marketing"
        assert reporter.logs[-1] == "All done! 3 clips generated"

        statuses = [call.args[1] for call in videos.update_status.call_args_list]
        assert statuses == ["transcribing", "generating", "completed"]
        created = clips_repo.create_batch.call_args.args[0]
        assert {c.platform for c in created} == {"tiktok", "instagram"}

    def test_explicit_preferences(self, videos, clips_repo, profiles):
        count = asyncio.run(process_video(
            "user_1", "vid_1", RecordingReporter(),
            ProcessingPreferences(platforms=["youtube"], max_clips=1),
            videos=videos, clips=clips_repo, profiles=profiles,
            whisper=WhisperClient(api_key=""), analyzer=offline_analyzer(),
            shotstack=ShotstackClient(api_key=""), cache=TTLCache(),
        ))
        assert count == 1
        profiles.get_or_create.assert_not_called()

    def test_failure_is_stored_on_the_video(self, videos, clips_repo, profiles):
        analyzer = Mock()
        analyzer.analyze = AsyncMock(side_effect=ProviderError("groq", "boom"))
        reporter = RecordingReporter()

        count = self.run_pipeline(videos, clips_repo, profiles, reporter, analyzer=analyzer)

        assert count == 0
        videos.update_status.assert_called_with("vid_1", "error", error_message="analyzing: groq: boom")
        assert reporter.errors == ["Processing failed while analyzing: groq: boom"]
        assert reporter.finished == []
        clips_repo.create_batch.assert_not_called()

    def test_status_write_failure_still_reports(self, videos, clips_repo, profiles):
        whisper = live_whisper()
        whisper.transcribe.side_effect = ProviderError("huggingface", "loading", retryable=True)
        videos.update_status.side_effect = [None, RuntimeError("firestore down")]
        reporter = RecordingReporter()

        assert self.run_pipeline(videos, clips_repo, profiles, reporter, whisper=whisper) == 0
        assert reporter.errors == ["Processing failed while transcribing: huggingface: loading"]

    def test_conflict_raises_before_starting(self, make_video, clips_repo, profiles):
        videos = Mock()
        videos.get_video.return_value = make_video(status="analyzing")
        with pytest.raises(ProcessingConflictError):
            self.run_pipeline(videos, clips_repo, profiles, RecordingReporter())
        videos.update_status.assert_not_called()
