"""
Tests for input validation, hashing and rate limiting.

Run with: pytest tests/test_security.py -v
"""

from unittest.mock import patch

import pytest

from clipsforge.core.security import (
    RateLimiter,
    ValidationError,
    hash_token,
    mask_sensitive_data,
    sanitize_filename,
    sanitize_text,
    validate_media_url,
    validate_platform,
    validate_platforms,
    validate_resource_id,
    validate_schedule_type,
    validate_upload_file,
)


class TestResourceIds:
    def test_accepts_plain_ids(self):
        assert validate_resource_id(" abc_DEF-123 ") == "abc_DEF-123"

    @pytest.mark.parametrize("value", ["", "../etc", "a/b", "id with space"])
    def test_rejects_unsafe_ids(self, value):
        with pytest.raises(ValidationError):
            validate_resource_id(value)

    def test_rejects_long_ids(self):
        with pytest.raises(ValidationError) as exc:
            validate_resource_id("a" * 101, field="clip_id")
        assert exc.value.field == "clip_id"

    def test_is_a_value_error(self):
        assert issubclass(ValidationError, ValueError)


class TestUploadFiles:
    def test_returns_extension(self):
        assert validate_upload_file("Aula.MP4", "video/mp4") == ".mp4"

    def test_accepts_mkv_sent_as_octet_stream(self):
        assert validate_upload_file("show.mkv", "application/octet-stream") == ".mkv"

    def test_ignores_mime_parameters(self):
        assert validate_upload_file("a.webm", "video/webm; codecs=vp9") == ".webm"

    @pytest.mark.parametrize("content_type", [None, "", "video/x-m4v", "image/png"])
    def test_known_extension_is_enough(self, content_type):
        assert validate_upload_file("talk.mp4", content_type) == ".mp4"

    def test_known_mime_is_enough(self):
        assert validate_upload_file("recording", "video/quicktime") == ".mov"

    def test_octet_stream_without_extension(self):
        assert validate_upload_file("recording", "application/octet-stream") == ""

    @pytest.mark.parametrize("filename, content_type", [
        ("notes.pdf", "application/pdf"),
        ("notes.pdf", None),
        ("setup.exe", "application/x-msdownload"),
    ])
    def test_rejects_when_neither_is_known(self, filename, content_type):
        with pytest.raises(ValidationError) as exc:
            validate_upload_file(filename, content_type)
        assert exc.value.field == "filename"

    def test_rejects_missing_name(self):
        with pytest.raises(ValidationError):
            validate_upload_file("", "video/mp4")


class TestSanitizers:
    def test_filename_strips_directories(self):
        assert sanitize_filename("..\\..\\secret/my video!.mp4") == "my_video_.mp4"

    def test_filename_never_empty(self):
        assert sanitize_filename("...") == "video"

    def test_text_drops_control_characters(self):
        assert sanitize_text("  ola\x00 mundo\x07 ") == "ola mundo"

    def test_text_truncates(self):
        assert sanitize_text("abcdef", max_length=3) == "abc"


class TestPlatforms:
    def test_normalizes_case(self):
        assert validate_platform(" TikTok ") == "tiktok"

    def test_rejects_unsupported(self):
        with pytest.raises(ValidationError):
            validate_platform("myspace")

    def test_list_dedupes_in_order(self):
        assert validate_platforms(["youtube", "TIKTOK", "youtube"]) == ["youtube", "tiktok"]

    def test_list_requires_one(self):
        with pytest.raises(ValidationError):
            validate_platforms([])

    def test_schedule_type(self):
        assert validate_schedule_type("Optimal") == "optimal"
        with pytest.raises(ValidationError):
            validate_schedule_type("later")


class TestMediaUrls:
    def test_accepts_https(self):
        url = "https://res.cloudinary.com/demo/video/upload/v1/a.mp4"
        assert validate_media_url(url) == url

    @pytest.mark.parametrize("url", ["", "ftp://host/file", "javascript:alert(1)", "https://"])
    def test_rejects_invalid(self, url):
        with pytest.raises(ValidationError):
            validate_media_url(url)


class TestSecrets:
    def test_hash_is_stable_and_short(self):
        assert hash_token("abc") == hash_token("abc")
        assert len(hash_token("abc")) == 16
        assert hash_token("abc") != "abc"

    def test_masks_nested_keys(self):
        masked = mask_sensitive_data({"api_key": "x", "nested": {"Authorization": "y"}, "name": "z"})
        assert masked == {"api_key": "[REDACTED]", "nested": {"Authorization": "[REDACTED]"}, "name": "z"}


class TestRateLimiter:
    def test_blocks_after_limit(self):
        limiter = RateLimiter(limit=2, window=60)
        assert limiter.is_allowed("ip:1")[0]
        assert limiter.is_allowed("ip:1")[0]
        allowed, remaining, reset = limiter.is_allowed("ip:1")
        assert not allowed
        assert remaining == 0
        assert reset >= 1

    def test_keys_are_independent(self):
        limiter = RateLimiter(limit=1, window=60)
        assert limiter.is_allowed("user:a")[0]
        assert limiter.is_allowed("user:b")[0]

    def test_window_expiry_resets_count(self):
        limiter = RateLimiter(limit=1, window=10)
        assert limiter.is_allowed("k")[0]
        assert not limiter.is_allowed("k")[0]
        started = limiter._entries["k"].window_start
        with patch("clipsforge.core.security.rate_limiting.time.time", return_value=started + 11):
            assert limiter.is_allowed("k")[0]

    def test_reset_clears_entries(self):
        limiter = RateLimiter(limit=1, window=60)
        limiter.is_allowed("k")
        limiter.reset()
        assert limiter.is_allowed("k")[0]
