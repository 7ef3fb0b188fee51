"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from core.config import Settings, get_settings


class TestCorsOrigins:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("http://a.test, http://b.test", ["http://a.test", "http://b.test"]),
            ('["http://a.test"]', ["http://a.test"]),
            ("", []),
            ([" http://a.test "], ["http://a.test"]),
        ],
    )
    def test_accepts_csv_json_and_list(self, raw, expected) -> None:
        assert Settings(CORS_ORIGINS=raw).CORS_ORIGINS == expected

    def test_rejects_malformed_json_array(self) -> None:
        with pytest.raises(ValidationError):
            Settings(CORS_ORIGINS="[1,")

    def test_non_array_json_is_read_as_csv(self) -> None:
        assert Settings(CORS_ORIGINS='{"a": 1}').CORS_ORIGINS == ['{"a": 1}']


class TestReviewSettings:
    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.REVIEW_MAX_RETRIES == 3
        assert settings.REVIEW_BACKOFF_BASE_MS == 1000
        assert settings.REVIEW_PUBLISH_MODE == "comment"

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("REVIEW_MAX_RETRIES", "5")
        monkeypatch.setenv("REVIEW_PUBLISH_MODE", "result")

        settings = Settings()

        assert settings.REVIEW_MAX_RETRIES == 5
        assert settings.REVIEW_PUBLISH_MODE == "result"

    @pytest.mark.parametrize("field", ["REVIEW_MAX_RETRIES", "REVIEW_BACKOFF_BASE_MS"])
    def test_retry_settings_must_be_non_negative(self, field: str) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: -1})

    def test_unknown_publish_mode_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(REVIEW_PUBLISH_MODE="email")


def test_get_settings_rejects_unknown_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")
    get_settings.cache_clear()
    try:
        with pytest.raises(ValueError):
            get_settings()
    finally:
        monkeypatch.setenv("ENVIRONMENT", "test")
        get_settings.cache_clear()
