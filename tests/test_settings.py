"""
Unit tests for application configuration.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from quran_verses.config.settings import Settings


class TestSettings:
    """Tests for Settings class."""

    def test_defaults(self):
        settings = Settings()

        assert settings.api_base_url == "https://quranapi.pages.dev/api"
        assert settings.request_timeout_seconds == 15.0
        assert settings.max_retries == 3
        assert settings.refresh_check_interval_seconds == 300.0
        assert settings.widget_default_chapter_label == "Al-Fatiha 1:1"

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("QURAN_VERSES_MAX_RETRIES", "5")
        monkeypatch.setenv("QURAN_VERSES_DATA_DIRECTORY", str(tmp_path / "data"))
        monkeypatch.setenv("QURAN_VERSES_LOG_LEVEL", "debug")

        settings = Settings()

        assert settings.max_retries == 5
        assert settings.data_directory == tmp_path / "data"
        assert settings.log_level == "DEBUG"

    def test_base_url_trailing_slash(self):
        settings = Settings(api_base_url="https://example.org/api/")
        assert settings.api_base_url == "https://example.org/api"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD")

    def test_invalid_check_interval(self):
        with pytest.raises(ValidationError):
            Settings(refresh_check_interval_seconds=0)

    def test_ensure_directories(self, tmp_path):
        settings = Settings(data_directory=tmp_path / "state", log_directory=tmp_path / "logs")

        settings.ensure_directories()

        assert (tmp_path / "state").is_dir()
        assert (tmp_path / "logs").is_dir()

    def test_safe_display_converts_paths(self, tmp_path):
        settings = Settings(data_directory=tmp_path / "state")

        display = settings.get_safe_display()

        assert display["data_directory"] == str(tmp_path / "state")
        assert not any(isinstance(value, Path) for value in display.values())
