"""
Application configuration.

Process-level configuration (content source endpoint, storage location,
logging, scheduler cadence) loaded from the environment or a ``.env`` file.
User preferences are not kept here; they live in the state store as
``AppSettings`` so the widget process can read them too.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.logger import get_logger

logger = get_logger(__name__)


class Settings(BaseSettings):
    """
    Application configuration with environment overrides.

    Attributes:
        api_base_url: Root URL of the Quran content API
        request_timeout_seconds: Per-request timeout
        max_retries: Attempts for transient network failures
        data_directory: Location of the durable state store
        log_directory: Path to log files
        log_level: Logging level name
        refresh_check_interval_seconds: Foreground periodic check cadence
        widget_default_*: Content the widget shows before any verse is pushed
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="QURAN_VERSES_",
        case_sensitive=False,
        extra="ignore",
    )

    # Content source
    api_base_url: str = Field(
        default="https://quranapi.pages.dev/api",
        description="Quran API root URL",
    )
    request_timeout_seconds: float = Field(default=15.0, gt=0, description="HTTP timeout")
    max_retries: int = Field(default=3, ge=1, description="Attempts for transient failures")

    # Storage
    data_directory: Path = Field(
        default=Path.home() / ".quran_verses" / "state",
        description="Persistent state store path",
    )

    # Logging
    log_directory: Path = Field(
        default=Path.home() / ".quran_verses" / "logs",
        description="Log file path",
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # Scheduling
    refresh_check_interval_seconds: float = Field(
        default=300.0, gt=0, description="Periodic auto-refresh check while active"
    )

    # Widget placeholder shown until the app pushes a verse
    widget_default_chapter_label: str = Field(default="Al-Fatiha 1:1")
    widget_default_original_text: str = Field(
        default="بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ"
    )
    widget_default_translation_text: str = Field(
        default="In the name of Allah, the Entirely Merciful, the Especially Merciful."
    )

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoints are appended with a leading slash."""
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.upper().strip()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        for directory in [self.data_directory, self.log_directory]:
            directory.mkdir(parents=True, exist_ok=True)

    def get_safe_display(self) -> Dict[str, Any]:
        """
        Get settings as a plain dictionary for diagnostics output.

        Returns:
            Dictionary with paths converted to strings
        """
        data = self.model_dump()
        for key, value in data.items():
            if isinstance(value, Path):
                data[key] = str(value)
        return data
