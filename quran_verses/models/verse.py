"""
Data models for Quran verse representation and app state.

This module provides immutable, type-safe data models for verse references,
verse and chapter records from the content source, the persisted user
settings, and the records shared with the home-screen widget, using Pydantic
for validation and serialization.

Records fetched from the content source arrive in camelCase; every model
accepts those aliases as well as its Python field names, and is persisted
using the Python field names.

Author: Kasim Lyee <lyee@codewithlyee.com>
Organization: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import re
from datetime import timedelta
from enum import Enum
from typing import Optional, ClassVar, List
from pydantic import BaseModel, Field, computed_field
from pydantic.config import ConfigDict


TOTAL_CHAPTERS = 114


class RefreshFrequency(str, Enum):
    """How often the displayed verse is advanced automatically."""

    HOURLY = "hourly"
    EVERY_2_HOURS = "every2hours"
    DAILY = "daily"
    WEEKLY = "weekly"
    MANUAL = "manual"

    @property
    def interval(self) -> Optional[timedelta]:
        """Elapsed time required between auto-refreshes, None when disabled."""
        intervals = {
            RefreshFrequency.HOURLY: timedelta(hours=1),
            RefreshFrequency.EVERY_2_HOURS: timedelta(hours=2),
            RefreshFrequency.DAILY: timedelta(days=1),
            RefreshFrequency.WEEKLY: timedelta(days=7),
            RefreshFrequency.MANUAL: None,
        }
        return intervals[self]

    @property
    def interval_ms(self) -> Optional[int]:
        """Interval in epoch milliseconds, None when disabled."""
        interval = self.interval
        if interval is None:
            return None
        return int(interval.total_seconds() * 1000)

    @property
    def display_name(self) -> str:
        """Get human-friendly display name."""
        names = {
            RefreshFrequency.HOURLY: "Every hour",
            RefreshFrequency.EVERY_2_HOURS: "Every 2 hours",
            RefreshFrequency.DAILY: "Daily",
            RefreshFrequency.WEEKLY: "Weekly",
            RefreshFrequency.MANUAL: "Manual only",
        }
        return names[self]


class WidgetTheme(str, Enum):
    """Color scheme used by the home-screen widget."""

    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class WidgetAction(str, Enum):
    """Click actions the widget surface can report back to the app."""

    REFRESH = "refresh"
    OPEN_APP = "open_app"


class VerseRef(BaseModel):
    """
    Immutable reference to a single verse, without its content.

    Attributes:
        chapter: Chapter (surah) number, 1 to 114
        verse: Verse (ayah) number within the chapter

    Examples:
        >>> ref = VerseRef(chapter=2, verse=255)
        >>> ref.canonical_reference
        '2:255'
    """

    model_config = ConfigDict(frozen=True)

    REFERENCE_PATTERN: ClassVar[re.Pattern] = re.compile(r"^\s*(\d{1,3})\s*:\s*(\d{1,3})\s*$")

    chapter: int = Field(..., ge=1, le=TOTAL_CHAPTERS)
    verse: int = Field(..., ge=1)

    @computed_field
    @property
    def canonical_reference(self) -> str:
        """Reference in "chapter:verse" form."""
        return f"{self.chapter}:{self.verse}"

    @classmethod
    def parse(cls, reference: str) -> VerseRef:
        """
        Parse a "chapter:verse" string.

        Args:
            reference: Reference string such as "2:255"

        Returns:
            Validated VerseRef

        Raises:
            ValueError: If the string is not in "chapter:verse" form or out of range
        """
        match = cls.REFERENCE_PATTERN.match(reference)
        if not match:
            raise ValueError(
                f"Invalid verse reference format: '{reference}'. "
                f"Expected format: 'Chapter:Verse'"
            )
        chapter, verse = match.groups()
        return cls(chapter=int(chapter), verse=int(verse))


class Chapter(BaseModel):
    """
    Chapter (surah) metadata from the content source.

    ``total_verses`` bounds random verse selection and drives the
    enumeration of every verse when a traversal order is built.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., alias="surahName")
    name_arabic: str = Field(default="", alias="surahNameArabic")
    name_arabic_long: str = Field(default="", alias="surahNameArabicLong")
    name_translation: str = Field(default="", alias="surahNameTranslation")
    revelation_place: str = Field(default="", alias="revelationPlace")
    total_verses: int = Field(..., ge=1, alias="totalAyah")
    number: Optional[int] = Field(default=None, ge=1, le=TOTAL_CHAPTERS, alias="surahNo")


class Verse(BaseModel):
    """
    Verse content record keyed by chapter and verse number.

    Attributes:
        chapter_number: Chapter the verse belongs to
        verse_number: Position of the verse in its chapter
        chapter_name: Transliterated chapter name
        total_verses: Verse count of the chapter
        arabic: Original text with diacritics
        arabic_plain: Original text without diacritics
        english, bengali, urdu: Translations carried by the content source
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    TRANSLATION_FIELDS: ClassVar[tuple] = ("english", "bengali", "urdu")

    chapter_number: int = Field(..., ge=1, le=TOTAL_CHAPTERS, alias="surahNo")
    verse_number: int = Field(..., ge=1, alias="ayahNo")
    chapter_name: str = Field(default="", alias="surahName")
    chapter_name_arabic: str = Field(default="", alias="surahNameArabic")
    chapter_name_translation: str = Field(default="", alias="surahNameTranslation")
    revelation_place: str = Field(default="", alias="revelationPlace")
    total_verses: int = Field(default=1, ge=1, alias="totalAyah")
    arabic: str = Field(default="", alias="arabic1")
    arabic_plain: str = Field(default="", alias="arabic2")
    english: str = Field(default="")
    bengali: str = Field(default="")
    urdu: str = Field(default="")

    @property
    def ref(self) -> VerseRef:
        """Reference identifying this verse."""
        return VerseRef(chapter=self.chapter_number, verse=self.verse_number)

    def translation_text(self, language: str = "english") -> str:
        """
        Get the translation for a language key.

        Unknown keys and empty translations fall back to English.
        """
        key = (language or "").strip().lower()
        if key in self.TRANSLATION_FIELDS:
            text = getattr(self, key)
            if text:
                return text
        return self.english


class VerseSnapshot(BaseModel):
    """A verse paired with its chapter, as shown to the user and stored."""

    model_config = ConfigDict(frozen=True)

    verse: Verse
    chapter: Chapter

    @property
    def ref(self) -> VerseRef:
        return self.verse.ref


class AppSettings(BaseModel):
    """
    User preferences persisted in the state store.

    Created with defaults on first access and changed field by field.
    """

    refresh_frequency: RefreshFrequency = Field(default=RefreshFrequency.DAILY)
    show_original_text: bool = Field(default=True)
    show_translation: bool = Field(default=True)
    widget_theme: WidgetTheme = Field(default=WidgetTheme.AUTO)
    preferred_translation: str = Field(default="english", min_length=1)


class RefreshCountdown(BaseModel):
    """Time left until the next automatic refresh."""

    model_config = ConfigDict(frozen=True)

    hours: int = Field(..., ge=0)
    minutes: int = Field(..., ge=0, le=59)


class EdgeSignal(BaseModel):
    """
    Persisted "an event happened" flag with the time it was raised.

    Consumers compare ``timestamp`` against their own last-consumed
    timestamp, so a signal is delivered at most once.
    """

    model_config = ConfigDict(frozen=True)

    pending: bool = Field(default=False)
    timestamp: int = Field(default=0, ge=0)


class WidgetPayload(BaseModel):
    """
    Render request read by the widget surface.

    The widget runs outside the app process and only ever sees this record.
    """

    model_config = ConfigDict(frozen=True)

    chapter_label: str
    original_text: str = ""
    translation_text: str = ""
    show_original: bool = True
    show_translation: bool = True
    theme: WidgetTheme = WidgetTheme.AUTO
    click_actions: List[WidgetAction] = Field(
        default_factory=lambda: [WidgetAction.REFRESH, WidgetAction.OPEN_APP]
    )
    updated_at: int = Field(default=0, ge=0)
