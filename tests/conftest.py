"""
Pytest configuration and shared fixtures for QuranVerses tests.

Provides a synthetic 114-chapter corpus served by an in-memory content
source, a controllable clock, and a state store in a temporary directory.
"""

import random
from pathlib import Path
from typing import Generator, List

import pytest

from quran_verses.api.api_exceptions import APIConnectionError, APIVerseNotFoundError
from quran_verses.api.quran_api_client import QuranAPIClient
from quran_verses.core.state_store import StateStore
from quran_verses.core.widget_bridge import WidgetSurface
from quran_verses.models.verse import (
    TOTAL_CHAPTERS,
    AppSettings,
    Chapter,
    Verse,
    VerseRef,
    VerseSnapshot,
    WidgetPayload,
)

HOUR_MS = 60 * 60 * 1000
START_TIME_MS = 1_700_000_000_000


def verse_count(chapter_number: int) -> int:
    """Verse count of a chapter in the synthetic corpus."""
    return chapter_number % 7 + 1


CORPUS_SIZE = sum(verse_count(n) for n in range(1, TOTAL_CHAPTERS + 1))


def make_chapter(number: int) -> Chapter:
    return Chapter(
        name=f"Surah-{number}",
        name_arabic=f"سورة {number}",
        name_translation=f"Chapter {number}",
        revelation_place="Mecca",
        total_verses=verse_count(number),
        number=number,
    )


def make_verse(chapter_number: int, verse_number: int) -> Verse:
    return Verse(
        chapter_number=chapter_number,
        verse_number=verse_number,
        chapter_name=f"Surah-{chapter_number}",
        total_verses=verse_count(chapter_number),
        arabic=f"نص {chapter_number}:{verse_number}",
        english=f"English {chapter_number}:{verse_number}",
        urdu=f"Urdu {chapter_number}:{verse_number}",
    )


class FakeContentSource:
    """In-memory content source over the synthetic corpus."""

    def __init__(self, seed: int = 7):
        self.rng = random.Random(seed)
        self.chapters = [make_chapter(n) for n in range(1, TOTAL_CHAPTERS + 1)]
        self.fail = False
        self.sequence_builds = 0
        self.verse_fetches: List[VerseRef] = []

    def _check(self) -> None:
        if self.fail:
            raise APIConnectionError("Quran API unreachable")

    async def fetch_verse(self, ref: VerseRef) -> Verse:
        self._check()
        if ref.verse > verse_count(ref.chapter):
            raise APIVerseNotFoundError(f"Not found: {ref.canonical_reference}")
        self.verse_fetches.append(ref)
        return make_verse(ref.chapter, ref.verse)

    async def fetch_chapter(self, chapter_number: int) -> Chapter:
        self._check()
        if not 1 <= chapter_number <= TOTAL_CHAPTERS:
            raise APIVerseNotFoundError(f"Chapter not found: {chapter_number}")
        return self.chapters[chapter_number - 1]

    async def fetch_all_chapters(self) -> List[Chapter]:
        self._check()
        return list(self.chapters)

    async def build_shuffled_sequence(self) -> List[VerseRef]:
        chapters = await self.fetch_all_chapters()
        refs = QuranAPIClient.enumerate_verse_refs(chapters)
        QuranAPIClient.shuffle_in_place(refs, self.rng)
        self.sequence_builds += 1
        return refs

    async def pick_random_verse(self) -> VerseSnapshot:
        self._check()
        chapter_number = self.rng.randint(1, TOTAL_CHAPTERS)
        chapter = await self.fetch_chapter(chapter_number)
        verse = await self.fetch_verse(
            VerseRef(chapter=chapter_number, verse=self.rng.randint(1, chapter.total_verses))
        )
        return VerseSnapshot(verse=verse, chapter=chapter)


class FakeClock:
    """Callable clock returning a settable epoch-millisecond time."""

    def __init__(self, now: int = START_TIME_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingSurface(WidgetSurface):
    """Widget surface that records every repaint request."""

    def __init__(self):
        self.payloads: List[WidgetPayload] = []

    async def request_repaint(self, payload: WidgetPayload) -> None:
        self.payloads.append(payload)


@pytest.fixture
def content_source() -> FakeContentSource:
    return FakeContentSource()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def store(tmp_path: Path) -> Generator[StateStore, None, None]:
    """State store in a clean temporary directory."""
    state_store = StateStore(tmp_path / "state")
    yield state_store
    state_store.close()


@pytest.fixture
def sample_verse_ref() -> VerseRef:
    return VerseRef(chapter=2, verse=3)


@pytest.fixture
def sample_snapshot() -> VerseSnapshot:
    """Al-Fatiha 1:1 with real text."""
    return VerseSnapshot(
        verse=Verse(
            chapter_number=1,
            verse_number=1,
            chapter_name="Al-Fatiha",
            total_verses=7,
            arabic="بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ",
            arabic_plain="بسم الله الرحمن الرحيم",
            english="In the Name of Allah—the Most Compassionate, Most Merciful.",
            bengali="শুরু করছি আল্লাহর নামে",
            urdu="اللہ کے نام سے",
        ),
        chapter=Chapter(
            name="Al-Fatiha",
            name_arabic="الفاتحة",
            name_translation="The Opening",
            revelation_place="Mecca",
            total_verses=7,
            number=1,
        ),
    )


@pytest.fixture
def default_settings() -> AppSettings:
    return AppSettings()


# Remote payloads as served by the content API
VERSE_PAYLOAD = {
    "surahName": "Al-Fatiha",
    "surahNameArabic": "الفاتحة",
    "surahNameArabicLong": "سُورَةُ ٱلْفَاتِحَةِ",
    "surahNameTranslation": "The Opening",
    "revelationPlace": "Mecca",
    "totalAyah": 7,
    "surahNo": 1,
    "ayahNo": 1,
    "audio": {"1": {"reciter": "Mishary Rashid Al Afasy", "url": "https://example.org/1.mp3"}},
    "english": "In the Name of Allah—the Most Compassionate, Most Merciful.",
    "arabic1": "بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ",
    "arabic2": "بسم الله الرحمن الرحيم",
    "bengali": "শুরু করছি আল্লাহর নামে",
    "urdu": "اللہ کے نام سے",
}

CHAPTER_PAYLOAD = {
    "surahName": "Al-Fatiha",
    "surahNameArabic": "الفاتحة",
    "surahNameArabicLong": "سُورَةُ ٱلْفَاتِحَةِ",
    "surahNameTranslation": "The Opening",
    "revelationPlace": "Mecca",
    "totalAyah": 7,
    "surahNo": 1,
    "english": ["In the Name of Allah"],
}
