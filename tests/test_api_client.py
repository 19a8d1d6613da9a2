"""
Unit tests for the Quran API client.

Tests verse and chapter fetching, error mapping, retry behavior and
sequence construction.
"""

import asyncio
import random
from collections import Counter
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from tenacity import wait_none

from quran_verses.api.api_exceptions import (
    APIConnectionError,
    APIResponseError,
    APIServerError,
    APITimeoutError,
    APIVerseNotFoundError,
    NetworkError,
    NotFoundError,
)
from quran_verses.api.quran_api_client import QuranAPIClient
from quran_verses.models.verse import TOTAL_CHAPTERS, Chapter, Verse, VerseRef
from tests.conftest import CHAPTER_PAYLOAD, VERSE_PAYLOAD


def make_response(status: int = 200, payload=None, text: str = "") -> AsyncMock:
    """Create a mock aiohttp response usable as an async context manager."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=payload)
    mock_response.text = AsyncMock(return_value=text)
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)
    return mock_response


def make_client(*responses, max_retries: int = 1) -> QuranAPIClient:
    """Create a client whose session returns the given responses in order."""
    mock_session = AsyncMock()
    mock_session.get = MagicMock(side_effect=list(responses))

    client = QuranAPIClient(max_retries=max_retries, rng=random.Random(3))
    client.retry_wait = wait_none()
    client.session = mock_session
    return client


def chapter_list_payload(counts):
    return [
        {"surahName": f"Surah {n}", "totalAyah": count}
        for n, count in enumerate(counts, start=1)
    ]


class TestQuranAPIClient:
    """Tests for QuranAPIClient class."""

    def test_initialization(self):
        """Test client initialization."""
        client = QuranAPIClient(base_url="https://example.org/api/")
        assert client.base_url == "https://example.org/api"
        assert client.session is None
        assert client.max_retries == 3

    def test_initialization_invalid_retries(self):
        with pytest.raises(ValueError, match="max_retries"):
            QuranAPIClient(max_retries=0)

    def test_error_aliases(self):
        assert NetworkError is APIConnectionError
        assert NotFoundError is APIVerseNotFoundError

    @pytest.mark.asyncio
    async def test_context_manager(self):
        """Test async context manager usage."""
        async with QuranAPIClient() as client:
            assert client.session is not None
            assert isinstance(client.session, aiohttp.ClientSession)
        assert client.session is None

    @pytest.mark.asyncio
    async def test_fetch_verse_not_initialized(self):
        client = QuranAPIClient()

        with pytest.raises(RuntimeError, match="Client not initialized"):
            await client.fetch_verse(VerseRef(chapter=1, verse=1))

    @pytest.mark.asyncio
    async def test_fetch_verse_success(self):
        client = make_client(make_response(payload=VERSE_PAYLOAD))

        verse = await client.fetch_verse(VerseRef(chapter=1, verse=1))

        assert isinstance(verse, Verse)
        assert verse.ref == VerseRef(chapter=1, verse=1)
        assert verse.chapter_name == "Al-Fatiha"
        assert verse.arabic.startswith("بِسْمِ")
        assert "Compassionate" in verse.english
        client.session.get.assert_called_once_with("https://quranapi.pages.dev/api/1/1.json")

    @pytest.mark.asyncio
    async def test_fetch_verse_not_found(self):
        client = make_client(make_response(status=404))

        with pytest.raises(APIVerseNotFoundError):
            await client.fetch_verse(VerseRef(chapter=1, verse=7))

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        client = make_client(make_response(status=404), max_retries=3)

        with pytest.raises(APIVerseNotFoundError):
            await client.fetch_verse(VerseRef(chapter=1, verse=7))

        assert client.session.get.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error(self):
        client = make_client(make_response(status=503))

        with pytest.raises(APIServerError) as exc_info:
            await client.fetch_chapter(1)

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value, NetworkError)

    @pytest.mark.asyncio
    async def test_other_status_is_network_error(self):
        client = make_client(make_response(status=429, text="slow down"))

        with pytest.raises(APIConnectionError, match="429"):
            await client.fetch_chapter(1)

    @pytest.mark.asyncio
    async def test_transient_error_is_retried(self):
        client = make_client(
            make_response(status=502),
            make_response(payload=CHAPTER_PAYLOAD),
            max_retries=2,
        )

        chapter = await client.fetch_chapter(1)

        assert chapter.name == "Al-Fatiha"
        assert client.session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_network_failure(self):
        client = make_client(aiohttp.ClientConnectionError("connection refused"))

        with pytest.raises(APIConnectionError, match="Network error"):
            await client.fetch_chapter(1)

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = make_client(asyncio.TimeoutError())

        with pytest.raises(APITimeoutError):
            await client.fetch_chapter(1)

    @pytest.mark.asyncio
    async def test_malformed_verse_payload(self):
        client = make_client(make_response(payload={"surahName": "Al-Fatiha"}))

        with pytest.raises(APIResponseError):
            await client.fetch_verse(VerseRef(chapter=1, verse=1))

    @pytest.mark.asyncio
    async def test_fetch_chapter_success(self):
        client = make_client(make_response(payload=CHAPTER_PAYLOAD))

        chapter = await client.fetch_chapter(1)

        assert isinstance(chapter, Chapter)
        assert chapter.total_verses == 7
        assert chapter.number == 1
        assert chapter.name_translation == "The Opening"

    @pytest.mark.asyncio
    async def test_fetch_chapter_out_of_range(self):
        client = make_client()

        with pytest.raises(APIVerseNotFoundError):
            await client.fetch_chapter(115)
        with pytest.raises(APIVerseNotFoundError):
            await client.fetch_chapter(0)

        client.session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_all_chapters_numbers_by_position(self):
        client = make_client(make_response(payload=chapter_list_payload([7, 286, 200])))

        chapters = await client.fetch_all_chapters()

        assert [c.number for c in chapters] == [1, 2, 3]
        assert [c.total_verses for c in chapters] == [7, 286, 200]

    @pytest.mark.asyncio
    async def test_fetch_all_chapters_rejects_non_list(self):
        client = make_client(make_response(payload={"chapters": []}))

        with pytest.raises(APIResponseError):
            await client.fetch_all_chapters()

    @pytest.mark.asyncio
    async def test_build_shuffled_sequence_covers_corpus(self):
        counts = [n % 9 + 1 for n in range(1, TOTAL_CHAPTERS + 1)]
        client = make_client(make_response(payload=chapter_list_payload(counts)))

        sequence = await client.build_shuffled_sequence()

        assert len(sequence) == sum(counts)
        assert Counter(sequence).most_common(1)[0][1] == 1
        expected = {
            VerseRef(chapter=c, verse=v)
            for c, count in enumerate(counts, start=1)
            for v in range(1, count + 1)
        }
        assert set(sequence) == expected

    @pytest.mark.asyncio
    async def test_build_shuffled_sequence_is_independent_per_call(self):
        counts = [20] * TOTAL_CHAPTERS
        client = make_client(
            make_response(payload=chapter_list_payload(counts)),
            make_response(payload=chapter_list_payload(counts)),
        )

        first = await client.build_shuffled_sequence()
        second = await client.build_shuffled_sequence()

        assert sorted(first, key=lambda r: (r.chapter, r.verse)) == sorted(
            second, key=lambda r: (r.chapter, r.verse)
        )
        assert first != second

    @pytest.mark.asyncio
    async def test_pick_random_verse(self):
        client = make_client(
            make_response(payload=CHAPTER_PAYLOAD),
            make_response(payload=VERSE_PAYLOAD),
        )
        client.rng = MagicMock()
        client.rng.randint.side_effect = [1, 1]

        snapshot = await client.pick_random_verse()

        assert snapshot.ref == VerseRef(chapter=1, verse=1)
        assert snapshot.chapter.name == "Al-Fatiha"
        client.rng.randint.assert_any_call(1, TOTAL_CHAPTERS)
        client.rng.randint.assert_any_call(1, 7)


class TestSequenceHelpers:
    """Tests for enumeration and shuffling helpers."""

    def test_enumerate_verse_refs_in_reading_order(self):
        chapters = [
            Chapter(name="A", total_verses=2, number=1),
            Chapter(name="B", total_verses=3, number=2),
        ]

        refs = QuranAPIClient.enumerate_verse_refs(chapters)

        assert [(r.chapter, r.verse) for r in refs] == [(1, 1), (1, 2), (2, 1), (2, 2), (2, 3)]

    def test_shuffle_in_place_keeps_elements(self):
        items = list(range(50))

        QuranAPIClient.shuffle_in_place(items, random.Random(1))

        assert sorted(items) == list(range(50))
        assert items != list(range(50))

    def test_shuffle_visits_indices_downward(self):
        rng = MagicMock()
        rng.randint.return_value = 0
        items = [1, 2, 3, 4]

        QuranAPIClient.shuffle_in_place(items, rng)

        calls = [call.args for call in rng.randint.call_args_list]
        assert calls == [(0, 3), (0, 2), (0, 1)]

    def test_shuffle_single_item(self):
        items = ["only"]
        QuranAPIClient.shuffle_in_place(items, random.Random(1))
        assert items == ["only"]
