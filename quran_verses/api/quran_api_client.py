"""
Quran API client for fetching verses and chapter metadata.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import asyncio
import random
from typing import Any, List, Optional

import aiohttp
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..models.verse import TOTAL_CHAPTERS, Chapter, Verse, VerseRef, VerseSnapshot
from ..utils.logger import get_logger
from .api_exceptions import (
    APIConnectionError,
    APIResponseError,
    APIServerError,
    APITimeoutError,
    APIVerseNotFoundError,
)

logger = get_logger(__name__)


class QuranAPIClient:
    """
    Async client for the Quran content API.

    Fetches single verses, chapter metadata and the chapter list, and
    derives a shuffled traversal order over every verse in the corpus.

    Features:
        - Async/await support with a shared aiohttp session
        - Automatic retry with exponential backoff for transient failures
        - Not-found responses are never retried
        - Injectable random source for reproducible shuffles

    Example:
        >>> async with QuranAPIClient() as client:
        ...     verse = await client.fetch_verse(VerseRef(chapter=1, verse=1))
        ...     print(verse.english)
    """

    BASE_URL = "https://quranapi.pages.dev/api"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 15.0,
        max_retries: int = 3,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize API client.

        Args:
            base_url: API root, defaults to BASE_URL
            timeout: Total per-request timeout in seconds
            max_retries: Attempts for transient network failures
            rng: Random source used for shuffling and random picks

        Raises:
            ValueError: If max_retries is lower than 1
        """
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.rng = rng or random.Random()
        self.retry_wait = wait_exponential(multiplier=1, min=2, max=10)
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(f"QuranAPIClient initialized for {self.base_url}")

    async def __aenter__(self) -> QuranAPIClient:
        self.session = aiohttp.ClientSession(
            headers={"accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        logger.debug("API session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.session:
            await self.session.close()
            self.session = None
            logger.debug("API session closed")

    async def fetch_verse(self, ref: VerseRef) -> Verse:
        """
        Fetch one verse with its original text and translations.

        Args:
            ref: Chapter and verse to fetch

        Returns:
            Verse record

        Raises:
            APIVerseNotFoundError: If the chapter or verse does not exist
            APIConnectionError: If the content source is unreachable
            APIResponseError: If the payload cannot be parsed
        """
        data = await self._get_json(f"/{ref.chapter}/{ref.verse}.json")
        try:
            verse = Verse.model_validate(data)
        except ValidationError as e:
            raise APIResponseError(f"Invalid verse payload for {ref.canonical_reference}: {e}") from e

        logger.debug(f"Fetched verse {verse.ref.canonical_reference}")
        return verse

    async def fetch_chapter(self, chapter_number: int) -> Chapter:
        """
        Fetch metadata for one chapter.

        Args:
            chapter_number: Chapter number, 1 to 114

        Returns:
            Chapter record

        Raises:
            APIVerseNotFoundError: If the chapter number is out of range
            APIConnectionError: If the content source is unreachable
            APIResponseError: If the payload cannot be parsed
        """
        if not 1 <= chapter_number <= TOTAL_CHAPTERS:
            raise APIVerseNotFoundError(f"Chapter not found: {chapter_number}")

        data = await self._get_json(f"/{chapter_number}.json")
        try:
            chapter = Chapter.model_validate(data)
        except ValidationError as e:
            raise APIResponseError(f"Invalid chapter payload for {chapter_number}: {e}") from e

        if chapter.number is None:
            chapter = chapter.model_copy(update={"number": chapter_number})
        return chapter

    async def fetch_all_chapters(self) -> List[Chapter]:
        """
        Fetch metadata for every chapter, ordered 1 to 114.

        The chapter list does not carry chapter numbers, so they are
        assigned from list position.
        """
        data = await self._get_json("/surah.json")
        if not isinstance(data, list):
            raise APIResponseError("Chapter list payload is not a list")

        chapters = []
        for index, item in enumerate(data, start=1):
            try:
                chapter = Chapter.model_validate(item)
            except ValidationError as e:
                raise APIResponseError(f"Invalid chapter entry {index}: {e}") from e
            if chapter.number is None:
                chapter = chapter.model_copy(update={"number": index})
            chapters.append(chapter)

        chapters.sort(key=lambda c: c.number)
        if len(chapters) != TOTAL_CHAPTERS:
            logger.warning(f"Chapter list has {len(chapters)} entries, expected {TOTAL_CHAPTERS}")

        logger.debug(f"Fetched {len(chapters)} chapters")
        return chapters

    async def build_shuffled_sequence(self) -> List[VerseRef]:
        """
        Build a fresh random traversal order over every verse.

        Each call shuffles independently; callers that need a stable order
        must persist the result.

        Returns:
            Permutation of every (chapter, verse) reference in the corpus
        """
        chapters = await self.fetch_all_chapters()
        refs = self.enumerate_verse_refs(chapters)
        self.shuffle_in_place(refs, self.rng)
        logger.info(f"Built shuffled sequence of {len(refs)} verses")
        return refs

    async def pick_random_verse(self) -> VerseSnapshot:
        """
        Pick a random verse outside of any traversal order.

        The chapter is chosen uniformly, then a verse uniformly within it,
        so verses of short chapters are more likely than verses of long ones.
        """
        chapter_number = self.rng.randint(1, TOTAL_CHAPTERS)
        chapter = await self.fetch_chapter(chapter_number)
        verse_number = self.rng.randint(1, chapter.total_verses)
        verse = await self.fetch_verse(VerseRef(chapter=chapter_number, verse=verse_number))
        return VerseSnapshot(verse=verse, chapter=chapter)

    @staticmethod
    def enumerate_verse_refs(chapters: List[Chapter]) -> List[VerseRef]:
        """List every verse of every chapter in reading order."""
        return [
            VerseRef(chapter=chapter.number, verse=verse_number)
            for chapter in chapters
            for verse_number in range(1, chapter.total_verses + 1)
        ]

    @staticmethod
    def shuffle_in_place(items: list, rng: random.Random) -> None:
        """Fisher-Yates shuffle from the last index down to 1."""
        for i in range(len(items) - 1, 0, -1):
            j = rng.randint(0, i)
            items[i], items[j] = items[j], items[i]

    async def _get_json(self, endpoint: str) -> Any:
        """
        GET an endpoint and decode its JSON body, retrying transient failures.

        Raises:
            RuntimeError: If client not initialized with context manager
        """
        if not self.session:
            raise RuntimeError(
                "Client not initialized. Use async context manager:\n"
                "  async with QuranAPIClient() as client:\n"
                "      verse = await client.fetch_verse(ref)"
            )

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.retry_wait,
            retry=retry_if_exception_type(APIConnectionError),
            reraise=True,
        ):
            with attempt:
                return await self._request(f"{self.base_url}{endpoint}")

    async def _request(self, url: str) -> Any:
        logger.debug(f"Requesting {url}")

        try:
            async with self.session.get(url) as response:
                if response.status == 200:
                    try:
                        return await response.json(content_type=None)
                    except ValueError as e:
                        raise APIResponseError(f"Invalid JSON from {url}: {e}") from e

                if response.status == 404:
                    logger.error(f"Not found: {url}")
                    raise APIVerseNotFoundError(f"Not found: {url}")

                if response.status >= 500:
                    logger.error(f"Server error {response.status} for {url}")
                    raise APIServerError(
                        f"Quran API server error {response.status}",
                        status_code=response.status,
                    )

                error_text = await response.text()
                logger.error(f"API error {response.status} for {url}: {error_text}")
                raise APIConnectionError(
                    f"Quran API error {response.status}: {error_text}",
                    status_code=response.status,
                )

        except asyncio.TimeoutError as e:
            logger.error(f"Timeout fetching {url}")
            raise APITimeoutError(f"Request timed out: {url}") from e

        except aiohttp.ClientError as e:
            logger.error(f"Network error fetching {url}: {e}")
            raise APIConnectionError(f"Network error: {e}") from e
