"""
Verse sequencer: decides which verse is shown next.

Walks a persisted shuffled permutation of every verse, reshuffling when it
is exhausted. State lives only in the store, so every operation re-reads
the sequence and cursor before acting.

Callers must not run advance() concurrently with itself; the cursor
read-modify-write is not guarded here.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from ..api.api_exceptions import APIError
from ..api.quran_api_client import QuranAPIClient
from ..models.verse import VerseRef, VerseSnapshot
from ..utils.logger import get_logger
from .exceptions import VerseLoadError
from .state_store import StateStore

logger = get_logger(__name__)


class VerseSequencer:
    """
    Single source of truth for the current verse.

    Features:
        - Non-repeating traversal of the whole corpus
        - Automatic reshuffle once every verse has been shown
        - Random jumps that leave the traversal position untouched
        - Nothing persisted when a fetch fails
    """

    def __init__(self, content_source: QuranAPIClient, store: StateStore):
        """
        Initialize sequencer.

        Args:
            content_source: Client used to fetch verses and build sequences
            store: Persistent state store
        """
        self.content_source = content_source
        self.store = store

    async def advance(self) -> VerseSnapshot:
        """
        Move to the next verse in the shuffled sequence.

        A missing, empty or exhausted sequence is replaced by a fresh
        shuffle. The new sequence, the current verse and the cursor are
        written only after the verse has been fetched, in that order.

        Returns:
            The verse now current

        Raises:
            VerseLoadError: If the content source fails
            StorageError: If the store cannot be read or written
        """
        sequence = self.store.get_verse_sequence()
        cursor = self.store.get_sequence_index()
        rebuilt: Optional[List[VerseRef]] = None

        if not sequence:
            logger.info("No verse sequence found, creating a new shuffled sequence")
            rebuilt = await self._build_sequence()
            cursor = 0
        elif cursor >= len(sequence):
            logger.info("Reached end of sequence, reshuffling")
            rebuilt = await self._build_sequence()
            cursor = 0

        if rebuilt is not None:
            sequence = rebuilt

        ref = sequence[cursor]
        snapshot = await self._load(ref)

        if rebuilt is not None:
            self.store.save_verse_sequence(rebuilt)
        self.store.save_current_verse(snapshot)
        self.store.save_sequence_index(cursor + 1)

        logger.info(
            f"Advanced to {ref.canonical_reference} "
            f"({cursor + 1}/{len(sequence)})"
        )
        return snapshot

    async def get_current_or_advance(self) -> VerseSnapshot:
        """Return the persisted current verse, advancing only if there is none."""
        current = self.store.get_current_verse()
        if current is not None:
            return current
        return await self.advance()

    async def get_random(self) -> VerseSnapshot:
        """
        Jump to a random verse without touching the sequence or cursor.

        Raises:
            VerseLoadError: If the content source fails
        """
        try:
            snapshot = await self.content_source.pick_random_verse()
        except APIError as e:
            logger.error(f"Failed to get random verse: {e}")
            raise VerseLoadError(f"Failed to load random verse: {e.message}") from e

        self.store.save_current_verse(snapshot)
        logger.info(f"Jumped to random verse {snapshot.ref.canonical_reference}")
        return snapshot

    async def reset_sequence(self) -> List[VerseRef]:
        """
        Replace the sequence with a brand-new shuffle and rewind the cursor.

        The current verse is left as it is.
        """
        sequence = await self._build_sequence()
        self.store.save_verse_sequence(sequence)
        self.store.save_sequence_index(0)
        logger.info("Verse sequence reset and shuffled")
        return sequence

    def get_progress(self) -> Tuple[int, int]:
        """Return (verses shown, sequence length) for the current sequence."""
        sequence = self.store.get_verse_sequence() or []
        cursor = min(self.store.get_sequence_index(), len(sequence))
        return cursor, len(sequence)

    async def _build_sequence(self) -> List[VerseRef]:
        try:
            sequence = await self.content_source.build_shuffled_sequence()
        except APIError as e:
            logger.error(f"Failed to generate shuffled sequence: {e}")
            raise VerseLoadError(f"Failed to build verse sequence: {e.message}") from e

        if not sequence:
            raise VerseLoadError("Content source returned an empty verse corpus")
        return sequence

    async def _load(self, ref: VerseRef) -> VerseSnapshot:
        try:
            verse = await self.content_source.fetch_verse(ref)
            chapter = await self.content_source.fetch_chapter(ref.chapter)
        except APIError as e:
            logger.error(f"Failed to load verse {ref.canonical_reference}: {e}")
            raise VerseLoadError(
                f"Failed to load verse {ref.canonical_reference}: {e.message}"
            ) from e
        return VerseSnapshot(verse=verse, chapter=chapter)
