"""
Persistent state store backed by diskcache.

Holds user settings, the current verse, favorites, the shuffled verse
sequence and its cursor, the auto-refresh timestamp, and the records shared
with the home-screen widget. Values are stored as JSON so the widget process
can read the same directory the app writes.

Every write is atomic for its key; nothing spans keys, so callers order
their writes so that an interrupted sequence of writes stays readable.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, List, Optional

import diskcache
from pydantic import ValidationError

from ..models.verse import AppSettings, EdgeSignal, VerseRef, VerseSnapshot, WidgetPayload
from ..utils.logger import get_logger
from .exceptions import StorageError

logger = get_logger(__name__)

_MISSING = object()


class StateStore:
    """
    Typed key-value access to everything the app persists.

    Reads of absent keys return defaults instead of failing; read or write
    failures of the underlying store raise StorageError.
    """

    SETTINGS_KEY = "app_settings"
    CURRENT_VERSE_KEY = "current_verse"
    FAVORITES_KEY = "favorite_verses"
    VERSE_SEQUENCE_KEY = "verse_sequence"
    SEQUENCE_INDEX_KEY = "sequence_index"
    LAST_AUTO_REFRESH_KEY = "last_auto_refresh"
    AUTO_REFRESH_SIGNAL_KEY = "auto_refresh_occurred"
    AUTO_REFRESH_CONSUMED_KEY = "last_auto_refresh_check"
    WIDGET_REFRESH_SIGNAL_KEY = "widget_refresh_requested"
    WIDGET_REFRESH_CONSUMED_KEY = "last_widget_refresh_check"
    WIDGET_PAYLOAD_KEY = "widget_payload"

    OWNED_KEYS = (
        SETTINGS_KEY,
        CURRENT_VERSE_KEY,
        FAVORITES_KEY,
        VERSE_SEQUENCE_KEY,
        SEQUENCE_INDEX_KEY,
        LAST_AUTO_REFRESH_KEY,
        AUTO_REFRESH_SIGNAL_KEY,
        AUTO_REFRESH_CONSUMED_KEY,
        WIDGET_REFRESH_SIGNAL_KEY,
        WIDGET_REFRESH_CONSUMED_KEY,
        WIDGET_PAYLOAD_KEY,
    )

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Open (or create) the store.

        Args:
            data_dir: Directory for the store, shared with the widget process
        """
        if data_dir is None:
            data_dir = Path.home() / ".quran_verses" / "state"

        data_dir = Path(data_dir)
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
            self.cache = diskcache.Cache(str(data_dir), disk=diskcache.JSONDisk)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"Cannot open state store at {data_dir}: {e}") from e

        self.data_dir = data_dir
        logger.info(f"State store opened at {data_dir}")

    def __enter__(self) -> StateStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.cache.close()
        logger.debug("State store closed")

    # Settings

    def get_settings(self) -> AppSettings:
        """Get user settings, persisting defaults on first access."""
        raw = self._read(self.SETTINGS_KEY)
        if raw is not _MISSING:
            try:
                return AppSettings.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Stored settings invalid, restoring defaults: {e}")

        settings = AppSettings()
        self.save_settings(settings)
        return settings

    def save_settings(self, settings: AppSettings) -> None:
        self._write(self.SETTINGS_KEY, settings.model_dump(mode="json"))

    def update_settings(self, **changes: Any) -> AppSettings:
        """
        Change individual settings fields.

        Args:
            **changes: Field names and new values

        Returns:
            The updated settings

        Raises:
            ValueError: If a field is unknown or a value is invalid
        """
        unknown = set(changes) - set(AppSettings.model_fields)
        if unknown:
            raise ValueError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

        current = self.get_settings()
        updated = AppSettings.model_validate({**current.model_dump(), **changes})
        self.save_settings(updated)
        logger.info(f"Settings updated: {', '.join(sorted(changes))}")
        return updated

    # Current verse

    def get_current_verse(self) -> Optional[VerseSnapshot]:
        raw = self._read(self.CURRENT_VERSE_KEY)
        if raw is _MISSING or raw is None:
            return None
        try:
            return VerseSnapshot.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored current verse invalid, ignoring it: {e}")
            return None

    def save_current_verse(self, snapshot: VerseSnapshot) -> None:
        self._write(self.CURRENT_VERSE_KEY, snapshot.model_dump(mode="json"))

    # Favorites

    def get_favorites(self) -> List[VerseSnapshot]:
        """Get favorites in insertion order."""
        raw = self._read(self.FAVORITES_KEY)
        if raw is _MISSING or not isinstance(raw, list):
            return []

        favorites = []
        for item in raw:
            try:
                favorites.append(VerseSnapshot.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid favorite entry: {e}")
        return favorites

    def add_to_favorites(self, snapshot: VerseSnapshot) -> bool:
        """
        Add a verse to favorites.

        Returns:
            True if added, False if it was already a favorite
        """
        favorites = self.get_favorites()
        if any(fav.ref == snapshot.ref for fav in favorites):
            logger.debug(f"Already a favorite: {snapshot.ref.canonical_reference}")
            return False

        favorites.append(snapshot)
        self._write_favorites(favorites)
        logger.info(f"Added favorite {snapshot.ref.canonical_reference}")
        return True

    def remove_from_favorites(self, ref: VerseRef) -> bool:
        """
        Remove a verse from favorites.

        Returns:
            True if a favorite was removed
        """
        favorites = self.get_favorites()
        remaining = [fav for fav in favorites if fav.ref != ref]
        if len(remaining) == len(favorites):
            return False

        self._write_favorites(remaining)
        logger.info(f"Removed favorite {ref.canonical_reference}")
        return True

    def is_favorite(self, ref: VerseRef) -> bool:
        return any(fav.ref == ref for fav in self.get_favorites())

    def _write_favorites(self, favorites: List[VerseSnapshot]) -> None:
        self._write(self.FAVORITES_KEY, [fav.model_dump(mode="json") for fav in favorites])

    # Sequence and cursor

    def get_verse_sequence(self) -> Optional[List[VerseRef]]:
        """Get the persisted traversal order, or None if absent or unreadable."""
        raw = self._read(self.VERSE_SEQUENCE_KEY)
        if raw is _MISSING or raw is None:
            return None
        try:
            return [VerseRef(chapter=chapter, verse=verse) for chapter, verse in raw]
        except (TypeError, ValueError) as e:
            logger.warning(f"Stored verse sequence invalid, ignoring it: {e}")
            return None

    def save_verse_sequence(self, sequence: List[VerseRef]) -> None:
        self._write(self.VERSE_SEQUENCE_KEY, [[ref.chapter, ref.verse] for ref in sequence])
        logger.debug(f"Saved verse sequence of {len(sequence)} refs")

    def get_sequence_index(self) -> int:
        raw = self._read(self.SEQUENCE_INDEX_KEY)
        if raw is _MISSING:
            return 0
        try:
            return max(int(raw), 0)
        except (TypeError, ValueError):
            logger.warning(f"Stored sequence index invalid: {raw!r}")
            return 0

    def save_sequence_index(self, index: int) -> None:
        if index < 0:
            raise ValueError(f"Sequence index cannot be negative: {index}")
        self._write(self.SEQUENCE_INDEX_KEY, index)

    # Auto-refresh timer

    def get_last_auto_refresh(self) -> int:
        """Epoch milliseconds of the last auto-refresh, 0 if never."""
        raw = self._read(self.LAST_AUTO_REFRESH_KEY)
        if raw is _MISSING:
            return 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Stored auto-refresh timestamp invalid: {raw!r}")
            return 0

    def save_last_auto_refresh(self, timestamp_ms: int) -> None:
        self._write(self.LAST_AUTO_REFRESH_KEY, int(timestamp_ms))

    # Edge-triggered signals

    def get_signal(self, signal_key: str) -> EdgeSignal:
        raw = self._read(signal_key)
        if raw is _MISSING or raw is None:
            return EdgeSignal()
        try:
            return EdgeSignal.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored signal {signal_key} invalid: {e}")
            return EdgeSignal()

    def raise_signal(self, signal_key: str, timestamp_ms: int) -> EdgeSignal:
        """
        Mark a one-shot signal as pending.

        The stored timestamp always increases, so a new event is never
        mistaken for one already consumed.
        """
        previous = self.get_signal(signal_key)
        timestamp_ms = max(int(timestamp_ms), previous.timestamp + 1)
        signal = EdgeSignal(pending=True, timestamp=timestamp_ms)
        self._write(signal_key, signal.model_dump(mode="json"))
        logger.debug(f"Signal {signal_key} raised at {timestamp_ms}")
        return signal

    def consume_signal(self, signal_key: str, consumed_key: str) -> bool:
        """
        Consume a pending signal at most once per distinct timestamp.

        Args:
            signal_key: Key holding the EdgeSignal
            consumed_key: Key holding the last consumed timestamp

        Returns:
            True if a new, unconsumed signal was pending
        """
        signal = self.get_signal(signal_key)
        if not signal.pending:
            return False

        raw = self._read(consumed_key)
        try:
            last_consumed = 0 if raw is _MISSING else int(raw)
        except (TypeError, ValueError):
            logger.warning(f"Stored consumed timestamp for {signal_key} invalid: {raw!r}")
            last_consumed = 0

        if signal.timestamp <= last_consumed:
            logger.debug(f"Signal {signal_key} at {signal.timestamp} already consumed")
            self._write(signal_key, EdgeSignal(timestamp=signal.timestamp).model_dump(mode="json"))
            return False

        self._write(consumed_key, signal.timestamp)
        self._write(signal_key, EdgeSignal(timestamp=signal.timestamp).model_dump(mode="json"))
        logger.debug(f"Signal {signal_key} at {signal.timestamp} consumed")
        return True

    # Widget payload

    def get_widget_payload(self) -> Optional[WidgetPayload]:
        raw = self._read(self.WIDGET_PAYLOAD_KEY)
        if raw is _MISSING or raw is None:
            return None
        try:
            return WidgetPayload.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored widget payload invalid: {e}")
            return None

    def save_widget_payload(self, payload: WidgetPayload) -> None:
        self._write(self.WIDGET_PAYLOAD_KEY, payload.model_dump(mode="json"))

    # Bulk

    def clear_all(self) -> None:
        """Erase every key the app owns."""
        for key in self.OWNED_KEYS:
            self._delete(key)
        logger.info("All app data cleared")

    # Low-level access

    def _read(self, key: str) -> Any:
        try:
            value = self.cache.get(key, default=_MISSING)
        except (sqlite3.Error, OSError, diskcache.Timeout) as e:
            logger.error(f"Store read error for {key}: {e}")
            raise StorageError(f"Failed to read {key}: {e}", key=key) from e
        if value is _MISSING:
            logger.debug(f"Store miss: {key}")
        return value

    def _write(self, key: str, value: Any) -> None:
        try:
            self.cache.set(key, value)
        except (sqlite3.Error, OSError, diskcache.Timeout) as e:
            logger.error(f"Store write error for {key}: {e}")
            raise StorageError(f"Failed to write {key}: {e}", key=key) from e
        logger.debug(f"Store set: {key}")

    def _delete(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except (sqlite3.Error, OSError, diskcache.Timeout) as e:
            logger.error(f"Store delete error for {key}: {e}")
            raise StorageError(f"Failed to delete {key}: {e}", key=key) from e
