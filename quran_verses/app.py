"""
Application composition root.

Builds the content client, state store, sequencer, widget bridge and
scheduler once per process and owns their lifecycle. Host bindings and the
command line talk to this object instead of module-level services.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Optional, Tuple

from .api.quran_api_client import QuranAPIClient
from .config.settings import Settings
from .core.app_lifecycle import AppLifecycle, AppState, LifecycleEvent, Subscription
from .core.exceptions import QuranVersesError, StorageError, VerseLoadError
from .core.refresh_scheduler import RefreshScheduler
from .core.state_store import StateStore
from .core.verse_formatter import VerseFormatter
from .core.verse_sequencer import VerseSequencer
from .core.widget_bridge import WidgetSurface, WidgetSyncBridge
from .models.verse import AppSettings, RefreshCountdown, VerseRef, VerseSnapshot, WidgetPayload
from .utils.clock import Clock, current_time_ms
from .utils.logger import get_logger

logger = get_logger(__name__)

DISPLAY_FIELDS = {"show_original_text", "show_translation", "widget_theme", "preferred_translation"}


class VerseApp:
    """
    Owns every verse service for one app process.

    User actions (next, random, favorite, settings) raise on failure so the
    caller can show a notice; nothing is persisted by a failed action.

    Example:
        >>> async with VerseApp(Settings()) as app:
        ...     snapshot = await app.load_current_verse()
        ...     print(app.share_text(snapshot))
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        content_source: Optional[QuranAPIClient] = None,
        store: Optional[StateStore] = None,
        surface: Optional[WidgetSurface] = None,
        clock: Clock = current_time_ms,
        lifecycle: Optional[AppLifecycle] = None,
    ):
        """
        Initialize the app services.

        Args:
            settings: Process configuration, loaded from the environment if omitted
            content_source: Client to use instead of one built from settings
            store: Store to use instead of one opened from settings
            surface: Platform widget binding, None when unsupported
            clock: Source of epoch-millisecond timestamps
            lifecycle: Host event hub, created if omitted
        """
        self.settings = settings or Settings()

        self._owns_client = content_source is None
        self.content_source = content_source or QuranAPIClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout_seconds,
            max_retries=self.settings.max_retries,
        )

        self._owns_store = store is None
        self.store = store or StateStore(self.settings.data_directory)

        self._owns_lifecycle = lifecycle is None
        self.lifecycle = lifecycle or AppLifecycle()
        self.advance_lock = asyncio.Lock()

        self.sequencer = VerseSequencer(self.content_source, self.store)
        self.widget_bridge = WidgetSyncBridge(
            self.store,
            surface=surface,
            clock=clock,
            placeholder=WidgetPayload(
                chapter_label=self.settings.widget_default_chapter_label,
                original_text=self.settings.widget_default_original_text,
                translation_text=self.settings.widget_default_translation_text,
            ),
        )
        self.scheduler = RefreshScheduler(
            self.sequencer,
            self.store,
            widget_bridge=self.widget_bridge,
            clock=clock,
            check_interval=self.settings.refresh_check_interval_seconds,
            advance_lock=self.advance_lock,
        )

        self._subscriptions: List[Subscription] = []
        self._started = False

    async def __aenter__(self) -> VerseApp:
        if self._owns_client:
            await self.content_source.__aenter__()
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            await self.stop()
        finally:
            if self._owns_client:
                await self.content_source.__aexit__(exc_type, exc_val, exc_tb)
            if self._owns_store:
                self.store.close()

    async def start(self) -> None:
        """Start the scheduler and listen for foreground and focus events."""
        if self._started:
            return
        await self.scheduler.start(self.lifecycle)
        self._subscriptions = [
            self.lifecycle.subscribe(LifecycleEvent.APP_STATE, self._on_app_state),
            self.lifecycle.subscribe(LifecycleEvent.FOCUS, self._on_focus),
        ]
        self._started = True
        logger.info("Verse app started")

    async def stop(self) -> None:
        """
        Unsubscribe every handler and stop the scheduler.

        Refreshes already running in a handler are allowed to finish first.
        """
        if not self._started:
            return
        for subscription in self._subscriptions:
            subscription.remove()
        await self.scheduler.stop()
        for subscription in self._subscriptions:
            await subscription.wait()
        self._subscriptions = []
        if self._owns_lifecycle:
            await self.lifecycle.close()
        self._started = False
        logger.info("Verse app stopped")

    # Host events

    async def _on_app_state(self, state: AppState) -> None:
        if AppState(state) is AppState.ACTIVE:
            await self.handle_external_refresh_request()

    async def _on_focus(self) -> None:
        await self.handle_external_refresh_request()

    async def handle_external_refresh_request(self) -> Optional[VerseSnapshot]:
        """
        Advance once if the widget asked for a refresh since the last check.

        Returns:
            The new verse, or None when there was no new request or loading failed
        """
        if not self.widget_bridge.consume_external_refresh_request():
            return None

        logger.info("Refreshing verse on widget request")
        try:
            return await self.scheduler.manual_refresh()
        except (VerseLoadError, StorageError) as e:
            logger.error(f"Widget-requested refresh failed: {e}")
            return None

    # User actions

    async def load_current_verse(self) -> VerseSnapshot:
        """Get the verse to display on launch, advancing only if there is none."""
        async with self.advance_lock:
            snapshot = await self.sequencer.get_current_or_advance()
        await self._push_widget(snapshot)
        return snapshot

    async def next_verse(self) -> VerseSnapshot:
        """Advance to the next verse in the sequence on user request."""
        return await self.scheduler.manual_refresh()

    async def random_verse(self) -> VerseSnapshot:
        """Jump to a random verse, leaving the sequence position unchanged."""
        async with self.advance_lock:
            snapshot = await self.sequencer.get_random()
            self.scheduler.reset_refresh_timer()
        await self._push_widget(snapshot)
        return snapshot

    async def reset_sequence(self) -> int:
        """
        Reshuffle the traversal order and start it from the beginning.

        Returns:
            Length of the new sequence
        """
        async with self.advance_lock:
            sequence = await self.sequencer.reset_sequence()
        return len(sequence)

    def current_verse(self) -> Optional[VerseSnapshot]:
        return self.store.get_current_verse()

    def get_progress(self) -> Tuple[int, int]:
        """Verses shown so far and the length of the current sequence."""
        return self.sequencer.get_progress()

    def toggle_favorite(self) -> bool:
        """
        Add the current verse to favorites, or remove it if already there.

        Returns:
            True if the verse is a favorite afterwards

        Raises:
            QuranVersesError: If there is no current verse
        """
        snapshot = self.store.get_current_verse()
        if snapshot is None:
            raise QuranVersesError("No verse is currently displayed")

        if self.store.is_favorite(snapshot.ref):
            self.store.remove_from_favorites(snapshot.ref)
            return False

        self.store.add_to_favorites(snapshot)
        return True

    def add_favorite(self, snapshot: VerseSnapshot) -> bool:
        return self.store.add_to_favorites(snapshot)

    def remove_favorite(self, ref: VerseRef) -> bool:
        return self.store.remove_from_favorites(ref)

    def get_favorites(self) -> List[VerseSnapshot]:
        return self.store.get_favorites()

    def share_text(self, snapshot: Optional[VerseSnapshot] = None) -> str:
        """
        Text to hand to the platform share sheet.

        Raises:
            QuranVersesError: If no verse is given and none is current
        """
        snapshot = snapshot or self.store.get_current_verse()
        if snapshot is None:
            raise QuranVersesError("No verse is currently displayed")
        return VerseFormatter.format_share_text(snapshot, self.store.get_settings())

    def get_settings(self) -> AppSettings:
        return self.store.get_settings()

    async def update_settings(self, **changes: Any) -> AppSettings:
        """
        Change user settings and refresh the widget if display options changed.

        Raises:
            ValueError: If a field is unknown or a value is invalid
        """
        updated = self.store.update_settings(**changes)
        if DISPLAY_FIELDS & set(changes):
            snapshot = self.store.get_current_verse()
            if snapshot is not None:
                await self.widget_bridge.push_to_widget_surface(snapshot, updated)
        return updated

    def get_time_until_next_refresh(self) -> Optional[RefreshCountdown]:
        return self.scheduler.get_time_until_next_refresh()

    def check_auto_refresh_occurred(self) -> bool:
        return self.scheduler.check_auto_refresh_occurred()

    def clear_all_data(self) -> None:
        """Erase settings, favorites, verse history and widget state."""
        self.store.clear_all()
        self.scheduler.last_refresh_time = 0

    async def _push_widget(self, snapshot: VerseSnapshot) -> None:
        try:
            settings = self.store.get_settings()
        except StorageError as e:
            logger.warning(f"Widget not updated, settings unreadable: {e}")
            return
        await self.widget_bridge.push_to_widget_surface(snapshot, settings)
