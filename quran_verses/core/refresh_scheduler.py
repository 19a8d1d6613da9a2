"""
Background refresh scheduler.

Advances the verse automatically once the interval chosen by the user has
elapsed. Checks run on a periodic timer while the app is in the foreground
and immediately whenever the app comes back to the foreground; the host OS
does not guarantee timers fire in the background, so the transition check
is what catches up after a long absence.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import asyncio
from typing import Optional

from ..models.verse import RefreshCountdown, RefreshFrequency, VerseSnapshot
from ..utils.clock import Clock, current_time_ms
from ..utils.logger import get_logger
from .app_lifecycle import AppLifecycle, AppState, LifecycleEvent, Subscription
from .exceptions import StorageError, VerseLoadError
from .state_store import StateStore
from .verse_sequencer import VerseSequencer
from .widget_bridge import WidgetSyncBridge

logger = get_logger(__name__)

MS_PER_MINUTE = 60 * 1000
MS_PER_HOUR = 60 * MS_PER_MINUTE


class RefreshScheduler:
    """
    Decide when to auto-advance the verse and do it.

    Every check re-reads the last refresh timestamp from the store, so a
    check that follows another one sees its update. Checks that arrive while
    one is already running are skipped.

    Background failures are logged and leave the timer untouched so the next
    check retries. Failures of user-initiated refreshes propagate.
    """

    def __init__(
        self,
        sequencer: VerseSequencer,
        store: StateStore,
        widget_bridge: Optional[WidgetSyncBridge] = None,
        clock: Clock = current_time_ms,
        check_interval: float = 300.0,
        advance_lock: Optional[asyncio.Lock] = None,
    ):
        """
        Initialize scheduler.

        Args:
            sequencer: Verse sequencer to advance
            store: State store holding settings and the refresh timestamp
            widget_bridge: Bridge notified after each refresh, optional
            clock: Source of epoch-millisecond timestamps
            check_interval: Seconds between periodic checks while active
            advance_lock: Lock serializing every verse change in the app
        """
        self.sequencer = sequencer
        self.store = store
        self.widget_bridge = widget_bridge
        self.clock = clock
        self.check_interval = check_interval
        self.advance_lock = advance_lock or asyncio.Lock()

        self.last_refresh_time = 0
        self.is_active = True
        self._in_flight = False
        self._periodic_task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Event] = None
        self._subscription: Optional[Subscription] = None

    async def start(self, lifecycle: Optional[AppLifecycle] = None) -> None:
        """
        Load the persisted timer, start periodic checks and listen for
        foreground transitions.
        """
        self.last_refresh_time = self.store.get_last_auto_refresh()

        if lifecycle is not None:
            self.is_active = lifecycle.app_state is AppState.ACTIVE
            self._subscription = lifecycle.subscribe(
                LifecycleEvent.APP_STATE, self.on_app_state_change
            )

        if self._periodic_task is None:
            self._stopping = asyncio.Event()
            self._periodic_task = asyncio.get_running_loop().create_task(self._run_periodic())

        logger.info(f"Background refresh scheduler started (every {self.check_interval:.0f}s)")

    async def stop(self) -> None:
        """
        Stop periodic checks and unsubscribe from lifecycle events.

        A check already advancing the verse is allowed to finish.
        """
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

        if self._periodic_task is not None:
            self._stopping.set()
            await self._periodic_task
            self._periodic_task = None
            self._stopping = None

        logger.info("Background refresh scheduler stopped")

    async def on_app_state_change(self, state: AppState) -> None:
        """Track foreground state and check right away on becoming active."""
        self.is_active = AppState(state) is AppState.ACTIVE
        if self.is_active:
            await self.check_and_refresh_if_needed()

    async def check_and_refresh_if_needed(self) -> bool:
        """
        Advance the verse if the refresh interval has elapsed.

        Returns:
            True if an auto-refresh was performed
        """
        if self._in_flight:
            logger.debug("Refresh check already running, skipping")
            return False

        self._in_flight = True
        try:
            async with self.advance_lock:
                return await self._check()
        except (VerseLoadError, StorageError) as e:
            logger.warning(f"Auto-refresh failed, will retry on next check: {e}")
            return False
        finally:
            self._in_flight = False

    async def manual_refresh(self) -> VerseSnapshot:
        """
        Advance on user request and restart the auto-refresh interval.

        Raises:
            VerseLoadError: If the verse cannot be loaded
            StorageError: If the store cannot be written
        """
        async with self.advance_lock:
            snapshot = await self.sequencer.advance()
            self.reset_refresh_timer()

        await self._push_widget(snapshot)
        return snapshot

    def reset_refresh_timer(self) -> None:
        """Restart the interval so no auto-refresh follows a manual one immediately."""
        now = self.clock()
        self.last_refresh_time = now
        self.store.save_last_auto_refresh(now)
        logger.debug(f"Refresh timer reset at {now}")

    def get_time_until_next_refresh(self) -> Optional[RefreshCountdown]:
        """
        Time left before the next auto-refresh.

        Returns:
            None when refreshing is manual, zero when a refresh is overdue
        """
        settings = self.store.get_settings()
        interval = settings.refresh_frequency.interval_ms
        if interval is None:
            return None

        last_refresh = self.store.get_last_auto_refresh()
        remaining = interval - (self.clock() - last_refresh)
        if remaining <= 0:
            return RefreshCountdown(hours=0, minutes=0)

        return RefreshCountdown(
            hours=remaining // MS_PER_HOUR,
            minutes=(remaining % MS_PER_HOUR) // MS_PER_MINUTE,
        )

    def check_auto_refresh_occurred(self) -> bool:
        """Consume the one-shot "auto-refresh happened" signal for the UI."""
        return self.store.consume_signal(
            self.store.AUTO_REFRESH_SIGNAL_KEY,
            self.store.AUTO_REFRESH_CONSUMED_KEY,
        )

    async def _check(self) -> bool:
        settings = self.store.get_settings()
        if settings.refresh_frequency is RefreshFrequency.MANUAL:
            return False

        self.last_refresh_time = self.store.get_last_auto_refresh()
        now = self.clock()
        elapsed = now - self.last_refresh_time
        interval = settings.refresh_frequency.interval_ms

        logger.debug(
            f"Time since last refresh: {elapsed // MS_PER_MINUTE} minutes, "
            f"interval: {interval // MS_PER_MINUTE} minutes"
        )

        if elapsed < interval:
            return False

        logger.info("Auto-refreshing verse based on settings")
        snapshot = await self.sequencer.advance()

        self.last_refresh_time = now
        self.store.save_last_auto_refresh(now)
        self.store.raise_signal(self.store.AUTO_REFRESH_SIGNAL_KEY, now)
        logger.info(f"Auto-refresh completed with {snapshot.ref.canonical_reference}")

        await self._push_widget(snapshot)
        return True

    async def _push_widget(self, snapshot: VerseSnapshot) -> None:
        if self.widget_bridge is None:
            return
        try:
            settings = self.store.get_settings()
        except StorageError as e:
            logger.warning(f"Widget not updated, settings unreadable: {e}")
            return
        await self.widget_bridge.push_to_widget_surface(snapshot, settings)

    async def _run_periodic(self) -> None:
        while True:
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.check_interval)
                return
            except asyncio.TimeoutError:
                pass
            if not self.is_active:
                continue
            try:
                await self.check_and_refresh_if_needed()
            except Exception as e:
                logger.error(f"Periodic refresh check failed: {e}", exc_info=True)
