"""
Bridge between the app and the home-screen widget surface.

The widget runs in its own OS-managed process. The only channel between the
two is the state store: the app writes a render payload there, and the
widget writes refresh requests there for the app to pick up.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

from typing import Optional

from ..models.verse import AppSettings, EdgeSignal, VerseSnapshot, WidgetAction, WidgetPayload
from ..utils.clock import Clock, current_time_ms
from ..utils.logger import get_logger
from .exceptions import StorageError, WidgetUnavailableError
from .state_store import StateStore
from .verse_formatter import VerseFormatter

logger = get_logger(__name__)


class WidgetSurface:
    """
    Platform rendering sink for the widget.

    Platform bindings subclass this and override ``request_repaint``. The
    base class stands for a platform without widgets.
    """

    async def request_repaint(self, payload: WidgetPayload) -> None:
        """Ask the host to redraw the widget from ``payload`` now."""
        raise WidgetUnavailableError()


class WidgetSyncBridge:
    """
    Push verses to the widget and collect its refresh requests.

    Pushing never fails the caller: the verse state is already durable
    before a push starts, and push problems are only logged.
    """

    def __init__(
        self,
        store: StateStore,
        surface: Optional[WidgetSurface] = None,
        clock: Clock = current_time_ms,
        placeholder: Optional[WidgetPayload] = None,
    ):
        """
        Initialize bridge.

        Args:
            store: State store shared with the widget process
            surface: Platform widget binding, None when unsupported
            clock: Source of epoch-millisecond timestamps
            placeholder: Payload rendered before any verse has been pushed
        """
        self.store = store
        self.surface = surface or WidgetSurface()
        self.clock = clock
        self.placeholder = placeholder or WidgetPayload(chapter_label="Al-Fatiha 1:1")

    def build_payload(self, snapshot: VerseSnapshot, settings: AppSettings) -> WidgetPayload:
        """Format a verse into the record the widget renders."""
        return WidgetPayload(
            chapter_label=VerseFormatter.format_chapter_label(snapshot),
            original_text=VerseFormatter.original_text(snapshot) if settings.show_original_text else "",
            translation_text=(
                VerseFormatter.translation_text(snapshot, settings) if settings.show_translation else ""
            ),
            show_original=settings.show_original_text,
            show_translation=settings.show_translation,
            theme=settings.widget_theme,
            updated_at=self.clock(),
        )

    async def push_to_widget_surface(self, snapshot: VerseSnapshot, settings: AppSettings) -> bool:
        """
        Store the widget payload and request an immediate repaint.

        Args:
            snapshot: Verse to show
            settings: Display settings applied to the payload

        Returns:
            True if the surface accepted the repaint request
        """
        payload = self.build_payload(snapshot, settings)

        try:
            self.store.save_widget_payload(payload)
        except StorageError as e:
            logger.warning(f"Widget payload not saved: {e}")
            return False

        try:
            await self.surface.request_repaint(payload)
        except WidgetUnavailableError:
            logger.debug("Widget surface unavailable on this platform, payload stored only")
            return False
        except Exception as e:
            logger.warning(f"Widget repaint failed for {payload.chapter_label}: {e}")
            return False

        logger.info(f"Widget updated with {payload.chapter_label}")
        return True

    def load_widget_payload(self) -> WidgetPayload:
        """
        Render callback used by the widget process.

        Returns:
            The last pushed payload, or the placeholder verse when none
            exists or the store cannot be read
        """
        try:
            payload = self.store.get_widget_payload()
        except StorageError as e:
            logger.error(f"Failed to load widget data: {e}")
            return WidgetPayload(
                chapter_label="Error",
                translation_text="Failed to load verse data",
                show_original=False,
                show_translation=True,
            )

        if payload is None:
            logger.debug("No widget payload stored, rendering placeholder")
            return self.placeholder
        return payload

    def handle_widget_click(self, action: WidgetAction) -> None:
        """
        Click handler run in the widget process.

        Args:
            action: Action identifier attached to the clicked element
        """
        action = WidgetAction(action)
        if action is WidgetAction.REFRESH:
            self.record_external_refresh_request()
        else:
            logger.debug("Widget open-app click, no state change")

    def record_external_refresh_request(self) -> EdgeSignal:
        """Persist a refresh request raised from the widget."""
        signal = self.store.raise_signal(self.store.WIDGET_REFRESH_SIGNAL_KEY, self.clock())
        logger.info(f"Widget refresh requested at {signal.timestamp}")
        return signal

    def consume_external_refresh_request(self) -> bool:
        """
        Check for a widget refresh request the app has not handled yet.

        The host may call this on both an app-state change and a focus
        event for the same request; only the first call sees it.

        Returns:
            True at most once per distinct request
        """
        consumed = self.store.consume_signal(
            self.store.WIDGET_REFRESH_SIGNAL_KEY,
            self.store.WIDGET_REFRESH_CONSUMED_KEY,
        )
        if consumed:
            logger.info("Widget refresh request consumed")
        return consumed
