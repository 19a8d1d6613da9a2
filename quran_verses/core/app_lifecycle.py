"""
App lifecycle events with explicit subscription handles.

Host bindings report app-state changes and screen focus here. Components
subscribe at start and close their subscription at teardown. Each event
delivery runs the handler as its own asyncio task; closing a subscription
stops new deliveries and waits for running ones to complete or fail, so a
verse advance is never aborted halfway through its writes.

Author: Kasim Lyee <lyee@codewithlyee.com>
Company: Softlite Inc.
License: MIT
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Set

from ..utils.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Any]]


class AppState(str, Enum):
    """Foreground/background state reported by the host."""

    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class LifecycleEvent(str, Enum):
    """Events published by the host."""

    APP_STATE = "app_state"
    FOCUS = "focus"


class Subscription:
    """Handle returned by AppLifecycle.subscribe."""

    def __init__(self, hub: AppLifecycle, event: LifecycleEvent, handler: Handler):
        self.hub = hub
        self.event = event
        self.handler = handler
        self.tasks: Set[asyncio.Task] = set()
        self.active = True

    def remove(self) -> None:
        """Unregister the handler; deliveries already running are left alone."""
        if not self.active:
            return
        self.active = False
        self.hub._unsubscribe(self)
        logger.debug(f"Subscription to {self.event.value} removed")

    def cancel(self) -> None:
        """Cancel every delivery still running."""
        for task in list(self.tasks):
            task.cancel()

    async def close(self) -> None:
        """Unregister the handler and wait for running deliveries to finish."""
        self.remove()
        await self.wait()

    async def wait(self) -> None:
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)

    def _dispatch(self, *args: Any) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self.handler(*args))
        self.tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self.tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Handler for {self.event.value} failed: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )


class AppLifecycle:
    """
    Publish host lifecycle events to subscribed coroutine handlers.

    Example:
        >>> lifecycle = AppLifecycle()
        >>> sub = lifecycle.subscribe(LifecycleEvent.FOCUS, on_focus)
        >>> lifecycle.emit(LifecycleEvent.FOCUS)
        >>> await sub.close()
    """

    def __init__(self):
        self._subscriptions: Dict[LifecycleEvent, List[Subscription]] = {
            event: [] for event in LifecycleEvent
        }
        self.app_state = AppState.ACTIVE

    def subscribe(self, event: LifecycleEvent, handler: Handler) -> Subscription:
        """
        Register a coroutine function for an event.

        Args:
            event: Event to listen for
            handler: Coroutine function called with the event arguments

        Returns:
            Subscription handle; await close() at teardown
        """
        subscription = Subscription(self, LifecycleEvent(event), handler)
        self._subscriptions[subscription.event].append(subscription)
        logger.debug(f"Subscribed to {subscription.event.value}")
        return subscription

    def emit(self, event: LifecycleEvent, *args: Any) -> List[asyncio.Task]:
        """
        Deliver an event to every current subscriber.

        Must be called from inside the running event loop.

        Returns:
            The tasks running the handlers
        """
        event = LifecycleEvent(event)
        return [sub._dispatch(*args) for sub in list(self._subscriptions[event])]

    def set_app_state(self, state: AppState) -> List[asyncio.Task]:
        """Record a foreground/background transition and publish it."""
        state = AppState(state)
        previous, self.app_state = self.app_state, state
        logger.debug(f"App state {previous.value} -> {state.value}")
        return self.emit(LifecycleEvent.APP_STATE, state)

    def focus(self) -> List[asyncio.Task]:
        """Publish a screen focus event."""
        return self.emit(LifecycleEvent.FOCUS)

    def subscriber_count(self, event: LifecycleEvent) -> int:
        return len(self._subscriptions[LifecycleEvent(event)])

    async def drain(self) -> None:
        """Wait for every handler task currently running."""
        tasks = [
            task
            for subs in self._subscriptions.values()
            for sub in subs
            for task in sub.tasks
        ]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def close(self) -> None:
        """Remove every subscription and wait for running handlers to finish."""
        closing = [sub for subs in self._subscriptions.values() for sub in list(subs)]
        for sub in closing:
            sub.remove()
        for sub in closing:
            await sub.wait()
        logger.debug("Lifecycle hub closed")

    def _unsubscribe(self, subscription: Subscription) -> None:
        subs = self._subscriptions[subscription.event]
        if subscription in subs:
            subs.remove(subscription)
