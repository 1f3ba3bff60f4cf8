"""Event bus for network simulation.

This module defines the EventBus class, the typed publish/subscribe channel
that every engine component uses to announce packet lifecycle, table and
simulation events to observers.
"""

import logging
import time
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Tuple

import simpy

from netlab_sim.core.enums import SimEvent

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]
WildcardHandler = Callable[[SimEvent, Any], None]


class EventTimeoutError(TimeoutError):
    """Raised when an awaited event is not published in time."""


class EventBus:
    """Typed, in-process notification channel.

    Delivery is synchronous and in subscription order. A failing subscriber
    is logged and skipped; it never affects other subscribers or the
    publisher.

    Attributes:
        max_log_size: Capacity of the debugging ring buffer.
    """

    def __init__(self, max_log_size: int = 500) -> None:
        """Initialize the event bus.

        Args:
            max_log_size: Number of recent events kept for debugging.
        """
        self.max_log_size = max_log_size
        self._subscribers: Dict[SimEvent, List[Handler]] = {}
        self._wildcard: List[WildcardHandler] = []
        self._log: Deque[Tuple[SimEvent, Any, float]] = deque(maxlen=max_log_size)

    def subscribe(self, event_type: SimEvent, handler: Handler) -> Callable[[], None]:
        """Register a handler for one event type.

        Args:
            event_type: The type of event to register for.
            handler: Called with the event payload.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscribe_all(self, handler: WildcardHandler) -> Callable[[], None]:
        """Register a handler for every event type (diagnostics)."""
        self._wildcard.append(handler)

        def unsubscribe() -> None:
            if handler in self._wildcard:
                self._wildcard.remove(handler)

        return unsubscribe

    def publish(self, event_type: SimEvent, payload: Any = None) -> None:
        """Deliver an event to every current subscriber.

        Args:
            event_type: The type of event that occurred.
            payload: Event payload passed to the handlers.
        """
        self._log.append((event_type, payload, time.time()))

        for handler in list(self._subscribers.get(event_type, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Subscriber for %s failed", event_type.value)

        for handler in list(self._wildcard):
            try:
                handler(event_type, payload)
            except Exception:
                logger.exception("Wildcard subscriber failed on %s", event_type.value)

    def await_event(
        self, env: simpy.Environment, event_type: SimEvent, timeout: float
    ) -> simpy.Event:
        """Wait for the next event of a type inside a simpy process.

        Args:
            env: SimPy environment providing the clock.
            event_type: The type of event to wait for.
            timeout: Simulated time to wait before giving up.

        Returns:
            A simpy event that succeeds with the payload, or fails with
            EventTimeoutError once ``timeout`` elapses.
        """
        result = env.event()

        def on_event(payload: Any) -> None:
            unsubscribe()
            if not result.triggered:
                result.succeed(payload)

        unsubscribe = self.subscribe(event_type, on_event)

        def watchdog():
            yield env.timeout(timeout)
            if not result.triggered:
                unsubscribe()
                result.fail(
                    EventTimeoutError(f"Timeout waiting for event '{event_type.value}'")
                )

        env.process(watchdog())
        return result

    def has_subscribers(self, event_type: SimEvent) -> bool:
        return bool(self._subscribers.get(event_type)) or bool(self._wildcard)

    def event_log(self) -> List[Tuple[SimEvent, Any, float]]:
        """Return a copy of the recent-event ring buffer, oldest first."""
        return list(self._log)

    def clear(self) -> None:
        """Drop all subscribers and the event log."""
        self._subscribers.clear()
        self._wildcard.clear()
        self._log.clear()
