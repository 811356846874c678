"""Synchronous event bus for graph store notifications.

The graph engine runs every operation to completion inside one caller, so
delivery is a direct call to each listener. A listener that raises is
logged and skipped; it never aborts the publishing operation or the
remaining listeners.
"""

import threading
from collections.abc import Callable

import structlog

from events.types import GraphEvent

logger = structlog.get_logger(__name__)

EventListener = Callable[[GraphEvent], None]


class EventBus:
    """Pub/sub bus delivering ``GraphEvent`` objects to listeners.

    Usage:
        >>> bus = EventBus()
        >>> received = []
        >>> bus.subscribe(received.append)
        >>> bus.publish(GraphEvent(type=GraphEventType.NODE_ADDED, data={"node_id": "n1"}))
        >>> received[0].data["node_id"]
        'n1'

    Attributes:
        _listeners: Registered listener callables, in subscription order
        _history: Most recent events, oldest first
        _lock: Guards the listener list and history
    """

    # Maximum number of events retained for late subscribers / inspection.
    MAX_HISTORY = 500

    def __init__(self) -> None:
        """Initialize an empty event bus."""
        self._listeners: list[EventListener] = []
        self._history: list[GraphEvent] = []
        self._lock = threading.Lock()
        logger.info("event_bus_initialized")

    def subscribe(self, listener: EventListener) -> None:
        """Register ``listener`` to receive every subsequent event."""
        with self._lock:
            self._listeners.append(listener)
            listener_count = len(self._listeners)
        logger.debug("listener_added", listener_count=listener_count)

    def unsubscribe(self, listener: EventListener) -> None:
        """Remove ``listener``. Unknown listeners are ignored with a warning."""
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                logger.warning("unsubscribe_listener_not_found")
                return
            listener_count = len(self._listeners)
        logger.debug("listener_removed", listener_count=listener_count)

    def publish(self, event: GraphEvent) -> None:
        """Record ``event`` and deliver it to all listeners in order."""
        with self._lock:
            self._history.append(event)
            if len(self._history) > self.MAX_HISTORY:
                self._history = self._history[-self.MAX_HISTORY:]
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    "event_delivery_failed",
                    event_type=event.type.value,
                    error=str(e),
                )

        logger.debug(
            "event_published",
            event_type=event.type.value,
            listener_count=len(listeners),
        )

    def get_event_history(self) -> list[GraphEvent]:
        """Return the retained events in chronological order."""
        with self._lock:
            return list(self._history)

    def clear_event_history(self) -> None:
        with self._lock:
            self._history.clear()

    def get_listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


# Global event bus instance
_event_bus: EventBus | None = None
_bus_lock = threading.Lock()


def get_event_bus() -> EventBus:
    """Get the global EventBus instance.

    Creates the instance on first call (lazy initialization).
    This function is thread-safe.

    Returns:
        The global EventBus instance
    """
    global _event_bus
    if _event_bus is None:
        with _bus_lock:
            # Double-check locking pattern
            if _event_bus is None:
                _event_bus = EventBus()
    return _event_bus


def reset_event_bus() -> None:
    """Reset the global EventBus instance.

    This is primarily useful for testing to ensure a clean state
    between test runs.
    """
    global _event_bus
    with _bus_lock:
        _event_bus = None
    logger.info("event_bus_reset")
