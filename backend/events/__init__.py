"""Event system for graph store notifications.

This package lets observers (a renderer, an HTTP layer, tests) follow the
mutations committed by a ``GraphStore`` without polling it.

Key Components:
    - GraphEventType: Enum of all event types in the system
    - GraphEvent: Pydantic model for events flowing through the system
    - EventBus: Synchronous pub/sub implementation for event distribution

Usage:
    >>> from events import EventBus, GraphEvent, GraphEventType
    >>>
    >>> bus = EventBus()
    >>> bus.subscribe(lambda event: print(event.type.value))
    >>> bus.publish(GraphEvent(type=GraphEventType.NODE_ADDED, data={"node_id": "n1"}))
    node_added
"""

from events.bus import (
    EventBus,
    EventListener,
    get_event_bus,
    reset_event_bus,
)
from events.types import (
    GraphEvent,
    GraphEventType,
)

__all__ = [
    # Event types
    "GraphEventType",
    "GraphEvent",
    # Event bus
    "EventBus",
    "EventListener",
    "get_event_bus",
    "reset_event_bus",
]
