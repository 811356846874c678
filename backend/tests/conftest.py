"""Shared test fixtures for backend tests.

Provides fresh event buses, graph stores seeded with the demo tree, and
small factories for building nodes and edges by hand.
"""

import sys
from typing import Any

import pytest

# Ensure the backend package root is on sys.path so that absolute imports
# like ``from graph.store import ...`` resolve correctly when running
# pytest from the repository root.
_backend_root = str(
    __import__("pathlib").Path(__file__).resolve().parent.parent
)
if _backend_root not in sys.path:
    sys.path.insert(0, _backend_root)

from events.bus import EventBus, reset_event_bus  # noqa: E402
from events.types import GraphEvent  # noqa: E402
from graph.history import HistoryManager  # noqa: E402
from graph.layout import LayoutConfig  # noqa: E402
from graph.store import GraphStore  # noqa: E402
from models.graph import NodeData, Position, TaskEdge, TaskNode  # noqa: E402

# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------


@pytest.fixture()
def event_bus() -> EventBus:
    """Return a fresh EventBus instance for each test."""
    reset_event_bus()
    bus = EventBus()
    return bus


@pytest.fixture()
def received_events(event_bus: EventBus) -> list[GraphEvent]:
    """Collect every event published on ``event_bus``."""
    events: list[GraphEvent] = []
    event_bus.subscribe(events.append)
    return events


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------


def make_store(event_bus: EventBus, **kwargs: Any) -> GraphStore:
    """Create a demo store with default layout constants and 5-deep history."""
    kwargs.setdefault("history", HistoryManager(max_depth=5))
    kwargs.setdefault("layout_config", LayoutConfig())
    kwargs.setdefault("default_label", "New Task")
    return GraphStore.with_demo_graph(event_bus=event_bus, **kwargs)


@pytest.fixture()
def store(event_bus: EventBus) -> GraphStore:
    """Provide a store holding the laid-out demo tree."""
    return make_store(event_bus)


@pytest.fixture()
def empty_store(event_bus: EventBus) -> GraphStore:
    """Provide a store with no nodes."""
    return GraphStore(
        event_bus=event_bus,
        history=HistoryManager(max_depth=5),
        layout_config=LayoutConfig(),
        default_label="New Task",
    )


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def make_node(
    node_id: str,
    level: int,
    slot: int = 0,
    label: str = "",
    completed: bool | None = None,
    x: float = 0.0,
    y: float = 0.0,
) -> TaskNode:
    """Create a TaskNode with sensible defaults."""
    return TaskNode(
        id=node_id,
        position=Position(x=x, y=y),
        data=NodeData(label=label, level=level, slot=slot, completed=completed),
    )


def make_edge(source: str, target: str, edge_id: str | None = None) -> TaskEdge:
    """Create a TaskEdge; the id defaults to ``source->target``."""
    return TaskEdge(id=edge_id or f"{source}->{target}", source=source, target=target)


def positions_by_id(nodes: list[TaskNode]) -> dict[str, tuple[float, float]]:
    return {node.id: (node.position.x, node.position.y) for node in nodes}
