"""Subtree drag protocol: start, move, stop.

A drag moves a node together with all of its descendants. Positions are
always computed from the snapshot taken at start plus the absolute pointer
position, never from the previous move, so any number of move events
produces the same result and no floating-point drift accumulates.

Live positions stay inside the ``DragSession`` until ``stop`` writes them to
the store in a single call. Abandoning a drag (``cancel`` or simply never
calling ``stop``) leaves the store untouched.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from events import GraphEvent, GraphEventType
from graph.store import GraphStore
from models.graph import Position

logger = structlog.get_logger(__name__)


@dataclass
class DragSession:
    """State of one in-flight drag.

    Attributes:
        node_id: The node under the pointer.
        initial_positions: Read-only positions of the node and its
            descendants captured at start.
        live_positions: Current positions of the same ids.
        revision: Store revision right after the start snapshot; any later
            change to the store makes the session stale.
    """

    node_id: str
    initial_positions: Mapping[str, Position]
    live_positions: dict[str, Position] = field(default_factory=dict)
    revision: int = 0


class DragController:
    """Drives the start/move/stop protocol against a ``GraphStore``.

    Usage:
        >>> drag = DragController(store)
        >>> drag.start("subtask-1")
        >>> drag.move("subtask-1", Position(x=40, y=260))
        >>> drag.stop()
    """

    def __init__(self, store: GraphStore) -> None:
        self._store = store
        self._session: DragSession | None = None

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> DragSession | None:
        return self._session

    def start(self, node_id: str) -> bool:
        """Capture the subtree's positions and take one history snapshot.

        A drag still in flight is discarded first.
        """
        initial = self._store.subtree_positions(node_id)
        if initial is None:
            logger.warning("drag_start_node_not_found", node_id=node_id)
            return False
        if self._session is not None:
            logger.warning("drag_restarted", previous_node_id=self._session.node_id)

        self._store.snapshot()
        self._session = DragSession(
            node_id=node_id,
            initial_positions=MappingProxyType(initial),
            live_positions={
                subtree_id: position.model_copy()
                for subtree_id, position in initial.items()
            },
            revision=self._store.revision,
        )
        logger.debug("drag_started", node_id=node_id, subtree_size=len(initial))
        self._store.event_bus.publish(GraphEvent(
            type=GraphEventType.DRAG_STARTED,
            data={"node_id": node_id, "subtree_size": len(initial)},
        ))
        return True

    def move(self, node_id: str, position: Position) -> dict[str, Position]:
        """Place the dragged node at ``position`` and shift its descendants.

        Each descendant lands at its start position plus
        ``position - start position of the dragged node``.
        A session is dropped once the store has changed after ``start``;
        its captured positions no longer describe the current layout.

        Returns:
            Copies of the live positions of the whole subtree, or an empty
            dict if no drag of ``node_id`` is in flight.
        """
        session = self._session
        if session is None or session.node_id != node_id:
            logger.warning("drag_move_without_session", node_id=node_id)
            return {}
        if self._discard_if_stale(session):
            return {}

        origin = session.initial_positions[node_id]
        dx = position.x - origin.x
        dy = position.y - origin.y
        for subtree_id, start in session.initial_positions.items():
            if subtree_id == node_id:
                session.live_positions[subtree_id] = Position(x=position.x, y=position.y)
            else:
                session.live_positions[subtree_id] = Position(x=start.x + dx, y=start.y + dy)

        return {
            subtree_id: live.model_copy()
            for subtree_id, live in session.live_positions.items()
        }

    def stop(self) -> int:
        """Commit the live positions to the store and end the drag.

        Returns:
            Number of node positions written (0 when no drag was active or
            the store changed after the drag started).
        """
        session = self._session
        if session is None or self._discard_if_stale(session):
            return 0
        self._session = None
        written = self._store.commit_positions(session.live_positions, node_id=session.node_id)
        logger.debug("drag_stopped", node_id=session.node_id, moved_count=written)
        return written

    def cancel(self) -> None:
        """Discard the in-flight drag without touching the store."""
        if self._session is not None:
            logger.debug("drag_cancelled", node_id=self._session.node_id)
        self._session = None

    def _discard_if_stale(self, session: DragSession) -> bool:
        if self._store.revision == session.revision:
            return False
        logger.warning(
            "drag_session_stale",
            node_id=session.node_id,
            started_at=session.revision,
            current=self._store.revision,
        )
        self._session = None
        return True
