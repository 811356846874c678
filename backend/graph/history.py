"""Bounded snapshot-based undo/redo history.

Snapshots are structural deep copies of the store's ``GraphState``. Both
stacks are capped; pushing onto a full stack evicts its oldest entry.
"""

from collections import deque
from dataclasses import dataclass, field

import structlog

from models.graph import TaskEdge, TaskNode

logger = structlog.get_logger(__name__)

DEFAULT_HISTORY_DEPTH = 5


@dataclass
class GraphState:
    """The complete undoable state owned by a ``GraphStore``.

    Attributes:
        nodes: All task nodes.
        edges: All parent -> child edges.
        pinned_node_ids: Ordered pin list of leaf ids.
        batch_title: Display title of the pin list.
    """

    nodes: list[TaskNode] = field(default_factory=list)
    edges: list[TaskEdge] = field(default_factory=list)
    pinned_node_ids: list[str] = field(default_factory=list)
    batch_title: str = "Current Batch"

    def clone(self) -> "GraphState":
        """Return a deep copy that shares no mutable objects with ``self``."""
        return GraphState(
            nodes=[node.model_copy(deep=True) for node in self.nodes],
            edges=[edge.model_copy(deep=True) for edge in self.edges],
            pinned_node_ids=list(self.pinned_node_ids),
            batch_title=self.batch_title,
        )


class HistoryManager:
    """Undo and redo stacks of full-state snapshots.

    Usage:
        >>> history = HistoryManager(max_depth=5)
        >>> history.snapshot(store_state)       # before a mutation
        >>> previous = history.undo(store_state)
        >>> if previous is not None:
        ...     store_state = previous

    Attributes:
        max_depth: Capacity of each stack.
    """

    def __init__(self, max_depth: int = DEFAULT_HISTORY_DEPTH) -> None:
        if max_depth < 1:
            raise ValueError("max_depth must be >= 1")
        self.max_depth = max_depth
        self._undo: deque[GraphState] = deque(maxlen=max_depth)
        self._redo: deque[GraphState] = deque(maxlen=max_depth)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def snapshot(self, current: GraphState) -> None:
        """Record ``current`` before a mutation and invalidate the redo stack."""
        self._undo.append(current.clone())
        self._redo.clear()
        logger.debug("history_snapshot", undo_depth=len(self._undo))

    def undo(self, current: GraphState) -> GraphState | None:
        """Step back one snapshot.

        Args:
            current: The live state, pushed onto the redo stack.

        Returns:
            The state to restore, or None if there is nothing to undo.
        """
        if not self._undo:
            return None
        self._redo.append(current.clone())
        restored = self._undo.pop()
        logger.debug("history_undo", undo_depth=len(self._undo), redo_depth=len(self._redo))
        return restored

    def redo(self, current: GraphState) -> GraphState | None:
        """Step forward one snapshot; the mirror image of ``undo``."""
        if not self._redo:
            return None
        self._undo.append(current.clone())
        restored = self._redo.pop()
        logger.debug("history_redo", undo_depth=len(self._undo), redo_depth=len(self._redo))
        return restored

    def clear(self) -> None:
        """Drop both stacks."""
        self._undo.clear()
        self._redo.clear()
