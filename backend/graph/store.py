"""Graph store: the single owner of the task graph state.

This module provides the GraphStore class, which exposes every structural
operation on the three-level task hierarchy and keeps its invariants intact:

- levels increase by exactly one along every edge (0 -> 1 -> 2)
- a node has at most one parent; level 0 nodes have none
- the pin list only references existing leaves, without duplicates

Every mutating operation first validates its input. Invalid input (unknown
ids, illegal levels, out-of-range indexes) is logged and ignored without
touching state or history. Valid input takes a history snapshot, mutates,
re-runs the layout engine when the structure changed, and publishes one
GraphEvent.

Usage:
    >>> store = GraphStore.with_demo_graph()
    >>> result = store.add_node("root-1", 1)
    >>> store.progress("root-1")
    0.0
    >>> store.undo()
    True
"""

import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import ValidationError

from config import settings
from events import EventBus, GraphEvent, GraphEventType, get_event_bus
from graph.demo import create_initial_graph
from graph.errors import GraphLoadError
from graph.history import GraphState, HistoryManager
from graph.layout import LayoutConfig, calculate_layout
from graph.progress import calculate_node_progress
from graph.traversal import (
    build_children_index,
    build_parent_index,
    descendant_closure,
    descendants,
)
from graph.validation import MAX_LEVEL, dedupe_nodes, filter_valid_edges
from models.graph import (
    EdgeStyle,
    GraphDocument,
    NodeData,
    Position,
    TaskEdge,
    TaskNode,
)

logger = structlog.get_logger(__name__)


@dataclass
class AddNodeResult:
    """Outcome of ``GraphStore.add_node``.

    Attributes:
        node_id: Id of the created node.
        edge_id: Id of the parent -> child edge, if a parent was given.
        unpinned_parent_id: Set when the parent was pinned and had to be
            removed from the pin list because it stopped being a leaf.
    """

    node_id: str
    edge_id: str | None = None
    unpinned_parent_id: str | None = None


@dataclass
class PinnedEntry:
    """A pinned leaf together with its parent, in pin-list order."""

    node: TaskNode
    parent: TaskNode | None


class GraphStore:
    """Owner of nodes, edges, the pin list and the batch title.

    Consumers never hold references into the store: every read returns
    copies, so callers re-fetch after each mutation.

    Attributes:
        history: The undo/redo history wrapping this store.
        layout_config: Constants handed to the layout engine.
        event_bus: Bus receiving one GraphEvent per committed mutation.
        is_formatting: Advisory flag raised by ``apply_auto_layout`` so a
            renderer can animate the transition; cleared by
            ``finish_formatting``.
    """

    def __init__(
        self,
        state: GraphState | None = None,
        *,
        history: HistoryManager | None = None,
        layout_config: LayoutConfig | None = None,
        event_bus: EventBus | None = None,
        default_label: str | None = None,
        edge_style: EdgeStyle | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            state: Initial state; copied, never shared. Defaults to an empty graph.
            history: History manager (defaults to ``settings.history_max_depth``).
            layout_config: Layout constants (defaults to the settings values).
            event_bus: Event bus (defaults to the global bus).
            default_label: Label for new nodes (defaults to settings).
            edge_style: Style applied to new edges (defaults to settings).
        """
        self._state = state.clone() if state is not None else GraphState(
            batch_title=settings.default_batch_title
        )
        self.history = history or HistoryManager(settings.history_max_depth)
        self.layout_config = layout_config or LayoutConfig.from_settings(settings)
        self.event_bus = event_bus or get_event_bus()
        self.default_label = (
            default_label if default_label is not None else settings.default_node_label
        )
        self.edge_style = edge_style or EdgeStyle(
            stroke=settings.edge_stroke, stroke_width=settings.edge_stroke_width
        )
        self.is_formatting = False
        self._revision = 0

    @classmethod
    def with_demo_graph(cls, **kwargs: Any) -> "GraphStore":
        """Create a store holding the laid-out 7-node demo tree."""
        style = kwargs.get("edge_style") or EdgeStyle(
            stroke=settings.edge_stroke, stroke_width=settings.edge_stroke_width
        )
        store = cls(create_initial_graph(style), **kwargs)
        store._relayout()
        return store

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def nodes(self) -> list[TaskNode]:
        return [node.model_copy(deep=True) for node in self._state.nodes]

    @property
    def edges(self) -> list[TaskEdge]:
        return [edge.model_copy(deep=True) for edge in self._state.edges]

    @property
    def pinned_node_ids(self) -> list[str]:
        return list(self._state.pinned_node_ids)

    @property
    def batch_title(self) -> str:
        return self._state.batch_title

    @property
    def revision(self) -> int:
        """Counter bumped whenever the state is snapshotted, restored or replaced."""
        return self._revision

    @property
    def can_undo(self) -> bool:
        return self.history.can_undo

    @property
    def can_redo(self) -> bool:
        return self.history.can_redo

    def get_node(self, node_id: str) -> TaskNode | None:
        node = self._find(node_id)
        return node.model_copy(deep=True) if node is not None else None

    def get_parent(self, node_id: str) -> TaskNode | None:
        """Return a copy of the node's parent, or None for roots and unknown ids."""
        parent_id = build_parent_index(self._state.edges).get(node_id)
        return self.get_node(parent_id) if parent_id is not None else None

    def children_of(self, node_id: str) -> list[TaskNode]:
        """Return copies of the node's children ordered by slot."""
        child_ids = set(build_children_index(self._state.edges).get(node_id, ()))
        children = [node for node in self._state.nodes if node.id in child_ids]
        return [node.model_copy(deep=True) for node in sorted(children, key=lambda n: n.slot)]

    def is_leaf(self, node_id: str) -> bool:
        return not any(edge.source == node_id for edge in self._state.edges)

    def progress(self, node_id: str) -> float:
        """Completion ratio of the node's leaf descendants (0 when it has none)."""
        return calculate_node_progress(node_id, self._state.nodes, self._state.edges)

    def pinned_nodes(self) -> list[PinnedEntry]:
        """Return the pinned nodes with their parents, in pin-list order."""
        by_id = {node.id: node for node in self._state.nodes}
        parents = build_parent_index(self._state.edges)
        entries: list[PinnedEntry] = []
        for node_id in self._state.pinned_node_ids:
            node = by_id.get(node_id)
            if node is None:
                continue
            parent = by_id.get(parents.get(node_id, ""))
            entries.append(PinnedEntry(
                node=node.model_copy(deep=True),
                parent=parent.model_copy(deep=True) if parent is not None else None,
            ))
        return entries

    def subtree_positions(self, node_id: str) -> dict[str, Position] | None:
        """Positions of ``node_id`` and all of its descendants, or None if unknown."""
        if self._find(node_id) is None:
            return None
        ids = descendants(node_id, build_children_index(self._state.edges))
        ids.add(node_id)
        return {
            node.id: node.position.model_copy()
            for node in self._state.nodes
            if node.id in ids
        }

    # -------------------------------------------------------------------------
    # Structural operations
    # -------------------------------------------------------------------------

    def add_node(self, parent_id: str | None = None, level: int | None = None) -> AddNodeResult | None:
        """Create a node, optionally as the child of ``parent_id``.

        The node gets the next slot at its level (the number of nodes already
        on that level). If the parent was pinned it is unpinned, since it is
        no longer a leaf; this is reported in the result and as a
        PARENT_UNPINNED event.

        Args:
            parent_id: Parent node id, or None for a new root.
            level: Requested level. Defaults to ``parent.level + 1`` (or 0
                without a parent) and must agree with it when given.

        Returns:
            The created ids, or None if the request violated the hierarchy.
        """
        parent: TaskNode | None = None
        if parent_id is not None:
            parent = self._find(parent_id)
            if parent is None:
                logger.warning("add_node_parent_not_found", parent_id=parent_id)
                return None
            if parent.level >= MAX_LEVEL:
                logger.warning("add_node_parent_is_leaf_level", parent_id=parent_id)
                return None
            expected_level = parent.level + 1
        else:
            expected_level = 0

        if level is None:
            level = expected_level
        if level != expected_level:
            logger.warning(
                "add_node_invalid_level",
                parent_id=parent_id,
                level=level,
                expected_level=expected_level,
            )
            return None

        self._record()

        result = AddNodeResult(node_id=self._new_id("node"))
        if parent is not None and parent.id in self._state.pinned_node_ids:
            self._state.pinned_node_ids.remove(parent.id)
            result.unpinned_parent_id = parent.id
            logger.info("parent_unpinned", node_id=parent.id)
            self._publish(
                GraphEventType.PARENT_UNPINNED,
                node_id=parent.id,
                label=parent.label,
            )

        slot = sum(1 for node in self._state.nodes if node.level == level)
        self._state.nodes.append(TaskNode(
            id=result.node_id,
            data=NodeData(label=self.default_label, level=level, slot=slot),
        ))

        if parent is not None:
            result.edge_id = self._new_id("edge")
            self._state.edges.append(TaskEdge(
                id=result.edge_id,
                source=parent.id,
                target=result.node_id,
                style=self.edge_style.model_copy(),
            ))

        self._relayout()
        logger.info("node_added", node_id=result.node_id, parent_id=parent_id, level=level, slot=slot)
        self._publish(
            GraphEventType.NODE_ADDED,
            node_id=result.node_id,
            parent_id=parent_id,
            level=level,
        )
        return result

    def update_node_label(self, node_id: str, label: str) -> bool:
        """Replace a node's label. Positions are left as they are."""
        node = self._find(node_id)
        if node is None:
            logger.warning("update_label_node_not_found", node_id=node_id)
            return False
        self._record()
        node.data.label = label
        self._publish(GraphEventType.NODE_LABEL_UPDATED, node_id=node_id)
        return True

    def toggle_node_completed(self, node_id: str) -> bool:
        """Flip ``completed`` on a node.

        Only meaningful on leaves; on a parent the stored flag is ignored by
        the progress aggregator but the call is still accepted.
        """
        node = self._find(node_id)
        if node is None:
            logger.warning("toggle_completed_node_not_found", node_id=node_id)
            return False
        self._record()
        node.data.completed = not node.data.completed
        self._publish(
            GraphEventType.NODE_COMPLETION_TOGGLED,
            node_id=node_id,
            completed=node.data.completed,
        )
        return True

    def delete_node(self, node_id: str) -> set[str]:
        """Delete a node and its whole subtree. See ``delete_nodes``."""
        return self.delete_nodes([node_id])

    def delete_nodes(self, node_ids: Iterable[str]) -> set[str]:
        """Delete the given nodes together with all of their descendants.

        Every edge touching a removed node is removed and removed ids are
        pruned from the pin list.

        Returns:
            The ids that were removed (empty if none of the ids were known).
        """
        requested = list(node_ids)
        known = {node.id for node in self._state.nodes}
        targets = [node_id for node_id in requested if node_id in known]
        if not targets:
            logger.warning("delete_nodes_not_found", node_ids=requested)
            return set()

        self._record()
        removed = descendant_closure(targets, build_children_index(self._state.edges))
        self._state.nodes = [node for node in self._state.nodes if node.id not in removed]
        self._state.edges = [
            edge for edge in self._state.edges
            if edge.source not in removed and edge.target not in removed
        ]
        self._state.pinned_node_ids = [
            pinned for pinned in self._state.pinned_node_ids if pinned not in removed
        ]
        self._relayout()
        logger.info("nodes_deleted", removed_count=len(removed))
        self._publish(GraphEventType.NODES_DELETED, node_ids=sorted(removed))
        return removed

    def swap_slots(self, node_id: str, target_slot: int) -> bool:
        """Move ``node_id`` to ``target_slot`` within its level.

        The first other node on the same level holding ``target_slot`` takes
        the node's old slot. Edges are untouched.
        """
        node = self._find(node_id)
        if node is None:
            logger.warning("swap_slots_node_not_found", node_id=node_id)
            return False
        if target_slot < 0:
            logger.warning("swap_slots_negative_slot", node_id=node_id, target_slot=target_slot)
            return False
        current_slot = node.slot
        if current_slot == target_slot:
            return False

        self._record()
        other = next(
            (
                candidate for candidate in self._state.nodes
                if candidate.level == node.level
                and candidate.slot == target_slot
                and candidate.id != node_id
            ),
            None,
        )
        node.data.slot = target_slot
        if other is not None:
            other.data.slot = current_slot

        self._relayout()
        self._publish(
            GraphEventType.SLOTS_SWAPPED,
            node_id=node_id,
            slot=target_slot,
            swapped_with=other.id if other is not None else None,
        )
        return True

    def apply_auto_layout(self) -> bool:
        """Re-derive slots from on-screen x order, then lay the graph out again.

        Raises ``is_formatting`` so the renderer may animate the change.
        """
        if not self._state.nodes:
            return False

        self._record()
        by_level: dict[int, list[TaskNode]] = {}
        for node in self._state.nodes:
            by_level.setdefault(node.level, []).append(node)
        for level_nodes in by_level.values():
            # sorted() is stable, so ties keep their previous slot order
            ordered = sorted(level_nodes, key=lambda n: (n.position.x, n.slot))
            for slot, node in enumerate(ordered):
                node.data.slot = slot

        self._relayout()
        self.is_formatting = True
        logger.info("auto_layout_applied", node_count=len(self._state.nodes))
        self._publish(GraphEventType.LAYOUT_APPLIED, node_count=len(self._state.nodes))
        return True

    def finish_formatting(self) -> None:
        self.is_formatting = False

    # -------------------------------------------------------------------------
    # Pin list
    # -------------------------------------------------------------------------

    def pin_node(self, node_id: str) -> bool:
        """Append a leaf to the pin list. No-op if already pinned."""
        if node_id in self._state.pinned_node_ids:
            return False
        if self._find(node_id) is None:
            logger.warning("pin_node_not_found", node_id=node_id)
            return False
        if not self.is_leaf(node_id):
            logger.warning("pin_node_not_leaf", node_id=node_id)
            return False
        self._record()
        self._state.pinned_node_ids.append(node_id)
        self._publish(GraphEventType.NODE_PINNED, node_id=node_id)
        return True

    def unpin_node(self, node_id: str) -> bool:
        if node_id not in self._state.pinned_node_ids:
            return False
        self._record()
        self._state.pinned_node_ids.remove(node_id)
        self._publish(GraphEventType.NODE_UNPINNED, node_id=node_id)
        return True

    def unpin_all(self) -> bool:
        if not self._state.pinned_node_ids:
            return False
        self._record()
        count = len(self._state.pinned_node_ids)
        self._state.pinned_node_ids = []
        self._publish(GraphEventType.PINS_CLEARED, count=count)
        return True

    def reorder_pinned_nodes(self, from_index: int, to_index: int) -> bool:
        """Move the pin at ``from_index`` so that it ends up at ``to_index``."""
        pins = self._state.pinned_node_ids
        if not (0 <= from_index < len(pins) and 0 <= to_index < len(pins)):
            logger.warning(
                "reorder_pins_index_out_of_range",
                from_index=from_index,
                to_index=to_index,
                pin_count=len(pins),
            )
            return False
        if from_index == to_index:
            return False
        self._record()
        pins = self._state.pinned_node_ids
        pins.insert(to_index, pins.pop(from_index))
        self._publish(GraphEventType.PINS_REORDERED, from_index=from_index, to_index=to_index)
        return True

    def toggle_all_pinned_completed(self) -> bool | None:
        """Mark every pinned node done, or undone if all of them already are.

        Returns:
            The value written, or None when the pin list is empty.
        """
        pinned = set(self._state.pinned_node_ids)
        targets = [node for node in self._state.nodes if node.id in pinned]
        if not targets:
            return None
        self._record()
        completed = not all(node.data.completed for node in targets)
        for node in targets:
            node.data.completed = completed
        self._publish(GraphEventType.PINS_COMPLETION_SET, completed=completed)
        return completed

    def set_batch_title(self, title: str) -> bool:
        if title == self._state.batch_title:
            return False
        self._record()
        self._state.batch_title = title
        self._publish(GraphEventType.BATCH_TITLE_CHANGED, title=title)
        return True

    # -------------------------------------------------------------------------
    # Selection (UI state, bypasses history)
    # -------------------------------------------------------------------------

    def select_node(self, node_id: str) -> bool:
        if self._find(node_id) is None:
            return False
        for node in self._state.nodes:
            if node.id == node_id:
                node.selected = True
            elif node.selected:
                node.selected = False
        return True

    def clear_selection(self) -> None:
        for node in self._state.nodes:
            if node.selected:
                node.selected = False

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def snapshot(self) -> None:
        """Record the current state as one undoable step.

        Used by multi-call interactions (a drag) that commit through
        ``commit_positions`` rather than a snapshotting operation.
        """
        self._record()

    def undo(self) -> bool:
        restored = self.history.undo(self._state)
        if restored is None:
            return False
        self._state = restored
        self._revision += 1
        self._publish(GraphEventType.HISTORY_UNDONE)
        return True

    def redo(self) -> bool:
        restored = self.history.redo(self._state)
        if restored is None:
            return False
        self._state = restored
        self._revision += 1
        self._publish(GraphEventType.HISTORY_REDONE)
        return True

    # -------------------------------------------------------------------------
    # Drag commit
    # -------------------------------------------------------------------------

    def commit_positions(self, positions: Mapping[str, Position], node_id: str | None = None) -> int:
        """Write several node positions in one step, without a snapshot.

        Returns:
            Number of nodes whose position was written.
        """
        written = 0
        for node in self._state.nodes:
            position = positions.get(node.id)
            if position is not None:
                node.position = position.model_copy()
                written += 1
        self._publish(GraphEventType.DRAG_COMMITTED, node_id=node_id, moved_count=written)
        return written

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_document(self) -> GraphDocument:
        state = self._state.clone()
        return GraphDocument(
            nodes=state.nodes,
            edges=state.edges,
            pinned_node_ids=state.pinned_node_ids,
            batch_title=state.batch_title,
        )

    def serialize(self) -> str:
        """Render the state as the external JSON document."""
        return self.to_document().to_json()

    def deserialize(self, text: str | bytes) -> None:
        """Replace the whole state with a JSON document.

        Missing ``pinnedNodeIds`` defaults to empty and a missing
        ``batchTitle`` to the default title. Both history stacks are cleared.

        Raises:
            GraphLoadError: If the text is not a valid graph document. The
                current state is left untouched.
        """
        try:
            document = GraphDocument.model_validate_json(text)
        except ValidationError as e:
            logger.warning("graph_load_failed", error_count=e.error_count())
            raise GraphLoadError(f"Invalid graph document: {e}") from e
        self.load_document(document)

    def load_document(self, document: GraphDocument) -> None:
        """Replace the state with ``document`` after structural validation.

        Duplicate node ids and invalid edges are dropped; pins that do not
        reference an existing leaf are discarded. History is cleared.
        """
        nodes = [node.model_copy(deep=True) for node in dedupe_nodes(document.nodes)]
        levels = {node.id: node.level for node in nodes}
        edges, dropped = filter_valid_edges(
            levels, (edge.model_copy(deep=True) for edge in document.edges)
        )

        parents = {edge.source for edge in edges}
        pinned: list[str] = []
        for node_id in document.pinned_node_ids:
            if node_id in levels and node_id not in parents and node_id not in pinned:
                pinned.append(node_id)
            else:
                logger.warning("pinned_id_dropped", node_id=node_id)

        self._state = GraphState(
            nodes=nodes,
            edges=edges,
            pinned_node_ids=pinned,
            batch_title=document.batch_title,
        )
        self.history.clear()
        self.is_formatting = False
        self._revision += 1
        logger.info(
            "graph_loaded",
            node_count=len(nodes),
            edge_count=len(edges),
            dropped_edges=dropped,
        )
        self._publish(
            GraphEventType.GRAPH_LOADED,
            node_count=len(nodes),
            edge_count=len(edges),
            dropped_edges=dropped,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _find(self, node_id: str) -> TaskNode | None:
        return next((node for node in self._state.nodes if node.id == node_id), None)

    def _new_id(self, prefix: str) -> str:
        taken = {node.id for node in self._state.nodes} | {edge.id for edge in self._state.edges}
        while True:
            candidate = f"{prefix}_{uuid.uuid4().hex[:12]}"
            if candidate not in taken:
                return candidate

    def _record(self) -> None:
        self.history.snapshot(self._state)
        self._revision += 1

    def _relayout(self) -> None:
        self._state.nodes = calculate_layout(
            self._state.nodes, self._state.edges, self.layout_config
        )

    def _publish(self, event_type: GraphEventType, **data: Any) -> None:
        self.event_bus.publish(GraphEvent(type=event_type, data=data))
