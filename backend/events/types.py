"""Event type definitions for the task graph event system.

Every committed mutation of a ``GraphStore`` produces exactly one event so
that an external renderer (or any other observer) can refresh its view.
"""

import time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class GraphEventType(StrEnum):
    """All event types emitted by the graph store.

    Events are categorized by:
    - Structure: Nodes added/removed and slot order changes
    - Content: Label and completion changes
    - Pin list: Pinboard membership, order, and title
    - Document: Loading, undo and redo
    - Drag: Start and commit of a subtree drag
    """

    # Structure
    NODE_ADDED = "node_added"
    NODES_DELETED = "nodes_deleted"
    SLOTS_SWAPPED = "slots_swapped"
    LAYOUT_APPLIED = "layout_applied"

    # Content
    NODE_LABEL_UPDATED = "node_label_updated"
    NODE_COMPLETION_TOGGLED = "node_completion_toggled"

    # Pin list
    NODE_PINNED = "node_pinned"
    NODE_UNPINNED = "node_unpinned"
    PARENT_UNPINNED = "parent_unpinned"
    PINS_CLEARED = "pins_cleared"
    PINS_REORDERED = "pins_reordered"
    PINS_COMPLETION_SET = "pins_completion_set"
    BATCH_TITLE_CHANGED = "batch_title_changed"

    # Document
    GRAPH_LOADED = "graph_loaded"
    HISTORY_UNDONE = "history_undone"
    HISTORY_REDONE = "history_redone"

    # Drag
    DRAG_STARTED = "drag_started"
    DRAG_COMMITTED = "drag_committed"


class GraphEvent(BaseModel):
    """An event emitted by the graph store.

    Payload schemas by event type:

    NODE_ADDED:
        - node_id: str - The new node
        - parent_id: Optional[str] - Its parent, if any
        - level: int - The new node's level

    NODES_DELETED:
        - node_ids: list[str] - Every removed id (targets and descendants)

    SLOTS_SWAPPED:
        - node_id: str - The node that moved
        - slot: int - Its new slot
        - swapped_with: Optional[str] - The node that took the old slot

    PARENT_UNPINNED:
        - node_id: str - The pinned node that gained a child
        - label: str - Its label, for user-facing notices

    PINS_COMPLETION_SET:
        - completed: bool - The value written to every pinned node

    GRAPH_LOADED:
        - node_count: int
        - edge_count: int
        - dropped_edges: int - Edges rejected during validation

    DRAG_COMMITTED:
        - node_id: str - The dragged node
        - moved_count: int - Nodes whose position was written
    """

    type: GraphEventType
    timestamp: float = Field(default_factory=time.time)
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "type": "node_added",
                    "timestamp": 1699876543.123,
                    "data": {
                        "node_id": "node_3f9a1c2b7d4e",
                        "parent_id": "root-1",
                        "level": 1,
                    },
                }
            ]
        }
    }
