"""Hierarchical task graph engine.

This package exports the components of the engine:
- GraphStore: owner of the graph state and its mutation API
- HistoryManager: bounded snapshot undo/redo
- calculate_layout: deterministic hierarchical layout
- calculate_node_progress: completion ratio from leaf descendants
- DragController: start/move/stop subtree drag protocol
- import_llm_response: loader for graphs proposed by the chat collaborator
"""

from graph.drag import DragController, DragSession
from graph.errors import GraphLoadError
from graph.history import GraphState, HistoryManager
from graph.importer import (
    build_document_from_llm,
    extract_json_from_response,
    import_llm_response,
)
from graph.layout import (
    LayoutConfig,
    calculate_layout,
    estimate_node_width,
    subtree_extents,
)
from graph.progress import calculate_node_progress, leaf_descendants
from graph.store import AddNodeResult, GraphStore, PinnedEntry
from graph.traversal import build_children_index, descendant_closure, descendants

__all__ = [
    # Store
    "AddNodeResult",
    "GraphStore",
    "PinnedEntry",
    "GraphState",
    "GraphLoadError",
    # History
    "HistoryManager",
    # Layout
    "LayoutConfig",
    "calculate_layout",
    "estimate_node_width",
    "subtree_extents",
    # Progress
    "calculate_node_progress",
    "leaf_descendants",
    # Traversal
    "build_children_index",
    "descendants",
    "descendant_closure",
    # Drag
    "DragController",
    "DragSession",
    # LLM import
    "build_document_from_llm",
    "extract_json_from_response",
    "import_llm_response",
]
