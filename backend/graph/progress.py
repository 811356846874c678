"""Completion progress derived from leaf descendants."""

from collections.abc import Sequence

from graph.traversal import ChildrenIndex, build_children_index, descendants
from models.graph import TaskEdge, TaskNode


def leaf_descendants(node_id: str, nodes: Sequence[TaskNode], children: ChildrenIndex) -> list[TaskNode]:
    """Return the descendants of ``node_id`` that have no children of their own."""
    reachable = descendants(node_id, children)
    return [
        node for node in nodes
        if node.id in reachable and not children.get(node.id)
    ]


def calculate_node_progress(
    node_id: str,
    nodes: Sequence[TaskNode],
    edges: Sequence[TaskEdge],
) -> float:
    """Fraction of completed leaves below ``node_id``, between 0 and 1.

    Intermediate nodes are never counted. A node without leaf descendants
    (including a leaf itself) reports 0; callers read a leaf's own
    ``completed`` flag directly.
    """
    leaves = leaf_descendants(node_id, nodes, build_children_index(edges))
    if not leaves:
        return 0.0
    completed = sum(1 for leaf in leaves if leaf.data.completed)
    return completed / len(leaves)
