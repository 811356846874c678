"""Structural validation of edges against the three-level hierarchy.

An edge is kept only if both endpoints exist, the source can have children
(level < 2), the target can have a parent (level > 0), the target sits
exactly one level below the source, and the target has no parent yet.
"""

from collections.abc import Iterable, Mapping

import structlog

from models.graph import TaskEdge, TaskNode

logger = structlog.get_logger(__name__)

MAX_LEVEL = 2


def edge_rejection_reason(source_level: int | None, target_level: int | None) -> str | None:
    """Return why an edge between these levels is invalid, or None if it is valid."""
    if source_level is None or target_level is None:
        return "source or target node not found"
    if source_level >= MAX_LEVEL:
        return f"source node (level {source_level}) cannot have children"
    if target_level <= 0:
        return f"target node (level {target_level}) cannot have parent"
    if target_level != source_level + 1:
        return f"invalid level progression ({source_level} -> {target_level})"
    return None


def filter_valid_edges(
    levels: Mapping[str, int],
    edges: Iterable[TaskEdge],
) -> tuple[list[TaskEdge], int]:
    """Keep the structurally valid edges, logging each rejected one.

    Args:
        levels: Level of every known node, keyed by id.
        edges: Candidate edges, in priority order (first parent wins).

    Returns:
        Tuple of (kept edges, number of dropped edges).
    """
    kept: list[TaskEdge] = []
    seen_ids: set[str] = set()
    has_parent: set[str] = set()
    dropped = 0

    for edge in edges:
        reason = edge_rejection_reason(levels.get(edge.source), levels.get(edge.target))
        if reason is None and edge.target in has_parent:
            reason = "target node already has a parent"
        if reason is None and edge.id in seen_ids:
            reason = "duplicate edge id"
        if reason is not None:
            logger.warning("edge_rejected", edge_id=edge.id, reason=reason)
            dropped += 1
            continue
        kept.append(edge)
        seen_ids.add(edge.id)
        has_parent.add(edge.target)

    return kept, dropped


def dedupe_nodes(nodes: Iterable[TaskNode]) -> list[TaskNode]:
    """Drop nodes whose id was already seen, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[TaskNode] = []
    for node in nodes:
        if node.id in seen:
            logger.warning("duplicate_node_dropped", node_id=node.id)
            continue
        seen.add(node.id)
        unique.append(node)
    return unique
