"""Adjacency helpers shared by layout, deletion, drag, and progress.

Every consumer builds the children index once per operation and walks it
breadth-first, so a lookup costs O(descendants) rather than O(edges) per node.
"""

from collections import deque
from collections.abc import Iterable, Mapping

from models.graph import TaskEdge

ChildrenIndex = Mapping[str, list[str]]


def build_children_index(edges: Iterable[TaskEdge]) -> dict[str, list[str]]:
    """Map each source id to its target ids, in edge order."""
    index: dict[str, list[str]] = {}
    for edge in edges:
        index.setdefault(edge.source, []).append(edge.target)
    return index


def build_parent_index(edges: Iterable[TaskEdge]) -> dict[str, str]:
    """Map each target id to its source id (first incoming edge wins)."""
    index: dict[str, str] = {}
    for edge in edges:
        index.setdefault(edge.target, edge.source)
    return index


def descendants(node_id: str, children: ChildrenIndex) -> set[str]:
    """Return every id reachable from ``node_id``, excluding ``node_id`` itself.

    Visited ids are tracked, so a malformed (cyclic) index still terminates.
    """
    found: set[str] = set()
    queue = deque(children.get(node_id, ()))
    while queue:
        current = queue.popleft()
        if current in found or current == node_id:
            continue
        found.add(current)
        queue.extend(children.get(current, ()))
    return found


def descendant_closure(node_ids: Iterable[str], children: ChildrenIndex) -> set[str]:
    """Union of the given ids and all of their descendants."""
    closure: set[str] = set()
    for node_id in node_ids:
        if node_id in closure:
            continue
        closure.add(node_id)
        closure |= descendants(node_id, children)
    return closure
