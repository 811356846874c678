"""Hierarchical layout for the task graph.

``calculate_layout`` is a pure function: it never mutates its inputs and
returns new ``TaskNode`` objects whose positions depend only on the
hierarchy, the ``slot`` ordering, and the labels. Running it twice on the
same logical input yields identical coordinates.

Axes:
    x: sibling axis. Children are laid out left to right by ascending slot.
    y: level axis. Roots sit at ``y = 0``; each level adds ``level_spacing``.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from graph.traversal import ChildrenIndex, build_children_index
from models.graph import Position, TaskEdge, TaskNode

if TYPE_CHECKING:
    from config import Settings

logger = structlog.get_logger(__name__)

LEVEL_SPACING = 220.0
NODE_SPACING = 100.0
MIN_NODE_WIDTH = 120.0
MAX_NODE_WIDTH = 300.0
PADDING = 32.0
CHECKBOX_WIDTH = 28.0
CHAR_WIDTH = 8.0


@dataclass(frozen=True)
class LayoutConfig:
    """Spacing and sizing constants used by the layout engine.

    Attributes:
        level_spacing: Distance between consecutive levels on the y axis.
        node_spacing: Gap between sibling subtrees; roots get twice this.
        min_node_width: Lower clamp of a node's intrinsic extent.
        max_node_width: Upper clamp of a node's intrinsic extent.
        padding: Fixed horizontal padding inside a node.
        checkbox_width: Fixed width reserved for the checkbox.
        char_width: Estimated width of a single label character.
    """

    level_spacing: float = LEVEL_SPACING
    node_spacing: float = NODE_SPACING
    min_node_width: float = MIN_NODE_WIDTH
    max_node_width: float = MAX_NODE_WIDTH
    padding: float = PADDING
    checkbox_width: float = CHECKBOX_WIDTH
    char_width: float = CHAR_WIDTH

    @classmethod
    def from_settings(cls, settings: "Settings") -> "LayoutConfig":
        """Build a layout config from the application settings."""
        return cls(
            level_spacing=settings.layout_level_spacing,
            node_spacing=settings.layout_node_spacing,
            min_node_width=settings.layout_min_node_width,
            max_node_width=settings.layout_max_node_width,
            padding=settings.layout_padding,
            checkbox_width=settings.layout_checkbox_width,
            char_width=settings.layout_char_width,
        )


DEFAULT_LAYOUT_CONFIG = LayoutConfig()


def estimate_node_width(label: str, config: LayoutConfig = DEFAULT_LAYOUT_CONFIG) -> float:
    """Estimate the rendered width of a node from its longest label line."""
    longest_line = max((len(line) for line in label.split("\n")), default=0)
    estimated = longest_line * config.char_width + config.padding + config.checkbox_width
    return max(config.min_node_width, min(config.max_node_width, estimated))


def subtree_extents(
    nodes: Sequence[TaskNode],
    edges: Sequence[TaskEdge],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> dict[str, float]:
    """Compute the sibling-axis extent of every node's subtree.

    Extents are memoized per node id, so each node is evaluated once.
    """
    by_id = {node.id: node for node in nodes}
    children = _known_children(build_children_index(edges), by_id)
    extents: dict[str, float] = {}
    for node in nodes:
        _subtree_extent(node.id, by_id, children, config, extents, set())
    return extents


def calculate_layout(
    nodes: Sequence[TaskNode],
    edges: Sequence[TaskEdge],
    config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
) -> list[TaskNode]:
    """Return a copy of ``nodes`` with every reachable node positioned.

    Roots (level 0) are stacked along the x axis by ascending slot, each
    subtree centered in its own extent slice. Nodes unreachable from any
    root keep their previous position.

    Args:
        nodes: Current nodes. Not modified.
        edges: Current parent -> child edges.
        config: Spacing and sizing constants.

    Returns:
        New node list in the same order as ``nodes``.
    """
    if not nodes:
        return list(nodes)

    by_id = {node.id: node for node in nodes}
    children = _known_children(build_children_index(edges), by_id)
    extents: dict[str, float] = {}

    roots = sorted(
        (node for node in nodes if node.level == 0),
        key=lambda node: node.slot,
    )
    if not roots:
        return list(nodes)

    root_widths = [
        _subtree_extent(root.id, by_id, children, config, extents, set())
        for root in roots
    ]
    root_spacing = config.node_spacing * 2
    total_width = sum(root_widths) + (len(roots) - 1) * root_spacing

    positions: dict[str, Position] = {}
    current_x = -total_width / 2
    for root, width in zip(roots, root_widths, strict=True):
        _position_subtree(
            root.id,
            current_x + width / 2,
            0.0,
            by_id,
            children,
            config,
            extents,
            positions,
        )
        current_x += width + root_spacing

    unpositioned = len(nodes) - len(positions)
    if unpositioned:
        logger.debug("layout_unreachable_nodes", count=unpositioned)

    return [
        node.model_copy(update={"position": positions[node.id]}, deep=True)
        if node.id in positions
        else node.model_copy(deep=True)
        for node in nodes
    ]


def _known_children(
    children: ChildrenIndex, by_id: dict[str, TaskNode]
) -> dict[str, list[str]]:
    """Drop edges whose endpoints are not in the node set."""
    return {
        source: [target for target in targets if target in by_id]
        for source, targets in children.items()
        if source in by_id
    }


def _sorted_children(
    node_id: str, by_id: dict[str, TaskNode], children: ChildrenIndex
) -> list[TaskNode]:
    return sorted((by_id[child_id] for child_id in children.get(node_id, ())), key=lambda n: n.slot)


def _subtree_extent(
    node_id: str,
    by_id: dict[str, TaskNode],
    children: ChildrenIndex,
    config: LayoutConfig,
    memo: dict[str, float],
    in_progress: set[str],
) -> float:
    if node_id in memo:
        return memo[node_id]

    own = estimate_node_width(by_id[node_id].label, config)
    if node_id in in_progress:
        # Cycle: count the re-entered node as a leaf.
        return own

    in_progress.add(node_id)
    child_ids = children.get(node_id, [])
    if child_ids:
        widths = [
            _subtree_extent(child_id, by_id, children, config, memo, in_progress)
            for child_id in child_ids
        ]
        total = sum(widths) + (len(widths) - 1) * config.node_spacing
        extent = max(own, total)
    else:
        extent = own
    in_progress.discard(node_id)

    memo[node_id] = extent
    return extent


def _position_subtree(
    node_id: str,
    center_x: float,
    y: float,
    by_id: dict[str, TaskNode],
    children: ChildrenIndex,
    config: LayoutConfig,
    extents: dict[str, float],
    positions: dict[str, Position],
) -> None:
    if node_id in positions:
        return
    positions[node_id] = Position(x=center_x, y=y)

    ordered = [child for child in _sorted_children(node_id, by_id, children) if child.id not in positions]
    if not ordered:
        return

    widths = [
        _subtree_extent(child.id, by_id, children, config, extents, set())
        for child in ordered
    ]
    total_width = sum(widths) + (len(ordered) - 1) * config.node_spacing

    current_x = center_x - total_width / 2
    for child, width in zip(ordered, widths, strict=True):
        _position_subtree(
            child.id,
            current_x + width / 2,
            y + config.level_spacing,
            by_id,
            children,
            config,
            extents,
            positions,
        )
        current_x += width + config.node_spacing
