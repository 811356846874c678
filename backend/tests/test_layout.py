"""Tests for graph/layout.py -- hierarchical layout engine.

Covers:
- estimate_node_width: label-based width estimate and clamping
- subtree_extents: bottom-up extents
- calculate_layout: demo coordinates, slot ordering, multiple roots,
  determinism, purity, unreachable nodes and cyclic input
"""

import pytest

from config import Settings
from graph.demo import create_initial_graph
from graph.layout import (
    LayoutConfig,
    calculate_layout,
    estimate_node_width,
    subtree_extents,
)
from models.graph import Position
from tests.conftest import make_edge, make_node, positions_by_id

DEMO_POSITIONS = {
    "root-1": (0.0, 0.0),
    "subtask-1": (-220.0, 220.0),
    "subtask-2": (220.0, 220.0),
    "todo-1-1": (-330.0, 440.0),
    "todo-1-2": (-110.0, 440.0),
    "todo-2-1": (110.0, 440.0),
    "todo-2-2": (330.0, 440.0),
}


# =========================================================================
# estimate_node_width
# =========================================================================


class TestEstimateNodeWidth:
    """Width estimate from the longest label line."""

    def test_empty_label_gets_minimum(self) -> None:
        assert estimate_node_width("") == 120

    def test_short_label_is_clamped_up(self) -> None:
        # 6 chars * 8 + 32 + 28 = 108
        assert estimate_node_width("Todo 1") == 120

    def test_medium_label(self) -> None:
        # 9 chars * 8 + 32 + 28 = 132
        assert estimate_node_width("Root Task") == 132

    def test_long_label_is_clamped_down(self) -> None:
        assert estimate_node_width("x" * 80) == 300

    def test_only_longest_line_counts(self) -> None:
        # longest line is 20 chars: 160 + 60
        assert estimate_node_width("ab\n" + "c" * 20 + "\nde") == 220

    def test_custom_config(self) -> None:
        config = LayoutConfig(char_width=10, padding=0, checkbox_width=0, min_node_width=0)
        assert estimate_node_width("abcd", config) == 40


# =========================================================================
# subtree_extents
# =========================================================================


class TestSubtreeExtents:
    def test_demo_extents(self) -> None:
        state = create_initial_graph()
        extents = subtree_extents(state.nodes, state.edges)
        assert extents["todo-1-1"] == 120
        # two leaves of 120 plus one gap of 100
        assert extents["subtask-1"] == 340
        assert extents["subtask-2"] == 340
        assert extents["root-1"] == 780

    def test_parent_wider_than_children(self) -> None:
        nodes = [
            make_node("r", 0, label="x" * 60),
            make_node("c", 1),
        ]
        extents = subtree_extents(nodes, [make_edge("r", "c")])
        assert extents["r"] == 300
        assert extents["c"] == 120


# =========================================================================
# calculate_layout
# =========================================================================


class TestCalculateLayout:
    """Positions produced for whole graphs."""

    def test_demo_coordinates(self) -> None:
        state = create_initial_graph()
        laid_out = calculate_layout(state.nodes, state.edges)
        assert positions_by_id(laid_out) == DEMO_POSITIONS

    def test_empty_input(self) -> None:
        assert calculate_layout([], []) == []

    def test_preserves_node_order(self) -> None:
        state = create_initial_graph()
        laid_out = calculate_layout(state.nodes, state.edges)
        assert [n.id for n in laid_out] == [n.id for n in state.nodes]

    def test_does_not_mutate_input(self) -> None:
        state = create_initial_graph()
        calculate_layout(state.nodes, state.edges)
        assert all(n.position == Position() for n in state.nodes)

    def test_single_isolated_leaf(self) -> None:
        laid_out = calculate_layout([make_node("only", 0, x=50, y=50)], [])
        assert positions_by_id(laid_out) == {"only": (0.0, 0.0)}

    def test_children_ordered_by_slot(self) -> None:
        nodes = [
            make_node("r", 0),
            make_node("a", 1, slot=2),
            make_node("b", 1, slot=0),
            make_node("c", 1, slot=1),
        ]
        edges = [make_edge("r", "a"), make_edge("r", "b"), make_edge("r", "c")]
        pos = positions_by_id(calculate_layout(nodes, edges))
        assert pos["b"][0] < pos["c"][0] < pos["a"][0]
        assert pos["a"][1] == pos["b"][1] == pos["c"][1] == 220

    def test_multiple_roots_stacked_by_slot(self) -> None:
        nodes = [make_node("a", 0, slot=1), make_node("b", 0, slot=0)]
        pos = positions_by_id(calculate_layout(nodes, []))
        # widths 120 + 120 plus a double gap of 200 -> total 440
        assert pos["b"] == (-160.0, 0.0)
        assert pos["a"] == (160.0, 0.0)

    def test_unreachable_node_keeps_position(self) -> None:
        nodes = [make_node("r", 0), make_node("orphan", 1, x=12.5, y=-7)]
        pos = positions_by_id(calculate_layout(nodes, []))
        assert pos["orphan"] == (12.5, -7)

    def test_no_roots_returns_input_positions(self) -> None:
        nodes = [make_node("a", 1, x=3, y=4), make_node("b", 2, x=5, y=6)]
        laid_out = calculate_layout(nodes, [make_edge("a", "b")])
        assert positions_by_id(laid_out) == {"a": (3, 4), "b": (5, 6)}

    def test_edges_to_unknown_nodes_are_ignored(self) -> None:
        nodes = [make_node("r", 0), make_node("c", 1)]
        edges = [make_edge("r", "c"), make_edge("r", "ghost")]
        pos = positions_by_id(calculate_layout(nodes, edges))
        assert pos["c"] == (0.0, 220.0)

    def test_cyclic_edges_terminate(self) -> None:
        nodes = [make_node("a", 0), make_node("b", 1)]
        edges = [make_edge("a", "b"), make_edge("b", "a")]
        pos = positions_by_id(calculate_layout(nodes, edges))
        assert pos == {"a": (0.0, 0.0), "b": (0.0, 220.0)}

    def test_siblings_do_not_overlap(self) -> None:
        state = create_initial_graph()
        laid_out = calculate_layout(state.nodes, state.edges)
        extents = subtree_extents(state.nodes, state.edges)
        by_id = {n.id: n for n in laid_out}
        for left, right in [("subtask-1", "subtask-2"), ("todo-1-2", "todo-2-1")]:
            left_edge = by_id[left].position.x + extents[left] / 2
            right_edge = by_id[right].position.x - extents[right] / 2
            assert left_edge <= right_edge


class TestLayoutDeterminism:
    """Re-running the layout gives bit-identical coordinates."""

    def test_relayout_from_stripped_positions(self) -> None:
        state = create_initial_graph()
        first = calculate_layout(state.nodes, state.edges)
        stripped = [n.model_copy(update={"position": Position()}) for n in first]
        second = calculate_layout(stripped, state.edges)
        assert positions_by_id(first) == positions_by_id(second)

    def test_layout_is_idempotent(self) -> None:
        state = create_initial_graph()
        first = calculate_layout(state.nodes, state.edges)
        second = calculate_layout(first, state.edges)
        assert positions_by_id(first) == positions_by_id(second)

    def test_independent_of_edge_order(self) -> None:
        state = create_initial_graph()
        forward = calculate_layout(state.nodes, state.edges)
        backward = calculate_layout(state.nodes, list(reversed(state.edges)))
        assert positions_by_id(forward) == positions_by_id(backward)


class TestLayoutConfig:
    def test_from_settings(self) -> None:
        settings = Settings(layout_level_spacing=300, layout_node_spacing=50)
        config = LayoutConfig.from_settings(settings)
        assert config.level_spacing == 300
        assert config.node_spacing == 50
        assert config.min_node_width == 120

    def test_custom_level_spacing(self) -> None:
        nodes = [make_node("r", 0), make_node("c", 1)]
        config = LayoutConfig(level_spacing=100)
        pos = positions_by_id(calculate_layout(nodes, [make_edge("r", "c")], config))
        assert pos["c"] == (0.0, 100.0)

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            LayoutConfig().node_spacing = 1  # type: ignore[misc]
