"""Tests for graph/validation.py -- edge and node sanitation on load."""

import pytest

from graph.validation import dedupe_nodes, edge_rejection_reason, filter_valid_edges
from tests.conftest import make_edge, make_node

LEVELS = {"r": 0, "a": 1, "b": 1, "t": 2}


class TestEdgeRejectionReason:
    @pytest.mark.parametrize(("source", "target"), [(0, 1), (1, 2)])
    def test_valid_steps(self, source: int, target: int) -> None:
        assert edge_rejection_reason(source, target) is None

    @pytest.mark.parametrize(
        ("source", "target", "fragment"),
        [
            (None, 1, "not found"),
            (0, None, "not found"),
            (2, 1, "cannot have children"),
            (1, 0, "cannot have parent"),
            (0, 2, "invalid level progression"),
            (1, 1, "invalid level progression"),
        ],
    )
    def test_invalid_steps(self, source: int | None, target: int | None, fragment: str) -> None:
        assert fragment in edge_rejection_reason(source, target)


class TestFilterValidEdges:
    def test_keeps_valid_edges_in_order(self) -> None:
        edges = [make_edge("r", "a"), make_edge("r", "b"), make_edge("a", "t")]
        kept, dropped = filter_valid_edges(LEVELS, edges)
        assert kept == edges
        assert dropped == 0

    def test_drops_second_parent(self) -> None:
        kept, dropped = filter_valid_edges(LEVELS, [make_edge("a", "t"), make_edge("b", "t")])
        assert [e.source for e in kept] == ["a"]
        assert dropped == 1

    def test_drops_duplicate_ids(self) -> None:
        edges = [make_edge("r", "a", "e"), make_edge("r", "b", "e")]
        kept, dropped = filter_valid_edges(LEVELS, edges)
        assert [e.target for e in kept] == ["a"]
        assert dropped == 1

    def test_drops_unknown_and_illegal(self) -> None:
        edges = [make_edge("r", "ghost"), make_edge("t", "a"), make_edge("r", "t")]
        kept, dropped = filter_valid_edges(LEVELS, edges)
        assert kept == []
        assert dropped == 3


class TestDedupeNodes:
    def test_first_occurrence_wins(self) -> None:
        nodes = [make_node("a", 0, label="first"), make_node("b", 1), make_node("a", 0, label="second")]
        unique = dedupe_nodes(nodes)
        assert [n.id for n in unique] == ["a", "b"]
        assert unique[0].label == "first"
