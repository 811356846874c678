"""Tests for graph/importer.py -- graphs proposed by the chat collaborator.

Covers:
- extract_json_from_response: JSON extraction preferring fenced graph objects
- build_document_from_llm: node/edge expansion, per-item validation, layout
- import_llm_response: loading into a GraphStore and failure handling
"""

import json

import pytest

from graph.errors import GraphLoadError
from graph.importer import (
    build_document_from_llm,
    extract_json_from_response,
    import_llm_response,
)
from graph.store import GraphStore
from models.graph import EdgeStyle
from tests.conftest import positions_by_id

LLM_GRAPH = {
    "nodes": [
        {"id": "goal", "label": "Ship v2", "level": 0, "slot": 0},
        {"id": "docs", "label": "Docs", "level": 1, "slot": 0},
        {"id": "code", "label": "Code", "level": 1, "slot": 1},
        {"id": "readme", "label": "README", "level": 2, "slot": 0},
    ],
    "edges": [
        {"id": "e1", "source": "goal", "target": "docs"},
        {"source": "goal", "target": "code"},
        {"id": "e3", "source": "docs", "target": "readme"},
    ],
}

# =========================================================================
# extract_json_from_response
# =========================================================================


class TestExtractJsonFromResponse:
    def test_pure_json(self) -> None:
        assert extract_json_from_response('{"nodes": []}') == {"nodes": []}

    def test_json_in_code_fence(self) -> None:
        response = 'Here is the plan:\n```json\n{"nodes": [], "edges": []}\n```\nEnjoy.'
        assert extract_json_from_response(response) == {"nodes": [], "edges": []}

    def test_json_in_bare_code_fence(self) -> None:
        response = '```\n{"key": "value"}\n```'
        assert extract_json_from_response(response) == {"key": "value"}

    def test_json_with_surrounding_text(self) -> None:
        response = 'Sure! {"nodes": [{"id": "a"}]} Let me know.'
        assert extract_json_from_response(response) == {"nodes": [{"id": "a"}]}

    def test_string_containing_braces(self) -> None:
        response = 'prefix {"label": "use {braces}"} suffix'
        assert extract_json_from_response(response) == {"label": "use {braces}"}

    def test_no_json(self) -> None:
        assert extract_json_from_response("No structure here.") is None

    def test_top_level_array_is_ignored(self) -> None:
        assert extract_json_from_response("[1, 2, 3]") is None

    def test_empty_string(self) -> None:
        assert extract_json_from_response("") is None

    def test_prefers_object_with_nodes(self) -> None:
        response = (
            'Settings: {"temperature": 0.2}\n'
            '```json\n{"nodes": [], "edges": []}\n```'
        )
        assert extract_json_from_response(response) == {"nodes": [], "edges": []}

    def test_nested_graph_object_is_found(self) -> None:
        response = '{"reply": {"nodes": [{"id": "a"}]}}'
        assert extract_json_from_response(response) == {"nodes": [{"id": "a"}]}

    def test_fenced_object_wins_over_prose(self) -> None:
        response = '{"nodes": ["draft"]}\n```json\n{"nodes": ["final"]}\n```'
        assert extract_json_from_response(response) == {"nodes": ["final"]}


# =========================================================================
# build_document_from_llm
# =========================================================================


class TestBuildDocument:
    def test_expands_nodes(self) -> None:
        document = build_document_from_llm(LLM_GRAPH)
        node = next(n for n in document.nodes if n.id == "readme")
        assert node.type == "editableNode"
        assert node.label == "README"
        assert node.level == 2
        assert node.selected is False
        assert node.data.completed is None

    def test_expands_edges(self) -> None:
        style = EdgeStyle(stroke="#000000", stroke_width=1)
        document = build_document_from_llm(LLM_GRAPH, edge_style=style)
        assert [e.id for e in document.edges] == ["e1", "edge-goal-code", "e3"]
        edge = document.edges[0]
        assert edge.type == "default"
        assert edge.animated is False
        assert edge.style == style

    def test_result_is_laid_out(self) -> None:
        pos = positions_by_id(build_document_from_llm(LLM_GRAPH).nodes)
        assert pos["goal"] == (0.0, 0.0)
        assert pos["docs"][1] == 220.0
        assert pos["readme"] == (pos["docs"][0], 440.0)

    def test_empty_pins_and_title(self) -> None:
        document = build_document_from_llm(LLM_GRAPH, batch_title="Plan")
        assert document.pinned_node_ids == []
        assert document.batch_title == "Plan"

    @pytest.mark.parametrize(
        "edge",
        [
            {"id": "x", "source": "goal", "target": "ghost"},  # unknown endpoint
            {"id": "x", "source": "readme", "target": "docs"},  # leaf-level source
            {"id": "x", "source": "docs", "target": "goal"},  # root target
            {"id": "x", "source": "goal", "target": "readme"},  # skips a level
        ],
    )
    def test_invalid_edges_are_dropped(self, edge: dict) -> None:
        data = {"nodes": LLM_GRAPH["nodes"], "edges": [edge]}
        assert build_document_from_llm(data).edges == []

    def test_second_parent_is_dropped(self) -> None:
        data = {
            "nodes": LLM_GRAPH["nodes"],
            "edges": [
                {"id": "a", "source": "docs", "target": "readme"},
                {"id": "b", "source": "code", "target": "readme"},
            ],
        }
        assert [e.id for e in build_document_from_llm(data).edges] == ["a"]

    @pytest.mark.parametrize(
        "data",
        [
            {"nodes": [{"id": "a", "level": 5}]},
            {"nodes": [{"label": "no id", "level": 0}]},
            {"nodes": "not a list"},
        ],
    )
    def test_malformed_structure(self, data: dict) -> None:
        with pytest.raises(GraphLoadError):
            build_document_from_llm(data)

    @pytest.mark.parametrize(
        "bad_node",
        [
            {"id": "extra", "label": "Too deep", "level": 3},
            {"id": "extra", "level": 1, "slot": -1},
            {"label": "No id", "level": 1},
        ],
    )
    def test_malformed_node_is_dropped(self, bad_node: dict) -> None:
        data = {"nodes": [*LLM_GRAPH["nodes"], bad_node], "edges": LLM_GRAPH["edges"]}
        document = build_document_from_llm(data)
        assert {n.id for n in document.nodes} == {"goal", "docs", "code", "readme"}
        assert len(document.edges) == 3

    def test_edges_to_dropped_node_are_dropped(self) -> None:
        data = {
            "nodes": [
                LLM_GRAPH["nodes"][0],
                {"id": "docs", "label": "Docs", "level": 7},
                LLM_GRAPH["nodes"][2],
            ],
            "edges": [
                {"id": "e1", "source": "goal", "target": "docs"},
                {"id": "e2", "source": "goal", "target": "code"},
            ],
        }
        document = build_document_from_llm(data)
        assert [n.id for n in document.nodes] == ["goal", "code"]
        assert [e.id for e in document.edges] == ["e2"]

    def test_malformed_edge_is_dropped(self) -> None:
        data = {
            "nodes": LLM_GRAPH["nodes"],
            "edges": [{"id": "e1", "source": "goal"}, *LLM_GRAPH["edges"][1:]],
        }
        assert [e.id for e in build_document_from_llm(data).edges] == ["edge-goal-code", "e3"]

    def test_repeated_node_id_keeps_first(self) -> None:
        data = {
            "nodes": [*LLM_GRAPH["nodes"], {"id": "docs", "label": "Again", "level": 1}],
            "edges": LLM_GRAPH["edges"],
        }
        docs = [n for n in build_document_from_llm(data).nodes if n.id == "docs"]
        assert [n.label for n in docs] == ["Docs"]

    def test_empty_document_is_allowed(self) -> None:
        document = build_document_from_llm({"nodes": [], "edges": []})
        assert document.nodes == []
        assert document.edges == []


# =========================================================================
# import_llm_response
# =========================================================================


class TestImportLlmResponse:
    def test_replaces_store_graph(self, store: GraphStore) -> None:
        store.pin_node("todo-1-1")
        store.add_node("root-1")
        response = "Here you go:\n```json\n" + json.dumps(LLM_GRAPH) + "\n```"

        import_llm_response(store, response)

        assert {n.id for n in store.nodes} == {"goal", "docs", "code", "readme"}
        assert len(store.edges) == 3
        assert store.pinned_node_ids == []
        assert store.can_undo is False

    def test_no_json_leaves_store(self, store: GraphStore) -> None:
        before = store.serialize()
        with pytest.raises(GraphLoadError):
            import_llm_response(store, "I could not come up with a plan.")
        assert store.serialize() == before

    def test_invalid_structure_leaves_store(self, store: GraphStore) -> None:
        before = store.serialize()
        with pytest.raises(GraphLoadError):
            import_llm_response(store, '{"nodes": [{"id": 1}]}')
        assert store.serialize() == before
