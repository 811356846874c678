"""Boundary for graphs proposed by the chat (LLM) collaborator.

The collaborator replies with a reduced document
``{"nodes": [{id, label, level, slot}], "edges": [{id, source, target}]}``,
often wrapped in prose or a fenced code block. This module:

- extract_json_from_response: finds the graph object inside the reply
- parse_llm_document: validates the reduced document item by item,
  dropping malformed nodes and edges instead of failing
- build_document_from_llm: expands it into a full, laid-out GraphDocument,
  dropping structurally invalid edges
- import_llm_response: loads the result into a GraphStore
"""

import json
import re
from typing import Any

import structlog
from pydantic import ValidationError

from graph.errors import GraphLoadError
from graph.layout import DEFAULT_LAYOUT_CONFIG, LayoutConfig, calculate_layout
from graph.store import GraphStore
from graph.validation import dedupe_nodes, filter_valid_edges
from models.graph import (
    DEFAULT_BATCH_TITLE,
    EdgeStyle,
    GraphDocument,
    LLMEdge,
    LLMGraphDocument,
    LLMNode,
    NodeData,
    TaskEdge,
    TaskNode,
)

logger = structlog.get_logger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_GRAPH_KEY = "nodes"


def _json_objects_in(text: str) -> list[dict[str, Any]]:
    """Decode every JSON object starting at a ``{`` in ``text``.

    Objects are returned in order of their opening brace, so an enclosing
    object precedes the objects nested inside it.
    """
    decoder = json.JSONDecoder()
    objects: list[dict[str, Any]] = []
    index = text.find("{")
    while index != -1:
        try:
            parsed, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            objects.append(parsed)
        index = text.find("{", index + 1)
    return objects


def extract_json_from_response(response: str) -> dict[str, Any] | None:
    """Find the graph object in an LLM reply that may contain extra text.

    Fenced code blocks are searched before the surrounding prose. The first
    object carrying a ``nodes`` key wins; failing that, the first object
    found at all is returned.

    Args:
        response: The full LLM response text

    Returns:
        Parsed JSON dict if found, None otherwise
    """
    candidates: list[dict[str, Any]] = []
    for match in _FENCE_PATTERN.finditer(response):
        candidates.extend(_json_objects_in(match.group(1)))
    candidates.extend(_json_objects_in(response))

    for candidate in candidates:
        if _GRAPH_KEY in candidate:
            return candidate
    return candidates[0] if candidates else None


def parse_llm_document(data: Any) -> LLMGraphDocument:
    """Validate a reduced document one node and one edge at a time.

    Malformed items (a missing id, a level outside 0..2, a negative slot)
    are dropped with a warning; the rest of the graph survives.

    Raises:
        GraphLoadError: If ``data`` is not an object with ``nodes``/``edges``
            lists, or nodes were given but none of them is valid.
    """
    raw_nodes = data.get("nodes", []) if isinstance(data, dict) else None
    raw_edges = data.get("edges", []) if isinstance(data, dict) else None
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        logger.warning("llm_document_invalid", data_type=type(data).__name__)
        raise GraphLoadError("Invalid graph structure from LLM: expected 'nodes' and 'edges' lists")

    nodes: list[LLMNode] = []
    for index, raw in enumerate(raw_nodes):
        try:
            nodes.append(LLMNode.model_validate(raw))
        except ValidationError as e:
            logger.warning("llm_node_dropped", index=index, error_count=e.error_count())

    edges: list[LLMEdge] = []
    for index, raw in enumerate(raw_edges):
        try:
            edges.append(LLMEdge.model_validate(raw))
        except ValidationError as e:
            logger.warning("llm_edge_dropped", index=index, error_count=e.error_count())

    if raw_nodes and not nodes:
        raise GraphLoadError("Invalid graph structure from LLM: no valid node")
    return LLMGraphDocument(nodes=nodes, edges=edges)


def build_document_from_llm(
    data: dict[str, Any],
    *,
    edge_style: EdgeStyle | None = None,
    layout_config: LayoutConfig = DEFAULT_LAYOUT_CONFIG,
    batch_title: str = DEFAULT_BATCH_TITLE,
) -> GraphDocument:
    """Expand a reduced ``{nodes, edges}`` document into a full graph.

    Nodes get the full node shape at the origin; edges get the default
    edge shape. Malformed items, repeated node ids, and edges with unknown
    endpoints or an illegal level step are dropped with a warning. The
    result is laid out and has an empty pin list.

    Raises:
        GraphLoadError: If nothing usable can be recovered from ``data``.
    """
    reduced = parse_llm_document(data)

    style = edge_style or EdgeStyle()
    nodes = dedupe_nodes(
        TaskNode(
            id=node.id,
            data=NodeData(label=node.label, level=node.level, slot=node.slot),
            selected=False,
        )
        for node in reduced.nodes
    )
    candidates = [
        TaskEdge(
            id=edge.id or f"edge-{edge.source}-{edge.target}",
            source=edge.source,
            target=edge.target,
            style=style.model_copy(),
        )
        for edge in reduced.edges
    ]
    edges, dropped = filter_valid_edges({node.id: node.level for node in nodes}, candidates)

    logger.info(
        "llm_document_built",
        node_count=len(nodes),
        edge_count=len(edges),
        dropped_edges=dropped,
    )
    return GraphDocument(
        nodes=calculate_layout(nodes, edges, layout_config),
        edges=edges,
        pinned_node_ids=[],
        batch_title=batch_title,
    )


def import_llm_response(store: GraphStore, response: str) -> GraphDocument:
    """Replace the store's graph with the one contained in an LLM reply.

    Raises:
        GraphLoadError: If no JSON object can be found in the reply or it
            does not describe a graph. The store is left untouched.
    """
    data = extract_json_from_response(response)
    if data is None:
        logger.warning("llm_response_without_json", response_length=len(response))
        raise GraphLoadError("No JSON object found in the LLM response")

    document = build_document_from_llm(
        data,
        edge_style=store.edge_style,
        layout_config=store.layout_config,
    )
    store.load_document(document)
    return document
