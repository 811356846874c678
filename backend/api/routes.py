"""HTTP API routes for the task graph backend.

This module exposes the GraphStore operations, the drag protocol and the
LLM import boundary over HTTP. Handlers are ``async def`` so every store
call runs to completion on the event loop thread, one at a time.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Annotated

import structlog
from fastapi import APIRouter, HTTPException, Path, Request, status
from fastapi.responses import Response

from graph.drag import DragController
from graph.errors import GraphLoadError
from graph.importer import import_llm_response
from models.schemas import (
    AddNodeRequest,
    AddNodeResponse,
    BatchTitleRequest,
    DeleteNodesRequest,
    DeleteNodesResponse,
    DragMoveRequest,
    DragMoveResponse,
    DragStartRequest,
    DragStopResponse,
    GraphLoadResponse,
    HealthResponse,
    HistoryResponse,
    LayoutResponse,
    OperationResponse,
    PinboardResponse,
    PinnedNodeResponse,
    ProgressResponse,
    ReorderPinsRequest,
    SwapSlotRequest,
    ToggleAllPinnedResponse,
    UpdateLabelRequest,
)

if TYPE_CHECKING:
    from graph.store import GraphStore

logger = structlog.get_logger(__name__)

router = APIRouter()

NodeId = Annotated[str, Path(description="Node identifier", examples=["subtask-1"])]

# Graph store dependency (set during application startup)
_graph_store: GraphStore | None = None
_drag_controller: DragController | None = None


def set_graph_store(store: GraphStore, drag_controller: DragController | None = None) -> None:
    """Set the graph store (and its drag controller) used by all routes.

    This should be called during application startup to inject the store
    dependency.

    Args:
        store: The GraphStore instance to use for all routes.
        drag_controller: Drag controller bound to ``store``; one is created
            if omitted.
    """
    global _graph_store, _drag_controller
    _graph_store = store
    _drag_controller = drag_controller or DragController(store)
    logger.info("graph_store_configured")


def get_graph_store() -> GraphStore:
    """Get the graph store instance.

    Raises:
        RuntimeError: If the store has not been configured.
    """
    if _graph_store is None:
        logger.error("graph_store_not_configured")
        raise RuntimeError(
            "GraphStore not configured. Call set_graph_store() during startup."
        )
    return _graph_store


def get_drag_controller() -> DragController:
    if _drag_controller is None:
        logger.error("drag_controller_not_configured")
        raise RuntimeError(
            "DragController not configured. Call set_graph_store() during startup."
        )
    return _drag_controller


def _require_node(store: GraphStore, node_id: str) -> None:
    """Raise 404 if ``node_id`` is not in the graph."""
    if store.get_node(node_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Node {node_id} not found",
        )


def _json_document(store: GraphStore, *, attachment: bool = False) -> Response:
    headers = {}
    if attachment:
        filename = f"task-graph-{int(time.time() * 1000)}.json"
        headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return Response(
        content=store.serialize(),
        media_type="application/json",
        headers=headers,
    )


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check() -> HealthResponse:
    """Report liveness and the size of the loaded graph."""
    node_count = len(_graph_store.nodes) if _graph_store is not None else 0
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        node_count=node_count,
    )


# -----------------------------------------------------------------------------
# Graph document
# -----------------------------------------------------------------------------


@router.get(
    "/api/graph",
    summary="Get the graph document",
    description="Return the full graph in its persisted JSON format.",
)
async def get_graph() -> Response:
    return _json_document(get_graph_store())


@router.get(
    "/api/graph/export",
    summary="Download the graph document",
)
async def export_graph() -> Response:
    """Return the graph as a JSON file attachment."""
    return _json_document(get_graph_store(), attachment=True)


@router.post(
    "/api/graph/load",
    response_model=GraphLoadResponse,
    summary="Load a graph document",
    description="Replace the whole graph with a persisted JSON document. Clears undo history.",
)
async def load_graph(request: Request) -> GraphLoadResponse:
    """Load a persisted graph document from the raw request body.

    Raises:
        HTTPException: 400 if the body is not a valid graph document.
    """
    store = get_graph_store()
    body = await request.body()
    try:
        store.deserialize(body)
    except GraphLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return GraphLoadResponse(node_count=len(store.nodes), edge_count=len(store.edges))


@router.post(
    "/api/graph/import-llm",
    response_model=GraphLoadResponse,
    summary="Import a graph proposed by the chat assistant",
)
async def import_llm_graph(request: Request) -> GraphLoadResponse:
    """Load the reduced graph contained in a raw LLM reply.

    Invalid edges are dropped; the request only fails if no graph can be
    recovered from the reply.
    """
    store = get_graph_store()
    body = (await request.body()).decode("utf-8", errors="replace")
    try:
        document = import_llm_response(store, body)
    except GraphLoadError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    return GraphLoadResponse(node_count=len(document.nodes), edge_count=len(document.edges))


# -----------------------------------------------------------------------------
# Nodes
# -----------------------------------------------------------------------------


@router.post(
    "/api/nodes",
    response_model=AddNodeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a node",
)
async def add_node(request: AddNodeRequest) -> AddNodeResponse:
    """Create a root, or a child one level below ``parent_id``.

    Raises:
        HTTPException: 404 for an unknown parent, 400 for an illegal level.
    """
    store = get_graph_store()
    if request.parent_id is not None:
        _require_node(store, request.parent_id)

    result = store.add_node(request.parent_id, request.level)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Requested level does not fit under the given parent",
        )
    return AddNodeResponse(
        node_id=result.node_id,
        edge_id=result.edge_id,
        unpinned_parent_id=result.unpinned_parent_id,
    )


@router.put(
    "/api/nodes/{node_id}/label",
    response_model=OperationResponse,
    summary="Relabel a node",
)
async def update_node_label(node_id: NodeId, request: UpdateLabelRequest) -> OperationResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    return OperationResponse(applied=store.update_node_label(node_id, request.label))


@router.post(
    "/api/nodes/{node_id}/toggle",
    response_model=OperationResponse,
    summary="Toggle a node's completion",
)
async def toggle_node_completed(node_id: NodeId) -> OperationResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    return OperationResponse(applied=store.toggle_node_completed(node_id))


@router.delete(
    "/api/nodes/{node_id}",
    response_model=DeleteNodesResponse,
    summary="Delete a node and its subtree",
)
async def delete_node(node_id: NodeId) -> DeleteNodesResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    removed = store.delete_node(node_id)
    return DeleteNodesResponse(deleted_ids=sorted(removed))


@router.post(
    "/api/nodes/delete",
    response_model=DeleteNodesResponse,
    summary="Delete several nodes and their subtrees",
)
async def delete_nodes(request: DeleteNodesRequest) -> DeleteNodesResponse:
    """Unknown ids are ignored."""
    store = get_graph_store()
    removed = store.delete_nodes(request.node_ids)
    return DeleteNodesResponse(deleted_ids=sorted(removed))


@router.post(
    "/api/nodes/{node_id}/swap",
    response_model=OperationResponse,
    summary="Move a node to another slot on its level",
)
async def swap_slots(node_id: NodeId, request: SwapSlotRequest) -> OperationResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    return OperationResponse(applied=store.swap_slots(node_id, request.target_slot))


@router.get(
    "/api/nodes/{node_id}/progress",
    response_model=ProgressResponse,
    summary="Completion progress of a node",
)
async def get_progress(node_id: NodeId) -> ProgressResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    return ProgressResponse(
        node_id=node_id,
        progress=store.progress(node_id),
        is_leaf=store.is_leaf(node_id),
    )


@router.post(
    "/api/selection/clear",
    response_model=OperationResponse,
    summary="Clear node selection",
    description="UI-only state; not recorded in undo history.",
)
async def clear_selection() -> OperationResponse:
    get_graph_store().clear_selection()
    return OperationResponse(applied=True)


@router.post(
    "/api/layout/auto",
    response_model=LayoutResponse,
    summary="Re-derive slots from positions and lay the graph out",
)
async def apply_auto_layout() -> LayoutResponse:
    store = get_graph_store()
    applied = store.apply_auto_layout()
    return LayoutResponse(applied=applied, formatting=store.is_formatting)


@router.post(
    "/api/layout/formatting-done",
    response_model=OperationResponse,
    summary="Clear the formatting flag after the renderer's animation",
)
async def finish_formatting() -> OperationResponse:
    get_graph_store().finish_formatting()
    return OperationResponse(applied=True)


# -----------------------------------------------------------------------------
# Pinboard
# -----------------------------------------------------------------------------


@router.get(
    "/api/pins",
    response_model=PinboardResponse,
    summary="Get the pinboard",
)
async def get_pins() -> PinboardResponse:
    store = get_graph_store()
    return PinboardResponse(
        batch_title=store.batch_title,
        pinned=[
            PinnedNodeResponse(
                node=entry.node,
                parent_label=entry.parent.label if entry.parent is not None else None,
            )
            for entry in store.pinned_nodes()
        ],
    )


@router.delete(
    "/api/pins",
    response_model=OperationResponse,
    summary="Clear the pinboard",
)
async def unpin_all() -> OperationResponse:
    return OperationResponse(applied=get_graph_store().unpin_all())


@router.post(
    "/api/pins/reorder",
    response_model=OperationResponse,
    summary="Move a pin to another position",
)
async def reorder_pins(request: ReorderPinsRequest) -> OperationResponse:
    store = get_graph_store()
    return OperationResponse(
        applied=store.reorder_pinned_nodes(request.from_index, request.to_index)
    )


@router.post(
    "/api/pins/toggle-completed",
    response_model=ToggleAllPinnedResponse,
    summary="Complete (or reopen) every pinned node",
)
async def toggle_all_pinned_completed() -> ToggleAllPinnedResponse:
    return ToggleAllPinnedResponse(completed=get_graph_store().toggle_all_pinned_completed())


@router.post(
    "/api/pins/{node_id}",
    response_model=OperationResponse,
    summary="Pin a leaf",
)
async def pin_node(node_id: NodeId) -> OperationResponse:
    store = get_graph_store()
    _require_node(store, node_id)
    return OperationResponse(applied=store.pin_node(node_id))


@router.delete(
    "/api/pins/{node_id}",
    response_model=OperationResponse,
    summary="Unpin a node",
)
async def unpin_node(node_id: NodeId) -> OperationResponse:
    return OperationResponse(applied=get_graph_store().unpin_node(node_id))


@router.put(
    "/api/batch-title",
    response_model=OperationResponse,
    summary="Rename the pinboard batch",
)
async def set_batch_title(request: BatchTitleRequest) -> OperationResponse:
    return OperationResponse(applied=get_graph_store().set_batch_title(request.title))


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------


@router.post(
    "/api/history/undo",
    response_model=HistoryResponse,
    summary="Undo the last change",
)
async def undo() -> HistoryResponse:
    store = get_graph_store()
    get_drag_controller().cancel()
    applied = store.undo()
    return HistoryResponse(applied=applied, can_undo=store.can_undo, can_redo=store.can_redo)


@router.post(
    "/api/history/redo",
    response_model=HistoryResponse,
    summary="Redo the last undone change",
)
async def redo() -> HistoryResponse:
    store = get_graph_store()
    get_drag_controller().cancel()
    applied = store.redo()
    return HistoryResponse(applied=applied, can_undo=store.can_undo, can_redo=store.can_redo)


# -----------------------------------------------------------------------------
# Drag protocol
# -----------------------------------------------------------------------------


@router.post(
    "/api/drag/start",
    response_model=OperationResponse,
    summary="Start dragging a node and its subtree",
)
async def drag_start(request: DragStartRequest) -> OperationResponse:
    store = get_graph_store()
    _require_node(store, request.node_id)
    return OperationResponse(applied=get_drag_controller().start(request.node_id))


@router.post(
    "/api/drag/move",
    response_model=DragMoveResponse,
    summary="Move the dragged node to an absolute position",
)
async def drag_move(request: DragMoveRequest) -> DragMoveResponse:
    """Return the live positions of the dragged subtree.

    Raises:
        HTTPException: 409 if no drag of ``node_id`` is in flight.
    """
    positions = get_drag_controller().move(request.node_id, request.position)
    if not positions:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"No drag in progress for node {request.node_id}",
        )
    return DragMoveResponse(positions=positions)


@router.post(
    "/api/drag/stop",
    response_model=DragStopResponse,
    summary="Commit the dragged subtree's positions",
)
async def drag_stop() -> DragStopResponse:
    return DragStopResponse(moved_count=get_drag_controller().stop())


@router.post(
    "/api/drag/cancel",
    response_model=OperationResponse,
    summary="Abandon the current drag without committing",
)
async def drag_cancel() -> OperationResponse:
    get_drag_controller().cancel()
    return OperationResponse(applied=True)
