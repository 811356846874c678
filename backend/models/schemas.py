"""Pydantic schemas for API request/response models.

This module defines the data models used by the HTTP API. The graph document
itself (nodes, edges, pins) lives in ``models.graph``.
All models use Pydantic v2 with strict type validation.
"""

from typing import Literal

from pydantic import BaseModel, Field

from models.graph import Level, Position, TaskNode


class AddNodeRequest(BaseModel):
    """Request body for adding a node."""

    parent_id: str | None = Field(
        default=None,
        description="Parent node id; omit to create a new root",
        examples=["root-1"],
    )
    level: Level | None = Field(
        default=None,
        description="Level of the new node; defaults to one below the parent",
        examples=[1],
    )


class AddNodeResponse(BaseModel):
    """Response for node creation."""

    node_id: str = Field(
        description="Id of the created node",
        examples=["node_3f9a1c2b7d4e"],
    )
    edge_id: str | None = Field(
        default=None,
        description="Id of the edge from the parent, if any",
    )
    unpinned_parent_id: str | None = Field(
        default=None,
        description="Set when the parent was removed from the pin list because it gained a child",
    )


class UpdateLabelRequest(BaseModel):
    """Request body for relabeling a node."""

    label: str = Field(
        max_length=10000,
        description="The new label; may span several lines",
        examples=["Write the release notes"],
    )


class SwapSlotRequest(BaseModel):
    """Request body for moving a node to another slot on its level."""

    target_slot: int = Field(
        ge=0,
        description="Slot to move the node to",
        examples=[2],
    )


class DeleteNodesRequest(BaseModel):
    """Request body for bulk deletion."""

    node_ids: list[str] = Field(
        min_length=1,
        description="Nodes to delete together with their descendants",
        examples=[["subtask-1", "todo-2-1"]],
    )


class DeleteNodesResponse(BaseModel):
    """Ids removed by a delete operation."""

    deleted_ids: list[str] = Field(
        description="Every removed id, sorted",
    )


class OperationResponse(BaseModel):
    """Outcome of a store operation that may be a no-op."""

    applied: bool = Field(
        description="False when the operation changed nothing",
    )


class ProgressResponse(BaseModel):
    """Completion progress of a node."""

    node_id: str
    progress: float = Field(
        ge=0.0,
        le=1.0,
        description="Completed leaf descendants / all leaf descendants",
    )
    is_leaf: bool = Field(
        description="True if the node has no children; read its own completed flag instead",
    )


class ReorderPinsRequest(BaseModel):
    """Request body for reordering the pin list."""

    from_index: int = Field(ge=0, examples=[0])
    to_index: int = Field(ge=0, examples=[2])


class ToggleAllPinnedResponse(BaseModel):
    """Result of toggling completion on all pinned nodes."""

    completed: bool | None = Field(
        description="Value written to every pinned node; None if nothing is pinned",
    )


class BatchTitleRequest(BaseModel):
    """Request body for renaming the pin list batch."""

    title: str = Field(
        max_length=500,
        examples=["Current Batch"],
    )


class PinnedNodeResponse(BaseModel):
    """A pinned leaf as shown on the pinboard."""

    node: TaskNode
    parent_label: str | None = Field(
        default=None,
        description="Label of the node's parent, if any",
    )


class PinboardResponse(BaseModel):
    """The pin list with its title."""

    batch_title: str
    pinned: list[PinnedNodeResponse] = Field(default_factory=list)


class HistoryResponse(BaseModel):
    """Outcome of an undo or redo call."""

    applied: bool
    can_undo: bool
    can_redo: bool


class LayoutResponse(BaseModel):
    """Outcome of an auto-layout call."""

    applied: bool
    formatting: bool = Field(
        description="Advisory flag: the renderer may animate the transition",
    )


class DragStartRequest(BaseModel):
    """Request body for starting a subtree drag."""

    node_id: str = Field(examples=["subtask-1"])


class DragMoveRequest(BaseModel):
    """Request body for a pointer move during a drag."""

    node_id: str = Field(examples=["subtask-1"])
    position: Position = Field(description="Absolute position of the dragged node")


class DragMoveResponse(BaseModel):
    """Live positions of the dragged subtree."""

    positions: dict[str, Position] = Field(default_factory=dict)


class DragStopResponse(BaseModel):
    """Outcome of committing a drag."""

    moved_count: int = Field(ge=0)


class GraphLoadResponse(BaseModel):
    """Summary of a loaded graph."""

    node_count: int = Field(ge=0)
    edge_count: int = Field(ge=0)


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(
        description="Overall health status",
    )
    timestamp: float = Field(
        description="Current server timestamp",
    )
    version: str = Field(
        default="0.1.0",
        description="API version",
    )
    node_count: int = Field(
        default=0,
        description="Number of nodes in the loaded graph",
    )
