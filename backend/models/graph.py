"""Pydantic models for the task graph and its persisted JSON format.

The field names and nesting follow the document produced by ``serialize()``:

    {
      "nodes": [{"id", "type", "position": {"x", "y"},
                 "data": {"label", "level", "slot", "completed"?},
                 "selected"?}],
      "edges": [{"id", "source", "target", "type", "animated",
                 "style": {"stroke", "strokeWidth"}}],
      "pinnedNodeIds": [...],
      "batchTitle": "..."
    }

The reduced ``LLMGraphDocument`` is what the chat collaborator emits; it is
expanded into a full ``GraphDocument`` by ``graph.importer``.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Level = Literal[0, 1, 2]

NODE_TYPE = "editableNode"
EDGE_TYPE = "default"
DEFAULT_BATCH_TITLE = "Current Batch"


class Position(BaseModel):
    """A 2-D coordinate. ``x`` is the sibling axis, ``y`` the level axis."""

    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    """Payload carried by every node."""

    label: str = ""
    level: Level
    slot: int = Field(default=0, ge=0)
    completed: bool | None = None


class TaskNode(BaseModel):
    """A single node of the three-level task hierarchy.

    ``selected`` is transient UI state; it is persisted when present but is
    not part of the undoable data model.
    """

    id: str
    type: str = NODE_TYPE
    position: Position = Field(default_factory=Position)
    data: NodeData
    selected: bool | None = None

    @property
    def level(self) -> int:
        return self.data.level

    @property
    def slot(self) -> int:
        return self.data.slot

    @property
    def label(self) -> str:
        return self.data.label


class EdgeStyle(BaseModel):
    """Stroke attributes for an edge."""

    model_config = ConfigDict(populate_by_name=True)

    stroke: str = "#94a3b8"
    stroke_width: float = Field(default=2.5, alias="strokeWidth")


class TaskEdge(BaseModel):
    """Directed parent -> child edge."""

    id: str
    source: str
    target: str
    type: str = EDGE_TYPE
    animated: bool = False
    style: EdgeStyle = Field(default_factory=EdgeStyle)


class GraphDocument(BaseModel):
    """The canonical persisted graph document."""

    model_config = ConfigDict(populate_by_name=True)

    nodes: list[TaskNode] = Field(default_factory=list)
    edges: list[TaskEdge] = Field(default_factory=list)
    pinned_node_ids: list[str] = Field(default_factory=list, alias="pinnedNodeIds")
    batch_title: str = Field(default=DEFAULT_BATCH_TITLE, alias="batchTitle")

    def to_json(self) -> str:
        """Serialize with the camelCase keys of the external format."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


class LLMNode(BaseModel):
    """Reduced node emitted by the chat collaborator."""

    id: str
    label: str = ""
    level: Level
    slot: int = Field(default=0, ge=0)


class LLMEdge(BaseModel):
    """Reduced edge emitted by the chat collaborator."""

    id: str | None = None
    source: str
    target: str


class LLMGraphDocument(BaseModel):
    """Reduced ``{nodes, edges}`` document emitted by the chat collaborator."""

    nodes: list[LLMNode] = Field(default_factory=list)
    edges: list[LLMEdge] = Field(default_factory=list)
