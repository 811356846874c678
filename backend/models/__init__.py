"""Models module for Pydantic schemas.

This module exposes the graph document models and the request/response
models used by the API.
"""

from models.graph import (
    EdgeStyle,
    GraphDocument,
    Level,
    LLMEdge,
    LLMGraphDocument,
    LLMNode,
    NodeData,
    Position,
    TaskEdge,
    TaskNode,
)
from models.schemas import (
    AddNodeRequest,
    AddNodeResponse,
    HealthResponse,
    OperationResponse,
    ProgressResponse,
)

__all__ = [
    # Graph document
    "EdgeStyle",
    "GraphDocument",
    "Level",
    "LLMEdge",
    "LLMGraphDocument",
    "LLMNode",
    "NodeData",
    "Position",
    "TaskEdge",
    "TaskNode",
    # API
    "AddNodeRequest",
    "AddNodeResponse",
    "HealthResponse",
    "OperationResponse",
    "ProgressResponse",
]
