"""API module for HTTP routes.

This module exposes the FastAPI router for the task graph backend.
"""

from api.routes import get_graph_store, router, set_graph_store

__all__ = ["router", "set_graph_store", "get_graph_store"]
