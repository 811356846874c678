"""FastAPI application entry point for the task graph backend.

This module initializes the FastAPI application with its middleware,
router and the single GraphStore instance it serves.

Usage:
    uv run uvicorn main:app --reload
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router, set_graph_store
from config import configure_logging, settings
from events import get_event_bus
from graph.drag import DragController
from graph.store import GraphStore

# Configure structured logging
configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger(__name__)


def create_graph_store() -> GraphStore:
    """Build the store served by the application, per settings."""
    event_bus = get_event_bus()
    if settings.load_demo_graph:
        return GraphStore.with_demo_graph(event_bus=event_bus)
    return GraphStore(event_bus=event_bus)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    # Startup
    logger.info(
        "application_starting",
        backend_port=settings.backend_port,
        log_level=settings.log_level,
        load_demo_graph=settings.load_demo_graph,
    )

    store = create_graph_store()
    drag_controller = DragController(store)
    set_graph_store(store, drag_controller)

    # Store on app.state for access
    app.state.graph_store = store
    app.state.drag_controller = drag_controller

    logger.info("application_started", node_count=len(store.nodes))

    yield

    # Shutdown
    logger.info("application_shutting_down")
    app.state.drag_controller.cancel()
    logger.info("application_shutdown_complete")


# Create FastAPI application
app = FastAPI(
    title="Task Graph",
    description="Backend API for building, arranging and tracking a "
    "three-level task hierarchy: root tasks, subtasks and todos.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["*"],
)

# Include HTTP routes
app.include_router(router, tags=["graph"])


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint that points to API documentation.

    Returns:
        A welcome message with documentation URL.
    """
    return {
        "message": "Task Graph API",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.backend_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
