"""Application configuration using Pydantic Settings.

This module provides centralized configuration management for the task graph
backend. All settings can be overridden via environment variables or a .env file.
"""

import json
import logging
from typing import Any

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        layout_level_spacing: Distance between consecutive levels along the flow axis.
        layout_node_spacing: Gap between sibling subtrees along the sibling axis.
        layout_min_node_width: Lower clamp for a node's estimated width.
        layout_max_node_width: Upper clamp for a node's estimated width.
        layout_char_width: Approximate rendered width of one label character.
        layout_padding: Horizontal padding inside a node (left + right).
        layout_checkbox_width: Width reserved for the completion checkbox.
        history_max_depth: Maximum number of undo (and redo) snapshots kept.
        default_node_label: Label given to freshly added nodes.
        default_batch_title: Batch title used when none is supplied.
        edge_stroke: Stroke colour written into every edge's style.
        edge_stroke_width: Stroke width written into every edge's style.
        load_demo_graph: If True, the server starts with the demo tree loaded.
        backend_port: Port for the FastAPI server.
        cors_origins: Allowed origins for CORS.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
    """

    # Layout Engine
    layout_level_spacing: float = 220
    layout_node_spacing: float = 100
    layout_min_node_width: float = 120
    layout_max_node_width: float = 300
    layout_char_width: float = 8
    layout_padding: float = 32  # 16px left + 16px right
    layout_checkbox_width: float = 28  # 20px checkbox + 8px gap

    # History
    history_max_depth: int = 5

    # Graph defaults
    default_node_label: str = "New Task"
    default_batch_title: str = "Current Batch"
    edge_stroke: str = "#94a3b8"
    edge_stroke_width: float = 2.5
    load_demo_graph: bool = True

    # Server Configuration
    backend_port: int = 8000
    cors_origins: str | list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from string or list.

        Accepts:
        - JSON array: '["http://localhost:5173"]'
        - Comma-separated: 'http://localhost:5173,http://localhost:8080'
        - Single value: 'http://localhost:5173'
        - Already a list: ["http://localhost:5173"]
        """
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            v = v.strip()
            # Try JSON first
            if v.startswith("["):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            # Fallback to comma-separated
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return ["http://localhost:5173"]

    @field_validator("history_max_depth")
    @classmethod
    def validate_history_depth(cls, v: int) -> int:
        """History depth must allow at least one snapshot."""
        if v < 1:
            raise ValueError("history_max_depth must be >= 1")
        return v

    model_config = SettingsConfigDict(
        # Support running `uvicorn` from either the repo root or `backend/`
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging for the application.

    Sets up structlog with appropriate processors for either JSON or console output.

    Args:
        log_level: The minimum log level to emit (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format - 'json' for production, 'text' for development.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Global settings instance
settings = Settings()

# Configure logging on module import
configure_logging(settings.log_level, settings.log_format)

# Create a logger for this module
logger = structlog.get_logger(__name__)
