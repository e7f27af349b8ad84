"""Observability infrastructure for structured logging and session correlation.

This module provides cross-cutting observability concerns:
- Structured JSON logging with structlog
- Guard session ids carried across async boundaries
"""

from priority_guard.infrastructure.observability.guard_session import (
    generate_guard_session_id,
    get_guard_session_id,
    guard_session_processor,
    set_guard_session_id,
)
from priority_guard.infrastructure.observability.logging import configure_structlog

__all__: list[str] = [
    "configure_structlog",
    "generate_guard_session_id",
    "get_guard_session_id",
    "guard_session_processor",
    "set_guard_session_id",
]
