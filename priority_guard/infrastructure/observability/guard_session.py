"""Guard session id management for log correlation.

Each mounted navigation guard gets a session id kept in a contextvar, so
every log entry emitted on its behalf (guard, engine, aggregator, source
adapters) carries the same guard_session_id across async boundaries.

Usage:
    # When mounting a guard
    set_guard_session_id(generate_guard_session_id())

    # In structlog configuration
    processors = [..., guard_session_processor, ...]
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# Default is empty string to avoid None type issues
_guard_session_id: ContextVar[str] = ContextVar("guard_session_id", default="")


def generate_guard_session_id() -> str:
    """Generate a new guard session id (UUID4)."""
    return str(uuid4())


def get_guard_session_id() -> str:
    """Get the current guard session id, or empty string if none is set."""
    return _guard_session_id.get()


def set_guard_session_id(session_id: str) -> None:
    """Set the guard session id in the current context.

    Tasks created afterwards inherit it.

    Args:
        session_id: The session id to set.
    """
    _guard_session_id.set(session_id)


def guard_session_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor that adds guard_session_id to every log entry.

    Args:
        logger: The logger instance (unused, required by structlog).
        method_name: The logging method name (unused, required by structlog).
        event_dict: The event dictionary to modify.

    Returns:
        The event dictionary with guard_session_id added when one is set.
    """
    session_id = get_guard_session_id()
    if session_id:
        event_dict["guard_session_id"] = session_id
    return event_dict
