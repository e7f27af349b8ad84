"""Bootstrap wiring for logging configuration."""

from __future__ import annotations

from priority_guard.config.guard_config import GuardConfig
from priority_guard.infrastructure.observability import configure_structlog as _configure_structlog


def configure_structlog(environment: str) -> None:
    """Configure structlog for the given environment."""
    _configure_structlog(environment=environment)


def configure_logging_from_config(config: GuardConfig) -> None:
    """Configure structlog using the guard configuration's environment."""
    _configure_structlog(environment=config.environment)


__all__ = ["configure_logging_from_config", "configure_structlog"]
