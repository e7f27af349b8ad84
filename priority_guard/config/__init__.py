"""Configuration module for Priority Guard.

Available Configurations:
- GuardConfig: Navigation timeout, foreground re-sync, exempt routes, backend
"""

from priority_guard.config.guard_config import (
    DEFAULT_GUARD_CONFIG,
    TEST_GUARD_CONFIG,
    GuardConfig,
)

__all__ = [
    "GuardConfig",
    "DEFAULT_GUARD_CONFIG",
    "TEST_GUARD_CONFIG",
]
