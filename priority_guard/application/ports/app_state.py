"""App state protocol.

Application port for foreground/background transitions. States follow the
mobile runtime's names: "active", "background", "inactive".
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

APP_STATE_ACTIVE = "active"

AppStateListener = Callable[[str], None]


class AppStateProtocol(Protocol):
    """Protocol for observing app lifecycle changes."""

    def on_app_state_change(self, listener: AppStateListener) -> Callable[[], None]:
        """Register a listener; returns an unsubscribe callable."""
        ...
