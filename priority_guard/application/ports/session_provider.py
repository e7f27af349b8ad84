"""Session provider protocol.

Application port for the authentication layer. A None user means signed
out, and the guard never blocks a signed-out session.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from priority_guard.domain.models.session_user import SessionUser

SessionListener = Callable[[SessionUser | None], None]


class SessionProviderProtocol(Protocol):
    """Protocol for the signed-in member identity."""

    def current_user(self) -> SessionUser | None:
        """Return the signed-in member, or None."""
        ...

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for sign-in/sign-out; returns an unsubscribe callable."""
        ...
