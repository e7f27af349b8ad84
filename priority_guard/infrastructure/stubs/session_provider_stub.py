"""In-memory session provider stub."""

from __future__ import annotations

from collections.abc import Callable

from priority_guard.application.ports.session_provider import SessionListener
from priority_guard.domain.models.session_user import SessionUser


class SessionProviderStub:
    """In-memory stub implementation of SessionProviderProtocol."""

    def __init__(self, user: SessionUser | None = None) -> None:
        self._user = user
        self._listeners: list[SessionListener] = []

    def current_user(self) -> SessionUser | None:
        return self._user

    def on_session_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def sign_in(self, user: SessionUser) -> None:
        self._user = user
        self._notify()

    def sign_out(self) -> None:
        self._user = None
        self._notify()

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._user)
