"""In-memory app state stub."""

from __future__ import annotations

from collections.abc import Callable

from priority_guard.application.ports.app_state import APP_STATE_ACTIVE, AppStateListener


class AppStateStub:
    """In-memory stub implementation of AppStateProtocol."""

    def __init__(self, state: str = APP_STATE_ACTIVE) -> None:
        self.state = state
        self._listeners: list[AppStateListener] = []

    def on_app_state_change(self, listener: AppStateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set_state(self, state: str) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
