"""In-memory router stub.

Records navigation requests and, unless told otherwise, lands them
immediately by notifying route listeners.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from priority_guard.application.ports.router import RouteListener

logger = structlog.get_logger(__name__)


class RouterStub:
    """In-memory stub implementation of RouterProtocol.

    Attributes:
        navigations: Every route passed to navigate(), in order.
        auto_land: Whether navigate() immediately changes the route.
    """

    def __init__(self, initial_route: str = "/", auto_land: bool = True) -> None:
        self._route = initial_route
        self._listeners: list[RouteListener] = []
        self._navigate_error: Exception | None = None
        self.auto_land = auto_land
        self.navigations: list[str] = []

    def current_route(self) -> str:
        return self._route

    async def navigate(self, route: str) -> None:
        if self._navigate_error is not None:
            raise self._navigate_error
        self.navigations.append(route)
        logger.debug("stub_navigate", route=route, auto_land=self.auto_land)
        if self.auto_land:
            self.set_route(route)

    def on_route_change(self, listener: RouteListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def set_route(self, route: str) -> None:
        """Change the route as if the member navigated there."""
        self._route = route
        for listener in list(self._listeners):
            listener(route)

    def fail_navigation(self, error: Exception | None = None) -> None:
        self._navigate_error = error or RuntimeError("simulated navigation error")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
