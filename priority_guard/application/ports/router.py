"""Router protocol.

Application port for the app's navigation stack.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

RouteListener = Callable[[str], None]
Unsubscribe = Callable[[], None]


class RouterProtocol(Protocol):
    """Protocol for reading, changing and observing the current route."""

    def current_route(self) -> str:
        """Return the current route path."""
        ...

    async def navigate(self, route: str) -> None:
        """Push a route. Resolves once the router accepted the request."""
        ...

    def on_route_change(self, listener: RouteListener) -> Unsubscribe:
        """Register a listener for route changes; returns an unsubscribe callable."""
        ...
