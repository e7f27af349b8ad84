"""Navigation decision engine.

Pure decisions over the aggregated priority set, the session and the
current route. The only side effect lives in route_to_next_priority_item(),
which asks the router to show the current item.

The current item is always the FIRST unhandled item in set order, never
the last one the member clicked, so the most urgent item is always next.
"""

from __future__ import annotations

import structlog

from priority_guard.application.ports.router import RouterProtocol
from priority_guard.application.ports.session_provider import SessionProviderProtocol
from priority_guard.application.services.priority_aggregator import PriorityAggregator
from priority_guard.domain.models.navigation_state import NavigationBlockState
from priority_guard.domain.models.priority_item import PriorityItem
from priority_guard.domain.services.priority_route_matcher import PriorityRouteMatcher

logger = structlog.get_logger(__name__)


class NavigationDecisionEngine:
    """Decides whether navigation is blocked and where the member goes next."""

    def __init__(
        self,
        aggregator: PriorityAggregator,
        session: SessionProviderProtocol,
        router: RouterProtocol,
        route_matcher: PriorityRouteMatcher | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._session = session
        self._router = router
        self._matcher = route_matcher or PriorityRouteMatcher()
        self._log = logger.bind(component="navigation_decision_engine")

    def should_block_navigation(self) -> bool:
        """True iff a signed-in member has unhandled items after a successful load."""
        if self._session.current_user() is None:
            return False
        if not self._aggregator.has_loaded:
            return False
        return self._aggregator.count() > 0

    def current_item(self) -> PriorityItem | None:
        """Return the first unhandled item in priority order."""
        for item in self._aggregator.get_all():
            if item.is_unhandled:
                return item
        return None

    def current_index(self) -> int:
        """Position of the current item among the unhandled items (0 if none)."""
        unhandled = self._aggregator.get_unhandled()
        item = self.current_item()
        return unhandled.index(item) if item is not None else 0

    def is_on_priority_route(self, route: str | None = None) -> bool:
        """True iff route already shows the current item.

        Args:
            route: Route to test; defaults to the router's current route.
        """
        if route is None:
            route = self._router.current_route()
        return self._matcher.is_priority_route(route, self.current_item())

    def is_exempt_route(self, route: str | None = None) -> bool:
        """True iff route is configured as never blocked."""
        if route is None:
            route = self._router.current_route()
        return self._matcher.is_exempt_route(route)

    async def route_to_next_priority_item(self) -> bool:
        """Navigate to the current item's route.

        Returns:
            False without navigating when there is no current item.
        """
        item = self.current_item()
        if item is None:
            self._log.info("no_priority_item_to_route_to")
            return False

        self._log.info(
            "routing_to_priority_item",
            item_id=item.id,
            item_type=item.type.value,
            route=item.route_target,
        )
        await self._router.navigate(item.route_target)
        return True

    def block_state(self, route: str | None = None) -> NavigationBlockState:
        """Build the blocking snapshot for route (default: current route)."""
        if route is None:
            route = self._router.current_route()
        unhandled = self._aggregator.get_unhandled()
        current = unhandled[0] if unhandled else None
        return NavigationBlockState(
            should_block=self.should_block_navigation() and not self.is_exempt_route(route),
            current_item=current,
            total_count=len(unhandled),
            # The current item always leads the unhandled items
            current_index=0,
            unhandled_count=len(unhandled),
            on_priority_route=self._matcher.is_priority_route(route, current),
        )
