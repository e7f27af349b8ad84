"""Route matching for priority items.

Decides whether a route already shows a priority item, so the guard can
stop blocking as soon as the member is looking at the right screen
without an explicit dismiss action.

A route counts as a priority route for an item when:
1. it is exactly the item's route_target (query string ignored), or
2. it matches one of the detail-route rules for the item's type.
"""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase

from priority_guard.domain.models.priority_item import PriorityItem, PriorityItemType


@dataclass(frozen=True)
class RouteRule:
    """Route fragments that must all be present for a match.

    Attributes:
        required_fragments: Substrings the route must contain.
    """

    required_fragments: tuple[str, ...]

    def matches(self, route: str) -> bool:
        return all(fragment in route for fragment in self.required_fragments)


# Detail screens that already address an item of each type
DETAIL_ROUTE_RULES: dict[PriorityItemType, tuple[RouteRule, ...]] = {
    PriorityItemType.MEMBER_MESSAGE: (
        RouteRule(("/notifications",)),
    ),
    PriorityItemType.ANNOUNCEMENT: (
        RouteRule(("/announcements",)),
    ),
    PriorityItemType.ADMIN_MESSAGE: (
        RouteRule(("admin", "AdminMessages")),
        RouteRule(("/messages/",)),
    ),
}


def _strip_query(route: str) -> str:
    return route.split("?", 1)[0].split("#", 1)[0]


def _normalize(route: str) -> str:
    path = _strip_query(route).strip()
    if len(path) > 1:
        path = path.rstrip("/")
    return path


class PriorityRouteMatcher:
    """Matches routes against priority items and exempt routes.

    Attributes:
        _exempt_patterns: Glob patterns for routes that never block.
    """

    def __init__(self, exempt_routes: tuple[str, ...] = ()) -> None:
        self._exempt_patterns = tuple(_normalize(route) for route in exempt_routes)

    def is_priority_route(self, route: str | None, item: PriorityItem | None) -> bool:
        """Return True if route already shows item."""
        if not route or item is None:
            return False
        path = _normalize(route)
        if path == _normalize(item.route_target):
            return True
        return any(rule.matches(path) for rule in DETAIL_ROUTE_RULES[item.type])

    def is_exempt_route(self, route: str | None) -> bool:
        """Return True if route is configured as never blocked."""
        if not route:
            return False
        path = _normalize(route)
        return any(fnmatchcase(path, pattern) for pattern in self._exempt_patterns)
