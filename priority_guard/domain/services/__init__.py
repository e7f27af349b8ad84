"""Domain services for Priority Guard."""

from priority_guard.domain.services.priority_route_matcher import (
    DETAIL_ROUTE_RULES,
    PriorityRouteMatcher,
    RouteRule,
)

__all__ = ["DETAIL_ROUTE_RULES", "PriorityRouteMatcher", "RouteRule"]
