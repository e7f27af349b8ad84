"""Application services for priority aggregation and navigation blocking."""

from priority_guard.application.services.navigation_decision_engine import (
    NavigationDecisionEngine,
)
from priority_guard.application.services.navigation_guard import NavigationGuard
from priority_guard.application.services.navigation_latch import (
    NavigationLatch,
    ReleaseReason,
)
from priority_guard.application.services.priority_aggregator import PriorityAggregator
from priority_guard.application.services.priority_record_normalizer import (
    PriorityRecordNormalizer,
    parse_timestamp,
)

__all__: list[str] = [
    "NavigationDecisionEngine",
    "NavigationGuard",
    "NavigationLatch",
    "PriorityAggregator",
    "PriorityRecordNormalizer",
    "ReleaseReason",
    "parse_timestamp",
]
