"""Domain models for Priority Guard."""

from priority_guard.domain.models.navigation_state import (
    EMPTY_BLOCK_STATE,
    VALID_TRANSITIONS,
    BlockingModalProps,
    GuardedView,
    NavigationBlockState,
    NavigationPhase,
    validate_transition,
)
from priority_guard.domain.models.priority_item import (
    DEFAULT_PRIORITY_LEVELS,
    PriorityItem,
    PriorityItemType,
    PriorityLevel,
    order_items,
)
from priority_guard.domain.models.session_user import SessionUser

__all__ = [
    "BlockingModalProps",
    "DEFAULT_PRIORITY_LEVELS",
    "EMPTY_BLOCK_STATE",
    "GuardedView",
    "NavigationBlockState",
    "NavigationPhase",
    "PriorityItem",
    "PriorityItemType",
    "PriorityLevel",
    "SessionUser",
    "VALID_TRANSITIONS",
    "order_items",
    "validate_transition",
]
