"""Domain errors for Priority Guard.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from PriorityGuardError.
"""

from priority_guard.domain.errors.configuration import GuardConfigurationError
from priority_guard.domain.errors.navigation import InvalidNavigationTransitionError
from priority_guard.domain.errors.priority import (
    InvalidPriorityRecordError,
    PrioritySourceError,
)

__all__: list[str] = [
    "GuardConfigurationError",
    "InvalidNavigationTransitionError",
    "InvalidPriorityRecordError",
    "PrioritySourceError",
]
