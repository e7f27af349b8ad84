"""Domain layer: priority items, navigation state and route matching."""

from priority_guard.domain.exceptions import PriorityGuardError

__all__: list[str] = ["PriorityGuardError"]
