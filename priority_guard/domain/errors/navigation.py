"""Navigation state machine errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from priority_guard.domain.exceptions import PriorityGuardError

if TYPE_CHECKING:
    from priority_guard.domain.models.navigation_state import NavigationPhase


class InvalidNavigationTransitionError(PriorityGuardError):
    """Raised when the guard attempts a transition the phase table forbids.

    Attributes:
        from_phase: Phase the guard was in.
        to_phase: Phase that was requested.
    """

    def __init__(self, from_phase: NavigationPhase, to_phase: NavigationPhase) -> None:
        self.from_phase = from_phase
        self.to_phase = to_phase
        super().__init__(
            f"Invalid navigation transition: {from_phase.value} -> {to_phase.value}"
        )
