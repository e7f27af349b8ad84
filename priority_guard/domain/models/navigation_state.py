"""Navigation blocking state (guard state machine).

State Transitions (VALID_TRANSITIONS):
- IDLE -> BLOCKING
- BLOCKING -> NAVIGATING, IDLE
- NAVIGATING -> BLOCKING, IDLE

BLOCKING means unhandled items exist. The modal is visible in BLOCKING
unless the member is already on a priority route. NAVIGATING means the
member asked to go to the current item and the guard is waiting for the
route change to land; the modal stays hidden for the whole phase.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from priority_guard.domain.errors.navigation import InvalidNavigationTransitionError
from priority_guard.domain.models.priority_item import PriorityItem


class NavigationPhase(Enum):
    """Phase of the navigation guard."""

    IDLE = "idle"
    BLOCKING = "blocking"
    NAVIGATING = "navigating"


VALID_TRANSITIONS: dict[NavigationPhase, frozenset[NavigationPhase]] = {
    NavigationPhase.IDLE: frozenset({NavigationPhase.BLOCKING}),
    NavigationPhase.BLOCKING: frozenset(
        {NavigationPhase.NAVIGATING, NavigationPhase.IDLE}
    ),
    NavigationPhase.NAVIGATING: frozenset(
        {NavigationPhase.BLOCKING, NavigationPhase.IDLE}
    ),
}


def validate_transition(
    from_phase: NavigationPhase, to_phase: NavigationPhase
) -> NavigationPhase:
    """Return to_phase if the move is allowed.

    Staying in the same phase is always allowed.

    Raises:
        InvalidNavigationTransitionError: If the table forbids the move.
    """
    if from_phase is to_phase:
        return to_phase
    if to_phase not in VALID_TRANSITIONS[from_phase]:
        raise InvalidNavigationTransitionError(from_phase, to_phase)
    return to_phase


@dataclass(frozen=True)
class NavigationBlockState:
    """Snapshot of the blocking decision for one route.

    Computed fresh on every relevant change; never stored.

    Attributes:
        should_block: Unhandled items exist for a loaded, signed-in member.
        current_item: First unhandled item in priority order.
        total_count: Number of outstanding (unhandled) items.
        current_index: Position of current_item among the outstanding items.
        unhandled_count: Number of unhandled items.
        on_priority_route: The route already shows the current item.
    """

    should_block: bool
    current_item: PriorityItem | None
    total_count: int
    current_index: int
    unhandled_count: int
    on_priority_route: bool = False

    @property
    def modal_required(self) -> bool:
        """Whether the blocking modal belongs on screen for this route."""
        return self.should_block and not self.on_priority_route


EMPTY_BLOCK_STATE = NavigationBlockState(
    should_block=False,
    current_item=None,
    total_count=0,
    current_index=0,
    unhandled_count=0,
)


@dataclass(frozen=True)
class BlockingModalProps:
    """Props handed to the blocking modal presenter.

    Attributes:
        visible: Whether the modal is shown.
        current_item: Item the modal describes.
        total_items: Size of the full ordered set.
        current_index: Position of current_item in the set.
        on_navigate_to_item: Action for the "go to item" button.
    """

    visible: bool
    current_item: PriorityItem | None
    total_items: int
    current_index: int
    on_navigate_to_item: Callable[[], Awaitable[None]]

    def to_dict(self) -> dict[str, Any]:
        """Serialize without the callback."""
        return {
            "visible": self.visible,
            "current_item": self.current_item.to_dict() if self.current_item else None,
            "total_items": self.total_items,
            "current_index": self.current_index,
        }


@dataclass(frozen=True)
class GuardedView:
    """Children rendered unconditionally, with the modal overlaid."""

    children: Any
    modal: BlockingModalProps
