"""Priority item domain model.

A PriorityItem is the normalized view over the records that can block a
member's navigation: must-read member messages, announcements requiring
acknowledgment, and admin messages requiring acknowledgment.

Ordering:
    Items are ordered ascending by (priority, created_at, id). Lower
    priority values are more urgent; the creation timestamp breaks ties so
    that the "next item" is always the same for the same set.

Handled vs unhandled:
    An item is unhandled while it is unread OR unacknowledged. Items that
    do not require acknowledgment are created with is_acknowledged=True,
    so reading them is enough.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum


class PriorityItemType(Enum):
    """Kind of record a priority item was normalized from.

    MEMBER_MESSAGE: must-read notification in the member's inbox
    ANNOUNCEMENT: union or division announcement requiring acknowledgment
    ADMIN_MESSAGE: officer-to-officer message requiring acknowledgment
    """

    MEMBER_MESSAGE = "member_message"
    ANNOUNCEMENT = "announcement"
    ADMIN_MESSAGE = "admin_message"


class PriorityLevel(IntEnum):
    """Urgency rank. Lower values are handled first."""

    CRITICAL = 0
    HIGH = 1
    NORMAL = 2


# Default urgency for each item type
DEFAULT_PRIORITY_LEVELS: dict[PriorityItemType, PriorityLevel] = {
    PriorityItemType.MEMBER_MESSAGE: PriorityLevel.CRITICAL,
    PriorityItemType.ANNOUNCEMENT: PriorityLevel.HIGH,
    PriorityItemType.ADMIN_MESSAGE: PriorityLevel.NORMAL,
}


@dataclass(frozen=True, eq=True)
class PriorityItem:
    """A single outstanding priority item for the signed-in member.

    Attributes:
        id: Identifier of the underlying record, unique within its type.
        type: Which kind of record this item came from.
        priority: Integer rank, lower is more urgent.
        title: Display title.
        is_read: Whether the member has viewed the item.
        is_acknowledged: Whether the member has confirmed the item.
        route_target: Route that shows the item's detail.
        created_at: Creation time of the record (tie-break key).
        updated_at: Last modification time reported by the source.
        requires_acknowledgment: Whether the source demands confirmation.
    """

    id: str
    type: PriorityItemType
    priority: int
    title: str
    is_read: bool
    is_acknowledged: bool
    route_target: str
    created_at: datetime
    updated_at: datetime | None = None
    requires_acknowledgment: bool = True

    def __post_init__(self) -> None:
        """Validate item invariants."""
        if not self.id:
            raise ValueError("PriorityItem.id must be non-empty")
        if not self.route_target:
            raise ValueError(f"PriorityItem {self.id} has no route_target")
        if self.created_at.tzinfo is None:
            raise ValueError(f"PriorityItem {self.id} created_at must be timezone-aware")

    @property
    def key(self) -> tuple[PriorityItemType, str]:
        """Identity of the item across sources."""
        return (self.type, self.id)

    @property
    def sort_key(self) -> tuple[int, datetime, str]:
        """Ordering key: priority, then creation time, then id."""
        return (self.priority, self.created_at, self.id)

    @property
    def is_unhandled(self) -> bool:
        """True while the item still needs the member's attention."""
        return not self.is_read or not self.is_acknowledged

    @property
    def last_modified(self) -> datetime:
        """Source timestamp used for last-write-wins comparisons."""
        return self.updated_at or self.created_at

    def with_status(
        self,
        *,
        is_read: bool | None = None,
        is_acknowledged: bool | None = None,
    ) -> PriorityItem:
        """Return a copy with updated read/acknowledged flags.

        Acknowledging implies reading, matching how the backend records it.
        """
        read = self.is_read if is_read is None else is_read
        acknowledged = self.is_acknowledged if is_acknowledged is None else is_acknowledged
        if acknowledged and self.requires_acknowledgment:
            read = True
        return replace(self, is_read=read, is_acknowledged=acknowledged)

    def to_dict(self) -> dict[str, object]:
        """Serialize for logging and presenters."""
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority,
            "title": self.title,
            "is_read": self.is_read,
            "is_acknowledged": self.is_acknowledged,
            "route_target": self.route_target,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "requires_acknowledgment": self.requires_acknowledgment,
        }


def order_items(items: list[PriorityItem] | tuple[PriorityItem, ...]) -> tuple[PriorityItem, ...]:
    """Return items in deterministic priority order."""
    return tuple(sorted(items, key=lambda item: item.sort_key))
