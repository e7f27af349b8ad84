"""Priority item source protocol.

Application port for the backend collaborators that hold outstanding
priority records. Each source serves one PriorityItemType: it returns raw
rows for the signed-in member, pushes realtime change events, and records
read/acknowledged status.

Sources raise PrioritySourceError on failure. The aggregator catches it,
keeps the last known-good rows and surfaces an error flag.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from priority_guard.domain.models.priority_item import PriorityItemType
from priority_guard.domain.models.session_user import SessionUser

RawRecord = Mapping[str, Any]


class ChangeType(Enum):
    """Realtime change kind."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A realtime change on a backing table.

    Attributes:
        change_type: INSERT, UPDATE or DELETE.
        record: Full new row for INSERT/UPDATE (full-row replace semantics).
        old_record: Previous row, or at least its id, for DELETE/UPDATE.
    """

    change_type: ChangeType
    record: RawRecord | None = None
    old_record: RawRecord | None = field(default=None)

    @property
    def record_id(self) -> str | None:
        """Id of the affected row, taken from whichever row is present."""
        for row in (self.record, self.old_record):
            if row and row.get("id") is not None:
                return str(row["id"])
        return None


ChangeCallback = Callable[[ChangeEvent], None]


@runtime_checkable
class SubscriptionProtocol(Protocol):
    """Handle for a realtime subscription."""

    async def unsubscribe(self) -> None:
        """Stop delivering events. Must be idempotent."""
        ...


class PriorityItemSourceProtocol(Protocol):
    """Protocol for a backend source of priority records.

    Attributes:
        source_name: Unique name used for logging, coalescing and error flags.
        item_type: The PriorityItemType every row from this source becomes.
    """

    source_name: str
    item_type: PriorityItemType

    async def fetch(self, user: SessionUser) -> list[RawRecord]:
        """Return the member's outstanding rows.

        Raises:
            PrioritySourceError: If the query fails.
        """
        ...

    async def subscribe(
        self, user: SessionUser, callback: ChangeCallback
    ) -> SubscriptionProtocol:
        """Start pushing change events for the member's rows.

        Raises:
            PrioritySourceError: If the channel cannot be opened.
        """
        ...

    async def mark_read(self, user: SessionUser, item_id: str) -> None:
        """Record that the member has viewed the item."""
        ...

    async def acknowledge(self, user: SessionUser, item_id: str) -> None:
        """Record that the member has acknowledged the item."""
        ...
