"""Signed-in member identity as seen by the priority engine."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionUser:
    """The member whose priority items are being tracked.

    Attributes:
        user_id: Auth user id (uuid string).
        pin_number: Union PIN, used by announcement read/ack lists.
        division: Division name, used to build division announcement routes.
    """

    user_id: str
    pin_number: str | None = None
    division: str | None = None

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("SessionUser.user_id must be non-empty")

    @property
    def member_identifier(self) -> str:
        """Identifier stored in announcement read_by/acknowledged_by arrays."""
        return self.pin_number or self.user_id
