"""Priority record normalizer.

Turns raw backend rows into PriorityItem values for one signed-in member.
Each PriorityItemType has its own rules; dispatch goes through a
table keyed by type.

Outcomes for a single row:
- PriorityItem: the row is a priority item for this member
- None: the row is valid but not a priority item (no acknowledgment
  required, archived, inactive, wrong message type)
- InvalidPriorityRecordError: the row is missing a required field or a
  column has the wrong shape

normalize_many() is fail-soft: invalid rows are logged and skipped so one
bad row never hides the others.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import structlog

from priority_guard.application.ports.priority_item_source import RawRecord
from priority_guard.domain.errors.priority import InvalidPriorityRecordError
from priority_guard.domain.models.priority_item import (
    DEFAULT_PRIORITY_LEVELS,
    PriorityItem,
    PriorityItemType,
    PriorityLevel,
)
from priority_guard.domain.models.session_user import SessionUser

logger = structlog.get_logger(__name__)

MUST_READ_MESSAGE_TYPE = "must_read"
GCA_TARGET_TYPE = "GCA"

MEMBER_MESSAGES_ROUTE = "/(tabs)/notifications"
GCA_ANNOUNCEMENTS_ROUTE = "/(gca)/announcements"
DIVISION_ANNOUNCEMENTS_ROUTE = "/(division)/{division}/announcements"
ADMIN_MESSAGE_ROUTE = "/(admin)/division_admin/DivisionAdminPanel/AdminMessages/{id}"


def parse_timestamp(value: Any, *, field_name: str, record_id: str | None) -> datetime:
    """Parse a backend timestamp into an aware datetime (naive means UTC).

    Raises:
        InvalidPriorityRecordError: If the value is missing or unparseable.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidPriorityRecordError(
                record_id, f"{field_name} is not an ISO timestamp: {value!r}"
            ) from e
    else:
        raise InvalidPriorityRecordError(record_id, f"missing {field_name}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_timestamp(record: RawRecord, record_id: str) -> datetime | None:
    value = record.get("updated_at")
    if value in (None, ""):
        return None
    return parse_timestamp(value, field_name="updated_at", record_id=record_id)


def _require_id(record: RawRecord) -> str:
    value = record.get("id")
    if value is None or value == "":
        raise InvalidPriorityRecordError(None, "missing id")
    return str(value)


def _require_text(record: RawRecord, record_id: str, *names: str) -> str:
    for name in names:
        value = record.get(name)
        if isinstance(value, str) and value.strip():
            return value
    raise InvalidPriorityRecordError(record_id, f"missing {' or '.join(names)}")


def _contains(
    record: RawRecord, record_id: str, name: str, identifier: str | None
) -> bool:
    """Return True if identifier is listed in the record's array column."""
    values = record.get(name)
    if values is None:
        return False
    if not isinstance(values, (list, tuple)):
        raise InvalidPriorityRecordError(
            record_id, f"{name} is not a list: {type(values).__name__}"
        )
    if not identifier:
        return False
    return identifier in {str(value) for value in values}


class PriorityRecordNormalizer:
    """Normalizes raw rows into PriorityItem values.

    Attributes:
        _priority_levels: Urgency rank per item type.
    """

    def __init__(
        self,
        priority_levels: Mapping[PriorityItemType, PriorityLevel] | None = None,
    ) -> None:
        levels = dict(DEFAULT_PRIORITY_LEVELS)
        if priority_levels:
            levels.update(priority_levels)
        self._priority_levels = levels
        self._rules: dict[
            PriorityItemType,
            Callable[[RawRecord, SessionUser], PriorityItem | None],
        ] = {
            PriorityItemType.MEMBER_MESSAGE: self._normalize_member_message,
            PriorityItemType.ANNOUNCEMENT: self._normalize_announcement,
            PriorityItemType.ADMIN_MESSAGE: self._normalize_admin_message,
        }

    def normalize(
        self,
        item_type: PriorityItemType,
        record: RawRecord,
        user: SessionUser,
    ) -> PriorityItem | None:
        """Normalize one row.

        Args:
            item_type: Type of the source the row came from.
            record: Raw row.
            user: Signed-in member the read/ack flags are computed for.

        Returns:
            The PriorityItem, or None if the row is not a priority item.

        Raises:
            InvalidPriorityRecordError: If a required field is missing or a
                column has the wrong shape.
        """
        try:
            return self._rules[item_type](record, user)
        except InvalidPriorityRecordError:
            raise
        except (TypeError, ValueError, AttributeError) as e:
            record_id = record.get("id") if isinstance(record, Mapping) else None
            raise InvalidPriorityRecordError(
                str(record_id) if record_id is not None else None,
                f"malformed record: {e}",
            ) from e

    def normalize_many(
        self,
        item_type: PriorityItemType,
        records: Iterable[RawRecord],
        user: SessionUser,
    ) -> list[PriorityItem]:
        """Normalize a batch, skipping rows that fail validation."""
        items: list[PriorityItem] = []
        for record in records:
            try:
                item = self.normalize(item_type, record, user)
            except InvalidPriorityRecordError as e:
                logger.warning(
                    "priority_record_skipped",
                    item_type=item_type.value,
                    record_id=e.record_id,
                    reason=e.reason,
                )
                continue
            if item is not None:
                items.append(item)
        return items

    def _normalize_member_message(
        self, record: RawRecord, user: SessionUser
    ) -> PriorityItem | None:
        record_id = _require_id(record)
        if record.get("message_type") != MUST_READ_MESSAGE_TYPE:
            return None
        if not record.get("requires_acknowledgment") or record.get("is_deleted"):
            return None

        return PriorityItem(
            id=record_id,
            type=PriorityItemType.MEMBER_MESSAGE,
            priority=int(self._priority_levels[PriorityItemType.MEMBER_MESSAGE]),
            title=_require_text(record, record_id, "subject", "title"),
            is_read=bool(record.get("is_read")),
            is_acknowledged=_contains(
                record, record_id, "acknowledged_by", user.member_identifier
            ),
            route_target=MEMBER_MESSAGES_ROUTE,
            created_at=parse_timestamp(
                record.get("created_at"), field_name="created_at", record_id=record_id
            ),
            updated_at=_optional_timestamp(record, record_id),
        )

    def _normalize_announcement(
        self, record: RawRecord, user: SessionUser
    ) -> PriorityItem | None:
        record_id = _require_id(record)
        if not record.get("require_acknowledgment"):
            return None
        if record.get("is_active") is False:
            return None

        identifier = user.member_identifier
        if record.get("target_type") == GCA_TARGET_TYPE:
            route = GCA_ANNOUNCEMENTS_ROUTE
        else:
            division = record.get("division_name") or user.division
            if not division:
                raise InvalidPriorityRecordError(
                    record_id, "division announcement without a division"
                )
            route = DIVISION_ANNOUNCEMENTS_ROUTE.format(division=division)

        return PriorityItem(
            id=record_id,
            type=PriorityItemType.ANNOUNCEMENT,
            priority=int(self._priority_levels[PriorityItemType.ANNOUNCEMENT]),
            title=_require_text(record, record_id, "title"),
            is_read=_contains(record, record_id, "read_by", identifier),
            is_acknowledged=_contains(record, record_id, "acknowledged_by", identifier),
            route_target=route,
            created_at=parse_timestamp(
                record.get("created_at"), field_name="created_at", record_id=record_id
            ),
            updated_at=_optional_timestamp(record, record_id),
        )

    def _normalize_admin_message(
        self, record: RawRecord, user: SessionUser
    ) -> PriorityItem | None:
        record_id = _require_id(record)
        if record.get("is_archived"):
            return None

        requires_ack = bool(record.get("requires_acknowledgment"))
        is_read = bool(record.get("is_read")) or _contains(
            record, record_id, "read_by", user.user_id
        )
        is_acknowledged = (
            _contains(record, record_id, "acknowledged_by", user.user_id)
            if requires_ack
            else True
        )

        return PriorityItem(
            id=record_id,
            type=PriorityItemType.ADMIN_MESSAGE,
            priority=int(self._priority_levels[PriorityItemType.ADMIN_MESSAGE]),
            title=_require_text(record, record_id, "subject", "message"),
            is_read=is_read,
            is_acknowledged=is_acknowledged,
            route_target=ADMIN_MESSAGE_ROUTE.format(id=record_id),
            created_at=parse_timestamp(
                record.get("created_at"), field_name="created_at", record_id=record_id
            ),
            updated_at=_optional_timestamp(record, record_id),
            requires_acknowledgment=requires_ack,
        )
