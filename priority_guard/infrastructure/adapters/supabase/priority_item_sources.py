"""Supabase-backed priority item sources.

One source per PriorityItemType, each reading the member's rows from its
table, opening a realtime channel on that table, and writing read and
acknowledgment status back.

Every client failure is re-raised as PrioritySourceError so the aggregator
can keep the last known-good rows.
"""

from __future__ import annotations

from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import Any

import structlog

from priority_guard.application.ports.priority_item_source import (
    ChangeCallback,
    RawRecord,
)
from priority_guard.application.services.priority_record_normalizer import (
    MUST_READ_MESSAGE_TYPE,
)
from priority_guard.domain.errors.priority import PrioritySourceError
from priority_guard.domain.models.priority_item import PriorityItemType
from priority_guard.domain.models.session_user import SessionUser
from priority_guard.infrastructure.adapters.supabase.realtime import RealtimeSubscription

logger = structlog.get_logger(__name__)

TABLE_MESSAGES = "messages"
TABLE_ANNOUNCEMENTS = "announcements"
VIEW_ANNOUNCEMENTS_WITH_AUTHOR = "announcements_with_author"
TABLE_ADMIN_MESSAGES = "admin_messages"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _append_unique(values: Any, identifier: str) -> list[str]:
    current = [str(value) for value in values or []]
    if identifier not in current:
        current.append(identifier)
    return current


class SupabasePrioritySource:
    """Shared plumbing for the Supabase sources.

    Attributes:
        source_name: Unique source name.
        item_type: PriorityItemType of every row.
        realtime_table: Table the realtime channel listens on.
    """

    source_name: str
    item_type: PriorityItemType
    realtime_table: str

    def __init__(self, client: Any) -> None:
        self._client = client
        self._log = logger.bind(source=self.source_name)

    async def fetch(self, user: SessionUser) -> list[RawRecord]:
        try:
            rows = await self._query(user)
        except PrioritySourceError:
            raise
        except Exception as e:
            raise PrioritySourceError(self.source_name, "fetch", str(e)) from e
        self._log.debug("supabase_rows_fetched", user_id=user.user_id, rows=len(rows))
        return rows

    async def subscribe(
        self, user: SessionUser, callback: ChangeCallback
    ) -> RealtimeSubscription:
        subscription = RealtimeSubscription(
            self._client,
            channel_name=f"{self.source_name}-{user.user_id}",
            table=self.realtime_table,
        )
        try:
            await subscription.open(callback, row_filters=self._row_filters(user))
        except Exception as e:
            raise PrioritySourceError(self.source_name, "subscribe", str(e)) from e
        return subscription

    async def mark_read(self, user: SessionUser, item_id: str) -> None:
        await self._write("mark_read", self._mark_read(user, item_id))

    async def acknowledge(self, user: SessionUser, item_id: str) -> None:
        await self._write("acknowledge", self._acknowledge(user, item_id))

    async def _write(self, operation: str, pending: Awaitable[None]) -> None:
        try:
            await pending
        except PrioritySourceError:
            raise
        except Exception as e:
            raise PrioritySourceError(self.source_name, operation, str(e)) from e

    async def _select_one(self, table: str, item_id: str, columns: str) -> dict[str, Any]:
        response = (
            await self._client.table(table).select(columns).eq("id", item_id).limit(1).execute()
        )
        if not response.data:
            raise PrioritySourceError(self.source_name, "lookup", f"no row {item_id}")
        return dict(response.data[0])

    # Subclass hooks

    async def _query(self, user: SessionUser) -> list[RawRecord]:
        raise NotImplementedError

    def _row_filters(self, user: SessionUser) -> tuple[str | None, ...]:
        return (None,)

    async def _mark_read(self, user: SessionUser, item_id: str) -> None:
        raise NotImplementedError

    async def _acknowledge(self, user: SessionUser, item_id: str) -> None:
        raise NotImplementedError


class SupabaseMemberMessageSource(SupabasePrioritySource):
    """Must-read messages in the member's inbox (messages table)."""

    source_name = "member_messages"
    item_type = PriorityItemType.MEMBER_MESSAGE
    realtime_table = TABLE_MESSAGES

    async def _query(self, user: SessionUser) -> list[RawRecord]:
        query = self._client.table(TABLE_MESSAGES).select("*")
        if user.pin_number:
            query = query.or_(
                f"recipient_pin_number.eq.{user.pin_number},recipient_id.eq.{user.user_id}"
            )
        else:
            query = query.eq("recipient_id", user.user_id)
        response = await (
            query.eq("message_type", MUST_READ_MESSAGE_TYPE)
            .eq("is_deleted", False)
            .order("created_at")
            .execute()
        )
        return list(response.data or [])

    def _row_filters(self, user: SessionUser) -> tuple[str | None, ...]:
        # Same recipients as the fetch: by PIN or by user id
        by_user = f"recipient_id=eq.{user.user_id}"
        if user.pin_number:
            return (f"recipient_pin_number=eq.{user.pin_number}", by_user)
        return (by_user,)

    async def _mark_read(self, user: SessionUser, item_id: str) -> None:
        row = await self._select_one(TABLE_MESSAGES, item_id, "read_by")
        await (
            self._client.table(TABLE_MESSAGES)
            .update(
                {
                    "is_read": True,
                    "read_by": _append_unique(row.get("read_by"), user.member_identifier),
                    "read_at": _now_iso(),
                }
            )
            .eq("id", item_id)
            .execute()
        )

    async def _acknowledge(self, user: SessionUser, item_id: str) -> None:
        row = await self._select_one(TABLE_MESSAGES, item_id, "acknowledged_by,read_by")
        now = _now_iso()
        await (
            self._client.table(TABLE_MESSAGES)
            .update(
                {
                    "acknowledged_by": _append_unique(
                        row.get("acknowledged_by"), user.member_identifier
                    ),
                    "acknowledged_at": now,
                    "is_read": True,
                    "read_by": _append_unique(row.get("read_by"), user.member_identifier),
                    "read_at": now,
                }
            )
            .eq("id", item_id)
            .execute()
        )


class SupabaseAnnouncementSource(SupabasePrioritySource):
    """Announcements requiring acknowledgment (announcements_with_author view).

    Row-level security limits the view to announcements targeted at the
    member's division or the whole union. Status writes go through RPCs
    that key on the signed-in user server side.
    """

    source_name = "announcements"
    item_type = PriorityItemType.ANNOUNCEMENT
    realtime_table = TABLE_ANNOUNCEMENTS

    async def _query(self, user: SessionUser) -> list[RawRecord]:
        response = await (
            self._client.table(VIEW_ANNOUNCEMENTS_WITH_AUTHOR)
            .select("*")
            .eq("is_active", True)
            .eq("require_acknowledgment", True)
            .order("created_at")
            .execute()
        )
        return list(response.data or [])

    async def _mark_read(self, user: SessionUser, item_id: str) -> None:
        await self._client.rpc(
            "mark_announcement_as_read", {"p_announcement_id": item_id}
        ).execute()

    async def _acknowledge(self, user: SessionUser, item_id: str) -> None:
        await self._client.rpc(
            "acknowledge_announcement", {"p_announcement_id": item_id}
        ).execute()


class SupabaseAdminMessageSource(SupabasePrioritySource):
    """Officer messages (admin_messages table)."""

    source_name = "admin_messages"
    item_type = PriorityItemType.ADMIN_MESSAGE
    realtime_table = TABLE_ADMIN_MESSAGES

    async def _query(self, user: SessionUser) -> list[RawRecord]:
        response = await (
            self._client.table(TABLE_ADMIN_MESSAGES)
            .select("*")
            .eq("is_archived", False)
            .order("created_at")
            .execute()
        )
        return list(response.data or [])

    async def _mark_read(self, user: SessionUser, item_id: str) -> None:
        await self._client.rpc(
            "mark_admin_message_read", {"message_id_to_mark": item_id}
        ).execute()

    async def _acknowledge(self, user: SessionUser, item_id: str) -> None:
        row = await self._select_one(TABLE_ADMIN_MESSAGES, item_id, "acknowledged_by")
        await (
            self._client.table(TABLE_ADMIN_MESSAGES)
            .update(
                {
                    "acknowledged_by": _append_unique(row.get("acknowledged_by"), user.user_id),
                    "acknowledged_at": _now_iso(),
                }
            )
            .eq("id", item_id)
            .execute()
        )
