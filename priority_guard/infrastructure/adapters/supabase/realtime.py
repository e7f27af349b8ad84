"""Realtime channel wrapper.

Translates postgres_changes payloads into ChangeEvent values and owns the
channel's lifetime.

Payload shape delivered by the realtime client:
    {"data": {"type": "UPDATE", "record": {...}, "old_record": {...}}, ...}
Older servers send "eventType"/"new"/"old" at the top level instead; both
are accepted.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import structlog

from priority_guard.application.ports.priority_item_source import (
    ChangeCallback,
    ChangeEvent,
    ChangeType,
)

logger = structlog.get_logger(__name__)


def payload_to_change_event(payload: Mapping[str, Any]) -> ChangeEvent | None:
    """Convert a postgres_changes payload to a ChangeEvent.

    Returns:
        None if the payload has no recognizable change type.
    """
    data = payload.get("data")
    body: Mapping[str, Any] = data if isinstance(data, Mapping) else payload

    raw_type = body.get("type") or body.get("eventType")
    try:
        change_type = ChangeType(str(raw_type).upper())
    except ValueError:
        return None

    record = body.get("record", body.get("new"))
    old_record = body.get("old_record", body.get("old"))
    return ChangeEvent(
        change_type=change_type,
        record=dict(record) if isinstance(record, Mapping) and record else None,
        old_record=dict(old_record) if isinstance(old_record, Mapping) and old_record else None,
    )


class RealtimeSubscription:
    """Open realtime channel for one table.

    Attributes:
        channel_name: Name the channel was opened with.
        table: Table whose changes are delivered.
    """

    def __init__(self, client: Any, channel_name: str, table: str) -> None:
        self._client = client
        self._channel: Any = None
        self.channel_name = channel_name
        self.table = table

    async def open(
        self,
        callback: ChangeCallback,
        row_filters: Sequence[str | None] = (None,),
    ) -> None:
        """Register one postgres_changes handler per row filter and join the channel.

        A row matching several filters is delivered once per filter.
        """

        def on_change(payload: dict[str, Any]) -> None:
            event = payload_to_change_event(payload)
            if event is None:
                logger.debug(
                    "realtime_payload_ignored", channel=self.channel_name, table=self.table
                )
                return
            callback(event)

        channel = self._client.channel(self.channel_name)
        for row_filter in row_filters:
            channel.on_postgres_changes(
                "*",
                callback=on_change,
                table=self.table,
                schema="public",
                filter=row_filter,
            )
        await channel.subscribe()
        self._channel = channel
        logger.debug("realtime_channel_subscribed", channel=self.channel_name, table=self.table)

    async def unsubscribe(self) -> None:
        channel, self._channel = self._channel, None
        if channel is None:
            return
        await self._client.remove_channel(channel)
        logger.debug("realtime_channel_removed", channel=self.channel_name)
