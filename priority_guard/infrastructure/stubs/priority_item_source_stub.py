"""In-memory priority item source stub.

Holds raw rows in memory and behaves like a backend table with a realtime
feed: writes made through the stub are pushed to subscribers as change
events. Failure injection and a fetch gate make ordering and fail-soft
behavior testable.

Developer Golden Rules:
1. Configurable failures for fetch, subscribe and status writes
2. Track every call for verification
3. Rows are copied on the way in and out
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog

from priority_guard.application.ports.priority_item_source import (
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    RawRecord,
)
from priority_guard.domain.errors.priority import PrioritySourceError
from priority_guard.domain.models.priority_item import PriorityItemType
from priority_guard.domain.models.session_user import SessionUser

logger = structlog.get_logger(__name__)


class _StubSubscription:
    """Subscription handle that detaches one callback."""

    def __init__(self, source: InMemoryPriorityItemSourceStub, callback: ChangeCallback) -> None:
        self._source = source
        self._callback = callback
        self.active = True

    async def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._source._detach(self._callback)


class InMemoryPriorityItemSourceStub:
    """In-memory stub implementation of PriorityItemSourceProtocol.

    Attributes:
        source_name: Name reported to the aggregator.
        item_type: Type of every row in this source.
        fetch_count: Number of fetch() calls that reached the stub.
        subscribe_count: Number of subscribe() calls.
        acknowledged: Item ids acknowledged through the stub.
        read: Item ids marked read through the stub.
    """

    def __init__(
        self,
        source_name: str,
        item_type: PriorityItemType,
        records: Iterable[RawRecord] = (),
    ) -> None:
        self.source_name = source_name
        self.item_type = item_type
        self._records: dict[str, dict[str, Any]] = {}
        for record in records:
            self._records[str(record["id"])] = dict(record)
        self._callbacks: list[ChangeCallback] = []
        self._fetch_error: Exception | None = None
        self._fetch_failures_remaining = 0
        self._subscribe_error: Exception | None = None
        self._write_error: Exception | None = None
        self._fetch_gate: asyncio.Event | None = None
        self.fetch_started = asyncio.Event()
        self.fetch_count = 0
        self.subscribe_count = 0
        self.acknowledged: list[str] = []
        self.read: list[str] = []

    # ------------------------------------------------------------------
    # Protocol
    # ------------------------------------------------------------------

    async def fetch(self, user: SessionUser) -> list[RawRecord]:
        self.fetch_count += 1
        self.fetch_started.set()
        if self._fetch_gate is not None:
            await self._fetch_gate.wait()
        if self._fetch_error is not None and self._fetch_failures_remaining != 0:
            if self._fetch_failures_remaining > 0:
                self._fetch_failures_remaining -= 1
            raise self._fetch_error
        logger.debug(
            "stub_fetch", source=self.source_name, user_id=user.user_id, rows=len(self._records)
        )
        return [dict(record) for record in self._records.values()]

    async def subscribe(self, user: SessionUser, callback: ChangeCallback) -> _StubSubscription:
        self.subscribe_count += 1
        if self._subscribe_error is not None:
            raise self._subscribe_error
        self._callbacks.append(callback)
        return _StubSubscription(self, callback)

    async def mark_read(self, user: SessionUser, item_id: str) -> None:
        self._raise_write_error()
        self.read.append(item_id)

    async def acknowledge(self, user: SessionUser, item_id: str) -> None:
        self._raise_write_error()
        self.acknowledged.append(item_id)

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def records(self) -> list[dict[str, Any]]:
        return [dict(record) for record in self._records.values()]

    def set_records(self, records: Iterable[RawRecord]) -> None:
        """Replace the table contents without emitting events."""
        self._records = {str(record["id"]): dict(record) for record in records}

    def upsert(self, record: RawRecord, *, emit: bool = True) -> None:
        """Insert or update a row and push the change to subscribers."""
        record_id = str(record["id"])
        change_type = ChangeType.UPDATE if record_id in self._records else ChangeType.INSERT
        old = self._records.get(record_id)
        self._records[record_id] = dict(record)
        if emit:
            self.emit(ChangeEvent(change_type=change_type, record=dict(record), old_record=old))

    def delete(self, record_id: str, *, emit: bool = True) -> None:
        """Delete a row and push the change to subscribers."""
        old = self._records.pop(record_id, None)
        if emit:
            self.emit(ChangeEvent(change_type=ChangeType.DELETE, old_record=old or {"id": record_id}))

    def emit(self, event: ChangeEvent) -> None:
        """Push a raw change event to every subscriber."""
        for callback in list(self._callbacks):
            callback(event)

    def fail_fetch(self, error: Exception | None = None, times: int = -1) -> None:
        """Make fetch() raise; times=-1 fails until clear_failures()."""
        self._fetch_error = error or PrioritySourceError(
            self.source_name, "fetch", "simulated network error"
        )
        self._fetch_failures_remaining = times

    def fail_subscribe(self, error: Exception | None = None) -> None:
        self._subscribe_error = error or PrioritySourceError(
            self.source_name, "subscribe", "simulated channel error"
        )

    def fail_writes(self, error: Exception | None = None) -> None:
        self._write_error = error or PrioritySourceError(
            self.source_name, "write", "simulated write error"
        )

    def clear_failures(self) -> None:
        self._fetch_error = None
        self._fetch_failures_remaining = 0
        self._subscribe_error = None
        self._write_error = None

    def hold_fetches(self) -> None:
        """Block fetch() until release_fetches() is called."""
        self._fetch_gate = asyncio.Event()
        self.fetch_started = asyncio.Event()

    def release_fetches(self) -> None:
        if self._fetch_gate is not None:
            self._fetch_gate.set()
            self._fetch_gate = None

    def _detach(self, callback: ChangeCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _raise_write_error(self) -> None:
        if self._write_error is not None:
            raise self._write_error
