"""Priority aggregator.

Merges the rows of every priority item source into one ordered,
deduplicated set for the signed-in member, and keeps it current through
realtime change events, explicit refreshes and optimistic local updates.

Developer Golden Rules:
1. Staleness over false negatives - a failed fetch keeps the last
   known-good items for that source and only raises an error flag
2. One fetch per source - concurrent refresh requests share the
   in-flight task
3. Nothing is lost mid-fetch - changes applied while a fetch is running
   are replayed on top of the fetched rows
4. Nothing mutates after stop() - late callbacks are dropped by
   generation check
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from functools import partial

import structlog

from priority_guard.application.ports.priority_item_source import (
    ChangeEvent,
    ChangeType,
    PriorityItemSourceProtocol,
    SubscriptionProtocol,
)
from priority_guard.application.services.priority_record_normalizer import (
    PriorityRecordNormalizer,
)
from priority_guard.domain.errors.priority import (
    InvalidPriorityRecordError,
    PrioritySourceError,
)
from priority_guard.domain.models.priority_item import (
    PriorityItem,
    PriorityItemType,
    order_items,
)
from priority_guard.domain.models.session_user import SessionUser

logger = structlog.get_logger(__name__)

AggregatorListener = Callable[[], None]


@dataclass
class _SourceState:
    """Per-source bookkeeping.

    Attributes:
        source: The backing source.
        items: Current items by id.
        loaded: At least one fetch succeeded since start().
        last_error: Error from the most recent failed operation.
        inflight: Running fetch task, shared by concurrent refreshes.
        pending_changes: Changes applied while inflight was running
            (None marks a removal).
        subscription: Open realtime subscription.
    """

    source: PriorityItemSourceProtocol
    items: dict[str, PriorityItem] = field(default_factory=dict)
    loaded: bool = False
    last_error: PrioritySourceError | None = None
    inflight: asyncio.Task[bool] | None = None
    pending_changes: dict[str, PriorityItem | None] = field(default_factory=dict)
    subscription: SubscriptionProtocol | None = None

    @property
    def is_fetching(self) -> bool:
        return self.inflight is not None and not self.inflight.done()

    def reset(self) -> None:
        self.items.clear()
        self.pending_changes.clear()
        self.loaded = False
        self.last_error = None
        self.inflight = None
        self.subscription = None


def _is_newer_or_equal(candidate: PriorityItem, existing: PriorityItem) -> bool:
    return candidate.last_modified >= existing.last_modified


class PriorityAggregator:
    """Owns the ordered PriorityItemSet for one signed-in member.

    The UI side only reads the set and requests refreshes; every mutation
    goes through this class.

    Attributes:
        _states: Per-source state keyed by source name.
        _normalizer: Raw row to PriorityItem conversion.
        _user: Member the set belongs to (None when stopped).
        _generation: Bumped on stop/resubscribe to drop stale callbacks.
        _snapshot: Ordered items as last published.
    """

    def __init__(
        self,
        sources: Sequence[PriorityItemSourceProtocol],
        normalizer: PriorityRecordNormalizer | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            sources: Item sources; names must be unique.
            normalizer: Row normalizer (default rules when omitted).

        Raises:
            ValueError: If two sources share a name.
        """
        names = [source.source_name for source in sources]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate priority source names: {names}")

        self._states: dict[str, _SourceState] = {
            source.source_name: _SourceState(source=source) for source in sources
        }
        self._normalizer = normalizer or PriorityRecordNormalizer()
        self._user: SessionUser | None = None
        self._active = False
        self._generation = 0
        self._lifecycle_lock = asyncio.Lock()
        self._listeners: list[AggregatorListener] = []
        self._background_tasks: set[asyncio.Task[bool]] = set()
        self._snapshot: tuple[PriorityItem, ...] = ()
        self._published_loaded = False
        self._log = logger.bind(component="priority_aggregator")

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def user(self) -> SessionUser | None:
        """Member the current set belongs to."""
        return self._user

    @property
    def is_active(self) -> bool:
        """True between start() and stop()."""
        return self._active

    @property
    def source_names(self) -> tuple[str, ...]:
        return tuple(self._states)

    @property
    def has_loaded(self) -> bool:
        """True once any source completed a successful fetch."""
        return any(state.loaded for state in self._states.values())

    @property
    def has_error(self) -> bool:
        """True while any source's last operation failed."""
        return any(state.last_error is not None for state in self._states.values())

    @property
    def last_errors(self) -> dict[str, PrioritySourceError]:
        """Most recent error per failing source."""
        return {
            name: state.last_error
            for name, state in self._states.items()
            if state.last_error is not None
        }

    @property
    def is_refreshing(self) -> bool:
        return any(state.is_fetching for state in self._states.values())

    def get_all(self) -> tuple[PriorityItem, ...]:
        """Return every held item in priority order."""
        return self._snapshot

    def get_unhandled(self) -> tuple[PriorityItem, ...]:
        """Return unread or unacknowledged items in priority order."""
        return tuple(item for item in self._snapshot if item.is_unhandled)

    def count(self) -> int:
        """Return the number of unhandled items."""
        return len(self.get_unhandled())

    def find(
        self, item_id: str, item_type: PriorityItemType | None = None
    ) -> PriorityItem | None:
        """Return the held item with this id, if any."""
        found = self._locate(item_id, item_type)
        return found[1] if found else None

    def add_listener(self, listener: AggregatorListener) -> Callable[[], None]:
        """Register a change listener.

        Listeners run synchronously after every published change.

        Returns:
            Callable that removes the listener.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, user: SessionUser) -> bool:
        """Bind the member, open realtime subscriptions and load the set.

        Calling start() again for the same member only refreshes.
        A different member replaces the previous session entirely.
        start(), stop() and resubscribe() run one at a time, in call order.

        Returns:
            True if every source loaded successfully.
        """
        async with self._lifecycle_lock:
            if not (self._active and self._user == user):
                if self._active:
                    await self._stop()

                self._user = user
                self._active = True
                self._generation += 1
                self._log.info("priority_aggregator_started", user_id=user.user_id)

                await self._subscribe_all()
        # Unlocked: stop() must be able to cancel the initial fetch
        return await self.refresh()

    async def stop(self) -> None:
        """Cancel subscriptions and pending work and clear the set."""
        async with self._lifecycle_lock:
            await self._stop()

    async def _stop(self) -> None:
        if not self._active and self._user is None:
            return

        self._active = False
        self._generation += 1
        user_id = self._user.user_id if self._user else None

        for state in self._states.values():
            if state.inflight is not None and not state.inflight.done():
                state.inflight.cancel()
        for task in list(self._background_tasks):
            task.cancel()
        self._background_tasks.clear()

        await self._unsubscribe_all()

        for state in self._states.values():
            state.reset()
        self._user = None
        self._publish()
        self._log.info("priority_aggregator_stopped", user_id=user_id)

    async def resubscribe(self) -> None:
        """Drop and re-open every realtime subscription.

        Used after the app returns to the foreground, when channels may
        have silently disconnected.
        """
        async with self._lifecycle_lock:
            if not self._active or self._user is None:
                return
            await self._unsubscribe_all()
            self._generation += 1
            await self._subscribe_all()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self, source_name: str | None = None) -> bool:
        """Refresh one source, or all of them.

        Concurrent calls for the same source await the same fetch. Source
        failures never propagate; they are recorded in last_errors.

        Args:
            source_name: Source to refresh, or None for all.

        Returns:
            True if every requested source fetched successfully.

        Raises:
            KeyError: If source_name is not a registered source.
        """
        if not self._active or self._user is None:
            return False

        if source_name is not None:
            states = [self._states[source_name]]
        else:
            states = list(self._states.values())

        tasks = [self._ensure_fetch(state, self._user) for state in states]
        results = await asyncio.gather(
            *(asyncio.shield(task) for task in tasks), return_exceptions=True
        )
        return all(result is True for result in results)

    def request_refresh(self, source_name: str | None = None) -> asyncio.Task[bool] | None:
        """Schedule a refresh without awaiting it.

        Returns:
            The scheduled task, or None when the aggregator is stopped.
        """
        if not self._active:
            return None
        task = asyncio.get_running_loop().create_task(self.refresh(source_name))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    def _ensure_fetch(self, state: _SourceState, user: SessionUser) -> asyncio.Task[bool]:
        if state.inflight is not None and not state.inflight.done():
            self._log.debug(
                "priority_fetch_coalesced", source=state.source.source_name
            )
            return state.inflight

        state.pending_changes.clear()
        task = asyncio.get_running_loop().create_task(
            self._fetch_source(state, user, self._generation)
        )
        state.inflight = task
        return task

    async def _fetch_source(
        self, state: _SourceState, user: SessionUser, generation: int
    ) -> bool:
        source = state.source
        try:
            records = await source.fetch(user)
        except Exception as e:
            if generation != self._generation:
                return False
            error = (
                e
                if isinstance(e, PrioritySourceError)
                else PrioritySourceError(source.source_name, "fetch", str(e))
            )
            state.last_error = error
            state.pending_changes.clear()
            self._log.warning(
                "priority_fetch_failed",
                source=source.source_name,
                error=str(error),
                retained_items=len(state.items),
            )
            self._publish()
            return False

        if generation != self._generation or not self._active:
            self._log.debug("priority_fetch_discarded", source=source.source_name)
            return False

        fresh: dict[str, PriorityItem] = {}
        for item in self._normalizer.normalize_many(source.item_type, records, user):
            existing = fresh.get(item.id)
            if existing is None or _is_newer_or_equal(item, existing):
                fresh[item.id] = item

        # Replay changes that arrived while the fetch was in flight
        for item_id, change in state.pending_changes.items():
            if change is None:
                fresh.pop(item_id, None)
                continue
            fetched = fresh.get(item_id)
            if fetched is None or _is_newer_or_equal(change, fetched):
                fresh[item_id] = change
        state.pending_changes.clear()

        state.items = fresh
        state.loaded = True
        state.last_error = None
        self._log.debug(
            "priority_fetch_completed", source=source.source_name, items=len(fresh)
        )
        self._publish()
        return True

    # ------------------------------------------------------------------
    # Realtime
    # ------------------------------------------------------------------

    def apply_change(self, source_name: str, event: ChangeEvent) -> None:
        """Apply a realtime change event to a source's items.

        INSERT/UPDATE carry the full new row and replace the item. DELETE
        removes it. An event without a usable row triggers a refresh of
        that source instead.
        """
        if not self._active or self._user is None:
            return
        state = self._states[source_name]

        if event.change_type is ChangeType.DELETE:
            item_id = event.record_id
            if item_id is None:
                self.request_refresh(source_name)
                return
            self._record_change(state, item_id, None)
            self._publish()
            return

        if event.record is None:
            self.request_refresh(source_name)
            return

        try:
            item = self._normalizer.normalize(
                state.source.item_type, event.record, self._user
            )
        except InvalidPriorityRecordError as e:
            self._log.warning(
                "priority_change_skipped",
                source=source_name,
                record_id=e.record_id,
                reason=e.reason,
            )
            return

        if item is None:
            item_id = event.record_id
            if item_id is not None:
                self._record_change(state, item_id, None)
                self._publish()
            return

        existing = state.items.get(item.id)
        if existing is not None and not _is_newer_or_equal(item, existing):
            self._log.debug(
                "priority_change_out_of_order", source=source_name, item_id=item.id
            )
            return

        self._record_change(state, item.id, item)
        self._publish()

    def _handle_change(self, source_name: str, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            self._log.debug("priority_change_from_stale_subscription", source=source_name)
            return
        self.apply_change(source_name, event)

    async def _subscribe_all(self) -> None:
        assert self._user is not None
        generation = self._generation
        for name, state in self._states.items():
            callback = partial(self._handle_change, name, generation)
            try:
                state.subscription = await state.source.subscribe(self._user, callback)
            except Exception as e:
                state.subscription = None
                self._log.warning(
                    "priority_subscribe_failed", source=name, error=str(e)
                )

    async def _unsubscribe_all(self) -> None:
        for name, state in self._states.items():
            subscription, state.subscription = state.subscription, None
            if subscription is None:
                continue
            try:
                await subscription.unsubscribe()
            except Exception as e:
                self._log.warning(
                    "priority_unsubscribe_failed", source=name, error=str(e)
                )

    # ------------------------------------------------------------------
    # Local updates
    # ------------------------------------------------------------------

    def mark_item_handled(
        self,
        item_id: str,
        *,
        is_read: bool = True,
        is_acknowledged: bool = True,
        item_type: PriorityItemType | None = None,
    ) -> PriorityItem | None:
        """Optimistically update an item's flags pending the next refresh.

        Returns:
            The updated item, or None if no such item is held.
        """
        found = self._locate(item_id, item_type)
        if found is None:
            return None
        state, current = found
        updated = current.with_status(is_read=is_read, is_acknowledged=is_acknowledged)
        self._record_change(state, item_id, updated)
        self._publish()
        return updated

    async def mark_item_read(
        self, item_id: str, item_type: PriorityItemType | None = None
    ) -> bool:
        """Mark an item read locally and in its source.

        Returns:
            True if the source accepted the write.
        """
        return await self._write_status(
            item_id, item_type, operation="mark_read", is_read=True, is_acknowledged=None
        )

    async def acknowledge_item(
        self, item_id: str, item_type: PriorityItemType | None = None
    ) -> bool:
        """Acknowledge an item locally and in its source.

        The local update is rolled back if the source rejects the write.

        Returns:
            True if the source accepted the write.
        """
        return await self._write_status(
            item_id, item_type, operation="acknowledge", is_read=True, is_acknowledged=True
        )

    async def _write_status(
        self,
        item_id: str,
        item_type: PriorityItemType | None,
        *,
        operation: str,
        is_read: bool | None,
        is_acknowledged: bool | None,
    ) -> bool:
        if not self._active or self._user is None:
            return False
        found = self._locate(item_id, item_type)
        if found is None:
            return False
        state, previous = found
        user = self._user
        generation = self._generation

        optimistic = previous.with_status(is_read=is_read, is_acknowledged=is_acknowledged)
        self._record_change(state, item_id, optimistic)
        self._publish()

        try:
            if operation == "acknowledge":
                await state.source.acknowledge(user, item_id)
            else:
                await state.source.mark_read(user, item_id)
        except Exception as e:
            if generation != self._generation:
                return False
            state.last_error = (
                e
                if isinstance(e, PrioritySourceError)
                else PrioritySourceError(state.source.source_name, operation, str(e))
            )
            if state.items.get(item_id) == optimistic:
                self._record_change(state, item_id, previous)
            self._log.warning(
                "priority_status_write_failed",
                source=state.source.source_name,
                item_id=item_id,
                operation=operation,
                error=str(e),
            )
            self._publish()
            return False

        self._log.info(
            "priority_status_written",
            source=state.source.source_name,
            item_id=item_id,
            operation=operation,
        )
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _locate(
        self, item_id: str, item_type: PriorityItemType | None
    ) -> tuple[_SourceState, PriorityItem] | None:
        for state in self._states.values():
            if item_type is not None and state.source.item_type is not item_type:
                continue
            item = state.items.get(item_id)
            if item is not None:
                return state, item
        return None

    def _record_change(
        self, state: _SourceState, item_id: str, item: PriorityItem | None
    ) -> None:
        if item is None:
            state.items.pop(item_id, None)
        else:
            state.items[item_id] = item
        if state.is_fetching:
            state.pending_changes[item_id] = item

    def _build_snapshot(self) -> tuple[PriorityItem, ...]:
        merged: dict[tuple[PriorityItemType, str], PriorityItem] = {}
        for state in self._states.values():
            for item in state.items.values():
                existing = merged.get(item.key)
                if existing is None or _is_newer_or_equal(item, existing):
                    merged[item.key] = item
        return order_items(list(merged.values()))

    def _publish(self) -> None:
        snapshot = self._build_snapshot()
        loaded = self.has_loaded
        if snapshot == self._snapshot and loaded == self._published_loaded:
            return
        self._snapshot = snapshot
        self._published_loaded = loaded

        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                self._log.error(
                    "priority_listener_failed", listener=repr(listener), error=str(e)
                )
