"""Navigation guard - binds the decision engine to the app lifecycle.

The guard owns only transient UI state: whether the blocking modal is
shown, whether a "go to item" navigation is in flight (the latch), and the
phase of the guard state machine. The priority set itself belongs to the
aggregator; the guard reads it and asks for refreshes.

Event sources wired on mount():
- aggregator changes   -> evaluate()
- route changes        -> handle_route_change()
- sign-in / sign-out   -> handle_session_change()
- app foreground       -> handle_app_state_change()

Developer Golden Rules:
1. The latch is taken and the modal hidden BEFORE the navigation request
   is awaited
2. Every exit from NAVIGATING releases the latch (arrival, no target,
   router failure, timeout, reset)
3. After unmount() nothing mutates state - every callback checks _mounted
4. Source and router errors are logged, never raised to the caller
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import structlog

from priority_guard.application.ports.app_state import APP_STATE_ACTIVE, AppStateProtocol
from priority_guard.application.ports.modal_presenter import ModalPresenterProtocol
from priority_guard.application.ports.router import RouterProtocol
from priority_guard.application.ports.session_provider import SessionProviderProtocol
from priority_guard.application.services.navigation_decision_engine import (
    NavigationDecisionEngine,
)
from priority_guard.application.services.navigation_latch import (
    NavigationLatch,
    ReleaseReason,
)
from priority_guard.application.services.priority_aggregator import PriorityAggregator
from priority_guard.config.guard_config import DEFAULT_GUARD_CONFIG, GuardConfig
from priority_guard.domain.models.navigation_state import (
    EMPTY_BLOCK_STATE,
    BlockingModalProps,
    GuardedView,
    NavigationBlockState,
    NavigationPhase,
    validate_transition,
)
from priority_guard.domain.models.session_user import SessionUser

logger = structlog.get_logger(__name__)


class NavigationGuard:
    """UI controller for the priority blocking modal.

    Attributes:
        _engine: Blocking decisions.
        _aggregator: Priority set owner (started/stopped with the session).
        _latch: The "is navigating" flag with timeout fallback.
        _phase: Current guard phase.
        _show_modal: Whether the blocking modal is visible.
        _mounted: False before mount() and after unmount().
    """

    def __init__(
        self,
        engine: NavigationDecisionEngine,
        aggregator: PriorityAggregator,
        router: RouterProtocol,
        session: SessionProviderProtocol,
        app_state: AppStateProtocol | None = None,
        modal_presenter: ModalPresenterProtocol | None = None,
        config: GuardConfig = DEFAULT_GUARD_CONFIG,
    ) -> None:
        self._engine = engine
        self._aggregator = aggregator
        self._router = router
        self._session = session
        self._app_state = app_state
        self._presenter = modal_presenter
        self._config = config

        self._latch = NavigationLatch(
            config.navigation_timeout_seconds, on_timeout=self._on_navigation_timeout
        )
        self._phase = NavigationPhase.IDLE
        self._show_modal = False
        self._mounted = False
        self._block_state: NavigationBlockState = EMPTY_BLOCK_STATE
        self._unsubscribers: list[Callable[[], None]] = []
        self._tasks: set[asyncio.Task[Any]] = set()
        self._resync_task: asyncio.Task[None] | None = None
        self._last_presented: dict[str, Any] | None = None
        self._log = logger.bind(component="navigation_guard")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def phase(self) -> NavigationPhase:
        return self._phase

    @property
    def show_blocking_modal(self) -> bool:
        return self._show_modal

    @property
    def is_navigating(self) -> bool:
        return self._latch.is_held

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    @property
    def latch(self) -> NavigationLatch:
        return self._latch

    @property
    def block_state(self) -> NavigationBlockState:
        """Blocking snapshot from the most recent evaluation."""
        return self._block_state

    def modal_props(self) -> BlockingModalProps:
        """Props for the blocking modal presenter."""
        return BlockingModalProps(
            visible=self._show_modal,
            current_item=self._block_state.current_item,
            total_items=self._block_state.total_count,
            current_index=self._block_state.current_index,
            on_navigate_to_item=self.handle_navigate_to_item,
        )

    def render(self, children: Any) -> GuardedView:
        """Wrap children; they are always rendered, the modal overlays them."""
        return GuardedView(children=children, modal=self.modal_props())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Subscribe to every event source and load the member's items."""
        if self._mounted:
            return
        self._mounted = True

        self._unsubscribers.append(self._aggregator.add_listener(self.evaluate))
        self._unsubscribers.append(self._router.on_route_change(self.handle_route_change))
        self._unsubscribers.append(
            self._session.on_session_change(self.handle_session_change)
        )
        if self._app_state is not None:
            self._unsubscribers.append(
                self._app_state.on_app_state_change(self.handle_app_state_change)
            )

        user = self._session.current_user()
        self._log.info(
            "navigation_guard_mounted", user_id=user.user_id if user else None
        )
        if user is not None:
            await self._aggregator.start(user)
        self.evaluate()

    async def unmount(self) -> None:
        """Cancel subscriptions, timers and tasks; stop the aggregator."""
        if not self._mounted:
            return
        self._mounted = False

        for unsubscribe in reversed(self._unsubscribers):
            unsubscribe()
        self._unsubscribers.clear()

        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self._resync_task = None

        self._latch.release(ReleaseReason.RESET)
        await self._aggregator.stop()

        self._phase = NavigationPhase.IDLE
        self._show_modal = False
        self._block_state = EMPTY_BLOCK_STATE
        self._log.info("navigation_guard_unmounted")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, route: str | None = None) -> None:
        """Recompute the blocking decision and update modal and phase.

        Args:
            route: Route to evaluate; defaults to the router's current route.
        """
        if not self._mounted:
            return

        state = self._engine.block_state(route)
        self._block_state = state

        if state.unhandled_count == 0:
            if self._latch.release(ReleaseReason.RESET):
                self._log.info("priority_items_resolved_during_navigation")
            self._set_phase(NavigationPhase.IDLE)
            self._set_modal(False)
        elif self._latch.is_held:
            # Modal stays hidden until the route lands or the latch times out
            self._set_modal(False)
        elif state.should_block:
            self._set_phase(NavigationPhase.BLOCKING)
            self._set_modal(state.modal_required)
        else:
            self._set_phase(NavigationPhase.IDLE)
            self._set_modal(False)

        self._present()

    def _set_phase(self, phase: NavigationPhase) -> None:
        if phase is self._phase:
            return
        previous = self._phase
        self._phase = validate_transition(previous, phase)
        self._log.debug(
            "navigation_phase_changed", from_phase=previous.value, to_phase=phase.value
        )

    def _set_modal(self, visible: bool) -> None:
        if visible == self._show_modal:
            return
        self._show_modal = visible
        if visible:
            item = self._block_state.current_item
            self._log.info(
                "navigation_blocked",
                unhandled_count=self._block_state.unhandled_count,
                current_item_id=item.id if item else None,
            )
        else:
            self._log.debug("blocking_modal_hidden", navigating=self._latch.is_held)

    def _present(self) -> None:
        if self._presenter is None:
            return
        props = self.modal_props()
        snapshot = props.to_dict()
        if snapshot == self._last_presented:
            return
        self._last_presented = snapshot
        try:
            self._presenter.present(props)
        except Exception as e:
            self._log.error("blocking_modal_present_failed", error=str(e))

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def handle_navigate_to_item(self) -> None:
        """Handle the modal's "go to item" action.

        Repeated calls while a navigation is in flight are ignored, so
        rapid taps produce a single navigation request.
        """
        if not self._mounted:
            return

        item = self._engine.current_item()
        target = item.route_target if item is not None else None
        try:
            async with self._latch.navigating(target) as acquired:
                if not acquired:
                    self._log.debug("navigate_ignored_already_navigating")
                    return

                self._set_modal(False)
                if self._phase is NavigationPhase.BLOCKING:
                    self._set_phase(NavigationPhase.NAVIGATING)
                self._present()

                routed = await self._engine.route_to_next_priority_item()
                if not routed:
                    self._latch.release(ReleaseReason.NO_TARGET)
                    self._log.info("navigate_found_no_priority_item")
        except Exception as e:
            self._log.error("priority_navigation_failed", target=target, error=str(e))

        if self._mounted and not self._latch.is_held:
            self.evaluate()

    def handle_route_change(self, route: str) -> None:
        """React to a route change reported by the router."""
        if not self._mounted:
            return
        if self._engine.is_on_priority_route(route):
            self._set_modal(False)
            if self._latch.release(ReleaseReason.ARRIVED):
                self._log.info("priority_route_reached", route=route)
        self.evaluate(route)

    def handle_session_change(self, user: SessionUser | None) -> None:
        """React to sign-in, sign-out or a change of member."""
        if not self._mounted:
            return
        self._spawn(self._apply_session(user))

    def handle_app_state_change(self, app_state: str) -> None:
        """Re-sync after the app returns to the foreground."""
        if not self._mounted or app_state != APP_STATE_ACTIVE:
            return
        if self._session.current_user() is None:
            return
        if self._resync_task is not None and not self._resync_task.done():
            self._log.debug("foreground_resync_already_pending")
            return
        self._log.info("app_foregrounded_resync_scheduled")
        self._resync_task = self._spawn(self._resync_after_foreground())

    def _on_navigation_timeout(self) -> None:
        if not self._mounted:
            return
        self._log.warning("priority_navigation_unconfirmed")
        self.evaluate()

    async def _apply_session(self, user: SessionUser | None) -> None:
        if user is None:
            self._latch.release(ReleaseReason.RESET)
            await self._aggregator.stop()
            self._log.info("session_ended")
        else:
            await self._aggregator.start(user)
            self._log.info("session_started", user_id=user.user_id)
        if self._mounted:
            self.evaluate()

    async def _resync_after_foreground(self) -> None:
        delay = self._config.foreground_resync_delay_seconds
        if delay > 0:
            await asyncio.sleep(delay)
        if not self._mounted:
            return
        await self._aggregator.resubscribe()
        ok = await self._aggregator.refresh()
        if not self._mounted:
            return
        self._log.info(
            "foreground_resync_completed",
            success=ok,
            unhandled_count=self._aggregator.count(),
        )
        self.evaluate()

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_for_pending(self) -> None:
        """Await background work spawned by event handlers."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
