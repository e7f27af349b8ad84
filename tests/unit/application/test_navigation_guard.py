"""Unit tests for NavigationGuard.

Tests cover:
- Modal visibility against the blocking decision and the current route
- The navigating latch: single navigation per tap burst, every exit path
- Session, foreground and realtime triggers
- Unmount cleanup
"""

import asyncio
from dataclasses import replace

import pytest

from priority_guard.application.services.navigation_decision_engine import (
    NavigationDecisionEngine,
)
from priority_guard.application.services.navigation_guard import NavigationGuard
from priority_guard.application.services.navigation_latch import ReleaseReason
from priority_guard.application.services.priority_aggregator import PriorityAggregator
from priority_guard.config.guard_config import TEST_GUARD_CONFIG, GuardConfig
from priority_guard.domain.models.navigation_state import NavigationPhase
from priority_guard.domain.models.priority_item import PriorityItemType
from priority_guard.domain.services.priority_route_matcher import PriorityRouteMatcher
from priority_guard.infrastructure.stubs import (
    AppStateStub,
    InMemoryPriorityItemSourceStub,
    RecordingModalPresenterStub,
    RouterStub,
    SessionProviderStub,
)
from tests.helpers import (
    MEMBER,
    OTHER_MEMBER,
    SlowUnsubscribeSourceStub,
    admin_message_row,
    announcement_row,
)

ANNOUNCEMENTS_ROUTE = "/(gca)/announcements"


def make_guard(
    sources: list[InMemoryPriorityItemSourceStub],
    router: RouterStub,
    session: SessionProviderStub,
    app_state: AppStateStub | None = None,
    presenter: RecordingModalPresenterStub | None = None,
    config: GuardConfig = TEST_GUARD_CONFIG,
) -> tuple[NavigationGuard, PriorityAggregator]:
    aggregator = PriorityAggregator(sources)
    engine = NavigationDecisionEngine(
        aggregator, session, router, PriorityRouteMatcher(config.exempt_routes)
    )
    guard = NavigationGuard(
        engine,
        aggregator,
        router,
        session,
        app_state=app_state,
        modal_presenter=presenter,
        config=config,
    )
    return guard, aggregator


@pytest.fixture
def guard_parts(
    sources: list[InMemoryPriorityItemSourceStub],
    router: RouterStub,
    session: SessionProviderStub,
    app_state: AppStateStub,
    presenter: RecordingModalPresenterStub,
) -> tuple[NavigationGuard, PriorityAggregator]:
    return make_guard(sources, router, session, app_state, presenter)


@pytest.fixture
def guard(guard_parts: tuple[NavigationGuard, PriorityAggregator]) -> NavigationGuard:
    return guard_parts[0]


@pytest.fixture
def aggregator(guard_parts: tuple[NavigationGuard, PriorityAggregator]) -> PriorityAggregator:
    return guard_parts[1]


class TestModalVisibility:
    """Tests for when the blocking modal is shown."""

    @pytest.mark.asyncio
    async def test_modal_shown_when_unhandled_items_exist(
        self,
        guard: NavigationGuard,
        announcements: InMemoryPriorityItemSourceStub,
        presenter: RecordingModalPresenterStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])

        await guard.mount()

        assert guard.show_blocking_modal is True
        assert guard.phase is NavigationPhase.BLOCKING
        props = guard.modal_props()
        assert props.current_item is not None
        assert props.current_item.id == "ann-1"
        assert props.total_items == 1
        assert presenter.last is not None
        assert presenter.last.visible is True

    @pytest.mark.asyncio
    async def test_modal_counts_only_outstanding_items(
        self, guard: NavigationGuard, admin_messages: InMemoryPriorityItemSourceStub
    ) -> None:
        handled = [
            admin_message_row(
                f"adm-done-{n}", minutes=n, read_by=["user-1"], acknowledged_by=["user-1"]
            )
            for n in range(5)
        ]
        admin_messages.set_records([*handled, admin_message_row("adm-open", minutes=10)])

        await guard.mount()

        props = guard.modal_props()
        assert props.visible is True
        assert props.current_item is not None
        assert props.current_item.id == "adm-open"
        assert props.total_items == 1
        assert props.current_index == 0

    @pytest.mark.asyncio
    async def test_no_modal_without_items(
        self, guard: NavigationGuard, presenter: RecordingModalPresenterStub
    ) -> None:
        await guard.mount()

        assert guard.show_blocking_modal is False
        assert guard.phase is NavigationPhase.IDLE
        assert all(not props.visible for props in presenter.presented)

    @pytest.mark.asyncio
    async def test_signed_out_member_is_never_blocked(
        self,
        sources: list[InMemoryPriorityItemSourceStub],
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        guard, aggregator = make_guard(sources, router, SessionProviderStub())

        await guard.mount()

        assert guard.show_blocking_modal is False
        assert aggregator.is_active is False

    @pytest.mark.asyncio
    async def test_modal_hidden_on_priority_route(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        """Looking at the item's screen hides the modal without a dismiss."""
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()
        assert guard.show_blocking_modal is True

        router.set_route(ANNOUNCEMENTS_ROUTE)

        assert guard.show_blocking_modal is False
        assert guard.block_state.unhandled_count == 1
        assert guard.phase is NavigationPhase.BLOCKING

    @pytest.mark.asyncio
    async def test_modal_returns_when_leaving_priority_route(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        router.set_route(ANNOUNCEMENTS_ROUTE)
        await guard.mount()
        assert guard.show_blocking_modal is False

        router.set_route("/(tabs)/calendar")

        assert guard.show_blocking_modal is True

    @pytest.mark.asyncio
    async def test_exempt_route_never_shows_modal(
        self,
        sources: list[InMemoryPriorityItemSourceStub],
        session: SessionProviderStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        config = replace(TEST_GUARD_CONFIG, exempt_routes=("/(auth)/*",))
        guard, _ = make_guard(sources, RouterStub("/(auth)/change-password"), session, config=config)

        await guard.mount()

        assert guard.show_blocking_modal is False
        assert guard.phase is NavigationPhase.IDLE

    @pytest.mark.asyncio
    async def test_home_tab_index_is_exempt_by_default(
        self,
        sources: list[InMemoryPriorityItemSourceStub],
        session: SessionProviderStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        router = RouterStub("/(tabs)")
        guard, _ = make_guard(sources, router, session)

        await guard.mount()
        assert guard.show_blocking_modal is False

        router.set_route("/(tabs)/calendar")

        assert guard.show_blocking_modal is True
        await guard.unmount()

    @pytest.mark.asyncio
    async def test_realtime_insert_shows_modal(
        self, guard: NavigationGuard, admin_messages: InMemoryPriorityItemSourceStub
    ) -> None:
        await guard.mount()
        assert guard.show_blocking_modal is False

        admin_messages.upsert(admin_message_row("adm-1"))

        assert guard.show_blocking_modal is True

    @pytest.mark.asyncio
    async def test_handling_last_item_hides_modal(
        self,
        guard: NavigationGuard,
        aggregator: PriorityAggregator,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()

        await aggregator.acknowledge_item("ann-1")

        assert guard.show_blocking_modal is False
        assert guard.phase is NavigationPhase.IDLE

    @pytest.mark.asyncio
    async def test_render_keeps_children(
        self, guard: NavigationGuard, announcements: InMemoryPriorityItemSourceStub
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()

        view = guard.render("app-content")

        assert view.children == "app-content"
        assert view.modal.visible is True

    @pytest.mark.asyncio
    async def test_presenter_failure_is_contained(
        self,
        sources: list[InMemoryPriorityItemSourceStub],
        router: RouterStub,
        session: SessionProviderStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        class BrokenPresenter:
            def present(self, props: object) -> None:
                raise RuntimeError("render failed")

        announcements.set_records([announcement_row("ann-1")])
        guard, _ = make_guard(sources, router, session, presenter=BrokenPresenter())  # type: ignore[arg-type]

        await guard.mount()

        assert guard.show_blocking_modal is True


class TestNavigateToItem:
    """Tests for the modal's "go to item" action."""

    @pytest.mark.asyncio
    async def test_navigation_lands_on_item_route(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()

        await guard.handle_navigate_to_item()

        assert router.navigations == [ANNOUNCEMENTS_ROUTE]
        assert guard.is_navigating is False
        assert guard.latch.last_release is ReleaseReason.ARRIVED
        assert guard.show_blocking_modal is False

    @pytest.mark.asyncio
    async def test_rapid_taps_navigate_once(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        router.auto_land = False
        await guard.mount()

        await asyncio.gather(
            guard.handle_navigate_to_item(),
            guard.handle_navigate_to_item(),
            guard.handle_navigate_to_item(),
        )

        assert router.navigations == [ANNOUNCEMENTS_ROUTE]
        assert guard.is_navigating is True
        assert guard.phase is NavigationPhase.NAVIGATING

    @pytest.mark.asyncio
    async def test_modal_hidden_while_navigating(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        aggregator: PriorityAggregator,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        """Changes arriving mid-navigation do not flash the modal back open."""
        announcements.set_records([announcement_row("ann-1")])
        router.auto_land = False
        await guard.mount()

        await guard.handle_navigate_to_item()
        announcements.upsert(announcement_row("ann-2", minutes=5))

        assert guard.show_blocking_modal is False
        assert aggregator.count() == 2

    @pytest.mark.asyncio
    async def test_unconfirmed_navigation_times_out(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        """The modal may reappear once the navigation timeout expires."""
        announcements.set_records([announcement_row("ann-1")])
        router.auto_land = False
        await guard.mount()

        await guard.handle_navigate_to_item()
        assert guard.show_blocking_modal is False

        await asyncio.sleep(TEST_GUARD_CONFIG.navigation_timeout_seconds + 0.2)

        assert guard.is_navigating is False
        assert guard.latch.last_release is ReleaseReason.TIMEOUT
        assert guard.show_blocking_modal is True
        assert guard.phase is NavigationPhase.BLOCKING

    @pytest.mark.asyncio
    async def test_router_failure_releases_latch(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()
        router.fail_navigation()

        await guard.handle_navigate_to_item()

        assert guard.is_navigating is False
        assert guard.latch.last_release is ReleaseReason.FAILED
        assert guard.show_blocking_modal is True

    @pytest.mark.asyncio
    async def test_nothing_to_navigate_to_releases_latch(
        self, guard: NavigationGuard, router: RouterStub
    ) -> None:
        await guard.mount()

        await guard.handle_navigate_to_item()

        assert router.navigations == []
        assert guard.is_navigating is False
        assert guard.latch.last_release is ReleaseReason.NO_TARGET

    @pytest.mark.asyncio
    async def test_resolving_everything_mid_navigation_resets(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        aggregator: PriorityAggregator,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        router.auto_land = False
        await guard.mount()
        await guard.handle_navigate_to_item()

        aggregator.mark_item_handled("ann-1")

        assert guard.is_navigating is False
        assert guard.latch.last_release is ReleaseReason.RESET
        assert guard.phase is NavigationPhase.IDLE


class TestLifecycleTriggers:
    """Tests for session, foreground and unmount handling."""

    @pytest.mark.asyncio
    async def test_sign_out_clears_block(
        self,
        guard: NavigationGuard,
        session: SessionProviderStub,
        aggregator: PriorityAggregator,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        await guard.mount()

        session.sign_out()
        await guard.wait_for_pending()

        assert guard.show_blocking_modal is False
        assert guard.phase is NavigationPhase.IDLE
        assert aggregator.is_active is False

    @pytest.mark.asyncio
    async def test_sign_in_loads_new_member(
        self,
        sources: list[InMemoryPriorityItemSourceStub],
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        session = SessionProviderStub()
        announcements.set_records([announcement_row("ann-1", read_by=["12345"])])
        guard, aggregator = make_guard(sources, router, session)
        await guard.mount()

        session.sign_in(OTHER_MEMBER)
        await guard.wait_for_pending()

        assert aggregator.user == OTHER_MEMBER
        assert guard.show_blocking_modal is True

    @pytest.mark.asyncio
    async def test_sign_out_then_quick_sign_in_loads_new_member(
        self, router: RouterStub, session: SessionProviderStub
    ) -> None:
        """Session changes apply in order even when closing channels yields."""
        source = SlowUnsubscribeSourceStub(
            "announcements", PriorityItemType.ANNOUNCEMENT, [announcement_row("ann-1")]
        )
        guard, aggregator = make_guard([source], router, session)
        await guard.mount()

        session.sign_out()
        session.sign_in(OTHER_MEMBER)
        await guard.wait_for_pending()

        assert aggregator.user == OTHER_MEMBER
        assert aggregator.is_active is True
        assert source.subscriber_count == 1
        assert guard.show_blocking_modal is True

        source.upsert(announcement_row("ann-2", minutes=1))

        assert aggregator.count() == 2
        assert await aggregator.refresh() is True
        await guard.unmount()

    @pytest.mark.asyncio
    async def test_foreground_resubscribes_and_refreshes(
        self,
        guard: NavigationGuard,
        app_state: AppStateStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        """Rows that changed while backgrounded show up after foregrounding."""
        await guard.mount()
        subscribes = announcements.subscribe_count
        announcements.set_records([announcement_row("ann-1")])

        app_state.set_state("background")
        await guard.wait_for_pending()
        assert guard.show_blocking_modal is False

        app_state.set_state("active")
        await guard.wait_for_pending()

        assert announcements.subscribe_count == subscribes + 1
        assert guard.show_blocking_modal is True

    @pytest.mark.asyncio
    async def test_foreground_resync_is_coalesced(
        self,
        guard: NavigationGuard,
        app_state: AppStateStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        await guard.mount()
        subscribes = announcements.subscribe_count

        app_state.set_state("active")
        app_state.set_state("active")
        await guard.wait_for_pending()

        assert announcements.subscribe_count == subscribes + 1

    @pytest.mark.asyncio
    async def test_unmount_detaches_everything(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        session: SessionProviderStub,
        app_state: AppStateStub,
        sources: list[InMemoryPriorityItemSourceStub],
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        announcements.set_records([announcement_row("ann-1")])
        router.auto_land = False
        await guard.mount()
        await guard.handle_navigate_to_item()

        await guard.unmount()

        assert guard.is_mounted is False
        assert guard.is_navigating is False
        assert guard.show_blocking_modal is False
        assert router.listener_count == 0
        assert session.listener_count == 0
        assert app_state.listener_count == 0
        assert all(source.subscriber_count == 0 for source in sources)

    @pytest.mark.asyncio
    async def test_events_after_unmount_are_ignored(
        self,
        guard: NavigationGuard,
        router: RouterStub,
        announcements: InMemoryPriorityItemSourceStub,
    ) -> None:
        await guard.mount()
        await guard.unmount()

        announcements.upsert(announcement_row("ann-1"))
        guard.handle_route_change("/(tabs)/calendar")
        guard.evaluate()
        await guard.handle_navigate_to_item()

        assert guard.show_blocking_modal is False
        assert router.navigations == []

    @pytest.mark.asyncio
    async def test_mount_twice_registers_once(
        self, guard: NavigationGuard, router: RouterStub
    ) -> None:
        await guard.mount()
        await guard.mount()

        assert router.listener_count == 1
        await guard.unmount()
