"""End-to-end navigation guard flow over the in-memory adapters.

Walks a member through every blocking item the way the app does:
mount, tap "go to item", handle the item in the backend, land on the
next one, until the modal is gone for good.
"""

import pytest

from priority_guard.bootstrap.navigation_guard import (
    build_navigation_guard,
    mount_navigation_guard,
)
from priority_guard.config.guard_config import TEST_GUARD_CONFIG
from priority_guard.domain.models.navigation_state import NavigationPhase
from priority_guard.infrastructure.stubs import (
    AppStateStub,
    InMemoryPriorityItemSourceStub,
    RecordingModalPresenterStub,
    RouterStub,
    SessionProviderStub,
)
from tests.helpers import admin_message_row, announcement_row, member_message_row

pytestmark = pytest.mark.integration


@pytest.fixture
def seeded_sources(
    member_messages: InMemoryPriorityItemSourceStub,
    announcements: InMemoryPriorityItemSourceStub,
    admin_messages: InMemoryPriorityItemSourceStub,
) -> list[InMemoryPriorityItemSourceStub]:
    member_messages.set_records([member_message_row("msg-1", minutes=10)])
    announcements.set_records([announcement_row("ann-1", minutes=5)])
    admin_messages.set_records([admin_message_row("adm-1")])
    return [member_messages, announcements, admin_messages]


class TestNavigationGuardFlow:
    """Member works through the blocking items in priority order."""

    @pytest.mark.asyncio
    async def test_member_clears_every_item(
        self,
        seeded_sources: list[InMemoryPriorityItemSourceStub],
        member_messages: InMemoryPriorityItemSourceStub,
        announcements: InMemoryPriorityItemSourceStub,
        admin_messages: InMemoryPriorityItemSourceStub,
        router: RouterStub,
        session: SessionProviderStub,
        presenter: RecordingModalPresenterStub,
    ) -> None:
        guard = build_navigation_guard(
            router,
            session,
            seeded_sources,
            modal_presenter=presenter,
            config=TEST_GUARD_CONFIG,
        )
        await mount_navigation_guard(guard)

        # Member messages outrank announcements and officer messages
        assert guard.show_blocking_modal is True
        assert guard.phase is NavigationPhase.BLOCKING
        assert guard.block_state.current_item is not None
        assert guard.block_state.current_item.id == "msg-1"
        assert guard.block_state.unhandled_count == 3
        assert presenter.last is not None and presenter.last.visible is True

        await guard.handle_navigate_to_item()

        assert router.current_route() == "/(tabs)/notifications"
        assert guard.show_blocking_modal is False
        assert guard.is_navigating is False

        # The member acknowledges the message; the backend pushes the update
        member_messages.upsert(
            member_message_row(
                "msg-1", minutes=10, is_read=True, acknowledged_by=["12345"]
            )
        )

        assert guard.block_state.unhandled_count == 2
        assert guard.block_state.current_item is not None
        assert guard.block_state.current_item.id == "ann-1"
        assert guard.show_blocking_modal is True

        await guard.handle_navigate_to_item()
        assert router.current_route() == "/(gca)/announcements"
        assert guard.show_blocking_modal is False

        announcements.delete("ann-1")

        assert guard.block_state.current_item is not None
        assert guard.block_state.current_item.id == "adm-1"
        assert guard.show_blocking_modal is True

        await guard.handle_navigate_to_item()
        assert router.current_route() == (
            "/(admin)/division_admin/DivisionAdminPanel/AdminMessages/adm-1"
        )

        admin_messages.upsert(
            admin_message_row(
                "adm-1", read_by=["user-1"], acknowledged_by=["user-1"], is_read=True
            )
        )

        assert guard.block_state.unhandled_count == 0
        assert guard.show_blocking_modal is False
        assert guard.phase is NavigationPhase.IDLE
        assert presenter.last is not None and presenter.last.visible is False
        assert router.navigations == [
            "/(tabs)/notifications",
            "/(gca)/announcements",
            "/(admin)/division_admin/DivisionAdminPanel/AdminMessages/adm-1",
        ]

        await guard.unmount()

    @pytest.mark.asyncio
    async def test_sign_out_and_back_in(
        self,
        seeded_sources: list[InMemoryPriorityItemSourceStub],
        router: RouterStub,
        session: SessionProviderStub,
    ) -> None:
        guard = build_navigation_guard(
            router, session, seeded_sources, config=TEST_GUARD_CONFIG
        )
        await mount_navigation_guard(guard)
        assert guard.show_blocking_modal is True

        user = session.current_user()
        assert user is not None
        session.sign_out()
        await guard.wait_for_pending()

        assert guard.show_blocking_modal is False
        assert all(source.subscriber_count == 0 for source in seeded_sources)

        session.sign_in(user)
        await guard.wait_for_pending()

        assert guard.show_blocking_modal is True
        assert all(source.subscriber_count == 1 for source in seeded_sources)

        await guard.unmount()

    @pytest.mark.asyncio
    async def test_foreground_picks_up_missed_changes(
        self,
        member_messages: InMemoryPriorityItemSourceStub,
        announcements: InMemoryPriorityItemSourceStub,
        admin_messages: InMemoryPriorityItemSourceStub,
        router: RouterStub,
        session: SessionProviderStub,
        app_state: AppStateStub,
    ) -> None:
        sources = [member_messages, announcements, admin_messages]
        guard = build_navigation_guard(
            router, session, sources, app_state=app_state, config=TEST_GUARD_CONFIG
        )
        await mount_navigation_guard(guard)
        assert guard.show_blocking_modal is False

        # Realtime events are lost while the app sits in the background
        app_state.set_state("background")
        announcements.set_records([announcement_row("ann-9")])
        app_state.set_state("active")
        await guard.wait_for_pending()

        assert guard.show_blocking_modal is True
        assert guard.block_state.current_item is not None
        assert guard.block_state.current_item.id == "ann-9"

        await guard.unmount()
