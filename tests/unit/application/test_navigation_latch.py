"""Unit tests for NavigationLatch."""

import asyncio

import pytest

from priority_guard.application.services.navigation_latch import (
    NavigationLatch,
    ReleaseReason,
)


class TestNavigationLatch:
    """Tests for acquire/release and the timeout fallback."""

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            NavigationLatch(0)

    @pytest.mark.asyncio
    async def test_second_acquire_is_refused(self) -> None:
        latch = NavigationLatch(5.0)

        assert latch.acquire("/a") is True
        assert latch.acquire("/b") is False
        assert latch.target == "/a"
        latch.release(ReleaseReason.RESET)

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self) -> None:
        latch = NavigationLatch(5.0)
        latch.acquire("/a")

        assert latch.release(ReleaseReason.ARRIVED) is True
        assert latch.release(ReleaseReason.ARRIVED) is False
        assert latch.is_held is False
        assert latch.last_release is ReleaseReason.ARRIVED

    @pytest.mark.asyncio
    async def test_timeout_releases_and_notifies(self) -> None:
        """An unconfirmed navigation never leaves the latch stuck."""
        timeouts: list[bool] = []
        latch = NavigationLatch(0.05, on_timeout=lambda: timeouts.append(True))

        latch.acquire("/a")
        await asyncio.sleep(0.15)

        assert latch.is_held is False
        assert latch.last_release is ReleaseReason.TIMEOUT
        assert timeouts == [True]

    @pytest.mark.asyncio
    async def test_release_cancels_pending_timeout(self) -> None:
        timeouts: list[bool] = []
        latch = NavigationLatch(0.05, on_timeout=lambda: timeouts.append(True))

        latch.acquire("/a")
        latch.release(ReleaseReason.ARRIVED)
        await asyncio.sleep(0.15)

        assert timeouts == []
        assert latch.last_release is ReleaseReason.ARRIVED

    @pytest.mark.asyncio
    async def test_navigating_releases_on_error(self) -> None:
        latch = NavigationLatch(5.0)

        with pytest.raises(RuntimeError):
            async with latch.navigating("/a") as acquired:
                assert acquired is True
                raise RuntimeError("router failed")

        assert latch.is_held is False
        assert latch.last_release is ReleaseReason.FAILED

    @pytest.mark.asyncio
    async def test_navigating_success_keeps_latch_held(self) -> None:
        """Arrival or the timeout releases a successful navigation later."""
        latch = NavigationLatch(5.0)

        async with latch.navigating("/a") as acquired:
            assert acquired is True

        assert latch.is_held is True
        latch.release(ReleaseReason.ARRIVED)

    @pytest.mark.asyncio
    async def test_navigating_while_held_yields_false(self) -> None:
        latch = NavigationLatch(5.0)
        latch.acquire("/a")

        async with latch.navigating("/b") as acquired:
            assert acquired is False

        assert latch.target == "/a"
        latch.release(ReleaseReason.RESET)
