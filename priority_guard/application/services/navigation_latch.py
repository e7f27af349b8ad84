"""Navigation latch - the guard's "is navigating" flag as an explicit object.

While the latch is held the blocking modal must stay hidden, so the modal
cannot flash back open between the member's tap and the route change
landing. Every way out of the navigating state goes through release():

- arrived: the target route was observed
- no_target: there was nothing to navigate to
- failed: the router raised
- timeout: the route change never came
- reset: sign-out, unmount, or the unhandled set became empty

acquire() is synchronous so the flag is set before the navigation
request is awaited.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class ReleaseReason(Enum):
    """Why the latch was released."""

    ARRIVED = "arrived"
    NO_TARGET = "no_target"
    FAILED = "failed"
    TIMEOUT = "timeout"
    RESET = "reset"


class NavigationLatch:
    """Single-holder latch with a timeout fallback.

    Attributes:
        _timeout_seconds: How long a navigation may stay unconfirmed.
        _on_timeout: Called after a timeout release.
        _held: Whether a navigation is in flight.
        _target: Route the current navigation is heading to.
        _timer: Pending timeout handle.
    """

    def __init__(
        self,
        timeout_seconds: float,
        on_timeout: Callable[[], None] | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")
        self._timeout_seconds = timeout_seconds
        self._on_timeout = on_timeout
        self._held = False
        self._target: str | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._last_release: ReleaseReason | None = None

    @property
    def is_held(self) -> bool:
        return self._held

    @property
    def target(self) -> str | None:
        return self._target

    @property
    def last_release(self) -> ReleaseReason | None:
        return self._last_release

    def acquire(self, target: str | None = None) -> bool:
        """Take the latch and arm the timeout.

        Must be called from inside the running event loop.

        Returns:
            False if a navigation is already in flight.
        """
        if self._held:
            logger.debug("navigation_latch_busy", target=self._target)
            return False
        self._held = True
        self._target = target
        self._timer = asyncio.get_running_loop().call_later(
            self._timeout_seconds, self._expire
        )
        logger.debug("navigation_latch_acquired", target=target)
        return True

    def release(self, reason: ReleaseReason) -> bool:
        """Release the latch. Safe to call when not held.

        Returns:
            True if the latch was held.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if not self._held:
            return False
        self._held = False
        self._last_release = reason
        logger.debug(
            "navigation_latch_released", reason=reason.value, target=self._target
        )
        self._target = None
        return True

    @asynccontextmanager
    async def navigating(self, target: str | None = None) -> AsyncIterator[bool]:
        """Hold the latch for the body; release with FAILED if the body raises.

        A successful body leaves the latch held: the arrival (or the
        timeout) releases it later.

        Yields:
            Whether the latch was acquired. The body should do nothing
            when it was not.
        """
        acquired = self.acquire(target)
        try:
            yield acquired
        except BaseException:
            if acquired:
                self.release(ReleaseReason.FAILED)
            raise

    def _expire(self) -> None:
        self._timer = None
        if not self._held:
            return
        logger.warning(
            "navigation_latch_timed_out",
            target=self._target,
            timeout_seconds=self._timeout_seconds,
        )
        self.release(ReleaseReason.TIMEOUT)
        if self._on_timeout is not None:
            self._on_timeout()
