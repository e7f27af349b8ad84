"""Navigation guard configuration.

This module defines the tunables of the navigation guard with environment
variable overrides for production tuning.

Environment Variables:
- PRIORITY_GUARD_NAVIGATION_TIMEOUT_SECONDS: How long a "go to item"
  navigation may stay unconfirmed before the modal may reappear
  (default: 5.0, min: 0.5, max: 60)
- PRIORITY_GUARD_FOREGROUND_RESYNC_DELAY_SECONDS: Delay after the app
  returns to the foreground before re-syncing (default: 2.0, min: 0, max: 30)
- PRIORITY_GUARD_EXEMPT_ROUTES: Comma separated route globs that never
  show the blocking modal (default: "/(tabs)", the home tab index)
- PRIORITY_GUARD_ENV: "production" (JSON logs) or "development" (console)
- SUPABASE_URL / SUPABASE_KEY: Backend project credentials
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from priority_guard.domain.errors.configuration import GuardConfigurationError


def _get_float_env(key: str, default: float) -> float:
    """Get float environment variable with default.

    Args:
        key: Environment variable name.
        default: Default value if not set or invalid.

    Returns:
        Parsed float value or default.
    """
    value = os.environ.get(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_list_env(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.environ.get(key)
    if value is None:
        return default
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _clamp(value: float, floor: float, ceiling: float) -> float:
    return max(floor, min(ceiling, value))


# =============================================================================
# Navigation timeout
# =============================================================================

DEFAULT_NAVIGATION_TIMEOUT_SECONDS = 5.0
MIN_NAVIGATION_TIMEOUT_SECONDS = 0.5
MAX_NAVIGATION_TIMEOUT_SECONDS = 60.0

# =============================================================================
# Foreground re-sync
# =============================================================================

DEFAULT_FOREGROUND_RESYNC_DELAY_SECONDS = 2.0
MIN_FOREGROUND_RESYNC_DELAY_SECONDS = 0.0
MAX_FOREGROUND_RESYNC_DELAY_SECONDS = 30.0

# =============================================================================
# Exempt routes
# =============================================================================

# The home tab index is never blocked
DEFAULT_EXEMPT_ROUTES: tuple[str, ...] = ("/(tabs)",)

PRODUCTION_ENVIRONMENT = "production"
DEVELOPMENT_ENVIRONMENT = "development"


@dataclass(frozen=True)
class GuardConfig:
    """Configuration for the navigation guard.

    Attributes:
        navigation_timeout_seconds: Timeout fallback for the navigating latch.
        foreground_resync_delay_seconds: Wait before re-syncing on foreground.
        exempt_routes: Route globs that never show the blocking modal.
        environment: Logging environment.
        supabase_url: Backend project URL.
        supabase_key: Backend anon key.
    """

    navigation_timeout_seconds: float = DEFAULT_NAVIGATION_TIMEOUT_SECONDS
    foreground_resync_delay_seconds: float = DEFAULT_FOREGROUND_RESYNC_DELAY_SECONDS
    exempt_routes: tuple[str, ...] = DEFAULT_EXEMPT_ROUTES
    environment: str = PRODUCTION_ENVIRONMENT
    supabase_url: str = ""
    supabase_key: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Reject values outside their allowed ranges.

        Raises:
            GuardConfigurationError: On the first invalid field.
        """
        if not (
            MIN_NAVIGATION_TIMEOUT_SECONDS
            <= self.navigation_timeout_seconds
            <= MAX_NAVIGATION_TIMEOUT_SECONDS
        ):
            raise GuardConfigurationError(
                "navigation_timeout_seconds",
                self.navigation_timeout_seconds,
                f"must be between {MIN_NAVIGATION_TIMEOUT_SECONDS} "
                f"and {MAX_NAVIGATION_TIMEOUT_SECONDS}",
            )
        if not (
            MIN_FOREGROUND_RESYNC_DELAY_SECONDS
            <= self.foreground_resync_delay_seconds
            <= MAX_FOREGROUND_RESYNC_DELAY_SECONDS
        ):
            raise GuardConfigurationError(
                "foreground_resync_delay_seconds",
                self.foreground_resync_delay_seconds,
                f"must be between {MIN_FOREGROUND_RESYNC_DELAY_SECONDS} "
                f"and {MAX_FOREGROUND_RESYNC_DELAY_SECONDS}",
            )
        if self.environment not in (PRODUCTION_ENVIRONMENT, DEVELOPMENT_ENVIRONMENT):
            raise GuardConfigurationError(
                "environment",
                self.environment,
                f"must be '{PRODUCTION_ENVIRONMENT}' or '{DEVELOPMENT_ENVIRONMENT}'",
            )

    @property
    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @classmethod
    def from_env(cls) -> GuardConfig:
        """Build configuration from environment variables.

        Numeric values outside their range are clamped rather than rejected,
        and unknown environments fall back to production.
        """
        environment = os.environ.get("PRIORITY_GUARD_ENV", PRODUCTION_ENVIRONMENT)
        if environment not in (PRODUCTION_ENVIRONMENT, DEVELOPMENT_ENVIRONMENT):
            environment = PRODUCTION_ENVIRONMENT

        return cls(
            navigation_timeout_seconds=_clamp(
                _get_float_env(
                    "PRIORITY_GUARD_NAVIGATION_TIMEOUT_SECONDS",
                    DEFAULT_NAVIGATION_TIMEOUT_SECONDS,
                ),
                MIN_NAVIGATION_TIMEOUT_SECONDS,
                MAX_NAVIGATION_TIMEOUT_SECONDS,
            ),
            foreground_resync_delay_seconds=_clamp(
                _get_float_env(
                    "PRIORITY_GUARD_FOREGROUND_RESYNC_DELAY_SECONDS",
                    DEFAULT_FOREGROUND_RESYNC_DELAY_SECONDS,
                ),
                MIN_FOREGROUND_RESYNC_DELAY_SECONDS,
                MAX_FOREGROUND_RESYNC_DELAY_SECONDS,
            ),
            exempt_routes=_get_list_env(
                "PRIORITY_GUARD_EXEMPT_ROUTES", DEFAULT_EXEMPT_ROUTES
            ),
            environment=environment,
            supabase_url=os.environ.get("SUPABASE_URL", ""),
            supabase_key=os.environ.get("SUPABASE_KEY", ""),
        )


# Default configuration for production use
DEFAULT_GUARD_CONFIG = GuardConfig()

# Test configuration: short timeouts, no foreground delay
TEST_GUARD_CONFIG = GuardConfig(
    navigation_timeout_seconds=MIN_NAVIGATION_TIMEOUT_SECONDS,
    foreground_resync_delay_seconds=0.0,
    environment=DEVELOPMENT_ENVIRONMENT,
)
