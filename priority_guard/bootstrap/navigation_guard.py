"""Bootstrap wiring for the navigation guard.

Assembles normalizer, aggregator, route matcher, decision engine and guard
from configuration and the host app's router, session and app-state ports.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from priority_guard.application.services.navigation_decision_engine import (
    NavigationDecisionEngine,
)
from priority_guard.application.services.navigation_guard import NavigationGuard
from priority_guard.application.services.priority_aggregator import PriorityAggregator
from priority_guard.application.services.priority_record_normalizer import (
    PriorityRecordNormalizer,
)
from priority_guard.config.guard_config import GuardConfig
from priority_guard.domain.services.priority_route_matcher import PriorityRouteMatcher
from priority_guard.infrastructure.adapters.supabase.priority_item_sources import (
    SupabaseAdminMessageSource,
    SupabaseAnnouncementSource,
    SupabaseMemberMessageSource,
)
from priority_guard.infrastructure.observability import (
    generate_guard_session_id,
    set_guard_session_id,
)

if TYPE_CHECKING:
    from priority_guard.application.ports.app_state import AppStateProtocol
    from priority_guard.application.ports.modal_presenter import ModalPresenterProtocol
    from priority_guard.application.ports.priority_item_source import (
        PriorityItemSourceProtocol,
    )
    from priority_guard.application.ports.router import RouterProtocol
    from priority_guard.application.ports.session_provider import SessionProviderProtocol

logger = structlog.get_logger(__name__)


def build_supabase_sources(client: Any) -> list[PriorityItemSourceProtocol]:
    """Create the three Supabase-backed sources sharing one client."""
    return [
        SupabaseMemberMessageSource(client),
        SupabaseAnnouncementSource(client),
        SupabaseAdminMessageSource(client),
    ]


def build_navigation_guard(
    router: RouterProtocol,
    session: SessionProviderProtocol,
    sources: Sequence[PriorityItemSourceProtocol],
    app_state: AppStateProtocol | None = None,
    modal_presenter: ModalPresenterProtocol | None = None,
    config: GuardConfig | None = None,
) -> NavigationGuard:
    """Wire a navigation guard.

    Args:
        router: Host app router.
        session: Host app session provider.
        sources: Priority item sources (Supabase or stubs).
        app_state: Foreground/background events, if the host has them.
        modal_presenter: Receives modal props on every change.
        config: Guard configuration (GuardConfig.from_env() when omitted).

    Returns:
        An unmounted NavigationGuard.
    """
    config = config or GuardConfig.from_env()
    aggregator = PriorityAggregator(sources, normalizer=PriorityRecordNormalizer())
    engine = NavigationDecisionEngine(
        aggregator,
        session,
        router,
        route_matcher=PriorityRouteMatcher(config.exempt_routes),
    )
    logger.debug(
        "navigation_guard_built",
        sources=list(aggregator.source_names),
        exempt_routes=list(config.exempt_routes),
    )
    return NavigationGuard(
        engine,
        aggregator,
        router,
        session,
        app_state=app_state,
        modal_presenter=modal_presenter,
        config=config,
    )


async def mount_navigation_guard(guard: NavigationGuard) -> str:
    """Mount a guard under a fresh guard session id.

    Returns:
        The guard session id bound for log correlation.
    """
    session_id = generate_guard_session_id()
    set_guard_session_id(session_id)
    await guard.mount()
    return session_id


__all__ = [
    "build_navigation_guard",
    "build_supabase_sources",
    "mount_navigation_guard",
]
