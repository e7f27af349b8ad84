"""Supabase async client factory."""

from __future__ import annotations

import structlog
from supabase import AsyncClient, acreate_client

from priority_guard.config.guard_config import GuardConfig
from priority_guard.domain.errors.configuration import GuardConfigurationError

logger = structlog.get_logger(__name__)


async def create_supabase_client(config: GuardConfig) -> AsyncClient:
    """Create an async Supabase client from guard configuration.

    Args:
        config: Configuration carrying SUPABASE_URL / SUPABASE_KEY.

    Returns:
        Connected async client (realtime connects lazily on first channel).

    Raises:
        GuardConfigurationError: If credentials are missing.
    """
    if not config.has_supabase_credentials:
        raise GuardConfigurationError(
            "supabase_url", config.supabase_url, "SUPABASE_URL and SUPABASE_KEY are required"
        )
    client = await acreate_client(config.supabase_url, config.supabase_key)
    logger.info("supabase_client_created", url=config.supabase_url)
    return client
