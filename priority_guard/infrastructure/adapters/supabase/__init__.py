"""Supabase adapters for the priority item sources."""

from priority_guard.infrastructure.adapters.supabase.client import create_supabase_client
from priority_guard.infrastructure.adapters.supabase.priority_item_sources import (
    SupabaseAdminMessageSource,
    SupabaseAnnouncementSource,
    SupabaseMemberMessageSource,
    SupabasePrioritySource,
)
from priority_guard.infrastructure.adapters.supabase.realtime import (
    RealtimeSubscription,
    payload_to_change_event,
)

__all__ = [
    "RealtimeSubscription",
    "SupabaseAdminMessageSource",
    "SupabaseAnnouncementSource",
    "SupabaseMemberMessageSource",
    "SupabasePrioritySource",
    "create_supabase_client",
    "payload_to_change_event",
]
