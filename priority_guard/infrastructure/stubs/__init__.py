"""In-memory stub implementations of the application ports.

Used by tests and by local development runs without a backend.
"""

from priority_guard.infrastructure.stubs.app_state_stub import AppStateStub
from priority_guard.infrastructure.stubs.modal_presenter_stub import (
    RecordingModalPresenterStub,
)
from priority_guard.infrastructure.stubs.priority_item_source_stub import (
    InMemoryPriorityItemSourceStub,
)
from priority_guard.infrastructure.stubs.router_stub import RouterStub
from priority_guard.infrastructure.stubs.session_provider_stub import SessionProviderStub

__all__ = [
    "AppStateStub",
    "InMemoryPriorityItemSourceStub",
    "RecordingModalPresenterStub",
    "RouterStub",
    "SessionProviderStub",
]
