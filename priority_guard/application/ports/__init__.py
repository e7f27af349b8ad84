"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- PriorityItemSourceProtocol: outstanding priority rows + realtime changes
- RouterProtocol: current route, navigation, route-change events
- SessionProviderProtocol: signed-in member identity
- AppStateProtocol: foreground/background transitions
- ModalPresenterProtocol: blocking modal presentation
"""

from priority_guard.application.ports.app_state import (
    APP_STATE_ACTIVE,
    AppStateListener,
    AppStateProtocol,
)
from priority_guard.application.ports.modal_presenter import ModalPresenterProtocol
from priority_guard.application.ports.priority_item_source import (
    ChangeCallback,
    ChangeEvent,
    ChangeType,
    PriorityItemSourceProtocol,
    RawRecord,
    SubscriptionProtocol,
)
from priority_guard.application.ports.router import RouteListener, RouterProtocol
from priority_guard.application.ports.session_provider import (
    SessionListener,
    SessionProviderProtocol,
)

__all__: list[str] = [
    "APP_STATE_ACTIVE",
    "AppStateListener",
    "AppStateProtocol",
    "ChangeCallback",
    "ChangeEvent",
    "ChangeType",
    "ModalPresenterProtocol",
    "PriorityItemSourceProtocol",
    "RawRecord",
    "RouteListener",
    "RouterProtocol",
    "SessionListener",
    "SessionProviderProtocol",
    "SubscriptionProtocol",
]
