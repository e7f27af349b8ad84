"""
Pytest configuration and shared fixtures for Priority Guard tests.

Testing Standards:
- All async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for async function mocking
- Scenario tests run over the in-memory stubs in priority_guard.infrastructure.stubs
- Unit tests go in tests/unit/
- Integration tests go in tests/integration/
"""

import pytest

from priority_guard.domain.models.priority_item import PriorityItemType
from priority_guard.infrastructure.stubs import (
    AppStateStub,
    InMemoryPriorityItemSourceStub,
    RecordingModalPresenterStub,
    RouterStub,
    SessionProviderStub,
)
from tests.helpers import MEMBER


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from priority_guard import __version__

    return __version__


@pytest.fixture
def member_messages() -> InMemoryPriorityItemSourceStub:
    """Empty member message source."""
    return InMemoryPriorityItemSourceStub("member_messages", PriorityItemType.MEMBER_MESSAGE)


@pytest.fixture
def announcements() -> InMemoryPriorityItemSourceStub:
    """Empty announcement source."""
    return InMemoryPriorityItemSourceStub("announcements", PriorityItemType.ANNOUNCEMENT)


@pytest.fixture
def admin_messages() -> InMemoryPriorityItemSourceStub:
    """Empty admin message source."""
    return InMemoryPriorityItemSourceStub("admin_messages", PriorityItemType.ADMIN_MESSAGE)


@pytest.fixture
def sources(
    member_messages: InMemoryPriorityItemSourceStub,
    announcements: InMemoryPriorityItemSourceStub,
    admin_messages: InMemoryPriorityItemSourceStub,
) -> list[InMemoryPriorityItemSourceStub]:
    """All three sources, in registration order."""
    return [member_messages, announcements, admin_messages]


@pytest.fixture
def router() -> RouterStub:
    """Router sitting on the calendar tab."""
    return RouterStub("/(tabs)/calendar")


@pytest.fixture
def session() -> SessionProviderStub:
    """Session with the default member signed in."""
    return SessionProviderStub(MEMBER)


@pytest.fixture
def app_state() -> AppStateStub:
    return AppStateStub()


@pytest.fixture
def presenter() -> RecordingModalPresenterStub:
    return RecordingModalPresenterStub()
