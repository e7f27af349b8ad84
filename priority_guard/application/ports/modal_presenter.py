"""Blocking modal presenter protocol.

The presentation of the modal is outside the engine; the guard only hands
over BlockingModalProps whenever they change.
"""

from __future__ import annotations

from typing import Protocol

from priority_guard.domain.models.navigation_state import BlockingModalProps


class ModalPresenterProtocol(Protocol):
    """Protocol for whatever draws the blocking modal."""

    def present(self, props: BlockingModalProps) -> None:
        """Show, update or hide the modal according to props.visible."""
        ...
