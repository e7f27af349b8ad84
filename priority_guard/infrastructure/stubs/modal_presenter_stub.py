"""Recording modal presenter stub."""

from __future__ import annotations

from priority_guard.domain.models.navigation_state import BlockingModalProps


class RecordingModalPresenterStub:
    """Keeps every set of props the guard presented."""

    def __init__(self) -> None:
        self.presented: list[BlockingModalProps] = []

    def present(self, props: BlockingModalProps) -> None:
        self.presented.append(props)

    @property
    def last(self) -> BlockingModalProps | None:
        return self.presented[-1] if self.presented else None
