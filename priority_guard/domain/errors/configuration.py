"""Configuration errors."""

from __future__ import annotations

from priority_guard.domain.exceptions import PriorityGuardError


class GuardConfigurationError(PriorityGuardError):
    """Raised when a guard configuration value is outside its allowed range.

    Attributes:
        field_name: The offending configuration field.
        value: The rejected value.
    """

    def __init__(self, field_name: str, value: object, reason: str) -> None:
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid guard configuration {field_name}={value!r}: {reason}")
