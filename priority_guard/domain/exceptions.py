"""Base exception classes for the Priority Guard domain layer."""


class PriorityGuardError(Exception):
    """Base exception for all domain errors.

    All domain-specific exceptions MUST inherit from this class so callers
    can catch the whole family at the guard boundary.
    """

    def __init__(self, message: str = "") -> None:
        """Initialize the exception with an optional message.

        Args:
            message: Human-readable error description.
        """
        super().__init__(message)
