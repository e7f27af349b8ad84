"""Priority item source and record errors.

Source errors are recovered locally by the aggregator: the last known-good
items are kept and the error is surfaced as a flag. Record errors are
fail-soft: the offending record is skipped, the rest of the batch survives.
"""

from __future__ import annotations

from priority_guard.domain.exceptions import PriorityGuardError


class PrioritySourceError(PriorityGuardError):
    """Raised when a priority item source cannot fetch, subscribe or write.

    Attributes:
        source_name: Name of the failing source.
        operation: The operation that failed (fetch, subscribe, acknowledge...).
    """

    def __init__(self, source_name: str, operation: str, detail: str = "") -> None:
        self.source_name = source_name
        self.operation = operation
        self.detail = detail
        message = f"Priority source '{source_name}' failed during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class InvalidPriorityRecordError(PriorityGuardError):
    """Raised when a raw backend record cannot be normalized.

    Attributes:
        record_id: Identifier of the record, if it had one.
        reason: What was wrong with the record.
    """

    def __init__(self, record_id: str | None, reason: str) -> None:
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"Invalid priority record {record_id or '<no id>'}: {reason}")
