"""Exceptions raised below the checker boundary.

Checkers never let these escape; they convert them into result values
according to the failure policy of the check being run.
"""


class ConflictEngineError(Exception):
    """Base exception for the conflict engine."""


class StoreQueryError(ConflictEngineError):
    """Raised when a read against the booking store fails."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        message = f"store read '{operation}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SnapshotMissError(ConflictEngineError):
    """Raised when a cached check asks for data the snapshot never fetched."""
