"""Error taxonomy for the ledger core."""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, message: str, record_id: int | None = None):
        super().__init__(message)
        self.record_id = record_id


class LedgerConnectionError(LedgerError):
    """Backing store could not be opened or its schema ensured."""
    pass


class LedgerValidationError(LedgerError):
    """Caller input rejected before reaching the store."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class LedgerWriteError(LedgerError):
    """Store rejected or failed a mutation."""
    pass


class LedgerReadError(LedgerError):
    """Store failed to answer a query."""
    pass


class LedgerNotInitializedError(LedgerError):
    """Store-backed operation attempted before a successful open."""
    pass


__all__ = [
    "LedgerError",
    "LedgerConnectionError",
    "LedgerValidationError",
    "LedgerWriteError",
    "LedgerReadError",
    "LedgerNotInitializedError",
]
