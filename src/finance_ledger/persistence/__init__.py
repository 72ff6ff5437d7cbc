"""Persistence layer - SQLite storage for ledger records."""

from .database import LedgerStore

__all__ = ["LedgerStore"]
