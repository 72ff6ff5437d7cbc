"""Ledger service layer - record manager, configuration and logging."""

from .config import LedgerConfig
from .manager import LedgerManager

__all__ = ["LedgerManager", "LedgerConfig"]
