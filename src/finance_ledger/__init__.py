"""
Finance Ledger - Local income/expense ledger with live aggregates.

The ledger keeps an authoritative SQLite record set, a cached snapshot
for presentation code, and synchronous change notifications.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
