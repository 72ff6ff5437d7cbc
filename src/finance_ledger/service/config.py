"""Configuration primitives for the ledger."""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, field

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Salary",
    "Rent",
    "Groceries",
    "Transportation",
    "Entertainment",
    "Utilities",
    "Healthcare",
    "Other",
)


@dataclass(slots=True)
class LedgerConfig:
    """Runtime configuration for the ledger.

    Configuration Sources (priority order):
    1. Direct constructor arguments (or CLI flags)
    2. Environment variables (LEDGER_*)
    3. Default values

    Attributes:
        db_path: SQLite database path (default: data/finance_tracker.db)
        log_level: Log level name (default: INFO)
        json_logs: Force JSON logs on/off; None auto-detects from the TTY
        default_categories: Categories offered to callers before any
            record exists. The store does not enforce them.
    """

    db_path: str = "data/finance_tracker.db"
    log_level: str = "INFO"
    json_logs: bool | None = None
    default_categories: Sequence[str] = field(
        default_factory=lambda: DEFAULT_CATEGORIES
    )

    def __post_init__(self) -> None:
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log level {self.log_level!r}; expected one of {', '.join(LOG_LEVELS)}"
            )

    @classmethod
    def from_env(cls) -> LedgerConfig:
        """Create configuration from environment variables.

        Optional:
            LEDGER_DB_PATH: SQLite database path
            LEDGER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
            LEDGER_LOG_JSON: '1' forces JSON logs, '0' forces console logs
            LEDGER_CATEGORIES: Comma-separated list of default categories
        """
        json_env = os.environ.get("LEDGER_LOG_JSON")
        json_logs = None if json_env is None else json_env.strip() == "1"

        config = cls(
            db_path=os.environ.get("LEDGER_DB_PATH", "data/finance_tracker.db"),
            log_level=os.environ.get("LEDGER_LOG_LEVEL", "INFO"),
            json_logs=json_logs,
        )

        categories_str = os.environ.get("LEDGER_CATEGORIES", "")
        if categories_str:
            categories = [c.strip() for c in categories_str.split(",") if c.strip()]
            if categories:
                config.default_categories = tuple(categories)

        return config
