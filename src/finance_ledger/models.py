"""Pydantic models for ledger records and derived views."""

from __future__ import annotations

import math
import sqlite3
from datetime import date, datetime, time, timezone
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Largest value SQLite can store in an INTEGER column
MAX_RECORD_ID = 2**63 - 1


# ---------------------------------------------------------------------------
# Record Kind
# ---------------------------------------------------------------------------


class RecordKind(IntEnum):
    """Direction of a ledger record. Values are the persisted codes."""

    INCOME = 0
    EXPENSE = 1

    @property
    def label(self) -> str:
        return self.name.title()

    @classmethod
    def parse(cls, value: Any) -> RecordKind:
        """Resolve a kind from an enum member, integer code, or name.

        Raises:
            ValueError: If the value names no known kind
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Unknown record kind: {value!r}")
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(f"Unknown record kind code: {value}") from None
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown record kind: {value!r}") from None
        raise ValueError(f"Unknown record kind: {value!r}")


# ---------------------------------------------------------------------------
# Ledger Record
# ---------------------------------------------------------------------------


class Record(BaseModel):
    """A single income or expense entry.

    Records are immutable; the manager hands out these frozen instances
    so callers can never mutate the cached snapshot. ``id`` stays None
    until the store assigns one on insert.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = Field(default=None, gt=0, le=MAX_RECORD_ID)
    description: str
    amount: float
    category: str
    kind: RecordKind
    occurred_at: datetime

    @field_validator("description", "category")
    @classmethod
    def _validate_text(cls, value: str, info: ValidationInfo) -> str:
        if not value.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return value

    @field_validator("amount")
    @classmethod
    def _validate_amount(cls, value: float) -> float:
        if not math.isfinite(value) or value <= 0:
            raise ValueError("amount must be a positive number")
        return value

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> RecordKind:
        return RecordKind.parse(value)

    @field_validator("occurred_at", mode="before")
    @classmethod
    def _coerce_date(cls, value: Any) -> Any:
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min, tzinfo=timezone.utc)
        return value

    @field_validator("occurred_at")
    @classmethod
    def _normalize_occurred_at(cls, value: datetime) -> datetime:
        # Naive timestamps are taken as UTC; storage keeps whole seconds
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0)

    @property
    def kind_label(self) -> str:
        return self.kind.label

    @property
    def date_string(self) -> str:
        """Calendar date of the record as YYYY-MM-DD."""
        return self.occurred_at.strftime("%Y-%m-%d")

    @property
    def signed_amount(self) -> float:
        """Amount with the direction applied (expenses negative)."""
        return self.amount if self.kind is RecordKind.INCOME else -self.amount

    @property
    def occurred_at_epoch(self) -> int:
        return int(self.occurred_at.timestamp())

    def with_id(self, record_id: int) -> Record:
        """Return a copy of this record carrying the given id."""
        return self.model_copy(update={"id": record_id})

    def to_row(self) -> tuple[str, float, str, int, int]:
        """Column values in schema order, without the id."""
        return (
            self.description,
            self.amount,
            self.category,
            int(self.kind),
            self.occurred_at_epoch,
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Record:
        """Build a record from a ``records`` table row."""
        return cls(
            id=row["id"],
            description=row["description"],
            amount=row["amount"],
            category=row["category"],
            kind=row["kind"],
            occurred_at=datetime.fromtimestamp(row["occurred_at"], tz=timezone.utc),
        )


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class LedgerSummary(BaseModel):
    """Totals shown alongside the record list."""

    model_config = ConfigDict(frozen=True)

    total_income: float = 0.0
    total_expenses: float = 0.0
    balance: float = 0.0
    record_count: int = Field(default=0, ge=0)

    @property
    def is_negative(self) -> bool:
        return self.balance < 0
