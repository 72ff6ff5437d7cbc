"""Ledger Store - SQLite persistence for ledger records.

Owns the physical connection to the backing database and exposes
parameterized CRUD and aggregate queries over a single ``records``
table. Connection internals never leave this module; every sqlite3
failure is re-raised as a ledger error.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..errors import LedgerConnectionError, LedgerReadError, LedgerWriteError
from ..models import MAX_RECORD_ID, Record, RecordKind

logger = logging.getLogger(__name__)

# Raised by sqlite3 while binding parameters, outside sqlite3.Error
BIND_ERRORS = (OverflowError, UnicodeEncodeError)

MEMORY_LOCATION = ":memory:"

# AUTOINCREMENT keeps ids monotonic: a deleted id is never handed out again
SCHEMA_SQL = """
-- Ledger records table
CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    description TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount > 0),
    category TEXT NOT NULL,
    kind INTEGER NOT NULL CHECK (kind IN (0, 1)),
    occurred_at INTEGER NOT NULL
);

-- Indexes for filtered listings and sums
CREATE INDEX IF NOT EXISTS idx_records_category ON records(category);
CREATE INDEX IF NOT EXISTS idx_records_kind ON records(kind);
CREATE INDEX IF NOT EXISTS idx_records_occurred_at ON records(occurred_at);
"""


class LedgerStore:
    """Repository for persistent ledger records.

    Every filter value is passed as a bound parameter. Listings are
    ordered most recent first, ties broken by id descending, and are
    re-queried on each call.

    Example:
        with LedgerStore.open("data/finance_tracker.db") as store:
            record_id = store.insert(
                Record(
                    description="Paycheck",
                    amount=2000.0,
                    category="Salary",
                    kind=RecordKind.INCOME,
                    occurred_at=datetime.now(timezone.utc),
                )
            )
            income = store.sum_by_kind(RecordKind.INCOME)
    """

    def __init__(self, location: str | Path) -> None:
        """Open (or create) the store at ``location``.

        Args:
            location: Path to SQLite database file, or ":memory:"

        Raises:
            LedgerConnectionError: If the location is inaccessible or the
                schema cannot be ensured
        """
        self.location = str(location)
        self._conn: sqlite3.Connection | None = None

        try:
            if self.location != MEMORY_LOCATION:
                # Ensure directory exists
                Path(self.location).parent.mkdir(parents=True, exist_ok=True)
            self._connect()
            self._ensure_schema()
        except (OSError, sqlite3.Error) as exc:
            self.close()
            raise LedgerConnectionError(
                f"Cannot open ledger store at {self.location}: {exc}"
            ) from exc

        logger.debug(f"Ledger store opened at {self.location}")

    @classmethod
    def open(cls, location: str | Path) -> LedgerStore:
        """Open or create a store at ``location``."""
        return cls(location)

    def _connect(self) -> None:
        """Establish the database connection."""
        self._conn = sqlite3.connect(self.location)
        self._conn.row_factory = sqlite3.Row
        if self.location != MEMORY_LOCATION:
            # Enable WAL mode for crash-safe writes
            self._conn.execute("PRAGMA journal_mode = WAL")
            # Sync only at critical moments (WAL provides durability)
            self._conn.execute("PRAGMA synchronous = NORMAL")
        # Wait up to 5 seconds if database is locked
        self._conn.execute("PRAGMA busy_timeout = 5000")

    def _ensure_schema(self) -> None:
        """Ensure database schema exists."""
        conn = self._get_conn()
        conn.executescript(SCHEMA_SQL)
        conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        """Get the open database connection."""
        if self._conn is None:
            raise LedgerConnectionError(f"Ledger store at {self.location} is closed")
        return self._conn

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _execute_write(
        self,
        action: str,
        sql: str,
        params: tuple[Any, ...],
        record_id: int | None = None,
    ) -> sqlite3.Cursor:
        """Run a single mutating statement and commit it."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
        except (sqlite3.Error, *BIND_ERRORS) as exc:
            try:
                conn.rollback()
            except sqlite3.Error as rollback_exc:
                logger.warning(f"Rollback after failed {action} also failed: {rollback_exc}")
            logger.error(f"Failed to {action} record {record_id}: {exc}")
            raise LedgerWriteError(
                f"Failed to {action} record: {exc}", record_id=record_id
            ) from exc
        return cursor

    def insert(self, record: Record) -> int:
        """Persist a new record.

        Args:
            record: Record without an id; the store assigns one

        Returns:
            The id assigned by the store

        Raises:
            LedgerWriteError: On constraint violation or I/O failure
        """
        if record.id is not None:
            raise LedgerWriteError(
                "New records must not carry an id", record_id=record.id
            )

        cursor = self._execute_write(
            "insert",
            """
            INSERT INTO records (description, amount, category, kind, occurred_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            record.to_row(),
        )
        record_id = cursor.lastrowid
        if record_id is None:
            raise LedgerWriteError("Inserted record has no id")

        logger.debug(f"Inserted record {record_id}")
        return record_id

    def update(self, record: Record) -> bool:
        """Replace every field of the row matching ``record.id``.

        Returns:
            True if a row was matched, False if no such id exists

        Raises:
            LedgerWriteError: On constraint violation or I/O failure
        """
        if record.id is None:
            raise LedgerWriteError("Cannot update a record without an id")

        cursor = self._execute_write(
            "update",
            """
            UPDATE records
            SET description = ?, amount = ?, category = ?, kind = ?, occurred_at = ?
            WHERE id = ?
            """,
            (*record.to_row(), record.id),
            record_id=record.id,
        )
        return cursor.rowcount > 0

    def delete(self, record_id: int) -> bool:
        """Remove the row matching ``record_id``.

        Returns:
            True if a row was removed, False if no such id exists

        Raises:
            LedgerWriteError: On I/O failure
        """
        if not 0 < record_id <= MAX_RECORD_ID:
            return False

        cursor = self._execute_write(
            "delete",
            "DELETE FROM records WHERE id = ?",
            (record_id,),
            record_id=record_id,
        )
        return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _fetch_records(self, sql: str, params: tuple[Any, ...] = ()) -> list[Record]:
        conn = self._get_conn()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [Record.from_row(row) for row in rows]
        except (sqlite3.Error, *BIND_ERRORS) as exc:
            raise LedgerReadError(f"Failed to read records: {exc}") from exc
        except ValidationError as exc:
            raise LedgerReadError(f"Stored record is malformed: {exc}") from exc

    def _fetch_total(self, sql: str, params: tuple[Any, ...]) -> float:
        conn = self._get_conn()
        try:
            row = conn.execute(sql, params).fetchone()
        except (sqlite3.Error, *BIND_ERRORS) as exc:
            raise LedgerReadError(f"Failed to sum records: {exc}") from exc
        return float(row["total"]) if row else 0.0

    def get(self, record_id: int) -> Record | None:
        """Retrieve a single record by id, or None if absent."""
        if not 0 < record_id <= MAX_RECORD_ID:
            return None
        records = self._fetch_records(
            """
            SELECT id, description, amount, category, kind, occurred_at
            FROM records
            WHERE id = ?
            """,
            (record_id,),
        )
        return records[0] if records else None

    def list_all(self) -> list[Record]:
        """All records, most recent first."""
        return self._fetch_records(
            """
            SELECT id, description, amount, category, kind, occurred_at
            FROM records
            ORDER BY occurred_at DESC, id DESC
            """
        )

    def list_by_category(self, category: str) -> list[Record]:
        """Records in ``category``, most recent first."""
        return self._fetch_records(
            """
            SELECT id, description, amount, category, kind, occurred_at
            FROM records
            WHERE category = ?
            ORDER BY occurred_at DESC, id DESC
            """,
            (category,),
        )

    def list_by_kind(self, kind: RecordKind) -> list[Record]:
        """Records of ``kind``, most recent first."""
        return self._fetch_records(
            """
            SELECT id, description, amount, category, kind, occurred_at
            FROM records
            WHERE kind = ?
            ORDER BY occurred_at DESC, id DESC
            """,
            (int(RecordKind.parse(kind)),),
        )

    def sum_by_kind(self, kind: RecordKind) -> float:
        """Sum of amounts for ``kind``; 0.0 when nothing matches."""
        return self._fetch_total(
            "SELECT COALESCE(SUM(amount), 0.0) AS total FROM records WHERE kind = ?",
            (int(RecordKind.parse(kind)),),
        )

    def sum_by_category(self, category: str) -> float:
        """Sum of amounts in ``category``; 0.0 when nothing matches."""
        return self._fetch_total(
            "SELECT COALESCE(SUM(amount), 0.0) AS total FROM records WHERE category = ?",
            (category,),
        )

    def count(self) -> int:
        """Count total records in the store."""
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT COUNT(*) AS count FROM records").fetchone()
        except sqlite3.Error as exc:
            raise LedgerReadError(f"Failed to count records: {exc}") from exc
        return row["count"] if row else 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> LedgerStore:
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit - closes connection."""
        self.close()
