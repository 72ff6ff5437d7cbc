"""Ledger Manager - validated mutations, cached snapshot, live aggregates.

The manager sits between callers (UI code, scripts) and the store:

- Every mutation is validated, persisted through the store, and only
  then followed by a snapshot reload and observer notification.
- The snapshot is a private cache of all records, always reloadable
  from the store. Callers receive an immutable tuple of frozen records.
- Totals and balance are always asked of the store, never summed from
  the cache.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from ..errors import (
    LedgerConnectionError,
    LedgerNotInitializedError,
    LedgerValidationError,
    LedgerWriteError,
)
from ..models import LedgerSummary, Record, RecordKind
from ..persistence.database import LedgerStore
from .logging import get_logger

logger = get_logger(__name__)

Observer = Callable[[], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerManager:
    """Coordinates store access, the record snapshot and change observers.

    A manager is Ready once its store is open. If opening fails the
    manager still exists, ``is_ready()`` returns False, ``init_error``
    holds the cause, and every store-backed call raises
    ``LedgerNotInitializedError``.

    Example:
        manager = LedgerManager("data/finance_tracker.db")
        manager.subscribe(lambda: print("ledger changed"))

        manager.add("Paycheck", 2000.0, "Salary", RecordKind.INCOME)
        manager.add("Rent", 1200.0, "Housing", RecordKind.EXPENSE)

        manager.get_balance()  # 800.0
    """

    def __init__(
        self,
        location: str | Path | None = None,
        *,
        store: LedgerStore | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the manager and load the first snapshot.

        Args:
            location: Database location to open. Ignored if ``store`` is given
            store: An already opened store to use instead of ``location``
            clock: Source of timestamps for new and replaced records
        """
        if location is None and store is None:
            raise ValueError("Either a store location or an open store is required")

        self._store: LedgerStore | None = None
        self._records: tuple[Record, ...] = ()
        self._observers: dict[int, Observer] = {}
        self._handles = itertools.count(1)
        self._clock = clock or _utcnow
        self.init_error: LedgerConnectionError | None = None

        if store is None:
            try:
                store = LedgerStore.open(location)
            except LedgerConnectionError as exc:
                self.init_error = exc
                logger.error("ledger_init_failed", location=str(location), error=str(exc))
                return

        self._store = store
        self._reload()
        logger.info("ledger_ready", location=store.location, records=len(self._records))

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def is_ready(self) -> bool:
        """Whether the backing store is open and usable."""
        return self._store is not None and self._store.is_open

    def _require_store(self) -> LedgerStore:
        if self._store is None or not self._store.is_open:
            raise LedgerNotInitializedError("Ledger store is not initialized")
        return self._store

    def _reload(self) -> None:
        self._records = tuple(self._require_store().list_all())

    def _build_record(
        self,
        description: str,
        amount: float,
        category: str,
        kind: RecordKind | int | str,
        occurred_at: datetime | None,
        record_id: int | None = None,
    ) -> Record:
        try:
            return Record(
                id=record_id,
                description=description,
                amount=amount,
                category=category,
                kind=kind,
                occurred_at=occurred_at if occurred_at is not None else self._clock(),
            )
        except ValidationError as exc:
            error = exc.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else None
            raise LedgerValidationError(error["msg"], field=field) from exc

    def _committed(self) -> None:
        """Reload the snapshot and notify after a confirmed store write."""
        self._reload()
        self._notify()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(
        self,
        description: str,
        amount: float,
        category: str,
        kind: RecordKind | int | str,
        occurred_at: datetime | None = None,
    ) -> bool:
        """Add a new record. The store assigns its id.

        Returns:
            True if the record was persisted, False if the input was
            rejected or the store failed the write

        Raises:
            LedgerNotInitializedError: If the store is not open
        """
        store = self._require_store()

        try:
            record = self._build_record(description, amount, category, kind, occurred_at)
        except LedgerValidationError as exc:
            logger.warning("record_rejected", operation="add", field=exc.field, reason=str(exc))
            return False

        try:
            record_id = store.insert(record)
        except LedgerWriteError as exc:
            logger.error("record_write_failed", operation="add", error=str(exc))
            return False

        logger.info(
            "record_added",
            record_id=record_id,
            kind=record.kind_label,
            category=record.category,
            amount=record.amount,
        )
        self._committed()
        return True

    def update(
        self,
        record_id: int,
        description: str,
        amount: float,
        category: str,
        kind: RecordKind | int | str,
        occurred_at: datetime | None = None,
    ) -> bool:
        """Replace every field of an existing record.

        ``occurred_at`` defaults to the current time, as with ``add``.

        Returns:
            True if the record was replaced, False if the input was
            rejected, no record has ``record_id``, or the write failed

        Raises:
            LedgerNotInitializedError: If the store is not open
        """
        store = self._require_store()

        try:
            record = self._build_record(
                description, amount, category, kind, occurred_at, record_id=record_id
            )
        except LedgerValidationError as exc:
            logger.warning(
                "record_rejected",
                operation="update",
                record_id=record_id,
                field=exc.field,
                reason=str(exc),
            )
            return False

        try:
            matched = store.update(record)
        except LedgerWriteError as exc:
            logger.error("record_write_failed", operation="update", record_id=record_id, error=str(exc))
            return False

        if not matched:
            logger.warning("record_not_found", operation="update", record_id=record_id)
            return False

        logger.info("record_updated", record_id=record_id)
        self._committed()
        return True

    def delete(self, record_id: int) -> bool:
        """Permanently delete a record.

        Returns:
            True if the record was removed, False if no record has
            ``record_id`` or the write failed

        Raises:
            LedgerNotInitializedError: If the store is not open
        """
        store = self._require_store()

        try:
            removed = store.delete(record_id)
        except LedgerWriteError as exc:
            logger.error("record_write_failed", operation="delete", record_id=record_id, error=str(exc))
            return False

        if not removed:
            logger.warning("record_not_found", operation="delete", record_id=record_id)
            return False

        logger.info("record_deleted", record_id=record_id)
        self._committed()
        return True

    def refresh(self) -> None:
        """Reload the snapshot from the store and notify all observers.

        Picks up changes made to the store outside this manager.
        """
        self._require_store()
        self._reload()
        logger.debug("ledger_refreshed", records=len(self._records))
        self._notify()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> tuple[Record, ...]:
        """All records as of the last reload, most recent first."""
        return self._records

    def find(self, record_id: int) -> Record | None:
        """Look up a record in the snapshot by id."""
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def get_by_category(self, category: str) -> list[Record]:
        """Records in ``category``, queried live from the store."""
        return self._require_store().list_by_category(category)

    def get_by_kind(self, kind: RecordKind | int | str) -> list[Record]:
        """Records of ``kind``, queried live from the store.

        An unrecognised kind matches nothing.
        """
        store = self._require_store()
        try:
            resolved = RecordKind.parse(kind)
        except ValueError:
            logger.warning("unknown_record_kind", kind=repr(kind))
            return []
        return store.list_by_kind(resolved)

    def get_total_income(self) -> float:
        return self._require_store().sum_by_kind(RecordKind.INCOME)

    def get_total_expenses(self) -> float:
        return self._require_store().sum_by_kind(RecordKind.EXPENSE)

    def get_balance(self) -> float:
        """Total income minus total expenses."""
        return self.get_total_income() - self.get_total_expenses()

    def get_total_by_category(self, category: str) -> float:
        return self._require_store().sum_by_category(category)

    def get_categories(self) -> frozenset[str]:
        """Distinct categories present in the snapshot."""
        return frozenset(record.category for record in self._records)

    def summary(self) -> LedgerSummary:
        """Live totals plus the snapshot record count."""
        income = self.get_total_income()
        expenses = self.get_total_expenses()
        return LedgerSummary(
            total_income=income,
            total_expenses=expenses,
            balance=income - expenses,
            record_count=len(self._records),
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> int:
        """Register a zero-argument callback fired after every change.

        Returns:
            Handle to pass to ``unsubscribe``
        """
        if not callable(observer):
            raise TypeError(f"Observer must be callable, got {type(observer).__name__}")
        handle = next(self._handles)
        self._observers[handle] = observer
        return handle

    def unsubscribe(self, handle: int) -> bool:
        """Remove a callback. Returns False if the handle is unknown."""
        return self._observers.pop(handle, None) is not None

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self) -> None:
        # Snapshot the registry so observers may unsubscribe while being called
        for observer in list(self._observers.values()):
            observer()

    def __repr__(self) -> str:
        state = "ready" if self.is_ready() else "uninitialized"
        return f"<LedgerManager {state} records={len(self._records)}>"
