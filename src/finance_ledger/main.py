"""Finance Ledger command-line entry point."""

from __future__ import annotations

import argparse
import sys
from datetime import datetime, timezone

from finance_ledger.errors import LedgerConnectionError
from finance_ledger.models import Record, RecordKind
from finance_ledger.persistence.database import LedgerStore
from finance_ledger.service.config import LOG_LEVELS, LedgerConfig
from finance_ledger.service.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from finance_ledger.service.manager import LedgerManager

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAVAILABLE = 2


def _parse_date(value: str) -> datetime:
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD") from None
    return parsed.replace(tzinfo=timezone.utc)


def _format_record(record: Record) -> str:
    return (
        f"{record.id:>5}  {record.date_string}  {record.kind_label:<7}  "
        f"{record.category:<15} {record.signed_amount:>12.2f}  {record.description}"
    )


def _add_record_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("description", help="What the money was for")
    parser.add_argument("amount", type=float, help="Positive amount")
    parser.add_argument("category", help="Free-form category, e.g. Groceries")
    parser.add_argument("kind", choices=["income", "expense"], help="Record direction")
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Date of the record as YYYY-MM-DD (default: now)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finance-ledger",
        description="Finance Ledger - Local income and expense tracking",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="Path to the ledger database (default: $LEDGER_DB_PATH or data/finance_tracker.db)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=[level.lower() for level in LOG_LEVELS],
        help="Log level (default: $LEDGER_LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Add a record")
    _add_record_arguments(add)
    add.set_defaults(handler=_cmd_add)

    update = commands.add_parser("update", help="Replace an existing record")
    update.add_argument("id", type=int, help="Record id")
    _add_record_arguments(update)
    update.set_defaults(handler=_cmd_update)

    delete = commands.add_parser("delete", help="Delete a record")
    delete.add_argument("id", type=int, help="Record id")
    delete.set_defaults(handler=_cmd_delete)

    listing = commands.add_parser("list", help="List records, most recent first")
    filters = listing.add_mutually_exclusive_group()
    filters.add_argument("--category", default=None, help="Only this category")
    filters.add_argument("--kind", choices=["income", "expense"], default=None, help="Only this kind")
    listing.set_defaults(handler=_cmd_list)

    summary = commands.add_parser("summary", help="Show totals and balance")
    summary.add_argument("--category", default=None, help="Also show the total for a category")
    summary.set_defaults(handler=_cmd_summary)

    categories = commands.add_parser("categories", help="List known categories")
    categories.set_defaults(handler=_cmd_categories)

    return parser


def _cmd_add(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    if not manager.add(args.description, args.amount, args.category, args.kind, occurred_at=args.date):
        print("Failed to add record", file=sys.stderr)
        return EXIT_FAILED
    print("Record added")
    return EXIT_OK


def _cmd_update(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    if not manager.update(
        args.id, args.description, args.amount, args.category, args.kind, occurred_at=args.date
    ):
        print(f"Failed to update record {args.id}", file=sys.stderr)
        return EXIT_FAILED
    print(f"Record {args.id} updated")
    return EXIT_OK


def _cmd_delete(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    if not manager.delete(args.id):
        print(f"Failed to delete record {args.id}", file=sys.stderr)
        return EXIT_FAILED
    print(f"Record {args.id} deleted")
    return EXIT_OK


def _cmd_list(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    if args.category is not None:
        records = manager.get_by_category(args.category)
    elif args.kind is not None:
        records = manager.get_by_kind(args.kind)
    else:
        records = list(manager.get_all())

    for record in records:
        print(_format_record(record))
    print(f"Records: {len(records)}")
    return EXIT_OK


def _cmd_summary(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    summary = manager.summary()
    print(f"Total Income: ${summary.total_income:.2f}")
    print(f"Total Expenses: ${summary.total_expenses:.2f}")
    balance = f"Balance: ${summary.balance:.2f}"
    print(f"{balance} (overdrawn)" if summary.is_negative else balance)
    print(f"Records: {summary.record_count}")
    if args.category is not None:
        total = manager.get_total_by_category(args.category)
        print(f"Total for {args.category}: ${total:.2f}")
    return EXIT_OK


def _cmd_categories(manager: LedgerManager, config: LedgerConfig, args: argparse.Namespace) -> int:
    for category in sorted(set(config.default_categories) | manager.get_categories()):
        print(category)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the ledger CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = LedgerConfig.from_env()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    if args.db:
        config.db_path = args.db
    if args.log_level:
        config.log_level = args.log_level.upper()
    if args.json_logs:
        config.json_logs = True

    # Configure structured logging before anything else
    clear_context()
    configure_logging(level=config.log_level, json_output=config.json_logs)
    bind_context(db_path=config.db_path)

    try:
        store = LedgerStore.open(config.db_path)
    except LedgerConnectionError as e:
        logger.error("ledger_unavailable", db_path=config.db_path, error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    with store:
        manager = LedgerManager(store=store)
        return args.handler(manager, config, args)


if __name__ == "__main__":
    sys.exit(main())
