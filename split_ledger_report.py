"""
SplitLedger report
- Load an owner's stored ledger (bills, groups, friends) from the data directory.
- Print balances, and optionally export an Excel report and/or a CSV of bills.

Run:
  python split_ledger_report.py --xlsx report.xlsx --csv bills.csv

Dependencies:
  pip install openpyxl
"""
from __future__ import annotations
import argparse
import asyncio
import logging
from typing import List, Optional

from config import load_settings
from csv_handler import export_bills_to_csv
from excel_export import export_excel
from ledger import Ledger
from log_config import setup_logging
from store import JsonFileKeyValueStore, LedgerStore
from utils import parse_date

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export a SplitLedger report")
    parser.add_argument("--owner", help="ledger owner (default from settings)")
    parser.add_argument("--data-dir", help="directory holding the stored collections")
    parser.add_argument("--xlsx", help="write an Excel report to this path")
    parser.add_argument("--csv", help="write all bills as CSV to this path")
    parser.add_argument("--start", help="first date to include (YYYY-MM-DD)")
    parser.add_argument("--end", help="last date to include (YYYY-MM-DD)")
    parser.add_argument("--log-file", help="also write logs to this file")
    return parser


async def run(args: argparse.Namespace) -> Ledger:
    settings = load_settings()
    owner = args.owner or settings.owner
    store = LedgerStore(JsonFileKeyValueStore(args.data_dir or settings.data_dir))
    ledger = Ledger(store, owner, settings.owner_emoji, settings.default_currency)
    await ledger.load()

    start = parse_date(args.start) if args.start else None
    end = parse_date(args.end) if args.end else None

    for name, amount in ledger.balances().items():
        if amount.is_zero():
            print(f"{name}: settled up")
        elif amount.cents > 0:
            print(f"{name} owes you {amount}")
        else:
            print(f"You owe {name} {abs(amount)}")

    if args.xlsx:
        export_excel(ledger.bills, ledger.groups, ledger.owner_id, args.xlsx, start, end)
        logger.info("Exported Excel report to %s", args.xlsx)
    if args.csv:
        export_bills_to_csv(ledger.bills, args.csv)
        logger.info("Exported %d bills to %s", len(ledger.bills), args.csv)
    return ledger


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the report"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_file)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
