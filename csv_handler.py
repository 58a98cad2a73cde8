"""
CSV export and import functionality for SplitLedger
"""
from __future__ import annotations
import csv
import logging
from typing import List

from models import BillRecord
from schema import RECORD_ERRORS, bill_from_dict

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "id", "date", "name", "amount", "currency", "payer", "split_type",
    "allocations", "note", "group_id", "created_at",
]


def export_bills_to_csv(bills: List[BillRecord], filepath: str) -> None:
    """
    Export bills list to CSV file
    Allocations are written as 'name:amount;name:amount' in participant order
    """
    with open(filepath, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)

        for b in bills:
            alloc_str = ';'.join([f"{k}:{v}" for k, v in b.allocation.items()])
            writer.writerow([
                b.id,
                b.date,
                b.name,
                str(b.amount),
                b.currency,
                b.payer,
                b.policy.value,
                alloc_str,
                b.note,
                b.group_id or "",
                b.created_at,
            ])


def import_bills_from_csv(filepath: str) -> List[BillRecord]:
    """
    Import bills list from CSV file
    Rows that do not form a valid bill are skipped and logged.
    """
    bills = []

    with open(filepath, 'r', encoding='utf-8', newline='') as f:
        reader = csv.DictReader(f)

        for line_no, row in enumerate(reader, start=2):
            allocations = {}
            if row.get('allocations'):
                for pair in row['allocations'].split(';'):
                    if ':' in pair:
                        k, v = pair.rsplit(':', 1)
                        allocations[k.strip()] = v.strip()

            record = {
                "id": row.get('id'),
                "date": row.get('date'),
                "name": row.get('name'),
                "amount": row.get('amount'),
                "currency": row.get('currency'),
                "payer": row.get('payer'),
                "splitType": row.get('split_type') or "equal",
                "splitWith": list(allocations),
                "splitAmounts": allocations,
                "note": row.get('note', ''),
                "groupId": row.get('group_id') or None,
                "createdAt": row.get('created_at') or row.get('date'),
            }
            try:
                bills.append(bill_from_dict(record))
            except RECORD_ERRORS as ex:
                logger.warning("Skipping CSV line %d in %s: %s", line_no, filepath, ex)

    return bills
