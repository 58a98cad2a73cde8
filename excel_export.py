"""
Excel export functionality for SplitLedger
"""
from __future__ import annotations
import re
from datetime import date
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from models import BillRecord, GroupRecord
from computations import (
    bill_date,
    filter_bills_by_date,
    group_total,
    net_balances,
    compute_summary,
    compute_transfers
)

MONEY_FORMAT = "0.00"
_BAD_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")

HEADER_FONT = Font(bold=True, color="FFFFFF")
HEADER_FILL = PatternFill("solid", fgColor="4F81BD")
_THIN = Side(style="thin", color="A0A0A0")
HEADER_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def _style_header(ws, row=1):
    """Bold white-on-blue header cells for one row"""
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = HEADER_BORDER


def _autosize_columns(ws, min_width=10, max_width=45):
    """Width from the longest rendered value in each column"""
    for col_idx, cells in enumerate(ws.iter_cols(), start=1):
        longest = max((len(str(c.value)) for c in cells if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(col_idx)].width = max(min_width, min(max_width, longest + 2))


def _sheet_title(wb, text: str) -> str:
    """Excel-safe unique sheet title (max 31 chars)"""
    base = _BAD_TITLE_CHARS.sub("_", text).strip() or "Sheet"
    title = base[:31]
    n = 2
    while title in wb.sheetnames:
        suffix = f" ({n})"
        title = base[:31 - len(suffix)] + suffix
        n += 1
    return title


def _people(bills: List[BillRecord]) -> List[str]:
    seen: Dict[str, None] = {}
    for b in bills:
        seen.setdefault(b.payer)
        for p in b.participants:
            seen.setdefault(p)
    return list(seen)


def _write_bill_table(ws, bills: List[BillRecord]) -> None:
    """One row per bill with a share column per participant and a SUM footer"""
    people = _people(bills)
    headers = ["date", "name", "payer", "currency", "split", "amount"] + people
    ws.append(headers)
    header_row = ws.max_row
    _style_header(ws, header_row)

    for b in sorted(bills, key=lambda x: (bill_date(x), x.name)):
        row = [bill_date(b).isoformat(), b.name, b.payer, b.currency, b.policy.value, b.amount.to_decimal()]
        row += [b.allocation[p].to_decimal() if p in b.allocation else None for p in people]
        ws.append(row)

    if bills:
        ws.append(["TOTALS"] + [""] * (len(headers) - 1))
        trow = ws.max_row
        ws.cell(trow, 1).font = Font(bold=True)
        # Using Excel formulas for better transparency
        for col in range(6, len(headers) + 1):
            letter = get_column_letter(col)
            ws.cell(trow, col).value = f"=SUM({letter}{header_row + 1}:{letter}{trow - 1})"

    for r in range(header_row + 1, ws.max_row + 1):
        for c in range(6, len(headers) + 1):
            ws.cell(r, c).number_format = MONEY_FORMAT


def _write_sheet(wb, title: str, headers: List[str], rows, money_cols) -> None:
    """Plain table sheet: styled, frozen header and money-formatted columns"""
    ws = wb.create_sheet(title)
    ws.append(headers)
    _style_header(ws, 1)
    ws.freeze_panes = "A2"
    for row in rows:
        ws.append(row)
        for col in money_cols:
            ws.cell(ws.max_row, col).number_format = MONEY_FORMAT
    _autosize_columns(ws)


def _balance_status(amount, self_id: str) -> str:
    if amount.cents > 0:
        return f"owes {self_id}"
    if amount.cents < 0:
        return f"{self_id} owes"
    return "settled"


def export_excel(
    bills: List[BillRecord],
    groups: List[GroupRecord],
    self_id: str,
    filepath: str,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> None:
    """
    Export ledger to Excel file with multiple sheets:
    - Bills (all bills in range)
    - One sheet per group, with the group total
    - Balances (relative to self_id)
    - Summary (paid / consumed / net per participant)
    - Transfers (suggested settle-up payments)
    """
    wb = Workbook()
    # remove default sheet
    wb.remove(wb.active)

    in_range = filter_bills_by_date(bills, start, end)

    ws = wb.create_sheet("Bills")
    _write_bill_table(ws, in_range)
    ws.freeze_panes = "A2"
    _autosize_columns(ws)

    for g in groups:
        ws = wb.create_sheet(_sheet_title(wb, f"{g.name} group"))
        ws.append([g.name, g.description])
        ws.cell(1, 1).font = Font(bold=True)
        ws.cell(1, 1).fill = PatternFill("solid", fgColor="D9E1F2")
        ws.append(["members", ", ".join(g.members)])
        ws.append(["total", group_total(g).to_decimal(), g.currency])
        ws.cell(3, 2).number_format = MONEY_FORMAT
        ws.append([])
        _write_bill_table(ws, filter_bills_by_date(g.bills, start, end))
        _autosize_columns(ws)

    balances = net_balances(in_range, self_id)
    _write_sheet(
        wb, "Balances", ["Counterparty", "Balance", "Status"],
        ([name, amt.to_decimal(), _balance_status(amt, self_id)] for name, amt in balances.items()),
        money_cols=(2,),
    )

    summary = compute_summary(in_range)
    _write_sheet(
        wb, "Summary", ["Person", "Paid", "Consumed", "Net (Paid-Consumed)"],
        ([p, s["paid"].to_decimal(), s["consumed"].to_decimal(), s["net"].to_decimal()]
         for p, s in summary.items()),
        money_cols=(2, 3, 4),
    )

    net = {p: s["net"] for p, s in summary.items()}
    _write_sheet(
        wb, "Transfers", ["From (Debtor)", "To (Creditor)", "Amount"],
        ([debtor, creditor, amt.to_decimal()] for debtor, creditor, amt in compute_transfers(net)),
        money_cols=(3,),
    )

    wb.save(filepath)
