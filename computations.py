"""
Balance aggregation and reporting computations for SplitLedger
"""
from __future__ import annotations
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from config import HIGH_BALANCE_THRESHOLD
from models import BillRecord, Friend, GroupRecord
from money import Money
from utils import parse_timestamp

SETTLED_TOLERANCE = Money(1)


def net_balances(bills: Iterable[BillRecord], self_id: str) -> Dict[str, Money]:
    """
    Net each counterparty against self_id.
    Positive -> they owe self; negative -> self owes them. Bills that involve
    neither side of a pair leave it untouched.
    """
    balances: Dict[str, Money] = {}
    for bill in bills:
        payer = bill.payer
        for p, share in bill.allocation.items():
            if p == payer:
                continue
            if payer == self_id:
                balances[p] = balances.get(p, Money.zero()) + share
            elif p == self_id:
                balances[payer] = balances.get(payer, Money.zero()) - share
    return balances


def friend_balances(bills: Iterable[BillRecord], self_id: str, friends: Iterable[str]) -> Dict[str, Money]:
    """net_balances restricted to known friends, every friend present (zero if untouched)"""
    names = [f for f in friends if f != self_id]
    out = {name: Money.zero() for name in names}
    for name, amount in net_balances(bills, self_id).items():
        if name in out:
            out[name] = amount
    return out


def balance_matrix(bills: Iterable[BillRecord]) -> Dict[str, Dict[str, Money]]:
    """net_balances from every participant's perspective; antisymmetric"""
    bills = list(bills)
    people: Dict[str, None] = {}
    for bill in bills:
        people.setdefault(bill.payer)
        for p in bill.allocation:
            people.setdefault(p)
    return {p: net_balances(bills, p) for p in people}


def group_total(group: GroupRecord) -> Money:
    """Plain sum of bill amounts in a group (not a netting result)"""
    return sum((b.amount for b in group.bills), Money.zero())


def bill_date(bill: BillRecord) -> date:
    return parse_timestamp(bill.date or bill.created_at).date()


def filter_bills_by_date(
    bills: Iterable[BillRecord],
    start: Optional[date],
    end: Optional[date]
) -> List[BillRecord]:
    """Filter bills by inclusive date range"""
    out = []
    for b in bills:
        d = bill_date(b)
        if start and d < start:
            continue
        if end and d > end:
            continue
        out.append(b)
    return out


def filter_bills_by_period(
    bills: Iterable[BillRecord],
    period: str = "all",
    today: Optional[date] = None
) -> List[BillRecord]:
    """period: 'all', 'this_month' or 'this_week' (weeks start on Sunday)"""
    today = today or date.today()
    if period == "this_month":
        start = today.replace(day=1)
    elif period == "this_week":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
    elif period == "all":
        return list(bills)
    else:
        raise ValueError(f"unknown period: {period}")
    return filter_bills_by_date(bills, start, None)


def search_bills(bills: Iterable[BillRecord], query: str) -> List[BillRecord]:
    """Case-insensitive match on name, payer, note, amount or any participant"""
    q = (query or "").strip().lower()
    if not q:
        return list(bills)
    out = []
    for b in bills:
        haystack = [b.name, b.payer, b.note, str(b.amount)] + list(b.participants)
        if any(q in (h or "").lower() for h in haystack):
            out.append(b)
    return out


def sort_bills(bills: Iterable[BillRecord], sort_by: str = "date") -> List[BillRecord]:
    """'date' newest first, 'amount' largest first, 'name' alphabetical"""
    if sort_by == "amount":
        return sorted(bills, key=lambda b: b.amount, reverse=True)
    if sort_by == "name":
        return sorted(bills, key=lambda b: b.name.lower())
    if sort_by == "date":
        return sorted(bills, key=lambda b: parse_timestamp(b.created_at), reverse=True)
    raise ValueError(f"unknown sort key: {sort_by}")


def filter_friends(
    friends: Iterable[Friend],
    balances: Dict[str, Money],
    filter_by: str = "all"
) -> List[Friend]:
    """filter_by: 'all', 'settled', 'owes' (anything outstanding) or 'high_balance'"""
    if filter_by not in ("all", "settled", "owes", "high_balance"):
        raise ValueError(f"unknown friend filter: {filter_by}")
    high = Money.parse(HIGH_BALANCE_THRESHOLD)
    out = []
    for f in friends:
        bal = abs(balances.get(f.name, Money.zero()))
        if filter_by == "settled" and bal >= SETTLED_TOLERANCE:
            continue
        if filter_by == "owes" and bal < SETTLED_TOLERANCE:
            continue
        if filter_by == "high_balance" and bal < high:
            continue
        out.append(f)
    return out


def compute_summary(
    bills: Iterable[BillRecord],
    start: Optional[date] = None,
    end: Optional[date] = None
) -> Dict[str, dict]:
    """
    Compute per-participant totals over bills in the date range.
    Returns dict mapping participant -> {paid, consumed, net}; net > 0 means
    the participant should receive money overall.
    """
    paid: Dict[str, Money] = {}
    consumed: Dict[str, Money] = {}
    for b in filter_bills_by_date(bills, start, end):
        paid[b.payer] = paid.get(b.payer, Money.zero()) + b.amount
        consumed.setdefault(b.payer, Money.zero())
        for p, share in b.allocation.items():
            consumed[p] = consumed.get(p, Money.zero()) + share
            paid.setdefault(p, Money.zero())

    return {
        p: {
            "paid": paid[p],
            "consumed": consumed[p],
            "net": paid[p] - consumed[p],
        } for p in paid
    }


def compute_transfers(net: Dict[str, Money]) -> List[Tuple[str, str, Money]]:
    """
    Suggest settle-up payments (display only). The largest debtor pays the
    largest creditor until one side is cleared, in whole cents.
    Returns (debtor, creditor, amount) tuples.
    """
    owed = sorted(((p, v.cents) for p, v in net.items() if v.cents > 0), key=lambda x: -x[1])
    owing = sorted(((p, -v.cents) for p, v in net.items() if v.cents < 0), key=lambda x: -x[1])

    transfers: List[Tuple[str, str, Money]] = []
    while owed and owing:
        debtor, debt = owing[0]
        creditor, credit = owed[0]
        paid = min(debt, credit)
        transfers.append((debtor, creditor, Money.from_cents(paid)))
        owing[0] = (debtor, debt - paid)
        owed[0] = (creditor, credit - paid)
        if owing[0][1] == 0:
            owing.pop(0)
        if owed[0][1] == 0:
            owed.pop(0)
    return transfers
