"""Builders for test records."""

from models import BillRecord, GroupRecord, SplitPolicy
from money import Money
from splits import split_bill

_counter = [0]


def make_bill(name, amount, payer, split_with, policy=SplitPolicy.EQUAL, custom=None,
              date="2024-03-10T12:00:00+00:00", group_id=None, note=""):
    _counter[0] += 1
    total = Money.parse(amount)
    participants, allocation = split_bill(total, payer, split_with, policy, custom)
    return BillRecord(
        id=f"b{_counter[0]}",
        name=name,
        amount=total,
        currency="USD",
        payer=payer,
        participants=participants,
        policy=policy,
        allocation=allocation,
        split_inputs={k: str(v) for k, v in (custom or {}).items()},
        date=date,
        note=note,
        group_id=group_id,
        created_at=date,
        updated_at=date,
    )


def make_group(name, members, bills=(), group_id="g1"):
    return GroupRecord(
        id=group_id,
        name=name,
        members=list(members),
        created_at="2024-03-01T09:00:00+00:00",
        bills=list(bills),
    )
