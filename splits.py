"""
Split allocation for SplitLedger

One validated path turns a bill total, a participant list and a split policy
into per-participant shares. Every bill, group and edit flow goes through
split_bill().
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Mapping, Optional, Tuple

from errors import SplitMismatchError, ValidationCode, ValidationError
from models import SplitAllocation, SplitPolicy
from money import Money

CUSTOM_TOLERANCE = Money(1)
PERCENT_TOTAL = Decimal("100")
PERCENT_TOLERANCE = Decimal("0.01")


def normalize_participants(payer: str, split_with: Iterable[str]) -> List[str]:
    """
    Participant list for a bill: split_with order when it already names the
    payer, otherwise payer first. Duplicates and blanks are dropped.
    """
    names = [p.strip() for p in split_with if isinstance(p, str) and p.strip()]
    payer = (payer or "").strip()
    if payer and payer not in names:
        names.insert(0, payer)
    return list(dict.fromkeys(names))


def _dedupe(participants: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(p for p in participants if p))


def _equal_shares(total: Money, participants: List[str]) -> SplitAllocation:
    base, remainder = divmod(total.cents, len(participants))
    return {p: Money(base + (1 if i < remainder else 0)) for i, p in enumerate(participants)}


def _required_input(custom_amounts: Optional[Mapping[str, object]], participant: str):
    raw = (custom_amounts or {}).get(participant)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(
            ValidationCode.MISSING_PARTICIPANTS, f"Missing split amount for {participant}", "custom_amounts"
        )
    return raw


def _custom_shares(total: Money, participants: List[str], custom_amounts) -> SplitAllocation:
    shares: SplitAllocation = {}
    for p in participants:
        raw = _required_input(custom_amounts, p)
        try:
            share = Money.parse(raw)
        except ValidationError as ex:
            raise ValidationError(
                ValidationCode.INVALID_AMOUNT, f"Invalid amount for {p}: {raw!r}", "custom_amounts"
            ) from ex
        if share.cents <= 0:
            raise ValidationError(
                ValidationCode.INVALID_AMOUNT, f"Amount for {p} must be greater than 0", "custom_amounts"
            )
        shares[p] = share

    supplied = sum(shares.values(), Money.zero())
    if abs(supplied - total) > CUSTOM_TOLERANCE:
        raise SplitMismatchError(supplied, total)
    return shares


def _percentage_shares(total: Money, participants: List[str], percentages) -> SplitAllocation:
    pcts = []
    for p in participants:
        raw = _required_input(percentages, p)
        try:
            pct = Decimal(str(raw).strip())
        except InvalidOperation as ex:
            raise ValidationError(
                ValidationCode.INVALID_AMOUNT, f"Invalid percentage for {p}: {raw!r}", "custom_amounts"
            ) from ex
        if not pct.is_finite() or pct <= 0:
            raise ValidationError(
                ValidationCode.INVALID_AMOUNT, f"Percentage for {p} must be greater than 0", "custom_amounts"
            )
        pcts.append(pct)

    pct_sum = sum(pcts, Decimal(0))
    if abs(pct_sum - PERCENT_TOTAL) > PERCENT_TOLERANCE:
        raise SplitMismatchError(pct_sum, PERCENT_TOTAL, unit="%")

    # largest remainder over the entered percentages, ties in input order
    exact = [Decimal(total.cents) * pct / pct_sum for pct in pcts]
    floors = [int(x) for x in exact]
    leftover = total.cents - sum(floors)
    order = sorted(range(len(participants)), key=lambda i: (-(exact[i] - floors[i]), i))
    for i in order[:leftover]:
        floors[i] += 1
    return {p: Money(c) for p, c in zip(participants, floors)}


def allocate(
    total: Money,
    participants: Iterable[str],
    policy: SplitPolicy,
    custom_amounts: Optional[Mapping[str, object]] = None,
    payer: Optional[str] = None,
) -> SplitAllocation:
    """
    Compute per-participant shares of total.

    EQUAL: cents divided evenly, the remainder handed out one cent at a time in
    participant order. CUSTOM: custom_amounts gives each share; the sum must
    be within one cent of total. PERCENTAGE: custom_amounts gives percentages
    summing to 100; shares sum to total exactly.

    Raises ValidationError (SplitMismatchError when shares do not reconcile).
    """
    people = _dedupe(participants)
    if not people:
        raise ValidationError(
            ValidationCode.MISSING_PARTICIPANTS, "Please select who to split with", "split_with"
        )
    if payer is not None and people == [payer]:
        raise ValidationError(ValidationCode.SELF_ONLY_SPLIT, "Can't split with only yourself", "split_with")
    if total.cents <= 0:
        raise ValidationError(ValidationCode.INVALID_AMOUNT, "Amount must be greater than 0", "amount")

    if not isinstance(policy, SplitPolicy):
        try:
            policy = SplitPolicy.from_value(policy)
        except ValueError as ex:
            raise ValidationError(ValidationCode.INVALID_AMOUNT, f"Unknown split type: {policy!r}", "policy") from ex
    if policy is SplitPolicy.EQUAL:
        return _equal_shares(total, people)
    if policy is SplitPolicy.CUSTOM:
        return _custom_shares(total, people, custom_amounts)
    return _percentage_shares(total, people, custom_amounts)


def split_bill(
    total: Money,
    payer: str,
    split_with: Iterable[str],
    policy: SplitPolicy = SplitPolicy.EQUAL,
    custom_amounts: Optional[Mapping[str, object]] = None,
) -> Tuple[List[str], SplitAllocation]:
    """Validate the raw split selection and return (participants, allocation)"""
    if not payer or not str(payer).strip():
        raise ValidationError(ValidationCode.MISSING_PARTICIPANTS, "Please select who paid", "payer")
    selected = _dedupe(p.strip() for p in split_with if isinstance(p, str))
    if not selected:
        raise ValidationError(
            ValidationCode.MISSING_PARTICIPANTS, "Please select who to split with", "split_with"
        )
    payer = payer.strip()
    participants = normalize_participants(payer, selected)
    allocation = allocate(total, participants, policy, custom_amounts, payer=payer)
    return participants, allocation
