"""
Persisted record schema for SplitLedger

Records are stored as JSON objects using the camelCase field names of the
mobile app data. Loading applies explicit defaults for optional fields,
rebuilds equal allocations, and keeps unknown fields in ``extra`` so they are
written back unchanged.
"""
from __future__ import annotations
from typing import Any, Dict, Optional

from config import DEFAULT_CURRENCY, DEFAULT_EMOJI, MAX_NAME_LENGTH, MAX_NOTE_LENGTH
from errors import ValidationError
from models import BillRecord, Friend, GroupRecord, SplitPolicy
from money import Money
from splits import allocate, normalize_participants
from utils import parse_timestamp
from validation import sanitize_text

SCHEMA_VERSION = 1

BILL_FIELDS = {
    "id", "name", "amount", "currency", "payer", "splitWith", "splitType", "splitAmounts",
    "splitInputs", "date", "note", "photoUri", "groupId", "createdAt", "updatedAt", "schemaVersion",
}
GROUP_FIELDS = {
    "id", "name", "description", "currency", "members", "createdBy", "createdAt", "bills", "schemaVersion",
}
FRIEND_FIELDS = {"name", "emoji", "email", "phone", "status"}


class RecordError(ValueError):
    """Stored record is structurally invalid"""


# Anything a malformed stored record can raise while being read
RECORD_ERRORS = (ValueError, ValidationError, TypeError, AttributeError, ArithmeticError)


def _require_str(d: Dict[str, Any], key: str) -> str:
    value = d.get(key)
    if isinstance(value, int) and not isinstance(value, bool) and key == "id":
        value = str(value)
    if not isinstance(value, str) or not value.strip():
        raise RecordError(f"missing or invalid {key!r}")
    return value.strip()


def _optional_str(d: Dict[str, Any], key: str) -> Optional[str]:
    value = d.get(key)
    return value if isinstance(value, str) and value else None


def _timestamp(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RecordError(f"missing {key!r}")
    try:
        parse_timestamp(value)
    except ValueError as ex:
        raise RecordError(f"invalid {key!r}: {value!r}") from ex
    return value.strip()


def _name_keyed(d: Dict[str, Any], key: str) -> Dict[str, Any]:
    """Per-participant mapping with keys sanitized like participant names"""
    value = d.get(key) or {}
    if not isinstance(value, dict):
        raise RecordError(f"{key} is not an object")
    return {sanitize_text(k, MAX_NAME_LENGTH): v for k, v in value.items() if isinstance(k, str)}


def _extra(d: Dict[str, Any], known) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if k not in known}


def bill_to_dict(bill: BillRecord) -> Dict[str, Any]:
    """Convert BillRecord to dictionary for JSON serialization"""
    out = dict(bill.extra)
    out.update({
        "schemaVersion": SCHEMA_VERSION,
        "id": bill.id,
        "name": bill.name,
        "amount": str(bill.amount),
        "currency": bill.currency,
        "payer": bill.payer,
        "splitWith": list(bill.participants),
        "splitType": bill.policy.value,
        "splitAmounts": {p: str(v) for p, v in bill.allocation.items()},
        "splitInputs": dict(bill.split_inputs),
        "date": bill.date,
        "note": bill.note,
        "photoUri": bill.photo_ref,
        "groupId": bill.group_id,
        "createdAt": bill.created_at,
        "updatedAt": bill.updated_at,
    })
    return out


def bill_from_dict(
    d: Dict[str, Any],
    default_currency: str = DEFAULT_CURRENCY,
    group_id: Optional[str] = None,
) -> BillRecord:
    """
    Convert stored dictionary to BillRecord.
    Raises RecordError when required fields are missing or the stored split
    does not reconcile.
    """
    if not isinstance(d, dict):
        raise RecordError("bill is not an object")

    bill_id = _require_str(d, "id")
    name = sanitize_text(_require_str(d, "name"), MAX_NAME_LENGTH)
    payer = sanitize_text(_require_str(d, "payer"), MAX_NAME_LENGTH)
    try:
        amount = Money.coerce(d.get("amount"))
    except ValueError as ex:
        raise RecordError(str(ex)) from ex
    if amount.cents <= 0:
        raise RecordError(f"non-positive amount {amount}")

    created_at = _timestamp(d.get("createdAt") or d.get("date"), "createdAt")
    bill_date = _timestamp(d.get("date") or created_at, "date")

    split_with = d.get("splitWith") or []
    if not isinstance(split_with, list):
        raise RecordError("splitWith is not a list")
    participants = normalize_participants(payer, [sanitize_text(p, MAX_NAME_LENGTH) for p in split_with])

    split_type = d.get("splitType")
    if split_type is not None and not isinstance(split_type, str):
        raise RecordError(f"splitType is not a string: {split_type!r}")
    try:
        policy = SplitPolicy.from_value(split_type or "equal")
    except ValueError as ex:
        raise RecordError(f"unknown splitType {split_type!r}") from ex

    stored = _name_keyed(d, "splitAmounts")
    if policy is SplitPolicy.EQUAL:
        allocation = allocate(amount, participants, policy)
    else:
        try:
            allocation = {p: Money.coerce(stored[p]) for p in participants}
        except (KeyError, ValueError) as ex:
            raise RecordError(f"incomplete splitAmounts: {ex}") from ex
        if abs(sum(allocation.values(), Money.zero()) - amount) > Money(1):
            raise RecordError("splitAmounts do not add up to amount")

    split_inputs = {}
    for k, v in _name_keyed(d, "splitInputs").items():
        if isinstance(v, bool) or not isinstance(v, (str, int, float)):
            raise RecordError(f"invalid splitInputs value for {k}: {v!r}")
        split_inputs[k] = str(v)

    note = d.get("note")
    if note is not None and not isinstance(note, str):
        raise RecordError("note is not a string")
    photo = d.get("photoUri")
    if photo is not None and not isinstance(photo, str):
        raise RecordError("photoUri is not a string")

    return BillRecord(
        id=bill_id,
        name=name,
        amount=amount,
        currency=_optional_str(d, "currency") or default_currency,
        payer=payer,
        participants=participants,
        policy=policy,
        allocation=allocation,
        split_inputs=split_inputs,
        date=bill_date,
        note=sanitize_text(note, MAX_NOTE_LENGTH) if note else "",
        photo_ref=_optional_str(d, "photoUri"),
        group_id=_optional_str(d, "groupId") or group_id,
        created_at=created_at,
        updated_at=_optional_str(d, "updatedAt") or created_at,
        extra=_extra(d, BILL_FIELDS),
    )


def group_to_dict(group: GroupRecord) -> Dict[str, Any]:
    """Convert GroupRecord to dictionary for JSON serialization"""
    out = dict(group.extra)
    out.update({
        "schemaVersion": SCHEMA_VERSION,
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "currency": group.currency,
        "members": list(group.members),
        "createdBy": group.created_by,
        "createdAt": group.created_at,
        "bills": [bill_to_dict(b) for b in group.bills],
    })
    return out


def group_from_dict(d: Dict[str, Any], on_bad_bill=None) -> GroupRecord:
    """
    Convert stored dictionary to GroupRecord. Invalid bills inside the group
    are skipped; on_bad_bill(raw, error) is called for each one.
    """
    if not isinstance(d, dict):
        raise RecordError("group is not an object")
    group_id = _require_str(d, "id")
    currency = _optional_str(d, "currency") or DEFAULT_CURRENCY

    members = d.get("members") or []
    if not isinstance(members, list):
        raise RecordError("members is not a list")
    members = list(dict.fromkeys(m.strip() for m in members if isinstance(m, str) and m.strip()))

    raw_bills = d.get("bills") or []
    if not isinstance(raw_bills, list):
        raise RecordError("bills is not a list")
    bills = []
    for raw in raw_bills:
        try:
            bills.append(bill_from_dict(raw, default_currency=currency, group_id=group_id))
        except RECORD_ERRORS as ex:
            if on_bad_bill:
                on_bad_bill(raw, ex)

    description = d.get("description")
    return GroupRecord(
        id=group_id,
        name=sanitize_text(_require_str(d, "name"), MAX_NAME_LENGTH),
        description=description.strip() if isinstance(description, str) else "",
        currency=currency,
        members=members,
        created_by=_optional_str(d, "createdBy") or "",
        created_at=_timestamp(d.get("createdAt"), "createdAt"),
        bills=bills,
        extra=_extra(d, GROUP_FIELDS),
    )


def friend_to_dict(friend: Friend) -> Dict[str, Any]:
    out = dict(friend.extra)
    out.update({
        "name": friend.name,
        "emoji": friend.emoji,
        "email": friend.email,
        "phone": friend.phone,
        "status": friend.status,
    })
    return out


def friend_from_dict(d: Dict[str, Any]) -> Friend:
    if not isinstance(d, dict):
        raise RecordError("friend is not an object")
    return Friend(
        name=sanitize_text(_require_str(d, "name"), MAX_NAME_LENGTH),
        emoji=_optional_str(d, "emoji") or DEFAULT_EMOJI,
        email=_optional_str(d, "email") or "",
        phone=_optional_str(d, "phone") or "",
        status=_optional_str(d, "status") or "active",
        extra=_extra(d, FRIEND_FIELDS),
    )
