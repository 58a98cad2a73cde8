"""
Owned ledger state for SplitLedger

Ledger holds one owner's bills, groups and friends and is the only way to
change them. Every mutation validates first, persists second, and swaps the
in-memory collections last, so a failed save leaves the ledger as it was.
Callers must not run two mutations at once: saves replace whole collections
and the last writer wins.
"""
from __future__ import annotations
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Union

from computations import SETTLED_TOLERANCE, friend_balances, group_total, net_balances
from config import DEFAULT_CURRENCY, DEFAULT_EMOJI, MAX_NAME_LENGTH
from errors import (
    InvariantCode,
    InvariantViolation,
    StorageError,
    ValidationCode,
    ValidationError,
)
from models import BillRecord, Friend, GroupRecord, SplitPolicy
from money import Money, MoneyLike
from registry import ParticipantRegistry
from splits import split_bill
from store import Collection, LedgerStore
from utils import new_id, now_iso, parse_timestamp
from validation import sanitize_text, validate_amount, validate_name, validate_note

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]

_BILL_FIELDS = {
    "name", "amount", "payer", "split_with", "policy", "custom_amounts",
    "currency", "date", "note", "photo_ref",
}
_PERCENT_PLACES = Decimal("0.0001")


def _iso_date(value: DateLike) -> str:
    if value is None:
        return now_iso()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        try:
            parse_timestamp(value)
        except ValueError as ex:
            raise ValidationError(ValidationCode.INVALID_DATE, f"Invalid date: {value!r}", "date") from ex
        return value.strip()
    raise ValidationError(ValidationCode.INVALID_DATE, f"Invalid date: {value!r}", "date")


def _clean_members(members: Iterable[str]) -> List[str]:
    names = (sanitize_text(m, MAX_NAME_LENGTH) for m in members or [])
    return list(dict.fromkeys(n for n in names if n))


def _entered_inputs(bill: BillRecord) -> Dict[str, str]:
    """
    Custom amounts or percentages to re-submit when a bill is edited.
    Records saved without inputs only carry shares; percentages are rebuilt
    from them.
    """
    if bill.split_inputs:
        return dict(bill.split_inputs)
    if bill.policy is SplitPolicy.PERCENTAGE:
        total = Decimal(bill.amount.cents)
        return {
            p: str((Decimal(share.cents) * 100 / total).quantize(_PERCENT_PLACES))
            for p, share in bill.allocation.items()
        }
    return {p: str(share) for p, share in bill.allocation.items()}


class Ledger:
    """One owner's ledger: bills, groups and friends"""

    def __init__(
        self,
        store: LedgerStore,
        owner_id: str,
        owner_emoji: str = DEFAULT_EMOJI,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self.store = store
        self.owner_id = owner_id.strip()
        self.owner_emoji = owner_emoji
        self.default_currency = default_currency
        self._bills: List[BillRecord] = []
        self._groups: List[GroupRecord] = []
        self._friends: List[Friend] = []
        self._last_added_id: Optional[str] = None

    # ---------- Snapshots ----------
    @property
    def bills(self) -> List[BillRecord]:
        return list(self._bills)

    @property
    def groups(self) -> List[GroupRecord]:
        return list(self._groups)

    @property
    def friends(self) -> List[Friend]:
        return list(self._friends)

    @property
    def registry(self) -> ParticipantRegistry:
        return ParticipantRegistry(self.owner_id, self._friends, self.owner_emoji)

    def get_bill(self, bill_id: str) -> BillRecord:
        for b in self._bills:
            if b.id == bill_id:
                return b
        raise ValidationError(ValidationCode.NOT_FOUND, f"No bill with id {bill_id}", "id")

    def get_group(self, group_id: str) -> GroupRecord:
        for g in self._groups:
            if g.id == group_id:
                return g
        raise ValidationError(ValidationCode.NOT_FOUND, f"No group with id {group_id}", "id")

    # ---------- Loading ----------
    async def _load_or_fallback(self, collection: Collection, fallback: list) -> list:
        try:
            return await self.store.load(collection, self.owner_id)
        except StorageError as ex:
            logger.error("Failed to load %s for %s, keeping %d records: %s",
                         collection.value, self.owner_id, len(fallback), ex)
            return list(fallback)

    async def load(self) -> None:
        """Load every collection; a failing collection keeps its last good contents"""
        self._bills = await self._load_or_fallback(Collection.BILLS, self._bills)
        self._groups = await self._load_or_fallback(Collection.GROUPS, self._groups)
        self._friends = await self._load_or_fallback(Collection.FRIENDS, self._friends)
        logger.info("Loaded ledger for %s: %d bills, %d groups, %d friends",
                    self.owner_id, len(self._bills), len(self._groups), len(self._friends))

    async def switch_owner(self, owner_id: str) -> None:
        """Load another owner's ledger; nothing of the previous owner is kept"""
        self.owner_id = owner_id.strip()
        self._bills, self._groups, self._friends = [], [], []
        self._last_added_id = None
        await self.load()

    # ---------- Persistence ----------
    async def _commit(
        self,
        bills: Optional[List[BillRecord]] = None,
        groups: Optional[List[GroupRecord]] = None,
        friends: Optional[List[Friend]] = None,
    ) -> None:
        """
        Persist the given collections, then swap them in. If a later write
        fails, earlier writes are restored and memory stays untouched.
        """
        pending = [
            (Collection.BILLS, bills, self._bills),
            (Collection.GROUPS, groups, self._groups),
            (Collection.FRIENDS, friends, self._friends),
        ]
        pending = [p for p in pending if p[1] is not None]
        written = []
        for collection, new, old in pending:
            try:
                await self.store.save(collection, self.owner_id, new)
            except StorageError:
                for done, previous in reversed(written):
                    try:
                        await self.store.save(done, self.owner_id, previous)
                    except StorageError as ex:
                        logger.error("Could not restore %s after failed save: %s", done.value, ex)
                raise
            written.append((collection, old))

        if bills is not None:
            self._bills = bills
        if groups is not None:
            self._groups = groups
        if friends is not None:
            self._friends = friends

    # ---------- Bills ----------
    def _build_bill(
        self,
        *,
        name: str,
        amount: MoneyLike,
        payer: str,
        split_with: Iterable[str],
        policy: Union[SplitPolicy, str] = SplitPolicy.EQUAL,
        custom_amounts: Optional[Mapping[str, object]] = None,
        currency: Optional[str] = None,
        date: DateLike = None,
        note: str = "",
        photo_ref: Optional[str] = None,
        group: Optional[GroupRecord] = None,
        existing: Optional[BillRecord] = None,
    ) -> BillRecord:
        clean_name = validate_name(name, "name")
        total = validate_amount(amount)
        clean_payer = sanitize_text(payer, MAX_NAME_LENGTH)
        split_with = [sanitize_text(p, MAX_NAME_LENGTH) for p in split_with or []]
        if not isinstance(policy, SplitPolicy):
            try:
                policy = SplitPolicy.from_value(policy)
            except ValueError as ex:
                raise ValidationError(ValidationCode.INVALID_AMOUNT, f"Unknown split type: {policy!r}", "policy") from ex

        participants, allocation = split_bill(total, clean_payer, split_with, policy, custom_amounts)

        if group is not None:
            outsiders = [p for p in participants if p not in group.members]
            if outsiders:
                raise ValidationError(
                    ValidationCode.UNKNOWN_MEMBER,
                    f"Not members of {group.name}: {', '.join(outsiders)}",
                    "split_with",
                )

        split_inputs: Dict[str, str] = {}
        if policy is not SplitPolicy.EQUAL:
            split_inputs = {p: str(custom_amounts[p]).strip() for p in participants}

        stamp = now_iso()
        return BillRecord(
            id=existing.id if existing else new_id(),
            name=clean_name,
            amount=total,
            currency=(currency or (group.currency if group else self.default_currency)).upper(),
            payer=clean_payer,
            participants=participants,
            policy=policy,
            allocation=allocation,
            split_inputs=split_inputs,
            date=_iso_date(date),
            note=validate_note(note),
            photo_ref=photo_ref or None,
            group_id=group.id if group else (existing.group_id if existing else None),
            created_at=existing.created_at if existing else stamp,
            updated_at=stamp,
            extra=dict(existing.extra) if existing else {},
        )

    def _groups_with_bill(self, bill: BillRecord, drop: bool = False) -> List[GroupRecord]:
        """Groups list with bill replaced (or removed) in its owning group"""
        out = []
        for g in self._groups:
            if g.id != bill.group_id:
                out.append(g)
                continue
            bills = [b for b in g.bills if b.id != bill.id]
            if not drop:
                bills = [bill if b.id == bill.id else b for b in g.bills]
                if not any(b.id == bill.id for b in g.bills):
                    bills.append(bill)
            out.append(replace(g, bills=bills))
        return out

    async def add_bill(
        self,
        name: str,
        amount: MoneyLike,
        payer: str,
        split_with: Iterable[str],
        policy: Union[SplitPolicy, str] = SplitPolicy.EQUAL,
        custom_amounts: Optional[Mapping[str, object]] = None,
        currency: Optional[str] = None,
        date: DateLike = None,
        note: str = "",
        photo_ref: Optional[str] = None,
    ) -> BillRecord:
        """
        Validate, allocate and persist a new bill.
        amount is a decimal string, int (whole units), Decimal or Money; floats
        are rejected with INVALID_AMOUNT so no binary fraction reaches a share.
        """
        bill = self._build_bill(
            name=name, amount=amount, payer=payer, split_with=split_with, policy=policy,
            custom_amounts=custom_amounts, currency=currency, date=date, note=note, photo_ref=photo_ref,
        )
        await self._commit(bills=self._bills + [bill])
        self._last_added_id = bill.id
        logger.info("Added bill %s (%s %s paid by %s)", bill.id, bill.amount, bill.currency, bill.payer)
        return bill

    async def edit_bill(self, bill_id: str, **changes) -> BillRecord:
        """
        Replace a bill with changed fields. The split is recomputed from the
        merged inputs; any validation failure rejects the whole edit.
        """
        unknown = set(changes) - _BILL_FIELDS
        if unknown:
            raise TypeError(f"unknown bill fields: {', '.join(sorted(unknown))}")
        current = self.get_bill(bill_id)
        group = next((g for g in self._groups if g.id == current.group_id), None) if current.group_id else None

        policy = changes.get("policy", current.policy)
        custom_amounts = changes.get("custom_amounts")
        if custom_amounts is None and current.policy is not SplitPolicy.EQUAL:
            custom_amounts = _entered_inputs(current)

        updated = self._build_bill(
            name=changes.get("name", current.name),
            amount=changes.get("amount", current.amount),
            payer=changes.get("payer", current.payer),
            split_with=changes.get("split_with", current.participants),
            policy=policy,
            custom_amounts=custom_amounts,
            currency=changes.get("currency", current.currency),
            date=changes.get("date", current.date),
            note=changes.get("note", current.note),
            photo_ref=changes.get("photo_ref", current.photo_ref),
            group=group,
            existing=current,
        )
        bills = [updated if b.id == bill_id else b for b in self._bills]
        if group is not None:
            await self._commit(bills=bills, groups=self._groups_with_bill(updated))
        else:
            await self._commit(bills=bills)
        logger.info("Edited bill %s", bill_id)
        return updated

    async def delete_bill(self, bill_id: str) -> None:
        """Remove a bill from the ledger and from its group"""
        bill = self.get_bill(bill_id)
        bills = [b for b in self._bills if b.id != bill_id]
        if bill.group_id:
            await self._commit(bills=bills, groups=self._groups_with_bill(bill, drop=True))
        else:
            await self._commit(bills=bills)
        if self._last_added_id == bill_id:
            self._last_added_id = None
        logger.info("Deleted bill %s", bill_id)

    async def undo_last_bill(self) -> Optional[BillRecord]:
        """Delete the bill most recently added in this session, if it still exists"""
        if not self._last_added_id:
            return None
        try:
            bill = self.get_bill(self._last_added_id)
        except ValidationError:
            self._last_added_id = None
            return None
        await self.delete_bill(bill.id)
        return bill

    # ---------- Groups ----------
    async def create_group(
        self,
        name: str,
        members: Iterable[str],
        description: str = "",
        currency: Optional[str] = None,
    ) -> GroupRecord:
        clean_name = validate_name(name, "group name")
        clean_members = _clean_members(members)
        if not clean_members:
            raise ValidationError(
                ValidationCode.MISSING_PARTICIPANTS, "Please select at least one member", "members"
            )
        group = GroupRecord(
            id=new_id(),
            name=clean_name,
            description=sanitize_text(description, 200),
            currency=(currency or self.default_currency).upper(),
            members=clean_members,
            created_by=self.owner_id,
            created_at=now_iso(),
        )
        await self._commit(groups=self._groups + [group])
        logger.info("Created group %s (%s) with %d members", group.id, group.name, len(clean_members))
        return group

    def _check_removable(self, group: GroupRecord, removed: Iterable[str]) -> None:
        in_use = [m for m in removed if group.member_in_use(m)]
        if in_use:
            raise InvariantViolation(
                InvariantCode.MEMBER_IN_USE,
                f"Cannot remove {', '.join(in_use)}: still on bills in {group.name}",
            )

    async def edit_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        currency: Optional[str] = None,
        members: Optional[Iterable[str]] = None,
    ) -> GroupRecord:
        group = self.get_group(group_id)
        new_members = group.members if members is None else _clean_members(members)
        if not new_members:
            raise ValidationError(
                ValidationCode.MISSING_PARTICIPANTS, "Please select at least one member", "members"
            )
        self._check_removable(group, [m for m in group.members if m not in new_members])
        updated = replace(
            group,
            name=group.name if name is None else validate_name(name, "group name"),
            description=group.description if description is None else sanitize_text(description, 200),
            currency=group.currency if currency is None else currency.upper(),
            members=new_members,
        )
        await self._commit(groups=[updated if g.id == group_id else g for g in self._groups])
        return updated

    async def delete_group(self, group_id: str) -> None:
        """Delete a group together with its bills in the global list"""
        self.get_group(group_id)
        groups = [g for g in self._groups if g.id != group_id]
        bills = [b for b in self._bills if b.group_id != group_id]
        await self._commit(bills=bills, groups=groups)
        logger.info("Deleted group %s", group_id)

    async def add_member(self, group_id: str, member: str) -> GroupRecord:
        group = self.get_group(group_id)
        name = sanitize_text(member, MAX_NAME_LENGTH)
        if not name:
            raise ValidationError(ValidationCode.NAME_TOO_SHORT, "Member name is required", "members")
        if name in group.members:
            return group
        return await self.edit_group(group_id, members=group.members + [name])

    async def remove_member(self, group_id: str, member: str) -> GroupRecord:
        """Remove a member; rejected while any group bill references them"""
        group = self.get_group(group_id)
        if member not in group.members:
            raise ValidationError(ValidationCode.UNKNOWN_MEMBER, f"{member} is not in {group.name}", "members")
        self._check_removable(group, [member])
        return await self.edit_group(group_id, members=[m for m in group.members if m != member])

    async def add_group_bill(
        self,
        group_id: str,
        name: str,
        amount: MoneyLike,
        payer: str,
        split_with: Iterable[str],
        policy: Union[SplitPolicy, str] = SplitPolicy.EQUAL,
        custom_amounts: Optional[Mapping[str, object]] = None,
        date: DateLike = None,
        note: str = "",
        photo_ref: Optional[str] = None,
    ) -> BillRecord:
        """Add a bill to a group; the global list gets the same record"""
        group = self.get_group(group_id)
        bill = self._build_bill(
            name=name, amount=amount, payer=payer, split_with=split_with, policy=policy,
            custom_amounts=custom_amounts, currency=group.currency, date=date, note=note,
            photo_ref=photo_ref, group=group,
        )
        await self._commit(bills=self._bills + [bill], groups=self._groups_with_bill(bill))
        self._last_added_id = bill.id
        logger.info("Added bill %s to group %s", bill.id, group_id)
        return bill

    async def edit_group_bill(self, bill_id: str, **changes) -> BillRecord:
        return await self.edit_bill(bill_id, **changes)

    # ---------- Friends ----------
    async def add_friend(self, name: str, emoji: str = "", email: str = "", phone: str = "") -> Friend:
        friend = self.registry.validate_new_friend(name, emoji, email, phone)
        await self._commit(friends=self._friends + [friend])
        return friend

    async def remove_friend(self, name: str) -> None:
        """Remove a friend; rejected while they have an outstanding balance"""
        if not any(f.name == name for f in self._friends):
            raise ValidationError(ValidationCode.NOT_FOUND, f"{name} is not in your friends list", "name")
        balance = net_balances(self._bills, self.owner_id).get(name, Money.zero())
        if abs(balance) >= SETTLED_TOLERANCE:
            raise InvariantViolation(
                InvariantCode.OUTSTANDING_BALANCE,
                f"{name} has an outstanding balance of {abs(balance)}. Please settle all bills before removing them.",
            )
        await self._commit(friends=[f for f in self._friends if f.name != name])

    # ---------- Reads ----------
    def balances(self) -> Dict[str, Money]:
        return net_balances(self._bills, self.owner_id)

    def friend_balances(self) -> Dict[str, Money]:
        return friend_balances(self._bills, self.owner_id, [f.name for f in self._friends])

    def group_balances(self, group_id: str) -> Dict[str, Money]:
        return net_balances(self.get_group(group_id).bills, self.owner_id)

    def group_total(self, group_id: str) -> Money:
        return group_total(self.get_group(group_id))
