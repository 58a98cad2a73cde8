"""
Data models for SplitLedger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from money import Money

# participant id -> share, in participant order
SplitAllocation = Dict[str, Money]


class ParticipantKind(str, Enum):
    SELF = "self"
    FRIEND = "friend"


class SplitPolicy(str, Enum):
    EQUAL = "equal"
    CUSTOM = "custom"
    PERCENTAGE = "percentage"

    @classmethod
    def from_value(cls, value: str) -> "SplitPolicy":
        """Accepts stored names, including the legacy 'exact' for custom"""
        text = (value or "equal").strip().lower()
        if text == "exact":
            return cls.CUSTOM
        return cls(text)


@dataclass(frozen=True)
class Participant:
    """Someone who can pay for or share a bill"""
    id: str  # display name
    kind: ParticipantKind = ParticipantKind.FRIEND

    @property
    def is_self(self) -> bool:
        return self.kind is ParticipantKind.SELF


@dataclass
class Friend:
    """Friend of the ledger owner"""
    name: str
    emoji: str = "👤"
    email: str = ""
    phone: str = ""
    status: str = "active"
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BillRecord:
    """Single shared expense"""
    id: str
    name: str
    amount: Money
    currency: str
    payer: str
    participants: List[str]  # always includes payer
    policy: SplitPolicy
    allocation: SplitAllocation
    date: str  # ISO timestamp
    created_at: str
    updated_at: str = ""
    note: str = ""
    split_inputs: Dict[str, str] = field(default_factory=dict)  # custom amounts or percentages as entered
    photo_ref: Optional[str] = None
    group_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)  # unknown stored fields

    def involves(self, participant_id: str) -> bool:
        return participant_id == self.payer or participant_id in self.participants


@dataclass
class GroupRecord:
    """Named set of members sharing bills"""
    id: str
    name: str
    members: List[str]
    created_at: str
    description: str = ""
    currency: str = "USD"
    created_by: str = ""
    bills: List[BillRecord] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def member_in_use(self, member: str) -> bool:
        return any(b.involves(member) for b in self.bills)
