"""
Exception classes for SplitLedger

Every error carries a machine-readable ``code`` so callers can pick a message
or a field to highlight without parsing text.
"""
from __future__ import annotations
from enum import Enum
from typing import Optional


class ValidationCode(str, Enum):
    SELF_ONLY_SPLIT = "self_only_split"
    SPLIT_MISMATCH = "split_mismatch"
    MISSING_PARTICIPANTS = "missing_participants"
    INVALID_AMOUNT = "invalid_amount"
    NAME_TOO_SHORT = "name_too_short"
    NAME_TOO_LONG = "name_too_long"
    NOTE_TOO_LONG = "note_too_long"
    INVALID_CONTACT = "invalid_contact"
    DUPLICATE_NAME = "duplicate_name"
    INVALID_DATE = "invalid_date"
    UNKNOWN_MEMBER = "unknown_member"
    NOT_FOUND = "not_found"


class StorageCode(str, Enum):
    SERIALIZATION_FAILURE = "serialization_failure"
    UNAVAILABLE = "unavailable"
    CORRUPT_COLLECTION = "corrupt_collection"


class InvariantCode(str, Enum):
    MEMBER_IN_USE = "member_in_use"
    OUTSTANDING_BALANCE = "outstanding_balance"


class SplitLedgerError(Exception):
    """Base exception for ledger errors."""

    def __init__(self, code: Enum, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class ValidationError(SplitLedgerError):
    """Input rejected before any state change."""

    def __init__(self, code: ValidationCode, message: str, field: Optional[str] = None):
        super().__init__(code, message)
        self.field = field


class SplitMismatchError(ValidationError):
    """Custom or percentage shares do not reconcile with the expected total.

    ``supplied`` and ``expected`` are Money for custom splits and Decimal
    percentages for percentage splits.
    """

    def __init__(self, supplied, expected, unit: str = ""):
        self.supplied = supplied
        self.expected = expected
        self.delta = supplied - expected
        super().__init__(
            ValidationCode.SPLIT_MISMATCH,
            f"Split total ({supplied}{unit}) must equal {expected}{unit}, off by {self.delta}{unit}",
            field="custom_amounts",
        )


class StorageError(SplitLedgerError):
    """Persistence failed; the in-memory ledger was not changed."""


class InvariantViolation(SplitLedgerError):
    """Mutation would break a ledger invariant and was rejected."""
