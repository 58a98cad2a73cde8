"""
Input sanitizing and field validation for SplitLedger
"""
from __future__ import annotations
import re

from config import MAX_AMOUNT_VALUE, MAX_NAME_LENGTH, MAX_NOTE_LENGTH, MAX_NOTE_WORDS, MIN_AMOUNT_VALUE, MIN_NAME_LENGTH
from errors import ValidationCode, ValidationError
from money import Money, MoneyLike
from utils import word_count

_UNSAFE_CHARS = re.compile(r"[<>\"'&]")
_CONTROL_WS = re.compile(r"[\r\n\t]")
_MULTI_SPACE = re.compile(r"\s+")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\+?[\d\s\-()]{10,}$")


def sanitize_text(value, max_length: int = 100) -> str:
    """Strip markup characters, collapse whitespace, trim and truncate"""
    if not isinstance(value, str):
        return ""
    text = _UNSAFE_CHARS.sub("", value)
    text = _CONTROL_WS.sub(" ", text)
    text = _MULTI_SPACE.sub(" ", text).strip()
    return text[:max_length]


def validate_name(value, field: str = "name") -> str:
    """Sanitized name of MIN_NAME_LENGTH..MAX_NAME_LENGTH characters"""
    if not isinstance(value, str):
        raise ValidationError(ValidationCode.NAME_TOO_SHORT, f"{field} is required", field)
    # length is checked before truncation so overlong input is rejected
    if len(_MULTI_SPACE.sub(" ", _UNSAFE_CHARS.sub("", value)).strip()) > MAX_NAME_LENGTH:
        raise ValidationError(
            ValidationCode.NAME_TOO_LONG, f"{field} is too long (max {MAX_NAME_LENGTH} characters)", field
        )
    name = sanitize_text(value, MAX_NAME_LENGTH)
    if len(name) < MIN_NAME_LENGTH:
        raise ValidationError(
            ValidationCode.NAME_TOO_SHORT, f"{field} must be at least {MIN_NAME_LENGTH} characters long", field
        )
    return name


def validate_amount(value: MoneyLike, field: str = "amount") -> Money:
    """Positive bill amount within the accepted range"""
    try:
        amount = Money.parse(value)
    except ValidationError as ex:
        raise ValidationError(ValidationCode.INVALID_AMOUNT, "Please enter a valid number", field) from ex
    if not (MIN_AMOUNT_VALUE <= amount.to_decimal() <= MAX_AMOUNT_VALUE):
        raise ValidationError(
            ValidationCode.INVALID_AMOUNT,
            f"Please enter a valid amount between {MIN_AMOUNT_VALUE} and {MAX_AMOUNT_VALUE}",
            field,
        )
    return amount


def validate_note(value) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(ValidationCode.NOTE_TOO_LONG, "Note must be text", "note")
    if word_count(value) > MAX_NOTE_WORDS:
        raise ValidationError(ValidationCode.NOTE_TOO_LONG, f"Note is limited to {MAX_NOTE_WORDS} words", "note")
    if len(value.strip()) > MAX_NOTE_LENGTH:
        raise ValidationError(
            ValidationCode.NOTE_TOO_LONG, f"Note is limited to {MAX_NOTE_LENGTH} characters", "note"
        )
    return sanitize_text(value, MAX_NOTE_LENGTH)


def validate_email(value: str) -> str:
    email = (value or "").strip()
    if email and not _EMAIL_RE.match(email):
        raise ValidationError(ValidationCode.INVALID_CONTACT, "Please enter a valid email address.", "email")
    return email


def validate_phone(value: str) -> str:
    phone = (value or "").strip()
    if phone and not _PHONE_RE.match(phone):
        raise ValidationError(ValidationCode.INVALID_CONTACT, "Please enter a valid phone number.", "phone")
    return phone
