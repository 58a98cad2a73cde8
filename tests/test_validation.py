"""Tests for input sanitizing and validation."""

from decimal import Decimal

import pytest

from errors import ValidationCode, ValidationError
from money import Money
from validation import (
    sanitize_text,
    validate_amount,
    validate_email,
    validate_name,
    validate_note,
    validate_phone,
)


@pytest.mark.parametrize("raw, expected", [
    ("  Pizza   night ", "Pizza night"),
    ("<b>Tacos</b>", "bTacos/b"),
    ("Tom's \"bar\" & grill", "Toms bar grill"),
    ("line\nbreak\ttab", "line break tab"),
    (None, ""),
])
def test_sanitize_text(raw, expected):
    assert sanitize_text(raw) == expected


def test_sanitize_truncates():
    assert sanitize_text("a" * 120) == "a" * 100
    assert sanitize_text("abcdef", 3) == "abc"


class TestValidateName:

    def test_valid(self):
        assert validate_name("  Groceries ") == "Groceries"

    @pytest.mark.parametrize("raw", ["", "A", "  <>  ", None])
    def test_too_short(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_name(raw)
        assert exc_info.value.code is ValidationCode.NAME_TOO_SHORT

    def test_too_long_is_rejected_not_truncated(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_name("x" * 51, "group name")
        assert exc_info.value.code is ValidationCode.NAME_TOO_LONG
        assert exc_info.value.field == "group name"

    def test_exactly_max_length(self):
        assert validate_name("x" * 50) == "x" * 50


class TestValidateAmount:

    @pytest.mark.parametrize("raw, cents", [("0.01", 1), ("999999.99", 99999999), (12, 1200)])
    def test_bounds(self, raw, cents):
        assert validate_amount(raw) == Money(cents)

    @pytest.mark.parametrize("raw", ["0", "0.00", "-5", "1000000", "abc", "", 1.5, True, Decimal("1E+30")])
    def test_rejected(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_amount(raw)
        assert exc_info.value.code is ValidationCode.INVALID_AMOUNT


class TestValidateNote:

    def test_none_is_empty(self):
        assert validate_note(None) == ""

    def test_word_limit(self):
        assert validate_note("word " * 100) == " ".join(["word"] * 100)
        with pytest.raises(ValidationError) as exc_info:
            validate_note("word " * 101)
        assert exc_info.value.code is ValidationCode.NOTE_TOO_LONG

    def test_character_limit(self):
        with pytest.raises(ValidationError):
            validate_note("x" * 501)


def test_contacts():
    assert validate_email("") == ""
    assert validate_email(" a@b.co ") == "a@b.co"
    assert validate_phone("555-123-4567") == "555-123-4567"
    with pytest.raises(ValidationError):
        validate_email("a@b")
    with pytest.raises(ValidationError):
        validate_phone("call me")
