"""
Fixed-precision money type for SplitLedger

Amounts are held as integer cents; every sum and comparison happens on cents.
The decimal view always has exactly two fraction digits.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from errors import ValidationCode, ValidationError

CENT = Decimal("0.01")
_AMOUNT_RE = re.compile(r"^-?\d+(\.\d{1,2})?$")

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "C$",
    "INR": "₹",
    "MXN": "Mex$",
}

MoneyLike = Union["Money", str, int, Decimal]


def currency_symbol(code: str) -> str:
    """Display symbol for a currency tag, empty for unknown tags"""
    return CURRENCY_SYMBOLS.get((code or "").upper(), "")


@dataclass(frozen=True, order=True)
class Money:
    """Amount in minor units (cents)"""
    cents: int

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def from_cents(cls, cents: int) -> "Money":
        if isinstance(cents, bool) or not isinstance(cents, int):
            raise TypeError(f"cents must be int, got {type(cents).__name__}")
        return cls(cents)

    @classmethod
    def parse(cls, value: MoneyLike) -> "Money":
        """
        Parse user or caller input into Money.
        Strings must be plain decimals with at most two fraction digits;
        ints are whole currency units.
        """
        if isinstance(value, Money):
            return value
        if isinstance(value, bool):
            raise ValidationError(ValidationCode.INVALID_AMOUNT, "Please enter a valid number", "amount")
        if isinstance(value, int):
            return cls(value * 100)
        if isinstance(value, Decimal):
            try:
                exact = value.is_finite() and value == value.quantize(CENT, rounding=ROUND_HALF_UP)
            except InvalidOperation:
                exact = False
            if not exact:
                raise ValidationError(ValidationCode.INVALID_AMOUNT, f"Invalid amount: {value}", "amount")
            return cls(int(value * 100))
        if isinstance(value, str):
            text = value.strip()
            if not _AMOUNT_RE.match(text):
                raise ValidationError(ValidationCode.INVALID_AMOUNT, f"Invalid amount: {value!r}", "amount")
            return cls(int(Decimal(text) * 100))
        raise ValidationError(ValidationCode.INVALID_AMOUNT, f"Invalid amount: {value!r}", "amount")

    @classmethod
    def coerce(cls, value) -> "Money":
        """
        Lenient conversion for persisted payloads: floats and over-precise
        decimals are rounded half-up to the cent.
        """
        if isinstance(value, Money):
            return value
        if isinstance(value, bool) or value is None:
            raise ValueError(f"not an amount: {value!r}")
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation as ex:
            raise ValueError(f"not an amount: {value!r}") from ex
        if not d.is_finite():
            raise ValueError(f"not an amount: {value!r}")
        try:
            return cls(int(d.quantize(CENT, rounding=ROUND_HALF_UP) * 100))
        except InvalidOperation as ex:
            raise ValueError(f"amount out of range: {value!r}") from ex

    def to_decimal(self) -> Decimal:
        return (Decimal(self.cents) / 100).quantize(CENT)

    def is_zero(self) -> bool:
        return self.cents == 0

    def __add__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents + other.cents)

    def __radd__(self, other):
        # sum() starts from int 0
        if other == 0:
            return self
        return NotImplemented

    def __sub__(self, other: "Money") -> "Money":
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.cents - other.cents)

    def __neg__(self) -> "Money":
        return Money(-self.cents)

    def __abs__(self) -> "Money":
        return Money(abs(self.cents))

    def __str__(self) -> str:
        return str(self.to_decimal())

    def __repr__(self) -> str:
        return f"Money('{self}')"

    def format(self, currency: str = "") -> str:
        """Format with currency symbol, e.g. -$10.00"""
        sign = "-" if self.cents < 0 else ""
        return f"{sign}{currency_symbol(currency)}{abs(self)}"
