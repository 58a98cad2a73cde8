"""Unit tests for the Money type."""

from decimal import Decimal

import pytest

from errors import ValidationError
from money import Money, currency_symbol


class TestMoneyParse:
    """Parsing caller input."""

    def test_parse_string(self):
        assert Money.parse("33.34").cents == 3334
        assert Money.parse(" 5 ").cents == 500
        assert Money.parse("0.5").cents == 50

    def test_parse_int_is_whole_units(self):
        assert Money.parse(100) == Money(10000)

    def test_parse_decimal(self):
        assert Money.parse(Decimal("1.50")).cents == 150

    @pytest.mark.parametrize("value", [
        "abc", "1.234", "", "1e5", "1,50", Decimal("0.001"), Decimal("1E+30"), Decimal("NaN"), 1.5, True,
    ])
    def test_parse_rejects(self, value):
        with pytest.raises(ValidationError):
            Money.parse(value)

    def test_coerce_rounds_legacy_floats(self):
        assert Money.coerce(33.333333333) == Money(3333)
        assert Money.coerce("12.345") == Money(1235)
        assert Money.coerce(10) == Money(1000)

    def test_coerce_rejects_garbage(self):
        with pytest.raises(ValueError):
            Money.coerce("ten")
        with pytest.raises(ValueError):
            Money.coerce(None)
        with pytest.raises(ValueError):
            Money.coerce(1e30)
        with pytest.raises(ValueError):
            Money.coerce("9" * 40)


class TestMoneyArithmetic:
    """Arithmetic stays in cents."""

    def test_add_sub_neg(self):
        a = Money.parse("10.10")
        b = Money.parse("0.20")
        assert a + b == Money(1030)
        assert a - b == Money(990)
        assert -a == Money(-1010)
        assert abs(Money(-5)) == Money(5)

    def test_sum_builtin(self):
        assert sum([Money(1), Money(2), Money(3)]) == Money(6)

    def test_no_float_drift(self):
        total = sum([Money.parse("0.10")] * 3, Money.zero())
        assert total == Money.parse("0.30")

    def test_ordering(self):
        assert Money(1) < Money(2)
        assert max(Money(5), Money(3)) == Money(5)

    def test_str_and_decimal(self):
        assert str(Money(3334)) == "33.34"
        assert str(Money(-1000)) == "-10.00"
        assert Money(7).to_decimal() == Decimal("0.07")

    def test_format_with_currency(self):
        assert Money(1000).format("USD") == "$10.00"
        assert Money(-1000).format("CAD") == "-C$10.00"
        assert Money(1000).format("XYZ") == "10.00"
        assert currency_symbol("inr") == "₹"

    def test_from_cents_requires_int(self):
        assert Money.from_cents(250) == Money.parse("2.50")
        assert Money.from_cents(0).is_zero()
        with pytest.raises(TypeError):
            Money.from_cents(2.5)
