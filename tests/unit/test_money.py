"""
Unit tests for Money and decimal handling.

Verifies:
- Float constructor prohibition
- Round-half-even rounding to the currency minor unit
- Same-currency enforcement for arithmetic and comparison
"""

from decimal import ROUND_HALF_UP, Decimal

import pytest

from payroll_kernel.domain.values import DEFAULT_ROUNDING, Currency, Money


class TestMoneyConstruction:
    """Tests for Money creation and validation."""

    def test_of_string(self):
        money = Money.of("100.50", "INR")
        assert money.amount == Decimal("100.50")
        assert money.currency == Currency("INR")

    def test_of_int(self):
        assert Money.of(600000, "INR").amount == Decimal("600000")

    def test_float_rejected(self):
        with pytest.raises(ValueError, match="float"):
            Money(amount=100.5, currency=Currency("INR"))

    def test_invalid_string_rejected(self):
        with pytest.raises(ValueError):
            Money(amount="not a number", currency="INR")

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError, match="finite"):
            Money(amount=Decimal("Infinity"), currency="INR")

    def test_unknown_currency_rejected(self):
        with pytest.raises(ValueError):
            Money.of("1", "XYZ")

    def test_zero(self):
        zero = Money.zero("INR")
        assert zero.is_zero
        assert not zero.is_positive
        assert not zero.is_negative

    def test_total_of_empty_is_zero(self):
        assert Money.total([], "INR") == Money.zero("INR")

    def test_total(self):
        amounts = [Money.of("10.25", "INR"), Money.of("4.75", "INR")]
        assert Money.total(amounts, "INR") == Money.of("15.00", "INR")


class TestMoneyRounding:
    """Tests for rounding to the minor unit."""

    def test_default_is_half_even(self):
        assert DEFAULT_ROUNDING == "ROUND_HALF_EVEN"

    def test_half_rounds_to_even_down(self):
        assert Money.of("10.125", "INR").round().amount == Decimal("10.12")

    def test_half_rounds_to_even_up(self):
        assert Money.of("10.135", "INR").round().amount == Decimal("10.14")

    def test_half_up_when_requested(self):
        assert Money.of("10.125", "INR").round(ROUND_HALF_UP).amount == Decimal("10.13")

    def test_zero_decimal_currency(self):
        assert Money.of("1500.5", "JPY").round().amount == Decimal("1500")

    def test_three_decimal_currency(self):
        assert Money.of("1.23456", "KWD").round().amount == Decimal("1.235")

    def test_round_returns_new_object(self):
        original = Money.of("10.125", "INR")
        original.round()
        assert original.amount == Decimal("10.125")


class TestMoneyArithmetic:
    """Tests for arithmetic between Money values."""

    def setup_method(self):
        self.a = Money.of("100.00", "INR")
        self.b = Money.of("40.50", "INR")

    def test_add(self):
        assert self.a + self.b == Money.of("140.50", "INR")

    def test_subtract(self):
        assert self.a - self.b == Money.of("59.50", "INR")

    def test_negate(self):
        assert (-self.b).amount == Decimal("-40.50")
        assert (-self.b).is_negative

    def test_abs(self):
        assert abs(Money.of("-5", "INR")) == Money.of("5", "INR")

    def test_multiply_by_decimal(self):
        assert self.a * Decimal("0.4") == Money.of("40.000", "INR")

    def test_multiply_by_int_reflected(self):
        assert 3 * self.b == Money.of("121.50", "INR")

    def test_divide(self):
        assert (self.a / 4).amount == Decimal("25")

    def test_mixed_currency_add_rejected(self):
        with pytest.raises(ValueError, match="different currencies"):
            self.a + Money.of("1", "USD")

    def test_mixed_currency_compare_rejected(self):
        with pytest.raises(ValueError, match="different currencies"):
            self.a < Money.of("1", "USD")

    def test_ordering(self):
        assert self.b < self.a
        assert self.a >= self.b
        assert self.a > self.b
        assert self.b <= self.b

    def test_equality_ignores_trailing_zeros(self):
        assert Money.of("240000", "INR") == Money.of("240000.00", "INR")

    def test_str(self):
        assert str(Money.of("16607.15", "INR")) == "16607.15 INR"
