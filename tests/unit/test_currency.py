"""Tests for CurrencyRegistry and the Currency value object."""

from decimal import Decimal

import pytest

from payroll_kernel.domain.currency import CurrencyRegistry
from payroll_kernel.domain.values import Currency


class TestCurrencyRegistry:

    def test_inr_registered(self):
        assert CurrencyRegistry.is_valid("INR")
        assert CurrencyRegistry.get_decimal_places("INR") == 2
        assert CurrencyRegistry.get_quantum("INR") == Decimal("0.01")

    def test_lowercase_accepted(self):
        assert CurrencyRegistry.is_valid("inr")
        assert CurrencyRegistry.validate(" inr ") == "INR"

    def test_unknown_code(self):
        assert not CurrencyRegistry.is_valid("XYZ")
        assert CurrencyRegistry.get_info("XYZ") is None

    @pytest.mark.parametrize("code", ["", "IN", "INRR", None])
    def test_validate_rejects_malformed(self, code):
        with pytest.raises(ValueError):
            CurrencyRegistry.validate(code)

    def test_minor_units(self):
        assert CurrencyRegistry.get_decimal_places("JPY") == 0
        assert CurrencyRegistry.get_decimal_places("KWD") == 3

    def test_all_codes_is_frozen(self):
        codes = CurrencyRegistry.all_codes()
        assert "INR" in codes
        assert isinstance(codes, frozenset)


class TestCurrencyValueObject:

    def test_normalized(self):
        assert Currency("inr").code == "INR"

    def test_invalid_rejected(self):
        with pytest.raises(ValueError):
            Currency("ABC")

    def test_equality_and_hash(self):
        assert Currency("INR") == Currency("inr")
        assert len({Currency("INR"), Currency("inr")}) == 1

    def test_quantum(self):
        assert Currency("BHD").quantum == Decimal("0.001")
        assert Currency("INR").decimal_places == 2
