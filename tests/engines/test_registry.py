"""Tests for BaseRegistry and the NOT_RESOLVED sentinel."""

import pytest

from payroll_engines.registry import NOT_RESOLVED, BaseRegistry, ReferenceBase
from payroll_kernel.domain.values import Money
from payroll_kernel.exceptions import UnresolvedReferenceError


class TestBaseRegistry:

    def setup_method(self):
        self.ctc = Money.of("600000", "INR")
        self.registry = BaseRegistry(self.ctc)

    def test_seeded_with_ctc(self):
        assert self.registry.ctc == self.ctc
        assert self.registry.get("ctc") == self.ctc
        assert self.registry.is_resolved(ReferenceBase.CTC.value)

    def test_basic_and_gross_start_unset(self):
        assert self.registry.get("basic") is NOT_RESOLVED
        assert self.registry.get("gross") is NOT_RESOLVED
        assert "basic" not in self.registry

    def test_set_then_get(self):
        self.registry.set("basic", Money.of("240000.00", "INR"))
        assert self.registry.get("basic") == Money.of("240000", "INR")
        assert self.registry.is_resolved("basic")

    def test_require_unset_raises_with_context(self):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            self.registry.require("gross", component_name="Bonus", priority=2)
        err = exc_info.value
        assert err.component_name == "Bonus"
        assert err.priority == 2
        assert err.reference == "gross"
        assert err.code == "UNRESOLVED_REFERENCE"

    def test_require_set_value(self):
        assert self.registry.require("ctc", component_name="Basic", priority=1) == self.ctc

    def test_set_rejects_foreign_currency(self):
        with pytest.raises(ValueError, match="denominated"):
            self.registry.set("basic", Money.of("1", "USD"))

    def test_set_rejects_non_money(self):
        with pytest.raises(ValueError, match="Money"):
            self.registry.set("basic", 100)

    def test_snapshot_is_read_only(self):
        snap = self.registry.snapshot()
        with pytest.raises(TypeError):
            snap["basic"] = Money.of("1", "INR")

    def test_snapshot_is_detached(self):
        snap = self.registry.snapshot()
        self.registry.set("basic", Money.of("1", "INR"))
        assert "basic" not in snap


class TestNotResolvedSentinel:

    def test_is_falsy_singleton(self):
        assert not NOT_RESOLVED
        assert type(NOT_RESOLVED)() is NOT_RESOLVED
        assert repr(NOT_RESOLVED) == "NOT_RESOLVED"

    def test_distinct_from_zero(self):
        assert NOT_RESOLVED != Money.zero("INR")
