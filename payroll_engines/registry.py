"""
Module: payroll_engines.registry
Responsibility:
    Hold the named numeric bases (``ctc``, ``basic``, ``gross`` and every
    resolved component) for one structure evaluation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  A BaseRegistry is created
    by StructureEvaluator for a single evaluation and never shared between
    employees or threads.

Invariants enforced:
    - ``ctc`` is seeded at construction; ``basic`` and ``gross`` start unset.
    - Reading an unset name never yields 0: ``get`` returns the
      ``NOT_RESOLVED`` sentinel and ``require`` raises
      UnresolvedReferenceError.

Failure modes:
    - UnresolvedReferenceError from ``require`` on an unset name.
    - ValueError from ``set`` with a non-Money value or a foreign currency.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Final

from payroll_kernel.domain.values import Money
from payroll_kernel.exceptions import UnresolvedReferenceError


class ReferenceBase(str, Enum):
    """Standing bases a percentage component can be computed from."""

    CTC = "ctc"
    BASIC = "basic"
    GROSS = "gross"


STANDING_BASES: Final = frozenset(base.value for base in ReferenceBase)


class _NotResolved:
    """Sentinel type for a base that has not been set yet."""

    _instance: _NotResolved | None = None

    def __new__(cls) -> _NotResolved:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_RESOLVED"

    def __bool__(self) -> bool:
        return False


NOT_RESOLVED: Final = _NotResolved()


class BaseRegistry:
    """
    Named bases for one employee/period evaluation.

    Usage:
        registry = BaseRegistry(Money.of("600000", "INR"))
        registry.get("basic")            # NOT_RESOLVED
        registry.set("basic", Money.of("240000.00", "INR"))
        registry.require("basic", component_name="hra", priority=2)
    """

    def __init__(self, ctc: Money):
        self._currency = ctc.currency
        self._values: dict[str, Money] = {ReferenceBase.CTC.value: ctc}

    @property
    def ctc(self) -> Money:
        return self._values[ReferenceBase.CTC.value]

    def set(self, name: str, value: Money) -> None:
        if not isinstance(value, Money):
            raise ValueError(f"Registry values must be Money, got {type(value).__name__}")
        if value.currency != self._currency:
            raise ValueError(
                f"Registry is denominated in {self._currency}, "
                f"cannot set {name!r} in {value.currency}"
            )
        self._values[name] = value

    def get(self, name: str) -> Money | _NotResolved:
        return self._values.get(name, NOT_RESOLVED)

    def is_resolved(self, name: str) -> bool:
        return name in self._values

    def require(self, name: str, *, component_name: str, priority: int) -> Money:
        """Return the value of ``name`` or raise on behalf of the reading component."""
        value = self._values.get(name)
        if value is None:
            raise UnresolvedReferenceError(component_name, priority, name)
        return value

    def snapshot(self) -> Mapping[str, Money]:
        """Read-only view of every resolved base, for audit output."""
        return MappingProxyType(dict(self._values))

    def __contains__(self, name: object) -> bool:
        return name in self._values

    def __repr__(self) -> str:
        names = ", ".join(sorted(self._values))
        return f"BaseRegistry({names})"
