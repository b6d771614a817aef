"""
Module: payroll_engines.components
Responsibility:
    Define salary components and resolve a single component to a monetary
    amount against a BaseRegistry.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (values, exceptions, logging) and sibling
    engine modules.

Invariants enforced:
    - ``kind`` and ``reference`` are closed types (ComponentKind,
      ComponentReference), validated at construction rather than compared as
      free-form strings at evaluation time.
    - A percentage component always has a reference; a fixed component never
      has one.
    - Resolved amounts are quantized to the currency minor unit with
      round-half-even so that rounding across many components carries no
      systematic upward bias.
    - Inactive components resolve to zero.

Failure modes:
    - ValueError on construction with a blank name, a non-positive priority,
      a percentage outside 0-100, a negative fixed amount, a float amount, or
      a missing/extraneous reference.
    - UnresolvedReferenceError when the referenced base is not yet set.

Usage:
    from payroll_engines.components import ComponentResolver, SalaryComponent
    from payroll_engines.registry import BaseRegistry

    basic = SalaryComponent(
        name="Basic", kind="earning", category="basic",
        is_percentage=True, amount_or_rate=Decimal("40"),
        reference="ctc", priority=1,
    )
    registry = BaseRegistry(Money.of("600000", "INR"))
    ComponentResolver().resolve(basic, registry)  # Money: 240000.00 INR
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Final

from payroll_engines.registry import STANDING_BASES, BaseRegistry, ReferenceBase
from payroll_kernel.domain.values import DEFAULT_ROUNDING, Money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.components")

HUNDRED: Final = Decimal("100")

# Categories offered by the structure editor. Informational only: the
# evaluator gives meaning to the basic category alone.
EARNING_CATEGORIES: Final = (
    "basic",
    "hra",
    "special_allowance",
    "transport_allowance",
    "medical_allowance",
    "bonus",
)
DEDUCTION_CATEGORIES: Final = (
    "income_tax",
    "professional_tax",
    "provident_fund",
    "health_insurance",
    "loan",
    "advance",
)


class ComponentKind(str, Enum):
    """Whether a component adds to or subtracts from pay."""

    EARNING = "earning"
    DEDUCTION = "deduction"


@dataclass(frozen=True)
class ComponentReference:
    """
    What a percentage component is computed from.

    Exactly one of ``base`` (a standing base) or ``component`` (the name of
    a component resolved at a lower priority) is set.
    """

    base: ReferenceBase | None = None
    component: str | None = None

    def __post_init__(self) -> None:
        if (self.base is None) == (self.component is None):
            raise ValueError("ComponentReference needs exactly one of base or component")
        if self.base is not None and not isinstance(self.base, ReferenceBase):
            object.__setattr__(self, "base", ReferenceBase(self.base))
        if self.component is not None:
            name = self.component.strip()
            if not name:
                raise ValueError("Component reference name cannot be blank")
            if name in STANDING_BASES:
                raise ValueError(
                    f"{name!r} is a standing base; use ComponentReference(base=...)"
                )
            object.__setattr__(self, "component", name)

    @classmethod
    def parse(cls, value: str | ReferenceBase | ComponentReference) -> ComponentReference:
        """Parse ``"ctc"``/``"basic"``/``"gross"`` as bases, anything else as a name.

        Matching is exact: ``"Basic"`` names a component, ``"basic"`` the base.
        """
        if isinstance(value, ComponentReference):
            return value
        if isinstance(value, ReferenceBase):
            return cls(base=value)
        text = value.strip()
        if text in STANDING_BASES:
            return cls(base=ReferenceBase(text))
        return cls(component=text)

    @property
    def key(self) -> str:
        """Registry name this reference reads."""
        return self.base.value if self.base is not None else self.component

    @property
    def is_standing(self) -> bool:
        return self.base is not None

    def __str__(self) -> str:
        return self.key


def _to_decimal(value: Decimal | str | int, field_name: str) -> Decimal:
    if isinstance(value, float):
        raise ValueError(f"{field_name} must not be float (got {value!r})")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {field_name}: {value!r}") from e


@dataclass(frozen=True)
class SalaryComponent:
    """
    One line of a salary structure.

    ``amount_or_rate`` is a percentage (0-100) of ``reference`` when
    ``is_percentage`` is set, otherwise an absolute amount in the
    structure's currency.  ``priority`` orders resolution: lower resolves
    first, and a component may only reference components at strictly lower
    priority or one of the standing bases.
    """

    name: str
    kind: ComponentKind
    category: str
    is_percentage: bool
    amount_or_rate: Decimal
    priority: int
    reference: ComponentReference | None = None
    is_taxable: bool = True
    is_statutory: bool = False
    active: bool = True

    def __post_init__(self) -> None:
        name = self.name.strip() if isinstance(self.name, str) else ""
        if not name:
            raise ValueError("Component name cannot be blank")
        if name in STANDING_BASES:
            raise ValueError(f"Component name {name!r} shadows a standing base")
        object.__setattr__(self, "name", name)

        if not isinstance(self.kind, ComponentKind):
            object.__setattr__(self, "kind", ComponentKind(self.kind))
        object.__setattr__(self, "category", (self.category or "").strip().lower())

        amount = _to_decimal(self.amount_or_rate, "amount_or_rate")
        object.__setattr__(self, "amount_or_rate", amount)

        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise ValueError(f"priority must be an integer, got {self.priority!r}")
        if self.priority < 1:
            raise ValueError(f"priority must be >= 1, got {self.priority}")

        if self.reference is not None and not isinstance(self.reference, ComponentReference):
            object.__setattr__(self, "reference", ComponentReference.parse(self.reference))

        if self.is_percentage:
            if self.reference is None:
                raise ValueError(f"Percentage component {name!r} requires a reference")
            if not Decimal("0") <= amount <= HUNDRED:
                raise ValueError(
                    f"Percentage for {name!r} must be between 0 and 100, got {amount}"
                )
            if self.reference.component == name:
                raise ValueError(f"Component {name!r} cannot reference itself")
        else:
            if self.reference is not None:
                raise ValueError(f"Fixed component {name!r} cannot have a reference")
            if amount < 0:
                raise ValueError(f"Fixed amount for {name!r} cannot be negative, got {amount}")

    @property
    def is_earning(self) -> bool:
        return self.kind == ComponentKind.EARNING

    @property
    def is_deduction(self) -> bool:
        return self.kind == ComponentKind.DEDUCTION


class ComponentResolver:
    """
    Resolve one salary component against a registry.

    Pure -- no I/O. The registry is only read; the StructureEvaluator is
    responsible for writing results back.
    """

    def __init__(self, rounding: str = DEFAULT_ROUNDING):
        self._rounding = rounding

    def resolve(self, component: SalaryComponent, registry: BaseRegistry) -> Money:
        """
        Resolve ``component`` to a rounded amount.

        Raises:
            UnresolvedReferenceError: If a percentage component's reference
                has not been set in ``registry``.
        """
        currency = registry.ctc.currency

        if not component.active:
            logger.debug("component_inactive", extra={
                "component": component.name,
                "priority": component.priority,
            })
            return Money.zero(currency)

        if not component.is_percentage:
            amount = Money.of(component.amount_or_rate, currency).round(self._rounding)
        else:
            base = registry.require(
                component.reference.key,
                component_name=component.name,
                priority=component.priority,
            )
            amount = (base * (component.amount_or_rate / HUNDRED)).round(self._rounding)

        logger.debug("component_resolved", extra={
            "component": component.name,
            "priority": component.priority,
            "kind": component.kind.value,
            "is_percentage": component.is_percentage,
            "reference": component.reference.key if component.reference else None,
            "amount": str(amount.amount),
        })
        return amount
