"""
Module: payroll_engines.structure
Responsibility:
    Evaluate a complete salary structure against an employee's CTC:
    validate the structure, resolve every component in priority order,
    maintain the ``basic`` and ``gross`` bases as components resolve, and
    produce earnings/deductions subtotals, taxable income and net pay.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Orchestrates ComponentResolver and BaseRegistry; called directly by
    the payroll orchestration layer and by the batch aggregator.

Invariants enforced:
    - Priorities form a total order: duplicates are rejected before any
      component is resolved.
    - Single evaluation pass in ascending priority; input order of the
      component tuple never affects the result.
    - A component may only read bases resolved at a strictly lower priority.
    - gross_earnings == sum of resolved active earnings, and
      net_pay == gross_earnings - total_deductions, exactly.
    - Evaluation never mutates the structure; every call builds a fresh
      registry and a fresh PayrollResult.

Taxable income policy:
    taxable_income = sum of active earnings flagged ``is_taxable``
                     minus active deductions flagged both ``is_taxable`` and
                     ``is_statutory`` (pre-tax statutory deductions),
    floored at zero.  Inactive components contribute nothing, including to
    the ``gross`` base.

Failure modes:
    - DuplicatePriorityError, NoActiveEarningsError,
      MissingBasicComponentError, InvalidCtcError (ValidationError family).
    - UnresolvedReferenceError for forward, unknown or not-yet-set
      references.
    - CurrencyMismatchError when the CTC currency differs from the structure
      currency.

Usage:
    from payroll_engines.structure import evaluate_structure

    result = evaluate_structure(structure, Money.of("600000", "INR"))
    result.net_pay
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from payroll_engines.components import ComponentKind, ComponentResolver, SalaryComponent
from payroll_engines.registry import BaseRegistry, ReferenceBase
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import DEFAULT_ROUNDING, Currency, Money
from payroll_kernel.exceptions import (
    CurrencyMismatchError,
    DuplicatePriorityError,
    InvalidCtcError,
    MissingBasicComponentError,
    NoActiveEarningsError,
    UnresolvedReferenceError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.structure")

DEFAULT_BASIC_CATEGORY = "basic"


@dataclass(frozen=True)
class SalaryStructure:
    """
    A company's salary structure: an ordered set of components.

    The CTC is supplied at evaluation time and never stored here.
    Cross-component rules (unique priorities, a basic component, active
    earnings, backward-only references) are checked by ``validate()`` so a
    malformed structure can still be constructed and reported per employee.
    """

    structure_id: str
    company_id: str
    name: str
    components: tuple[SalaryComponent, ...]
    currency: Currency = field(default_factory=lambda: Currency("INR"))
    description: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "components", tuple(self.components))
        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))

        seen: set[str] = set()
        for component in self.components:
            if not isinstance(component, SalaryComponent):
                raise ValueError(
                    f"Structure components must be SalaryComponent, got {type(component).__name__}"
                )
            if component.name in seen:
                raise ValueError(
                    f"Duplicate component name {component.name!r} in structure {self.structure_id}"
                )
            seen.add(component.name)

    @property
    def components_by_priority(self) -> tuple[SalaryComponent, ...]:
        return tuple(sorted(self.components, key=lambda c: c.priority))

    @property
    def active_components(self) -> tuple[SalaryComponent, ...]:
        return tuple(c for c in self.components_by_priority if c.active)

    def get_component(self, name: str) -> SalaryComponent | None:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def validate(self, basic_category: str = DEFAULT_BASIC_CATEGORY) -> None:
        """
        Check the cross-component invariants.

        Raises:
            DuplicatePriorityError: Two components share a priority.
            NoActiveEarningsError: No active earning component.
            MissingBasicComponentError: No active earning of ``basic_category``.
            UnresolvedReferenceError: An active percentage component names a
                component that does not exist or is not at a strictly lower
                priority.
        """
        by_priority: dict[int, list[str]] = defaultdict(list)
        for component in self.components:
            by_priority[component.priority].append(component.name)
        for priority in sorted(by_priority):
            names = by_priority[priority]
            if len(names) > 1:
                raise DuplicatePriorityError(self.structure_id, priority, names)

        active = self.active_components
        if not any(c.is_earning for c in active):
            raise NoActiveEarningsError(self.structure_id)
        if not any(c.is_earning and c.category == basic_category for c in active):
            raise MissingBasicComponentError(self.structure_id, basic_category)

        for component in active:
            if not component.is_percentage or component.reference.is_standing:
                continue
            target = self.get_component(component.reference.component)
            if target is None or target.priority >= component.priority:
                raise UnresolvedReferenceError(
                    component.name, component.priority, component.reference.key,
                )


@dataclass(frozen=True)
class ResolvedComponent:
    """A component after evaluation. Inactive components carry a zero amount."""

    name: str
    kind: ComponentKind
    category: str
    priority: int
    resolved_amount: Money
    is_taxable: bool
    is_statutory: bool
    active: bool = True

    @property
    def is_earning(self) -> bool:
        return self.kind == ComponentKind.EARNING


@dataclass(frozen=True)
class PayrollResult:
    """
    Evaluated salary structure for one employee and period.

    Immutable value object; all amounts are rounded to the currency minor
    unit.
    """

    structure_id: str
    ctc: Money
    components: tuple[ResolvedComponent, ...]
    gross_earnings: Money
    total_deductions: Money
    taxable_income: Money
    net_pay: Money
    taxable_earnings: Money
    non_taxable_earnings: Money
    statutory_deductions: Money
    pre_tax_deductions: Money

    @property
    def currency(self) -> Currency:
        return self.ctc.currency

    @property
    def earnings_breakdown(self) -> dict[str, Money]:
        """Active earnings by component name, in priority order."""
        return {
            c.name: c.resolved_amount
            for c in self.components
            if c.active and c.kind == ComponentKind.EARNING
        }

    @property
    def deductions_breakdown(self) -> dict[str, Money]:
        """Active deductions by component name, in priority order."""
        return {
            c.name: c.resolved_amount
            for c in self.components
            if c.active and c.kind == ComponentKind.DEDUCTION
        }

    def amount_of(self, name: str) -> Money:
        """Resolved amount of the named component."""
        for component in self.components:
            if component.name == name:
                return component.resolved_amount
        raise KeyError(name)


class StructureEvaluator:
    """
    Evaluate salary structures.

    Pure functions - no I/O, no database access.
    Holds only configuration (rounding mode, basic category); safe to share
    between threads.
    """

    def __init__(
        self,
        rounding: str = DEFAULT_ROUNDING,
        basic_category: str = DEFAULT_BASIC_CATEGORY,
    ):
        self._rounding = rounding
        self._basic_category = basic_category
        self._resolver = ComponentResolver(rounding=rounding)

    @traced_engine("structure", "1.0", fingerprint_fields=("structure", "ctc"))
    def evaluate(
        self,
        structure: SalaryStructure,
        ctc: Money | Decimal | str | int,
    ) -> PayrollResult:
        """
        Evaluate ``structure`` for a CTC figure.

        Args:
            structure: The salary structure to evaluate.
            ctc: CTC figure; plain numbers are taken in the structure currency.

        Returns:
            PayrollResult with every component (inactive ones at zero).

        Raises:
            ValidationError: Structure or CTC invalid (see subclasses).
            UnresolvedReferenceError: A reference could not be resolved.
            CurrencyMismatchError: ``ctc`` is not in the structure currency.
        """
        t0 = time.monotonic()
        ctc = self._coerce_ctc(structure, ctc)

        logger.info("structure_evaluation_started", extra={
            "structure_id": structure.structure_id,
            "company_id": structure.company_id,
            "component_count": len(structure.components),
            "ctc": str(ctc.amount),
            "currency": ctc.currency.code,
        })

        try:
            structure.validate(self._basic_category)
        except (DuplicatePriorityError, NoActiveEarningsError,
                MissingBasicComponentError, UnresolvedReferenceError) as exc:
            logger.warning("structure_validation_failed", extra={
                "structure_id": structure.structure_id,
                "error_code": exc.code,
                "error": str(exc),
            })
            raise

        currency = ctc.currency
        zero = Money.zero(currency)
        registry = BaseRegistry(ctc)

        gross = zero
        deductions = zero
        taxable_earnings = zero
        non_taxable_earnings = zero
        statutory_deductions = zero
        pre_tax_deductions = zero
        basic_set = False
        resolved: list[ResolvedComponent] = []

        for component in structure.components_by_priority:
            amount = self._resolver.resolve(component, registry)
            registry.set(component.name, amount)
            resolved.append(ResolvedComponent(
                name=component.name,
                kind=component.kind,
                category=component.category,
                priority=component.priority,
                resolved_amount=amount,
                is_taxable=component.is_taxable,
                is_statutory=component.is_statutory,
                active=component.active,
            ))

            if not component.active:
                continue

            if component.is_earning:
                gross = gross + amount
                registry.set(ReferenceBase.GROSS.value, gross)
                if not basic_set and component.category == self._basic_category:
                    registry.set(ReferenceBase.BASIC.value, amount)
                    basic_set = True
                if component.is_taxable:
                    taxable_earnings = taxable_earnings + amount
                else:
                    non_taxable_earnings = non_taxable_earnings + amount
            else:
                deductions = deductions + amount
                if component.is_statutory:
                    statutory_deductions = statutory_deductions + amount
                    if component.is_taxable:
                        pre_tax_deductions = pre_tax_deductions + amount

        taxable_income = taxable_earnings - pre_tax_deductions
        if taxable_income.is_negative:
            taxable_income = zero
        net_pay = (gross - deductions).round(self._rounding)

        result = PayrollResult(
            structure_id=structure.structure_id,
            ctc=ctc,
            components=tuple(resolved),
            gross_earnings=gross,
            total_deductions=deductions,
            taxable_income=taxable_income,
            net_pay=net_pay,
            taxable_earnings=taxable_earnings,
            non_taxable_earnings=non_taxable_earnings,
            statutory_deductions=statutory_deductions,
            pre_tax_deductions=pre_tax_deductions,
        )

        logger.info("structure_evaluation_completed", extra={
            "structure_id": structure.structure_id,
            "gross_earnings": str(gross.amount),
            "total_deductions": str(deductions.amount),
            "taxable_income": str(taxable_income.amount),
            "net_pay": str(net_pay.amount),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return result

    def _coerce_ctc(
        self,
        structure: SalaryStructure,
        ctc: Money | Decimal | str | int,
    ) -> Money:
        if not isinstance(ctc, Money):
            ctc = Money.of(ctc, structure.currency)
        if ctc.currency != structure.currency:
            raise CurrencyMismatchError(
                f"CTC for structure {structure.structure_id}",
                str(ctc.currency), str(structure.currency),
            )
        if ctc.is_negative:
            logger.warning("structure_invalid_ctc", extra={
                "structure_id": structure.structure_id,
                "ctc": str(ctc.amount),
            })
            raise InvalidCtcError(structure.structure_id, ctc.amount)
        return ctc


def evaluate_structure(
    structure: SalaryStructure,
    ctc: Money | Decimal | str | int,
    rounding: str = DEFAULT_ROUNDING,
) -> PayrollResult:
    """
    Evaluate a salary structure with the default evaluator settings.

    Args:
        structure: Salary structure to evaluate
        ctc: CTC figure for the period

    Returns:
        PayrollResult
    """
    return StructureEvaluator(rounding=rounding).evaluate(structure, ctc)
