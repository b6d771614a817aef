"""
Module: payroll_engines.adjustments
Responsibility:
    Sum one-off payroll adjustments (variable pay, reimbursements, arrears)
    for an employee and period into a total amount and a taxable amount.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Adjustments are applied after structure evaluation; they never feed a
    percentage base.

Invariants enforced:
    - taxable_amount == 0 whenever is_taxable is False.
    - taxable_amount == max(0, amount - tax_exemption_limit) otherwise; an
      absent limit counts as zero.
    - Summation is commutative: input order never changes the summary.
    - Only arrears may be negative (retroactive corrections).

Failure modes:
    - ValueError on construction with a float amount, a negative amount on a
      non-arrears record, a tax exemption limit on anything other than a
      reimbursement, or an invalid month.
    - ValueError from resolve() when an adjustment is in another currency.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from payroll_engines.period import PayPeriod
from payroll_kernel.domain.values import Currency, Money
from payroll_kernel.exceptions import CurrencyMismatchError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.adjustments")


class AdjustmentType(str, Enum):
    """Kinds of one-off adjustment."""

    VARIABLE_PAY = "variable_pay"
    REIMBURSEMENT = "reimbursement"
    ARREARS = "arrears"


@dataclass(frozen=True)
class Adjustment:
    """
    A one-off amount added to (or, for arrears, taken from) one pay period.

    ``category`` is informational (``bonus``, ``incentive``, ``travel``,
    ``salary_revision`` ...).
    """

    adjustment_id: str
    employee_id: str
    adjustment_type: AdjustmentType
    amount: Money
    applicable_month: int
    applicable_year: int
    category: str = ""
    is_taxable: bool = True
    tax_exemption_limit: Money | None = None
    is_approved: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.adjustment_type, AdjustmentType):
            object.__setattr__(self, "adjustment_type", AdjustmentType(self.adjustment_type))
        if not isinstance(self.amount, Money):
            raise ValueError(f"Adjustment {self.adjustment_id}: amount must be Money")
        if self.amount.is_negative and self.adjustment_type != AdjustmentType.ARREARS:
            raise ValueError(
                f"Adjustment {self.adjustment_id}: only arrears may be negative, "
                f"got {self.amount}"
            )
        if self.tax_exemption_limit is not None:
            if self.adjustment_type != AdjustmentType.REIMBURSEMENT:
                raise ValueError(
                    f"Adjustment {self.adjustment_id}: tax exemption limit applies "
                    "to reimbursements only"
                )
            if self.tax_exemption_limit.currency != self.amount.currency:
                raise ValueError(
                    f"Adjustment {self.adjustment_id}: exemption limit currency mismatch"
                )
            if self.tax_exemption_limit.is_negative:
                raise ValueError(
                    f"Adjustment {self.adjustment_id}: exemption limit cannot be negative"
                )
        if not 1 <= self.applicable_month <= 12:
            raise ValueError(
                f"Adjustment {self.adjustment_id}: applicable_month must be 1-12, "
                f"got {self.applicable_month}"
            )
        object.__setattr__(self, "category", (self.category or "").strip().lower())

    @property
    def period(self) -> PayPeriod:
        return PayPeriod(year=self.applicable_year, month=self.applicable_month)

    @property
    def taxable_amount(self) -> Money:
        if not self.is_taxable:
            return Money.zero(self.amount.currency)
        taxable = self.amount
        if self.tax_exemption_limit is not None:
            taxable = taxable - self.tax_exemption_limit
        if taxable.is_negative:
            return Money.zero(self.amount.currency)
        return taxable

    def applies_to(self, period: PayPeriod) -> bool:
        return self.period == period


@dataclass(frozen=True)
class AdjustmentSummary:
    """Totals of the adjustments applied to one employee and period."""

    total_amount: Money
    total_taxable: Money
    variable_pay_total: Money
    reimbursement_total: Money
    arrears_total: Money
    count: int = 0

    @classmethod
    def empty(cls, currency: Currency | str) -> AdjustmentSummary:
        zero = Money.zero(currency)
        return cls(zero, zero, zero, zero, zero, 0)


class AdjustmentResolver:
    """Pure summation of adjustments; holds no state."""

    def resolve(
        self,
        adjustments: Iterable[Adjustment],
        currency: Currency | str,
    ) -> AdjustmentSummary:
        """
        Sum ``adjustments``.

        The caller selects which adjustments apply (period, approval); every
        record passed in is counted.

        Raises:
            CurrencyMismatchError: An adjustment is not in ``currency``.
        """
        if isinstance(currency, str):
            currency = Currency(currency)
        zero = Money.zero(currency)
        totals = {t: zero for t in AdjustmentType}
        total_taxable = zero
        count = 0

        for adjustment in adjustments:
            if adjustment.amount.currency != currency:
                raise CurrencyMismatchError(
                    f"Adjustment {adjustment.adjustment_id}",
                    str(adjustment.amount.currency), str(currency),
                )
            totals[adjustment.adjustment_type] += adjustment.amount
            total_taxable += adjustment.taxable_amount
            count += 1

        summary = AdjustmentSummary(
            total_amount=Money.total(totals.values(), currency),
            total_taxable=total_taxable,
            variable_pay_total=totals[AdjustmentType.VARIABLE_PAY],
            reimbursement_total=totals[AdjustmentType.REIMBURSEMENT],
            arrears_total=totals[AdjustmentType.ARREARS],
            count=count,
        )
        logger.debug("adjustments_resolved", extra={
            "count": count,
            "total_amount": str(summary.total_amount.amount),
            "total_taxable": str(total_taxable.amount),
        })
        return summary


def resolve_adjustments(
    adjustments: Iterable[Adjustment],
    currency: Currency | str = "INR",
) -> AdjustmentSummary:
    """Sum adjustments with a default resolver."""
    return AdjustmentResolver().resolve(adjustments, currency)
