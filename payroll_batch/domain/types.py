"""
payroll_batch.domain.types -- Pure frozen dataclasses for payroll runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.

Invariants enforced:
    - Per-employee atomicity: an EmployeePayrollResult is only built once
      structure evaluation, installment lookup and adjustment resolution
      have all succeeded for that employee.
    - Batch results list employees in input order, independent of the order
      in which worker threads finished.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from payroll_engines.adjustments import AdjustmentSummary
from payroll_engines.loan import Loan, LoanInstallment
from payroll_engines.period import PayPeriod
from payroll_engines.structure import PayrollResult, SalaryStructure
from payroll_kernel.domain.values import Currency, Money


class PayrollRunStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # Every employee processed
    PARTIALLY_COMPLETED = "partially_completed"  # Some employees failed
    FAILED = "failed"  # No employee processed


@dataclass(frozen=True)
class EmployeeRecord:
    """
    One employee in a payroll run.

    ``ctc`` is the CTC figure for the period being run.  ``structure``
    overrides the company structure for this employee.
    """

    employee_id: str
    ctc: Money | Decimal | str | int
    structure: SalaryStructure | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.employee_id, str) or not self.employee_id.strip():
            raise ValueError("employee_id cannot be blank")
        if isinstance(self.ctc, float):
            raise ValueError(f"Employee {self.employee_id}: ctc must not be float")


@dataclass(frozen=True)
class EmployeePayrollResult:
    """Net pay for one employee and period."""

    employee_id: str
    period: PayPeriod
    structure_result: PayrollResult
    loan_installments: tuple[LoanInstallment, ...]
    adjustments: AdjustmentSummary
    loan_deduction: Money
    final_net_pay: Money
    taxable_income: Money

    @property
    def gross_earnings(self) -> Money:
        return self.structure_result.gross_earnings

    @property
    def total_deductions(self) -> Money:
        return self.structure_result.total_deductions

    @property
    def structure_net_pay(self) -> Money:
        return self.structure_result.net_pay

    @property
    def adjustment_amount(self) -> Money:
        return self.adjustments.total_amount


@dataclass(frozen=True)
class EmployeeFailure:
    """An employee whose evaluation raised a payroll error."""

    employee_id: str
    error_code: str
    message: str


@dataclass(frozen=True)
class CompanyTotals:
    """Company-level sums over the successful employees only."""

    gross_earnings: Money
    total_deductions: Money
    loan_deductions: Money
    adjustments: Money
    net_payout: Money
    taxable_income: Money

    @classmethod
    def zero(cls, currency: Currency | str) -> CompanyTotals:
        z = Money.zero(currency)
        return cls(z, z, z, z, z, z)


@dataclass(frozen=True)
class PayrollBatchResult:
    """
    Immutable result of one payroll run.

    Returned by ``PayrollRunAggregator.run()``.
    """

    period: PayPeriod
    status: PayrollRunStatus
    employee_results: tuple[EmployeePayrollResult, ...]
    failures: tuple[EmployeeFailure, ...]
    totals: CompanyTotals
    updated_loans: tuple[Loan, ...] = field(default_factory=tuple)
    duration_ms: float = 0.0

    @property
    def failed_employee_ids(self) -> tuple[str, ...]:
        return tuple(f.employee_id for f in self.failures)

    @property
    def total_employees(self) -> int:
        return len(self.employee_results) + len(self.failures)

    @property
    def processed_employees(self) -> int:
        return len(self.employee_results)

    @property
    def failed_employees(self) -> int:
        return len(self.failures)

    def result_for(self, employee_id: str) -> EmployeePayrollResult | None:
        for result in self.employee_results:
            if result.employee_id == employee_id:
                return result
        return None
