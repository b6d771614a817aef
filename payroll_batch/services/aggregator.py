"""
PayrollRunAggregator -- fan-out/reduce payroll run for one pay period.

Contract:
    For every employee, independently: evaluate the salary structure, look
    up the installment each of the employee's active loans deducts this
    period, resolve the employee's approved adjustments for the period, and
    combine them::

        final_net_pay = structure net pay - loan installments + adjustments

    Successful results are reduced into company totals; failures are
    recorded and the run continues.

Architecture: payroll_batch/services.  Imports from payroll_batch.domain,
    payroll_engines, payroll_config.schema and the kernel.

Invariants enforced:
    - Failure isolation: a PayrollKernelError for one employee (including a
      CTC, loan or adjustment in the wrong currency) becomes an
      EmployeeFailure; other employees are unaffected.  Any other exception
      is a programming error and propagates.
    - Per-employee atomicity: a result is built only after every
      sub-computation for that employee succeeded.
    - Deterministic reduction: totals are summed once, in input order,
      after every task finished.
    - Inputs are never mutated; consumed loans are returned advanced by one
      installment in ``updated_loans``.
"""

from __future__ import annotations

import contextvars
import os
import time
from collections import defaultdict
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor

from payroll_batch.domain.types import (
    CompanyTotals,
    EmployeeFailure,
    EmployeePayrollResult,
    EmployeeRecord,
    PayrollBatchResult,
    PayrollRunStatus,
)
from payroll_config.schema import PayrollEngineConfig
from payroll_engines.adjustments import Adjustment, AdjustmentResolver
from payroll_engines.loan import Loan, LoanAmortizer, LoanInstallment
from payroll_engines.period import PayPeriod
from payroll_engines.structure import SalaryStructure, StructureEvaluator
from payroll_kernel.domain.values import Money
from payroll_kernel.exceptions import CurrencyMismatchError, PayrollKernelError
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("batch.aggregator")


class PayrollRunAggregator:
    """Payroll run over a batch of employees.

    Contract:
        ``run()`` evaluates every employee on a bounded thread pool and
        returns a PayrollBatchResult.

    Non-goals:
        - Does NOT persist results or loan balances -- the caller stores
          ``updated_loans``.
        - Does NOT enforce a run-level timeout -- that belongs to the caller.
    """

    def __init__(self, config: PayrollEngineConfig | None = None):
        self._config = config or PayrollEngineConfig()
        self._evaluator = StructureEvaluator(
            rounding=self._config.rounding,
            basic_category=self._config.basic_category,
        )
        self._amortizer = LoanAmortizer(
            rounding=self._config.rounding,
            default_currency=self._config.currency,
        )
        self._adjustments = AdjustmentResolver()

    @property
    def config(self) -> PayrollEngineConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        structure: SalaryStructure,
        employees: Sequence[EmployeeRecord],
        loans: Iterable[Loan] = (),
        adjustments: Iterable[Adjustment] = (),
        period: PayPeriod | None = None,
    ) -> PayrollBatchResult:
        """Run payroll for ``employees`` in ``period``.

        Args:
            structure: Company salary structure; an EmployeeRecord may
                override it.
            employees: Employees in the run, in reporting order.
            loans: All loans, keyed to employees by ``employee_id``.
            adjustments: All adjustments; only approved records for
                ``period`` are applied.
            period: The pay period being run.

        Raises:
            ValueError: If ``period`` is missing or an employee id repeats.
        """
        if period is None:
            raise ValueError("A pay period is required for a payroll run")
        employees = list(employees)
        seen: set[str] = set()
        for employee in employees:
            if employee.employee_id in seen:
                raise ValueError(f"Employee {employee.employee_id} appears twice in the run")
            seen.add(employee.employee_id)

        start_time = time.monotonic()
        loans_by_employee = self._group_loans(loans)
        adjustments_by_employee = self._group_adjustments(adjustments, period)

        logger.info("payroll_run_started", extra={
            "structure_id": structure.structure_id,
            "company_id": structure.company_id,
            "period": period.label,
            "employee_count": len(employees),
        })

        max_workers = self._config.max_workers or os.cpu_count() or 1
        outcomes: list[EmployeePayrollResult | EmployeeFailure] = []
        if employees:
            with ThreadPoolExecutor(max_workers=min(max_workers, len(employees))) as executor:
                futures = [
                    executor.submit(
                        contextvars.copy_context().run,
                        self._run_employee,
                        employee,
                        employee.structure or structure,
                        loans_by_employee.get(employee.employee_id, ()),
                        adjustments_by_employee.get(employee.employee_id, ()),
                        period,
                    )
                    for employee in employees
                ]
                # Input order, regardless of completion order.
                outcomes = [future.result() for future in futures]

        result = self._reduce(outcomes, structure, loans_by_employee, period, start_time)

        logger.info("payroll_run_completed", extra={
            "structure_id": structure.structure_id,
            "period": period.label,
            "status": result.status.value,
            "processed_employees": result.processed_employees,
            "failed_employees": result.failed_employees,
            "net_payout": str(result.totals.net_payout.amount),
            "duration_ms": result.duration_ms,
        })
        return result

    # -------------------------------------------------------------------------
    # Per-employee task
    # -------------------------------------------------------------------------

    def _run_employee(
        self,
        employee: EmployeeRecord,
        structure: SalaryStructure,
        loans: Sequence[Loan],
        adjustments: Sequence[Adjustment],
        period: PayPeriod,
    ) -> EmployeePayrollResult | EmployeeFailure:
        with LogContext.bind(employee_id=employee.employee_id):
            try:
                return self._evaluate_employee(employee, structure, loans, adjustments, period)
            except PayrollKernelError as exc:
                logger.warning("payroll_employee_failed", extra={
                    "error_code": exc.code,
                    "error": str(exc),
                })
                return EmployeeFailure(
                    employee_id=employee.employee_id,
                    error_code=exc.code,
                    message=str(exc),
                )

    def _evaluate_employee(
        self,
        employee: EmployeeRecord,
        structure: SalaryStructure,
        loans: Sequence[Loan],
        adjustments: Sequence[Adjustment],
        period: PayPeriod,
    ) -> EmployeePayrollResult:
        structure_result = self._evaluator.evaluate(structure, employee.ctc)
        currency = structure_result.currency

        installments: list[LoanInstallment] = []
        for loan in loans:
            if loan.currency != currency:
                raise CurrencyMismatchError(
                    f"Loan {loan.loan_id}", str(loan.currency), str(currency),
                )
            installment = self._amortizer.installment_for_period(loan, period)
            if installment is not None:
                installments.append(installment)
        loan_deduction = Money.total((i.amount for i in installments), currency)

        summary = self._adjustments.resolve(adjustments, currency)

        final_net_pay = structure_result.net_pay - loan_deduction + summary.total_amount
        taxable_income = structure_result.taxable_income + summary.total_taxable

        logger.debug("payroll_employee_evaluated", extra={
            "structure_net_pay": str(structure_result.net_pay.amount),
            "loan_deduction": str(loan_deduction.amount),
            "adjustments": str(summary.total_amount.amount),
            "final_net_pay": str(final_net_pay.amount),
        })

        return EmployeePayrollResult(
            employee_id=employee.employee_id,
            period=period,
            structure_result=structure_result,
            loan_installments=tuple(installments),
            adjustments=summary,
            loan_deduction=loan_deduction,
            final_net_pay=final_net_pay,
            taxable_income=taxable_income,
        )

    # -------------------------------------------------------------------------
    # Grouping and reduction
    # -------------------------------------------------------------------------

    @staticmethod
    def _group_loans(loans: Iterable[Loan]) -> dict[str, tuple[Loan, ...]]:
        grouped: dict[str, list[Loan]] = defaultdict(list)
        for loan in loans:
            grouped[loan.employee_id].append(loan)
        return {k: tuple(v) for k, v in grouped.items()}

    @staticmethod
    def _group_adjustments(
        adjustments: Iterable[Adjustment],
        period: PayPeriod,
    ) -> dict[str, tuple[Adjustment, ...]]:
        grouped: dict[str, list[Adjustment]] = defaultdict(list)
        for adjustment in adjustments:
            if not adjustment.applies_to(period):
                logger.debug("adjustment_skipped_other_period", extra={
                    "adjustment_id": adjustment.adjustment_id,
                    "employee_id": adjustment.employee_id,
                    "applicable_period": adjustment.period.label,
                })
                continue
            if not adjustment.is_approved:
                logger.info("adjustment_skipped_unapproved", extra={
                    "adjustment_id": adjustment.adjustment_id,
                    "employee_id": adjustment.employee_id,
                })
                continue
            grouped[adjustment.employee_id].append(adjustment)
        return {k: tuple(v) for k, v in grouped.items()}

    def _reduce(
        self,
        outcomes: list[EmployeePayrollResult | EmployeeFailure],
        structure: SalaryStructure,
        loans_by_employee: dict[str, tuple[Loan, ...]],
        period: PayPeriod,
        start_time: float,
    ) -> PayrollBatchResult:
        currency = structure.currency
        results = [o for o in outcomes if isinstance(o, EmployeePayrollResult)]
        failures = [o for o in outcomes if isinstance(o, EmployeeFailure)]

        totals = CompanyTotals.zero(currency)
        if results:
            currency = results[0].final_net_pay.currency
            totals = CompanyTotals(
                gross_earnings=Money.total((r.gross_earnings for r in results), currency),
                total_deductions=Money.total((r.total_deductions for r in results), currency),
                loan_deductions=Money.total((r.loan_deduction for r in results), currency),
                adjustments=Money.total((r.adjustment_amount for r in results), currency),
                net_payout=Money.total((r.final_net_pay for r in results), currency),
                taxable_income=Money.total((r.taxable_income for r in results), currency),
            )

        updated_loans: list[Loan] = []
        for result in results:
            by_id = {loan.loan_id: loan for loan in loans_by_employee.get(result.employee_id, ())}
            for installment in result.loan_installments:
                updated_loans.append(by_id[installment.loan_id].advance(installment))

        if not failures:
            status = PayrollRunStatus.COMPLETED
        elif not results:
            status = PayrollRunStatus.FAILED
        else:
            status = PayrollRunStatus.PARTIALLY_COMPLETED

        return PayrollBatchResult(
            period=period,
            status=status,
            employee_results=tuple(results),
            failures=tuple(failures),
            totals=totals,
            updated_loans=tuple(updated_loans),
            duration_ms=round((time.monotonic() - start_time) * 1000, 2),
        )


def run_payroll_batch(
    structure: SalaryStructure,
    employees: Sequence[EmployeeRecord],
    loans: Iterable[Loan],
    adjustments: Iterable[Adjustment],
    period: PayPeriod,
    config: PayrollEngineConfig | None = None,
) -> PayrollBatchResult:
    """
    Run payroll for one period.

    Args:
        structure: Company salary structure
        employees: Employees with their CTC for the period
        loans: Employee loans (flat list, matched by employee_id)
        adjustments: Adjustments (flat list, filtered to period and approval)
        period: Pay period
        config: Engine configuration (defaults to PayrollEngineConfig())

    Returns:
        PayrollBatchResult
    """
    return PayrollRunAggregator(config).run(structure, employees, loans, adjustments, period)
