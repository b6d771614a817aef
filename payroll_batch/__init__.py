"""
payroll_batch -- Company payroll runs over a batch of employees.

Fans the structure evaluator, the loan installment lookup and the
adjustment resolver out over every employee for one pay period, isolates
per-employee failures, and reduces the successful results into company
totals.

Architecture:
    payroll_batch/ is a top-level package.  Nothing in payroll_kernel/ or
    payroll_engines/ imports from payroll_batch.

Usage:
    from payroll_batch import run_payroll_batch

    result = run_payroll_batch(structure, employees, loans, adjustments, period)
    result.totals.net_payout
    result.failed_employee_ids
"""

from payroll_batch.domain.types import (
    CompanyTotals,
    EmployeeFailure,
    EmployeePayrollResult,
    EmployeeRecord,
    PayrollBatchResult,
    PayrollRunStatus,
)
from payroll_batch.services.aggregator import PayrollRunAggregator, run_payroll_batch

__all__ = [
    "CompanyTotals",
    "EmployeeFailure",
    "EmployeePayrollResult",
    "EmployeeRecord",
    "PayrollBatchResult",
    "PayrollRunAggregator",
    "PayrollRunStatus",
    "run_payroll_batch",
]
