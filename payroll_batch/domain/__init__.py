"""
payroll_batch.domain -- Pure types for payroll runs.

ZERO I/O.  All types are frozen dataclasses.
"""

from payroll_batch.domain.types import (
    CompanyTotals,
    EmployeeFailure,
    EmployeePayrollResult,
    EmployeeRecord,
    PayrollBatchResult,
    PayrollRunStatus,
)

__all__ = [
    "CompanyTotals",
    "EmployeeFailure",
    "EmployeePayrollResult",
    "EmployeeRecord",
    "PayrollBatchResult",
    "PayrollRunStatus",
]
