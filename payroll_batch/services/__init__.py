"""payroll_batch.services -- Payroll run orchestration."""

from payroll_batch.services.aggregator import PayrollRunAggregator, run_payroll_batch

__all__ = ["PayrollRunAggregator", "run_payroll_batch"]
