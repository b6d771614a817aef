#!/usr/bin/env python3
"""
Payroll command-line tool: EMI previews and payroll runs from YAML.

Usage:
    python3 scripts/payroll_cli.py emi <principal> <annual_rate_percent> <tenure_months>
    python3 scripts/payroll_cli.py emi 500000 12 36 --schedule
    python3 scripts/payroll_cli.py run scripts/sample_batch.yaml
    python3 scripts/payroll_cli.py --trace run scripts/sample_batch.yaml

Examples:
    # EMI, total payable and total interest for a 5 lakh loan at 12% over 3 years
    python3 scripts/payroll_cli.py emi 500000 12 36

    # Full month-by-month amortization schedule
    python3 scripts/payroll_cli.py emi 500000 12 36 --schedule

    # Run payroll for every employee in a batch file
    python3 scripts/payroll_cli.py run scripts/sample_batch.yaml
"""

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from payroll_batch import run_payroll_batch  # noqa: E402
from payroll_config.loader import load_batch  # noqa: E402
from payroll_engines.loan import LoanAmortizer  # noqa: E402
from payroll_kernel.exceptions import PayrollKernelError  # noqa: E402
from payroll_kernel.logging_config import configure_logging  # noqa: E402

W = 80


# =============================================================================
# Formatting helpers
# =============================================================================


def banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


def section(title: str) -> None:
    print()
    print(f"--- {title} ---")
    print()


def field(name: str, value, indent: int = 4) -> None:
    print(f"{' ' * indent}{name}: {value}")


def amount(money) -> str:
    return f"{money.amount:>14,} {money.currency.code}"


# =============================================================================
# Commands
# =============================================================================


def cmd_emi(args: argparse.Namespace) -> int:
    try:
        principal = Decimal(args.principal)
        rate = Decimal(args.rate)
    except InvalidOperation:
        print("error: principal and rate must be numbers", file=sys.stderr)
        return 2

    amortizer = LoanAmortizer(default_currency=args.currency)
    schedule = amortizer.amortize(principal, rate, args.tenure)

    banner("EMI PREVIEW")
    field("principal", amount(schedule.principal))
    field("annual rate", f"{schedule.annual_interest_rate_percent}%")
    field("tenure", f"{schedule.tenure_months} months")
    field("emi", amount(schedule.emi))
    field("last installment", amount(schedule.last_installment))
    field("total payable", amount(schedule.total_payable))
    field("total interest", amount(schedule.total_interest))

    if args.schedule:
        section("AMORTIZATION SCHEDULE")
        print(f"    {'month':>5}  {'installment':>14}  {'interest':>14}  "
              f"{'principal':>14}  {'balance':>14}")
        for entry in schedule.entries:
            print(f"    {entry.month_index:>5}  {entry.installment.amount:>14,}  "
                  f"{entry.interest_portion.amount:>14,}  "
                  f"{entry.principal_portion.amount:>14,}  "
                  f"{entry.remaining_balance_after.amount:>14,}")
    print()
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    batch = load_batch(args.batch_file)
    result = run_payroll_batch(
        batch.structure,
        batch.employees,
        batch.loans,
        batch.adjustments,
        batch.period,
        config=batch.config,
    )

    banner(f"PAYROLL RUN {result.period.label} -- {batch.structure.name}")
    field("status", result.status.value)
    field("employees", result.total_employees)
    field("processed", result.processed_employees)
    field("failed", result.failed_employees)

    section("EMPLOYEES")
    for emp in result.employee_results:
        print(f"    {emp.employee_id}")
        field("gross", amount(emp.gross_earnings), indent=8)
        field("deductions", amount(emp.total_deductions), indent=8)
        field("loan installments", amount(emp.loan_deduction), indent=8)
        field("adjustments", amount(emp.adjustment_amount), indent=8)
        field("net pay", amount(emp.final_net_pay), indent=8)
        field("taxable income", amount(emp.taxable_income), indent=8)

    if result.failures:
        section("FAILURES")
        for failure in result.failures:
            print(f"    {failure.employee_id}  [{failure.error_code}]  {failure.message}")

    section("COMPANY TOTALS")
    totals = result.totals
    field("gross earnings", amount(totals.gross_earnings))
    field("deductions", amount(totals.total_deductions))
    field("loan deductions", amount(totals.loan_deductions))
    field("adjustments", amount(totals.adjustments))
    field("net payout", amount(totals.net_payout))
    field("taxable income", amount(totals.taxable_income))
    print()
    return 0 if not result.failures else 1


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Payroll EMI previews and payroll runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--trace", action="store_true",
                        help="Emit structured JSON logs to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    emi = sub.add_parser("emi", help="EMI preview for a loan")
    emi.add_argument("principal", help="Loan principal, e.g. 500000")
    emi.add_argument("rate", help="Annual interest rate in percent, e.g. 12")
    emi.add_argument("tenure", type=int, help="Tenure in months")
    emi.add_argument("--currency", default="INR", help="Currency code (default INR)")
    emi.add_argument("--schedule", action="store_true",
                     help="Print the full amortization schedule")
    emi.set_defaults(func=cmd_emi)

    run = sub.add_parser("run", help="Run payroll from a YAML batch file")
    run.add_argument("batch_file", type=Path, help="Batch YAML file")
    run.set_defaults(func=cmd_run)

    args = parser.parse_args()

    if args.trace:
        configure_logging(level=logging.DEBUG, stream=sys.stderr)

    try:
        return args.func(args)
    except PayrollKernelError as exc:
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
