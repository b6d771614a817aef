"""
Module: payroll_engines.loan
Responsibility:
    Compute EMI (equated monthly installment), total interest and the full
    reducing-balance amortization schedule for an employee loan, and look up
    the single installment a payroll period consumes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Independent of salary structures; the batch aggregator combines the
    current installment with the structure's net pay.

Invariants enforced:
    - Decimal-only arithmetic; every portion is rounded to the currency
      minor unit with round-half-even.
    - Sum of principal portions == principal, exactly.
    - The final entry's remaining_balance_after == 0, exactly: the last
      month takes whatever balance the rounded EMIs left, and that row's
      installment is shown as interest + remaining balance.
    - total_interest == total_payable - principal.
    - Schedules are derived, never mutated.  Loan.advance() returns a new
      Loan with the remaining balance moved forward by one installment.

Failure modes:
    - InvalidLoanParametersError for principal <= 0, rate < 0, tenure < 1.
    - ValueError on construction of a Loan with an invalid deduction month
      or a non-Money principal.

Usage:
    from payroll_engines.loan import amortize

    schedule = amortize(Money.of("500000", "INR"), Decimal("12"), 36)
    schedule.emi                               # 16607.15 INR
    schedule.entries[-1].remaining_balance_after  # 0.00 INR
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum

from payroll_engines.period import PayPeriod
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import DEFAULT_ROUNDING, Currency, Money
from payroll_kernel.exceptions import InvalidLoanParametersError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.loan")

MONTHS_PER_YEAR = Decimal("12")
HUNDRED = Decimal("100")


class LoanType(str, Enum):
    """Kinds of employee loan."""

    PERSONAL_LOAN = "personal_loan"
    ADVANCE_SALARY = "advance_salary"
    HOME_LOAN = "home_loan"
    VEHICLE_LOAN = "vehicle_loan"
    EDUCATION_LOAN = "education_loan"
    MEDICAL_LOAN = "medical_loan"
    OTHER = "other"


class LoanStatus(str, Enum):
    """Loan lifecycle states."""

    ACTIVE = "active"
    COMPLETED = "completed"  # Fully repaid through payroll
    CLOSED = "closed"  # Closed early / written off outside payroll


@dataclass(frozen=True)
class Loan:
    """
    An employee loan repaid through payroll deductions.

    Parameter ranges (principal, rate, tenure) are checked by the amortizer
    and raise InvalidLoanParametersError, so a bad loan fails only the
    employee it belongs to inside a batch.
    """

    loan_id: str
    employee_id: str
    principal: Money
    annual_interest_rate_percent: Decimal
    tenure_months: int
    start_date: date
    deduction_start_month: int
    deduction_start_year: int
    loan_type: LoanType = LoanType.PERSONAL_LOAN
    loan_name: str = ""
    status: LoanStatus = LoanStatus.ACTIVE
    remaining_balance: Money | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.principal, Money):
            raise ValueError(f"Loan {self.loan_id}: principal must be Money")
        if isinstance(self.annual_interest_rate_percent, float):
            raise ValueError(f"Loan {self.loan_id}: interest rate must not be float")
        if not isinstance(self.annual_interest_rate_percent, Decimal):
            object.__setattr__(
                self, "annual_interest_rate_percent",
                Decimal(str(self.annual_interest_rate_percent)),
            )
        if not 1 <= self.deduction_start_month <= 12:
            raise ValueError(
                f"Loan {self.loan_id}: deduction_start_month must be 1-12, "
                f"got {self.deduction_start_month}"
            )
        if not isinstance(self.loan_type, LoanType):
            object.__setattr__(self, "loan_type", LoanType(self.loan_type))
        if not isinstance(self.status, LoanStatus):
            object.__setattr__(self, "status", LoanStatus(self.status))
        if self.remaining_balance is None:
            object.__setattr__(self, "remaining_balance", self.principal)
        elif self.remaining_balance.currency != self.principal.currency:
            raise ValueError(f"Loan {self.loan_id}: remaining balance currency mismatch")
        elif self.remaining_balance.is_negative:
            raise ValueError(f"Loan {self.loan_id}: remaining balance cannot be negative")
        elif self.remaining_balance > self.principal:
            raise ValueError(
                f"Loan {self.loan_id}: remaining balance {self.remaining_balance} "
                f"exceeds principal {self.principal}"
            )

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    @property
    def currency(self) -> Currency:
        return self.principal.currency

    def month_index_for(self, period: PayPeriod) -> int:
        """1-based installment number due in ``period`` (may fall outside 1..tenure)."""
        return period.months_since(self.deduction_start_month, self.deduction_start_year) + 1

    def advance(self, installment: LoanInstallment) -> Loan:
        """
        Return a copy with ``installment``'s principal portion repaid.

        The stored balance moves by exactly the principal portion, floored at
        zero; a loan with nothing left to repay becomes COMPLETED.
        """
        if installment.loan_id != self.loan_id:
            raise ValueError(
                f"Installment for loan {installment.loan_id} cannot advance loan {self.loan_id}"
            )
        remaining = self.remaining_balance - installment.principal_portion
        if not remaining.is_positive:
            return replace(self, remaining_balance=Money.zero(self.currency),
                           status=LoanStatus.COMPLETED)
        return replace(self, remaining_balance=remaining)


@dataclass(frozen=True)
class AmortizationEntry:
    """One month of an amortization schedule."""

    month_index: int
    installment: Money
    interest_portion: Money
    principal_portion: Money
    remaining_balance_after: Money


@dataclass(frozen=True)
class AmortizationSchedule:
    """Complete amortization of a loan."""

    principal: Money
    annual_interest_rate_percent: Decimal
    tenure_months: int
    emi: Money
    total_payable: Money
    total_interest: Money
    entries: tuple[AmortizationEntry, ...] = field(default_factory=tuple)

    @property
    def last_installment(self) -> Money:
        return self.entries[-1].installment

    def entry_for_month(self, month_index: int) -> AmortizationEntry | None:
        if 1 <= month_index <= len(self.entries):
            return self.entries[month_index - 1]
        return None


@dataclass(frozen=True)
class EmiPreview:
    """EMI figures shown while a loan is being entered."""

    emi: Money
    total_payable: Money
    total_interest: Money


@dataclass(frozen=True)
class LoanInstallment:
    """The installment of one loan consumed by one payroll period."""

    loan_id: str
    employee_id: str
    period: PayPeriod
    month_index: int
    amount: Money
    interest_portion: Money
    principal_portion: Money
    remaining_balance_after: Money


class LoanAmortizer:
    """
    Reducing-balance loan amortization.

    Pure functions - no I/O. Safe to share between threads.
    """

    def __init__(self, rounding: str = DEFAULT_ROUNDING, default_currency: str = "INR"):
        self._rounding = rounding
        self._default_currency = default_currency

    def calculate_emi(
        self,
        principal: Money | Decimal | str | int,
        annual_rate_percent: Decimal | str | int,
        tenure_months: int,
    ) -> Money:
        """
        EMI for a loan.

        ``emi = P*r*(1+r)^n / ((1+r)^n - 1)`` with ``r = R/12/100``, or
        ``P/n`` when the rate is zero; rounded half-even to the minor unit.

        Raises:
            InvalidLoanParametersError: principal <= 0, rate < 0 or tenure < 1.
        """
        principal, rate = self._validate(principal, annual_rate_percent, tenure_months)
        return self._emi(principal, self._monthly_rate(rate), tenure_months)

    @traced_engine(
        "loan", "1.0",
        fingerprint_fields=("principal", "annual_rate_percent", "tenure_months"),
    )
    def amortize(
        self,
        principal: Money | Decimal | str | int,
        annual_rate_percent: Decimal | str | int,
        tenure_months: int,
    ) -> AmortizationSchedule:
        """
        Build the month-by-month schedule.

        Each month: interest = round(balance * r); principal portion =
        EMI - interest, kept within [0, balance]; the final month repays the
        whole remaining balance so it ends at exactly zero.

        Raises:
            InvalidLoanParametersError: principal <= 0, rate < 0 or tenure < 1.
        """
        t0 = time.monotonic()
        principal, rate = self._validate(principal, annual_rate_percent, tenure_months)
        monthly_rate = self._monthly_rate(rate)
        emi = self._emi(principal, monthly_rate, tenure_months)
        zero = Money.zero(principal.currency)

        logger.info("loan_amortization_started", extra={
            "principal": str(principal.amount),
            "annual_rate_percent": str(rate),
            "tenure_months": tenure_months,
            "emi": str(emi.amount),
        })

        entries: list[AmortizationEntry] = []
        balance = principal
        for month_index in range(1, tenure_months + 1):
            interest = (balance * monthly_rate).round(self._rounding)
            if month_index == tenure_months:
                principal_portion = balance
            else:
                principal_portion = emi - interest
                if principal_portion.is_negative:
                    principal_portion = zero
                elif principal_portion > balance:
                    principal_portion = balance
            balance = balance - principal_portion
            entries.append(AmortizationEntry(
                month_index=month_index,
                installment=interest + principal_portion,
                interest_portion=interest,
                principal_portion=principal_portion,
                remaining_balance_after=balance,
            ))

        # Equals emi * (n - 1) + last installment unless a tiny loan needed
        # its principal portion clamped before the final month.
        total_payable = Money.total((e.installment for e in entries), principal.currency)
        total_interest = total_payable - principal

        schedule = AmortizationSchedule(
            principal=principal,
            annual_interest_rate_percent=rate,
            tenure_months=tenure_months,
            emi=emi,
            total_payable=total_payable,
            total_interest=total_interest,
            entries=tuple(entries),
        )

        logger.info("loan_amortization_completed", extra={
            "emi": str(emi.amount),
            "last_installment": str(schedule.last_installment.amount),
            "total_payable": str(total_payable.amount),
            "total_interest": str(total_interest.amount),
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })
        return schedule

    def preview(
        self,
        principal: Money | Decimal | str | int,
        annual_rate_percent: Decimal | str | int,
        tenure_months: int,
    ) -> EmiPreview:
        """EMI, total payable and total interest without exposing the schedule."""
        schedule = self.amortize(principal, annual_rate_percent, tenure_months)
        return EmiPreview(
            emi=schedule.emi,
            total_payable=schedule.total_payable,
            total_interest=schedule.total_interest,
        )

    def installment_for_period(self, loan: Loan, period: PayPeriod) -> LoanInstallment | None:
        """
        The installment ``loan`` deducts in ``period``.

        Returns None when the loan is not active or the period falls before
        the deduction start or after the last installment.

        Raises:
            InvalidLoanParametersError: If the loan's parameters are invalid.
        """
        if not loan.is_active:
            logger.debug("loan_not_active", extra={
                "loan_id": loan.loan_id,
                "status": loan.status.value,
            })
            return None

        self._validate(loan.principal, loan.annual_interest_rate_percent, loan.tenure_months)
        month_index = loan.month_index_for(period)
        if not 1 <= month_index <= loan.tenure_months:
            logger.debug("loan_no_installment_due", extra={
                "loan_id": loan.loan_id,
                "period": period.label,
                "month_index": month_index,
                "tenure_months": loan.tenure_months,
            })
            return None

        schedule = self.amortize(
            loan.principal, loan.annual_interest_rate_percent, loan.tenure_months,
        )
        entry = schedule.entries[month_index - 1]
        return LoanInstallment(
            loan_id=loan.loan_id,
            employee_id=loan.employee_id,
            period=period,
            month_index=month_index,
            amount=entry.installment,
            interest_portion=entry.interest_portion,
            principal_portion=entry.principal_portion,
            remaining_balance_after=entry.remaining_balance_after,
        )

    def _validate(
        self,
        principal: Money | Decimal | str | int,
        annual_rate_percent: Decimal | str | int,
        tenure_months: int,
    ) -> tuple[Money, Decimal]:
        if not isinstance(principal, Money):
            principal = Money.of(principal, self._default_currency)
        if isinstance(annual_rate_percent, float):
            raise ValueError("annual_rate_percent must not be float")
        try:
            rate = Decimal(str(annual_rate_percent))
        except InvalidOperation as e:
            raise ValueError(f"Invalid annual_rate_percent: {annual_rate_percent!r}") from e

        reason = None
        if not principal.is_positive:
            reason = "principal must be greater than zero"
        elif rate < 0:
            reason = "annual interest rate cannot be negative"
        elif isinstance(tenure_months, bool) or not isinstance(tenure_months, int):
            reason = "tenure must be a whole number of months"
        elif tenure_months < 1:
            reason = "tenure must be at least one month"

        if reason is not None:
            logger.warning("loan_parameters_invalid", extra={
                "principal": str(principal.amount),
                "annual_rate_percent": str(rate),
                "tenure_months": tenure_months,
                "reason": reason,
            })
            raise InvalidLoanParametersError(principal.amount, rate, tenure_months, reason)
        return principal, rate

    @staticmethod
    def _monthly_rate(annual_rate_percent: Decimal) -> Decimal:
        return annual_rate_percent / MONTHS_PER_YEAR / HUNDRED

    def _emi(self, principal: Money, monthly_rate: Decimal, tenure_months: int) -> Money:
        if monthly_rate == 0:
            return (principal / tenure_months).round(self._rounding)
        factor = (1 + monthly_rate) ** tenure_months
        return (principal * (monthly_rate * factor / (factor - 1))).round(self._rounding)


# Convenience functions for callers that do not hold an amortizer

def calculate_emi(
    principal: Money | Decimal | str | int,
    annual_rate_percent: Decimal | str | int,
    tenure_months: int,
) -> Money:
    """EMI for a loan (see LoanAmortizer.calculate_emi)."""
    return LoanAmortizer().calculate_emi(principal, annual_rate_percent, tenure_months)


def amortize(
    principal: Money | Decimal | str | int,
    annual_rate_percent: Decimal | str | int,
    tenure_months: int,
) -> AmortizationSchedule:
    """
    Amortize a loan.

    Args:
        principal: Loan amount (plain numbers are taken in INR)
        annual_rate_percent: Annual interest rate as a percentage (e.g. 12)
        tenure_months: Number of monthly installments

    Returns:
        AmortizationSchedule
    """
    return LoanAmortizer().amortize(principal, annual_rate_percent, tenure_months)


def preview_emi(
    principal: Money | Decimal | str | int,
    annual_rate_percent: Decimal | str | int,
    tenure_months: int,
) -> EmiPreview:
    """EMI preview: EMI, total payable and total interest."""
    return LoanAmortizer().preview(principal, annual_rate_percent, tenure_months)
