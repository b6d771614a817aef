"""Builders for salary structures, loans and adjustments used across the test suite."""

from datetime import date
from decimal import Decimal

from payroll_engines.adjustments import Adjustment, AdjustmentType
from payroll_engines.components import SalaryComponent
from payroll_engines.loan import Loan
from payroll_engines.structure import SalaryStructure
from payroll_kernel.domain.values import Money


def inr(amount) -> Money:
    return Money.of(str(amount), "INR")


def make_component(
    name: str,
    priority: int,
    *,
    kind: str = "earning",
    category: str = "",
    rate=None,
    amount=None,
    reference=None,
    is_taxable: bool = True,
    is_statutory: bool = False,
    active: bool = True,
) -> SalaryComponent:
    """Build a percentage component (``rate`` + ``reference``) or a fixed one (``amount``)."""
    is_percentage = rate is not None
    return SalaryComponent(
        name=name,
        kind=kind,
        category=category,
        is_percentage=is_percentage,
        amount_or_rate=Decimal(str(rate if is_percentage else amount)),
        priority=priority,
        reference=reference if is_percentage else None,
        is_taxable=is_taxable,
        is_statutory=is_statutory,
        active=active,
    )


def standard_components() -> tuple[SalaryComponent, ...]:
    """Basic 40% of CTC, HRA 50% of basic, PF 12% of basic."""
    return (
        make_component("Basic", 1, category="basic", rate="40", reference="ctc"),
        make_component("HRA", 2, category="hra", rate="50", reference="basic"),
        make_component(
            "PF", 3, kind="deduction", category="provident_fund",
            rate="12", reference="basic", is_statutory=True,
        ),
    )


def make_structure(components=None, structure_id: str = "std", currency: str = "INR"):
    return SalaryStructure(
        structure_id=structure_id,
        company_id="acme",
        name="Standard",
        components=tuple(components if components is not None else standard_components()),
        currency=currency,
    )


def make_loan(
    loan_id: str = "L1",
    employee_id: str = "E1",
    principal="120000",
    rate="12",
    tenure: int = 12,
    start_month: int = 1,
    start_year: int = 2025,
    start_date: date = date(2025, 1, 1),
    **kwargs,
) -> Loan:
    return Loan(
        loan_id=loan_id,
        employee_id=employee_id,
        principal=inr(principal),
        annual_interest_rate_percent=Decimal(str(rate)),
        tenure_months=tenure,
        start_date=start_date,
        deduction_start_month=start_month,
        deduction_start_year=start_year,
        **kwargs,
    )


def make_adjustment(
    adjustment_id: str = "A1",
    employee_id: str = "E1",
    amount="1000",
    adjustment_type=AdjustmentType.VARIABLE_PAY,
    month: int = 4,
    year: int = 2025,
    **kwargs,
) -> Adjustment:
    return Adjustment(
        adjustment_id=adjustment_id,
        employee_id=employee_id,
        adjustment_type=adjustment_type,
        amount=inr(amount),
        applicable_month=month,
        applicable_year=year,
        **kwargs,
    )


