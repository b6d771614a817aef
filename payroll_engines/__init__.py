"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll calculation engines.  This is the canonical import surface for
    higher layers (payroll_batch, scripts).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (and sibling engine modules).
    MUST NOT import payroll_batch or payroll_config.

Invariants enforced:
    - Purity: engines never read the clock; pay periods and dates are passed
      in explicitly.
    - Decimal-only arithmetic: every amount is Money; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Structure evaluation and loan amortization are traced via the
    ``@traced_engine`` decorator (see ``payroll_engines.tracer``), emitting
    PAYROLL_ENGINE_TRACE log records with engine name, version, input
    fingerprint and duration.

Usage:
    from payroll_engines.structure import evaluate_structure
    from payroll_engines.loan import amortize
    from payroll_engines.adjustments import AdjustmentResolver
"""

from payroll_kernel.logging_config import get_logger

logger = get_logger("engines")

from payroll_engines.adjustments import (
    Adjustment,
    AdjustmentResolver,
    AdjustmentSummary,
    AdjustmentType,
    resolve_adjustments,
)
from payroll_engines.components import (
    DEDUCTION_CATEGORIES,
    EARNING_CATEGORIES,
    ComponentKind,
    ComponentReference,
    ComponentResolver,
    SalaryComponent,
)
from payroll_engines.loan import (
    AmortizationEntry,
    AmortizationSchedule,
    EmiPreview,
    Loan,
    LoanAmortizer,
    LoanInstallment,
    LoanStatus,
    LoanType,
    amortize,
    calculate_emi,
    preview_emi,
)
from payroll_engines.period import PayPeriod
from payroll_engines.registry import NOT_RESOLVED, BaseRegistry, ReferenceBase
from payroll_engines.structure import (
    PayrollResult,
    ResolvedComponent,
    SalaryStructure,
    StructureEvaluator,
    evaluate_structure,
)
from payroll_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Registry
    "BaseRegistry",
    "NOT_RESOLVED",
    "ReferenceBase",
    # Components
    "ComponentKind",
    "ComponentReference",
    "ComponentResolver",
    "DEDUCTION_CATEGORIES",
    "EARNING_CATEGORIES",
    "SalaryComponent",
    # Structure
    "PayrollResult",
    "ResolvedComponent",
    "SalaryStructure",
    "StructureEvaluator",
    "evaluate_structure",
    # Loans
    "AmortizationEntry",
    "AmortizationSchedule",
    "EmiPreview",
    "Loan",
    "LoanAmortizer",
    "LoanInstallment",
    "LoanStatus",
    "LoanType",
    "amortize",
    "calculate_emi",
    "preview_emi",
    # Adjustments
    "Adjustment",
    "AdjustmentResolver",
    "AdjustmentSummary",
    "AdjustmentType",
    "resolve_adjustments",
    # Periods
    "PayPeriod",
    # Tracing
    "compute_input_fingerprint",
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "modules": [
        "registry", "components", "structure", "loan", "adjustments", "period",
    ],
})
