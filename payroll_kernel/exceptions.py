"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Payroll failures are data problems: a salary structure with two components at
the same priority, a percentage component pointing at a base that has not been
resolved yet, a loan with a zero tenure. Callers (the payroll orchestration
layer, the batch aggregator, the CLI) must tell these apart without parsing
message strings, and must be able to report enough context to fix the record.

Every exception therefore:
  1. Has its own class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA (component name, priority, loan parameters)

Example:
    try:
        result = evaluate_structure(structure, ctc)
    except UnresolvedReferenceError as e:
        report(code=e.code, component=e.component_name, priority=e.priority)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- StructureError
    |   +-- ValidationError
    |   |   +-- DuplicatePriorityError
    |   |   +-- MissingBasicComponentError
    |   |   +-- NoActiveEarningsError
    |   |   +-- InvalidCtcError
    |   +-- UnresolvedReferenceError
    |
    +-- LoanError
    |   +-- InvalidLoanParametersError
    |
    +-- CurrencyMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                        | When Raised
-----------|-----------------------------|------------------------------------------
Structure  | STRUCTURE_VALIDATION_FAILED | Structure malformed (base of the below)
           | DUPLICATE_PRIORITY          | Two components share a priority
           | MISSING_BASIC_COMPONENT     | No active earning with category "basic"
           | NO_ACTIVE_EARNINGS          | Structure has no active earning component
           | INVALID_CTC                 | CTC supplied for evaluation is negative
           | UNRESOLVED_REFERENCE        | Percentage component references a base or
           |                             | component not resolved at its priority
-----------|-----------------------------|------------------------------------------
Loan       | INVALID_LOAN_PARAMETERS     | Non-positive principal/tenure, negative rate
-----------|-----------------------------|------------------------------------------
Input      | CURRENCY_MISMATCH           | CTC, loan or adjustment not in the currency
           |                             | the employee is paid in

===============================================================================
HANDLING PATTERNS
===============================================================================

None of these errors is transient and the core performs no I/O, so nothing is
retried. A structure error is fatal for that structure evaluation; inside a
payroll batch it is isolated to the affected employee, recorded as a failure,
and the run continues with the remaining employees.

Value objects reject malformed field values at construction with plain
``ValueError``; the classes below cover the cross-field and cross-record rules
that can only be checked when a structure is evaluated or a loan amortized.
"""

from decimal import Decimal


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"

    def details(self) -> dict[str, object]:
        """Structured fields set by the subclass, keyed by attribute name."""
        return {k: v for k, v in vars(self).items() if not k.startswith("_")}


# Structure-related exceptions


class StructureError(PayrollKernelError):
    """Base exception for salary structure errors."""

    code: str = "STRUCTURE_ERROR"


class ValidationError(StructureError):
    """Salary structure failed validation before evaluation started."""

    code: str = "STRUCTURE_VALIDATION_FAILED"

    def __init__(self, structure_id: str, message: str):
        self.structure_id = structure_id
        super().__init__(f"Salary structure {structure_id} is invalid: {message}")


class DuplicatePriorityError(ValidationError):
    """Two or more components in one structure share a priority."""

    code: str = "DUPLICATE_PRIORITY"

    def __init__(self, structure_id: str, priority: int, component_names: list[str]):
        self.priority = priority
        self.component_names = component_names
        super().__init__(
            structure_id,
            f"priority {priority} is shared by components {', '.join(component_names)}",
        )


class MissingBasicComponentError(ValidationError):
    """No active earning component sets the ``basic`` base."""

    code: str = "MISSING_BASIC_COMPONENT"

    def __init__(self, structure_id: str, basic_category: str):
        self.basic_category = basic_category
        super().__init__(
            structure_id,
            f"no active earning component with category {basic_category!r}",
        )


class NoActiveEarningsError(ValidationError):
    """Structure has no active earning component."""

    code: str = "NO_ACTIVE_EARNINGS"

    def __init__(self, structure_id: str):
        super().__init__(structure_id, "no active earning components")


class InvalidCtcError(ValidationError):
    """CTC supplied for evaluation is negative."""

    code: str = "INVALID_CTC"

    def __init__(self, structure_id: str, ctc: Decimal):
        self.ctc = ctc
        super().__init__(structure_id, f"ctc must not be negative, got {ctc}")


class UnresolvedReferenceError(StructureError):
    """
    A percentage component references a base or component that has not been
    resolved at the component's priority.

    Raised for forward references (the referenced component has an equal or
    higher priority), references to unknown component names, and standing
    bases (``basic``, ``gross``) read before any component set them.
    """

    code: str = "UNRESOLVED_REFERENCE"

    def __init__(self, component_name: str, priority: int, reference: str):
        self.component_name = component_name
        self.priority = priority
        self.reference = reference
        super().__init__(
            f"Component {component_name!r} (priority {priority}) references "
            f"{reference!r}, which is not resolved at that priority"
        )


# Loan-related exceptions


class LoanError(PayrollKernelError):
    """Base exception for loan errors."""

    code: str = "LOAN_ERROR"


class InvalidLoanParametersError(LoanError):
    """Loan principal, rate or tenure is outside its valid range."""

    code: str = "INVALID_LOAN_PARAMETERS"

    def __init__(
        self,
        principal: Decimal,
        annual_interest_rate_percent: Decimal,
        tenure_months: int,
        reason: str,
    ):
        self.principal = principal
        self.annual_interest_rate_percent = annual_interest_rate_percent
        self.tenure_months = tenure_months
        self.reason = reason
        super().__init__(
            f"Invalid loan parameters (principal={principal}, "
            f"rate={annual_interest_rate_percent}%, tenure={tenure_months}): {reason}"
        )


# Input-record exceptions


class CurrencyMismatchError(PayrollKernelError):
    """An employee's CTC, loan or adjustment is in a different currency than the run."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, record: str, actual: str, expected: str):
        self.record = record
        self.actual = actual
        self.expected = expected
        super().__init__(f"{record} is in {actual}, expected {expected}")
