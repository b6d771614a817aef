"""
Configuration and batch loader (``payroll_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into typed objects: the engine
configuration (``PayrollEngineConfig``) and the inputs of a payroll run
(salary structure, employees, loans, adjustments, pay period).  Used by
``payroll_config.get_active_config()``, the command-line tool and tests.

Architecture position
---------------------
**Config layer** -- infrastructure tooling above the engines.  Nothing in
payroll_kernel or payroll_engines imports from here.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* Amounts are read through ``str()`` into Decimal, so a YAML float such as
  ``12.5`` becomes ``Decimal("12.5")`` and never a binary fraction.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid values  -> ``ValueError`` from the parsed type's validation.

Batch file layout
-----------------
::

    config: {currency: INR, max_workers: 4}
    period: {month: 4, year: 2025}
    structure:
      structure_id: std
      company_id: acme
      name: Standard
      components:
        - {name: Basic, kind: earning, category: basic, is_percentage: true,
           amount_or_rate: 40, reference: ctc, priority: 1}
    employees:
      - {employee_id: E001, ctc: 600000}
    loans: [...]
    adjustments: [...]
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_batch.domain.types import EmployeeRecord
from payroll_config.schema import PayrollEngineConfig
from payroll_engines.adjustments import Adjustment
from payroll_engines.components import SalaryComponent
from payroll_engines.loan import Loan
from payroll_engines.period import PayPeriod
from payroll_engines.structure import SalaryStructure
from payroll_kernel.domain.values import Currency, Money


@dataclass(frozen=True)
class PayrollBatchInput:
    """Everything a payroll run needs, parsed from one YAML document."""

    config: PayrollEngineConfig
    period: PayPeriod
    structure: SalaryStructure
    employees: tuple[EmployeeRecord, ...]
    loans: tuple[Loan, ...] = ()
    adjustments: tuple[Adjustment, ...] = ()


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a Decimal from a YAML scalar."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name}: expected a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"{field_name}: invalid number {value!r}") from e


def parse_money(value: Any, currency: Currency | str, field_name: str) -> Money:
    return Money.of(parse_decimal(value, field_name), currency)


def parse_config(data: dict[str, Any]) -> PayrollEngineConfig:
    """Parse a PayrollEngineConfig; the checksum is computed over ``data``."""
    defaults = PayrollEngineConfig()
    return PayrollEngineConfig(
        config_id=str(data.get("config_id", defaults.config_id)),
        version=int(data.get("version", defaults.version)),
        currency=data.get("currency", defaults.currency),
        rounding=data.get("rounding", defaults.rounding),
        max_workers=data.get("max_workers", defaults.max_workers),
        basic_category=data.get("basic_category", defaults.basic_category),
        checksum=compute_checksum(data),
    )


def parse_period(data: dict[str, Any]) -> PayPeriod:
    return PayPeriod(year=int(data["year"]), month=int(data["month"]))


def parse_component(data: dict[str, Any]) -> SalaryComponent:
    """Parse a SalaryComponent from a dict."""
    return SalaryComponent(
        name=data["name"],
        kind=data["kind"],
        category=data.get("category", ""),
        is_percentage=bool(data.get("is_percentage", False)),
        amount_or_rate=parse_decimal(data["amount_or_rate"], "amount_or_rate"),
        priority=int(data["priority"]),
        reference=data.get("reference"),
        is_taxable=bool(data.get("is_taxable", True)),
        is_statutory=bool(data.get("is_statutory", False)),
        active=bool(data.get("active", True)),
    )


def parse_structure(data: dict[str, Any], default_currency: str = "INR") -> SalaryStructure:
    """Parse a SalaryStructure and its components from a dict."""
    return SalaryStructure(
        structure_id=str(data["structure_id"]),
        company_id=str(data["company_id"]),
        name=data["name"],
        components=tuple(parse_component(c) for c in data.get("components", [])),
        currency=Currency(data.get("currency", default_currency)),
        description=data.get("description"),
    )


def parse_employee(
    data: dict[str, Any],
    currency: Currency | str,
    default_currency: str = "INR",
) -> EmployeeRecord:
    """Parse an EmployeeRecord; ``structure`` may hold a per-employee override."""
    override = data.get("structure")
    return EmployeeRecord(
        employee_id=str(data["employee_id"]),
        ctc=parse_money(data["ctc"], currency, "ctc"),
        structure=parse_structure(override, default_currency) if override else None,
    )


def parse_loan(data: dict[str, Any], currency: Currency | str) -> Loan:
    """Parse a Loan from a dict."""
    principal = parse_money(data["principal"], currency, "principal")
    remaining = data.get("remaining_balance")
    return Loan(
        loan_id=str(data["loan_id"]),
        employee_id=str(data["employee_id"]),
        principal=principal,
        annual_interest_rate_percent=parse_decimal(
            data["annual_interest_rate_percent"], "annual_interest_rate_percent",
        ),
        tenure_months=int(data["tenure_months"]),
        start_date=parse_date(data["start_date"]),
        deduction_start_month=int(data["deduction_start_month"]),
        deduction_start_year=int(data["deduction_start_year"]),
        loan_type=data.get("loan_type", "personal_loan"),
        loan_name=data.get("loan_name", ""),
        status=data.get("status", "active"),
        remaining_balance=(
            parse_money(remaining, currency, "remaining_balance")
            if remaining is not None else None
        ),
    )


def parse_adjustment(data: dict[str, Any], currency: Currency | str) -> Adjustment:
    """Parse an Adjustment from a dict."""
    limit = data.get("tax_exemption_limit")
    return Adjustment(
        adjustment_id=str(data["adjustment_id"]),
        employee_id=str(data["employee_id"]),
        adjustment_type=data["adjustment_type"],
        amount=parse_money(data["amount"], currency, "amount"),
        applicable_month=int(data["applicable_month"]),
        applicable_year=int(data["applicable_year"]),
        category=data.get("category", ""),
        is_taxable=bool(data.get("is_taxable", True)),
        tax_exemption_limit=(
            parse_money(limit, currency, "tax_exemption_limit") if limit is not None else None
        ),
        is_approved=bool(data.get("is_approved", True)),
    )


def parse_batch(data: dict[str, Any]) -> PayrollBatchInput:
    """Parse a complete payroll run document."""
    config = parse_config(data.get("config") or {})
    structure = parse_structure(data["structure"], config.currency)
    currency = structure.currency
    return PayrollBatchInput(
        config=config,
        period=parse_period(data["period"]),
        structure=structure,
        employees=tuple(
            parse_employee(e, currency, config.currency) for e in data.get("employees", [])
        ),
        loans=tuple(parse_loan(item, currency) for item in data.get("loans", [])),
        adjustments=tuple(
            parse_adjustment(item, currency) for item in data.get("adjustments", [])
        ),
    )


def load_batch(path: Path) -> PayrollBatchInput:
    """Load and parse a payroll run YAML file."""
    return parse_batch(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
