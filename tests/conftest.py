"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured logging configured for every test session
- Log capture as parsed JSON records
- Standard salary structure and pay period fixtures (builders live in
  tests/builders.py)
"""

import json
import logging
from io import StringIO

import pytest

from payroll_engines.period import PayPeriod
from payroll_engines.structure import SalaryStructure
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.builders import make_structure


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            evaluate_structure(structure, ctc)
            logs = captured_logs()
            assert any(r["message"] == "structure_evaluation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def standard_structure() -> SalaryStructure:
    return make_structure()


@pytest.fixture
def april_2025() -> PayPeriod:
    return PayPeriod(year=2025, month=4)
