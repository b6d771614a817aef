"""
Pure domain layer.

Immutable value objects with NO dependencies on:
- Database
- Time/clock
- I/O
"""

from payroll_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from payroll_kernel.domain.values import DEFAULT_ROUNDING, Currency, Money

__all__ = [
    "DEFAULT_ROUNDING",
    "Currency",
    "CurrencyInfo",
    "CurrencyRegistry",
    "Money",
]
