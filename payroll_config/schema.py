"""
PayrollEngineConfig schema.

The configuration a payroll run is evaluated under: reporting currency,
rounding mode, worker pool size and the category that marks the basic
component.  YAML files are parsed into this type by the loader; runtime
callers obtain it through ``payroll_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, ROUND_HALF_UP

from payroll_kernel.domain.currency import CurrencyRegistry

# Rounding modes a payroll may be configured with.  Half-even is the
# default; half-up is kept for payrolls that must match statutory tables.
SUPPORTED_ROUNDING_MODES = frozenset({ROUND_HALF_EVEN, ROUND_HALF_UP})


@dataclass(frozen=True)
class PayrollEngineConfig:
    """Engine settings for one payroll configuration set."""

    config_id: str = "default"
    version: int = 1
    currency: str = "INR"
    rounding: str = ROUND_HALF_EVEN
    max_workers: int | None = None  # None: os.cpu_count()
    basic_category: str = "basic"
    checksum: str = ""

    def __post_init__(self) -> None:
        currency = self.currency.upper().strip() if isinstance(self.currency, str) else ""
        if not CurrencyRegistry.is_valid(currency):
            raise ValueError(f"Unsupported payroll currency: {self.currency!r}")
        object.__setattr__(self, "currency", currency)
        if self.rounding not in SUPPORTED_ROUNDING_MODES:
            raise ValueError(
                f"Unsupported rounding mode {self.rounding!r}; "
                f"expected one of {sorted(SUPPORTED_ROUNDING_MODES)}"
            )
        if self.max_workers is not None and (
            isinstance(self.max_workers, bool)
            or not isinstance(self.max_workers, int)
            or self.max_workers < 1
        ):
            raise ValueError(f"max_workers must be a positive integer, got {self.max_workers!r}")
        if not self.basic_category or not self.basic_category.strip():
            raise ValueError("basic_category cannot be blank")
        object.__setattr__(self, "basic_category", self.basic_category.strip().lower())
