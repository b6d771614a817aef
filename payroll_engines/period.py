"""Pay period value object shared by the loan, adjustment and batch layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class PayPeriod:
    """A monthly payroll period."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int) or not 1 <= self.month <= 12:
            raise ValueError(f"month must be an integer between 1 and 12, got {self.month!r}")
        if isinstance(self.year, bool) or not isinstance(self.year, int) or self.year < 1:
            raise ValueError(f"year must be a positive integer, got {self.year!r}")

    @classmethod
    def of(cls, month: int, year: int) -> PayPeriod:
        return cls(year=year, month=month)

    def months_since(self, month: int, year: int) -> int:
        """Whole months from (month, year) to this period; negative if earlier."""
        return (self.year - year) * 12 + (self.month - month)

    def next(self) -> PayPeriod:
        if self.month == 12:
            return PayPeriod(year=self.year + 1, month=1)
        return PayPeriod(year=self.year, month=self.month + 1)

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def __str__(self) -> str:
        return self.label
