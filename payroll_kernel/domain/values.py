"""
Values -- Immutable, self-validating monetary value objects.

Responsibility:
    Provides Currency and Money, the value types every payroll figure is
    expressed in. Salary components, loan installments and adjustments all
    carry Money rather than bare Decimal so an amount is never separated from
    its currency.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every engine. No outward dependencies except
    payroll_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - Amounts are Decimal, never float. Floats are rejected at construction
      because binary fractions cannot represent paise/cents exactly.
    - Currency codes are validated against CurrencyRegistry.
    - Arithmetic and comparison refuse to mix currencies.
    - Rounding is explicit: Money never rounds itself; callers call
      ``round()``, which quantizes to the currency's minor unit using
      round-half-even unless told otherwise.

Failure modes:
    - ValueError on invalid amounts, float amounts or unknown currencies.
    - TypeError when currency is neither Currency nor str.
    - ValueError when arithmetic mixes different currencies.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation

from payroll_kernel.domain.currency import CurrencyRegistry

DEFAULT_ROUNDING = ROUND_HALF_EVEN


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Validated and normalized (uppercased) on construction.
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if isinstance(self.code, str) else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid payroll currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def quantum(self) -> Decimal:
        """Minor unit (``Decimal("0.01")`` for two-decimal currencies)."""
        return CurrencyRegistry.get_quantum(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency. This is the canonical
        representation of every payroll figure: component amounts, gross,
        deductions, net pay, EMI and installment portions.

    Guarantees:
        - Immutable and hashable.
        - ``amount`` is always a Decimal.
        - Same-currency enforcement for arithmetic and ordering.

    Non-goals:
        - Does NOT convert between currencies.
        - Does NOT auto-round.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise ValueError(
                f"Money amount must not be float (got {self.amount!r}); "
                f"pass a Decimal or string"
            )
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e
        if not self.amount.is_finite():
            raise ValueError(f"Money amount must be finite, got {self.amount}")

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Factory method for creating Money.

        Args:
            amount: The monetary amount (Decimal, str or int; never float).
            currency: Currency code or Currency object.

        Raises:
            ValueError: If the amount cannot be converted or the currency is
                unknown.
        """
        if isinstance(amount, (str, int)) and not isinstance(amount, bool):
            amount = Decimal(str(amount))
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=Decimal("0"), currency=currency)

    @classmethod
    def total(cls, amounts: Iterable[Money], currency: str | Currency) -> Money:
        """Sum ``amounts``; an empty iterable sums to zero in ``currency``."""
        result = cls.zero(currency)
        for amount in amounts:
            result = result + amount
        return result

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def round(self, rounding: str = DEFAULT_ROUNDING) -> Money:
        """
        Round to the currency's minor unit.

        Returns a new Money; the original is unchanged.
        """
        rounded = self.amount.quantize(self.currency.quantum, rounding=rounding)
        return Money(amount=rounded, currency=self.currency)

    def _check_currency(self, other: Money, operation: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {operation} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "add")
        return Money(amount=self.amount + other.amount, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "subtract")
        return Money(amount=self.amount - other.amount, currency=self.currency)

    def __neg__(self) -> Money:
        return Money(amount=-self.amount, currency=self.currency)

    def __abs__(self) -> Money:
        return Money(amount=abs(self.amount), currency=self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar."""
        if isinstance(factor, (int, str)) and not isinstance(factor, bool):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

    def __truediv__(self, divisor: Decimal | int | str) -> Money:
        """Divide by a scalar."""
        if isinstance(divisor, (int, str)) and not isinstance(divisor, bool):
            divisor = Decimal(str(divisor))
        if not isinstance(divisor, Decimal):
            return NotImplemented
        return Money(amount=self.amount / divisor, currency=self.currency)

    def __lt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount <= other.amount

    def __gt__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount > other.amount

    def __ge__(self, other: Money) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other, "compare")
        return self.amount >= other.amount

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
