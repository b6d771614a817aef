"""Currency -- ISO 4217 registry and minor-unit precision for payroll amounts."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str

    @property
    def quantum(self) -> Decimal:
        """Smallest unit of the currency, used as the ``quantize`` exponent."""
        if self.decimal_places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (self.decimal_places - 1) + "1")


class CurrencyRegistry:
    """Registry of currencies a payroll can be denominated in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # South Asia
        "INR": CurrencyInfo("INR", 2, "Indian Rupee"),
        "PKR": CurrencyInfo("PKR", 2, "Pakistani Rupee"),
        "BDT": CurrencyInfo("BDT", 2, "Bangladeshi Taka"),
        "LKR": CurrencyInfo("LKR", 2, "Sri Lankan Rupee"),
        "NPR": CurrencyInfo("NPR", 2, "Nepalese Rupee"),
        # Major currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        # Gulf
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "SAR": CurrencyInfo("SAR", 2, "Saudi Riyal"),
        "QAR": CurrencyInfo("QAR", 2, "Qatari Riyal"),
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
        # Africa
        "ZAR": CurrencyInfo("ZAR", 2, "South African Rand"),
        "NGN": CurrencyInfo("NGN", 2, "Nigerian Naira"),
        "KES": CurrencyInfo("KES", 2, "Kenyan Shilling"),
        "EGP": CurrencyInfo("EGP", 2, "Egyptian Pound"),
        # Southeast Asia
        "MYR": CurrencyInfo("MYR", 2, "Malaysian Ringgit"),
        "PHP": CurrencyInfo("PHP", 2, "Philippine Peso"),
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        "IDR": CurrencyInfo("IDR", 2, "Indonesian Rupiah"),
        # Zero decimal currencies
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
    }

    DEFAULT_DECIMAL_PLACES: ClassVar[int] = 2

    @classmethod
    def is_valid(cls, code: str) -> bool:
        """Check if a currency code is registered."""
        if not code or not isinstance(code, str):
            return False
        return code.upper().strip() in cls._CURRENCIES

    @classmethod
    def get_info(cls, code: str) -> CurrencyInfo | None:
        """Get currency information by code."""
        if not code or not isinstance(code, str):
            return None
        return cls._CURRENCIES.get(code.upper().strip())

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def get_quantum(cls, code: str) -> Decimal:
        """Quantize exponent for ``code`` (``Decimal("0.01")`` for INR)."""
        info = cls.get_info(code)
        if info:
            return info.quantum
        return Decimal("0." + "0" * (cls.DEFAULT_DECIMAL_PLACES - 1) + "1")

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()

        if len(normalized) != 3:
            raise ValueError(f"Currency code must be 3 characters: {code!r}")

        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Unsupported payroll currency code: {code!r}")

        return normalized

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        return frozenset(cls._CURRENCIES.keys())
