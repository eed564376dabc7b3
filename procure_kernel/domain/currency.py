"""Currency -- ISO 4217 registry and precision-derived rounding."""

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
    def quantize_string(self) -> str:
        """String for Decimal.quantize() to round to this currency's precision."""
        if self.decimal_places == 0:
            return "1"
        return "0." + "0" * self.decimal_places


class CurrencyRegistry:
    """Registry of the ISO 4217 currencies procurement documents are issued in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Zero decimal currencies
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        # Two decimal currencies
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        # Three decimal currencies
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
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
        """Get decimal places for a currency."""
        info = cls.get_info(code)
        return info.decimal_places if info else cls.DEFAULT_DECIMAL_PLACES

    @classmethod
    def quantum(cls, code: str) -> Decimal:
        """Smallest representable unit, e.g. Decimal('0.01') for USD."""
        places = cls.get_decimal_places(code)
        if places == 0:
            return Decimal("1")
        return Decimal("0." + "0" * (places - 1) + "1")

    @classmethod
    def all_codes(cls) -> frozenset[str]:
        """Get all valid currency codes."""
        return frozenset(cls._CURRENCIES.keys())
