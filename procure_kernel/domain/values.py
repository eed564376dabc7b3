"""
Values -- Immutable, self-validating domain value objects.

Responsibility:
    Provides the foundational value types for all procurement computations:
    Currency, Money and Rate.  These replace primitive types (Decimal, str,
    float percentages) wherever commercial data appears in domain logic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module. No outward dependencies except
    procure_kernel.domain.currency (CurrencyRegistry).

Invariants enforced:
    - All monetary amounts pair a Decimal with a Currency (never float).
    - Currency codes are validated at construction time.
    - Rates carry their scale explicitly at the boundary and are stored as
      fractions; a bare number is never interpreted as percent or fraction
      by guessing.

Failure modes:
    - ValueError on construction with invalid amounts or currencies.
    - InvalidRateError for negative or non-numeric rates.
    - ValueError when arithmetic mixes different currencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from procure_kernel.domain.currency import CurrencyRegistry
from procure_kernel.exceptions import InvalidRateError


@dataclass(frozen=True, slots=True)
class Currency:
    """
    ISO 4217 currency code value object.

    Contract:
        Wraps a three-letter ISO 4217 code. Validated and normalized (uppercased)
        on construction. Invalid codes are rejected immediately.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - code is always uppercase and stripped of whitespace
    """

    code: str

    def __post_init__(self) -> None:
        normalized = self.code.upper().strip() if self.code else ""
        if not CurrencyRegistry.is_valid(normalized):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code}")
        object.__setattr__(self, "code", normalized)

    @property
    def decimal_places(self) -> int:
        """Number of minor-unit digits for this currency."""
        return CurrencyRegistry.get_decimal_places(self.code)

    @property
    def quantum(self) -> Decimal:
        """Smallest representable amount in this currency."""
        return CurrencyRegistry.quantum(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


@dataclass(frozen=True, slots=True)
class Money:
    """
    Monetary amount value object.

    Contract:
        Pairs a Decimal amount with its Currency -- they are NEVER separated.

    Guarantees:
        - Immutable and hashable (frozen dataclass with slots)
        - amount is always a Decimal (never float)
        - Arithmetic operations enforce same-currency constraint

    Non-goals:
        - Does NOT perform currency conversion
        - Does NOT auto-round -- callers must explicitly call .round()
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount}") from e
        if not self.amount.is_finite():
            raise ValueError(f"Invalid amount: {self.amount}")

        if isinstance(self.currency, str):
            object.__setattr__(self, "currency", Currency(self.currency))
        elif not isinstance(self.currency, Currency):
            raise TypeError(f"currency must be Currency or str, got {type(self.currency)}")

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """
        Factory method for creating Money.

        Args:
            amount: The monetary amount (no float at the call site).
            currency: ISO 4217 currency code or Currency object.

        Raises:
            ValueError: If amount cannot be converted or currency is invalid.
        """
        if isinstance(amount, (str, int)):
            try:
                amount = Decimal(str(amount))
            except InvalidOperation as e:
                raise ValueError(f"Invalid amount: {amount!r}") from e
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=amount, currency=currency)

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Create a zero amount in the given currency."""
        if isinstance(currency, str):
            currency = Currency(currency)
        return cls(amount=Decimal("0"), currency=currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == Decimal("0")

    @property
    def is_positive(self) -> bool:
        return self.amount > Decimal("0")

    @property
    def is_negative(self) -> bool:
        return self.amount < Decimal("0")

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Round to the currency's decimal places and return a new Money."""
        rounded = self.amount.quantize(self.currency.quantum, rounding=rounding)
        return Money(amount=rounded, currency=self.currency)

    def _check_currency(self, other: Money, op: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {op} Money with different currencies: "
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

    def __mul__(self, factor: Decimal | int | str) -> Money:
        """Multiply by a scalar."""
        if isinstance(factor, (int, str)):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(amount=self.amount * factor, currency=self.currency)

    def __rmul__(self, factor: Decimal | int | str) -> Money:
        return self.__mul__(factor)

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


class RateScale(str, Enum):
    """Scale a rate was expressed in when it crossed the boundary."""

    PERCENT = "percent"  # 10 means 10%
    FRACTION = "fraction"  # 0.10 means 10%


_HUNDRED = Decimal("100")


@dataclass(frozen=True, slots=True)
class Rate:
    """
    Discount or tax rate, normalized to a fraction.

    Contract:
        Built only through ``percent()``, ``fraction()`` or ``of()`` so the
        caller always states which scale the input uses.  ``value`` is the
        fraction (0.10 for 10%).

    Guarantees:
        - value is a finite, non-negative Decimal.

    Non-goals:
        - Does not cap at 100%; a discount rate above 100% is rejected by
          the pricer as DiscountExceedsTotalError, and tax above 100% is
          unusual but valid.
    """

    value: Decimal

    def __post_init__(self) -> None:
        value = self.value
        if not isinstance(value, Decimal):
            try:
                value = Decimal(str(value))
            except (InvalidOperation, ValueError) as e:
                raise InvalidRateError(self.value) from e
            object.__setattr__(self, "value", value)
        if not value.is_finite() or value < 0:
            raise InvalidRateError(self.value)

    @classmethod
    def fraction(cls, value: Decimal | str | int) -> Rate:
        """Rate from a fraction (0.10 for 10%)."""
        return cls(value=_to_decimal(value))

    @classmethod
    def percent(cls, value: Decimal | str | int) -> Rate:
        """Rate from a percentage (10 for 10%)."""
        return cls(value=_to_decimal(value) / _HUNDRED)

    @classmethod
    def of(cls, value: Decimal | str | int, scale: RateScale | str) -> Rate:
        """Rate from a value whose scale is given explicitly."""
        scale = RateScale(scale)
        if scale is RateScale.PERCENT:
            return cls.percent(value)
        return cls.fraction(value)

    @classmethod
    def zero(cls) -> Rate:
        return cls(value=Decimal("0"))

    @property
    def is_zero(self) -> bool:
        return self.value == Decimal("0")

    @property
    def as_percent(self) -> Decimal:
        """Rate as percentage (e.g., 10 for 10%)."""
        return self.value * _HUNDRED

    def apply(self, base: Money) -> Money:
        """Unrounded ``base * rate``."""
        return base * self.value

    def __str__(self) -> str:
        return f"{self.as_percent.normalize():f}%"


def _to_decimal(value: Decimal | str | int) -> Decimal:
    if isinstance(value, float):
        raise InvalidRateError(value)
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidRateError(value) from e
