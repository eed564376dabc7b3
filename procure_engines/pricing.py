"""
Module: procure_engines.pricing
Responsibility:
    Price a single product line: quantity x unit price, less a discount,
    plus tax on the discounted base.  Used for purchase-order lines and
    contract lines alike.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procure_kernel/domain/values and kernel exceptions.

Invariants enforced:
    - final_price == total_price - discount_amount + tax_amount exactly:
      discount and tax are rounded to the currency precision BEFORE the
      final price is derived from them.
    - final_price >= 0 (discount never exceeds the line total; amounts and
      rates are non-negative).
    - An explicit amount is authoritative over a rate for the same
      adjustment; the effective rate is back-computed from it.

Failure modes:
    - InvalidQuantityError when quantity is not a positive integer.
    - InvalidPriceError when unit price or an explicit amount is negative.
    - DiscountExceedsTotalError when the discount is larger than the line
      total.
    - ValueError when amounts are given in different currencies.

Usage:
    from procure_engines.pricing import LineItemPricer
    from procure_kernel.domain.values import Money, Rate

    pricing = LineItemPricer().price(
        quantity=10,
        unit_price=Money.of("100000", "VND"),
        discount_rate=Rate.percent("5"),
        tax_rate=Rate.percent("10"),
    )
    print(pricing.final_price)  # Money: 1045000 VND
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP

from procure_kernel.domain.values import Currency, Money, Rate
from procure_kernel.exceptions import (
    DiscountExceedsTotalError,
    InvalidPriceError,
    InvalidQuantityError,
)
from procure_kernel.logging_config import get_logger
from procure_engines.tracer import traced_engine

logger = get_logger("engines.pricing")


@dataclass(frozen=True)
class LinePricing:
    """
    Priced line item.

    Contract:
        Frozen result of ``LineItemPricer.price``.
    Guarantees:
        - All money fields share one currency and are rounded to it.
        - ``final_price == total_price - discount_amount + tax_amount``.
        - ``discount_rate`` / ``tax_rate`` are the effective rates; when
          ``discount_from_amount`` / ``tax_from_amount`` is set they were
          back-computed from an explicit amount.
    """

    quantity: int
    unit_price: Money
    total_price: Money
    discount_amount: Money
    tax_amount: Money
    final_price: Money
    discount_rate: Rate
    tax_rate: Rate
    discount_from_amount: bool = False
    tax_from_amount: bool = False

    @property
    def price_after_discount(self) -> Money:
        return self.total_price - self.discount_amount

    @property
    def currency(self) -> Currency:
        return self.total_price.currency


class LineItemPricer:
    """
    Compute total / discount / tax / final price for one product line.

    Pure functions - no I/O.  Rates are already normalized fractions
    (see ``Rate``); the pricer never guesses a scale.
    """

    def __init__(self, rounding: str = ROUND_HALF_UP):
        self._rounding = rounding

    @traced_engine(
        "line_pricer",
        "1.0",
        fingerprint_fields=(
            "quantity",
            "unit_price",
            "discount_rate",
            "discount_amount",
            "tax_rate",
            "tax_amount",
        ),
    )
    def price(
        self,
        *,
        quantity: int,
        unit_price: Money,
        discount_rate: Rate | None = None,
        discount_amount: Money | None = None,
        tax_rate: Rate | None = None,
        tax_amount: Money | None = None,
    ) -> LinePricing:
        """
        Price one line.

        Args:
            quantity: Positive integer quantity.
            unit_price: Non-negative unit price.
            discount_rate: Discount as a Rate (ignored if discount_amount given).
            discount_amount: Explicit discount, authoritative when present.
            tax_rate: Tax rate applied to the post-discount base.
            tax_amount: Explicit tax, authoritative when present.

        Returns:
            LinePricing with all derived amounts.

        Raises:
            InvalidQuantityError, InvalidPriceError, DiscountExceedsTotalError
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise InvalidQuantityError(quantity)
        if unit_price.is_negative:
            raise InvalidPriceError(unit_price.amount, field="unit_price")
        if discount_amount is not None and discount_amount.is_negative:
            raise InvalidPriceError(discount_amount.amount, field="discount_amount")
        if tax_amount is not None and tax_amount.is_negative:
            raise InvalidPriceError(tax_amount.amount, field="tax_amount")

        total_price = (unit_price * quantity).round(self._rounding)

        if discount_amount is not None:
            discount = discount_amount.round(self._rounding)
            effective_discount = _effective_rate(discount, total_price)
        else:
            effective_discount = discount_rate or Rate.zero()
            discount = effective_discount.apply(total_price).round(self._rounding)

        if discount > total_price:
            logger.info(
                "line_discount_exceeds_total",
                extra={
                    "discount_amount": str(discount.amount),
                    "total_price": str(total_price.amount),
                },
            )
            raise DiscountExceedsTotalError(
                str(discount.amount), str(total_price.amount)
            )

        after_discount = total_price - discount

        if tax_amount is not None:
            tax = tax_amount.round(self._rounding)
            effective_tax = _effective_rate(tax, after_discount)
        else:
            effective_tax = tax_rate or Rate.zero()
            tax = effective_tax.apply(after_discount).round(self._rounding)

        return LinePricing(
            quantity=quantity,
            unit_price=unit_price,
            total_price=total_price,
            discount_amount=discount,
            tax_amount=tax,
            final_price=after_discount + tax,
            discount_rate=effective_discount,
            tax_rate=effective_tax,
            discount_from_amount=discount_amount is not None,
            tax_from_amount=tax_amount is not None,
        )


def _effective_rate(amount: Money, base: Money) -> Rate:
    """Rate that reproduces ``amount`` on ``base`` (zero for a zero base)."""
    if base.is_zero:
        return Rate.zero()
    return Rate.fraction(amount.amount / base.amount)


def price_line(
    quantity: int,
    unit_price: Money,
    discount_rate: Rate | None = None,
    discount_amount: Money | None = None,
    tax_rate: Rate | None = None,
    tax_amount: Money | None = None,
) -> LinePricing:
    """Convenience wrapper around ``LineItemPricer().price``."""
    return LineItemPricer().price(
        quantity=quantity,
        unit_price=unit_price,
        discount_rate=discount_rate,
        discount_amount=discount_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
    )
