"""
Shared line-item models for purchase orders and contracts.

``LineItemInput`` is what an operator types (or what a contract line
pre-fills).  ``LineItem`` is the priced, frozen line stored on a document.
Amounts on the input are plain Decimals in the document currency; rates
are ``Rate`` values so the scale is always explicit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from procure_engines.aggregation import DocumentAggregator, DocumentTotals
from procure_engines.pricing import LineItemPricer, LinePricing
from procure_kernel.domain.values import Money, Rate
from procure_kernel.exceptions import DocumentValidationError, MissingRequiredFieldError

_default_pricer = LineItemPricer()
_aggregator = DocumentAggregator()


def pricer_for(rounding: str = ROUND_HALF_UP) -> LineItemPricer:
    """Pricer for a rounding mode; the shared default for ROUND_HALF_UP."""
    if rounding == ROUND_HALF_UP:
        return _default_pricer
    return LineItemPricer(rounding=rounding)


@dataclass(frozen=True)
class LineItemInput:
    """Operator input for one product line."""
    product_ref: str
    quantity: int
    unit_price: Decimal
    discount_rate: Rate | None = None
    discount_amount: Decimal | None = None
    tax_rate: Rate | None = None
    tax_amount: Decimal | None = None
    note: str = ""


@dataclass(frozen=True)
class LineItem:
    """A priced line item on a purchase order or contract."""
    spec: LineItemInput
    pricing: LinePricing

    @property
    def product_ref(self) -> str:
        return self.spec.product_ref

    @property
    def quantity(self) -> int:
        return self.spec.quantity

    @property
    def note(self) -> str:
        return self.spec.note

    @property
    def unit_price(self) -> Money:
        return self.pricing.unit_price

    @property
    def total_price(self) -> Money:
        return self.pricing.total_price

    @property
    def discount_amount(self) -> Money:
        return self.pricing.discount_amount

    @property
    def tax_amount(self) -> Money:
        return self.pricing.tax_amount

    @property
    def final_price(self) -> Money:
        return self.pricing.final_price

    @property
    def discount_rate(self) -> Rate:
        return self.pricing.discount_rate

    @property
    def tax_rate(self) -> Rate:
        return self.pricing.tax_rate


def price_line_input(
    spec: LineItemInput,
    currency: str,
    line_index: int | None = None,
    pricer: LineItemPricer | None = None,
) -> LineItem:
    """
    Price one input line in the document currency.

    Validation failures are re-raised with ``line_index`` attached so the
    presentation layer can highlight the offending row.
    """
    pricer = pricer or _default_pricer
    try:
        if not spec.product_ref:
            raise MissingRequiredFieldError("product_ref", "line_item")
        pricing = pricer.price(
            quantity=spec.quantity,
            unit_price=Money.of(spec.unit_price, currency),
            discount_rate=spec.discount_rate,
            discount_amount=(
                Money.of(spec.discount_amount, currency)
                if spec.discount_amount is not None else None
            ),
            tax_rate=spec.tax_rate,
            tax_amount=(
                Money.of(spec.tax_amount, currency)
                if spec.tax_amount is not None else None
            ),
        )
    except DocumentValidationError as e:
        if line_index is not None:
            e.with_line_index(line_index)
        raise
    return LineItem(spec=spec, pricing=pricing)


def price_line_inputs(
    specs: Sequence[LineItemInput],
    currency: str,
    pricer: LineItemPricer | None = None,
) -> tuple[LineItem, ...]:
    """Price every line, preserving display order."""
    return tuple(
        price_line_input(spec, currency, line_index=i, pricer=pricer)
        for i, spec in enumerate(specs)
    )


def compute_totals(items: Sequence[LineItem], currency: str) -> DocumentTotals:
    """Roll priced items up into document totals."""
    return _aggregator.aggregate(
        lines=[item.pricing for item in items],
        currency=currency,
    )
