"""
Module: procure_engines.aggregation
Responsibility:
    Roll priced line items up into document totals (sub total, discount
    total, tax total, grand total) for a purchase order or a contract.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Each total is a plain sum of the matching per-line field, so
      ``total_amount == Σ final_price`` and ``sub_total == Σ total_price``.
    - Line order does not affect totals.
    - Idempotent: aggregating the same lines twice yields equal totals.

Failure modes:
    - ValueError when lines are priced in a currency other than the
      document currency.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from procure_kernel.domain.values import Currency, Money
from procure_engines.pricing import LinePricing
from procure_engines.tracer import traced_engine


@dataclass(frozen=True)
class DocumentTotals:
    """Document-level totals derived from its line items."""

    sub_total: Money
    discount_amount: Money
    tax_amount: Money
    total_amount: Money
    line_count: int = 0

    @classmethod
    def zero(cls, currency: str | Currency) -> DocumentTotals:
        z = Money.zero(currency)
        return cls(sub_total=z, discount_amount=z, tax_amount=z, total_amount=z)

    @property
    def currency(self) -> Currency:
        return self.total_amount.currency


class DocumentAggregator:
    """Sum priced lines into DocumentTotals. Pure, no I/O."""

    @traced_engine("document_aggregator", "1.0", fingerprint_fields=("currency",))
    def aggregate(
        self,
        *,
        lines: Sequence[LinePricing],
        currency: str | Currency,
    ) -> DocumentTotals:
        totals = DocumentTotals.zero(currency)
        if not lines:
            return totals

        sub_total = totals.sub_total
        discount = totals.discount_amount
        tax = totals.tax_amount
        grand = totals.total_amount
        for line in lines:
            sub_total = sub_total + line.total_price
            discount = discount + line.discount_amount
            tax = tax + line.tax_amount
            grand = grand + line.final_price

        return DocumentTotals(
            sub_total=sub_total,
            discount_amount=discount,
            tax_amount=tax,
            total_amount=grand,
            line_count=len(lines),
        )
