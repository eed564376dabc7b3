"""
Hypothesis property tests for pricing, aggregation and debt status.

Properties:
- final_price == total_price - discount_amount + tax_amount, exactly
- 0 <= discount_amount <= total_price and final_price >= 0
- Document totals equal the sum of line fields regardless of line order
- Payment progress stays within [0, 100]
- A debt paid in full is PAID whatever the dates
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from procure_engines.aggregation import DocumentAggregator
from procure_engines.debt import DebtStatus, derive_debt_status, payment_progress
from procure_engines.pricing import LineItemPricer
from procure_kernel.domain.values import Money, Rate

CURRENCIES = ("VND", "USD", "KWD")

quantities = st.integers(min_value=1, max_value=100_000)
unit_amounts = st.decimals(
    min_value=0, max_value=10**9, places=3, allow_nan=False, allow_infinity=False,
)
percents = st.decimals(
    min_value=0, max_value=100, places=2, allow_nan=False, allow_infinity=False,
)
tax_percents = st.decimals(
    min_value=0, max_value=50, places=2, allow_nan=False, allow_infinity=False,
)


@st.composite
def priced_lines(draw, currency="VND"):
    pricer = LineItemPricer()
    return pricer.price(
        quantity=draw(quantities),
        unit_price=Money.of(draw(unit_amounts), currency),
        discount_rate=Rate.percent(draw(percents)),
        tax_rate=Rate.percent(draw(tax_percents)),
    )


class TestPricingProperties:

    @given(
        currency=st.sampled_from(CURRENCIES),
        quantity=quantities,
        unit=unit_amounts,
        discount=percents,
        tax=tax_percents,
    )
    @settings(max_examples=300, deadline=None)
    def test_final_price_identity(self, currency, quantity, unit, discount, tax):
        p = LineItemPricer().price(
            quantity=quantity,
            unit_price=Money.of(unit, currency),
            discount_rate=Rate.percent(discount),
            tax_rate=Rate.percent(tax),
        )
        assert p.final_price == p.total_price - p.discount_amount + p.tax_amount
        assert not p.discount_amount.is_negative
        assert p.discount_amount <= p.total_price
        assert not p.final_price.is_negative
        assert p.final_price.round() == p.final_price

    @given(quantity=quantities, unit=unit_amounts, data=st.data())
    @settings(max_examples=200, deadline=None)
    def test_explicit_discount_amount_used_verbatim(self, quantity, unit, data):
        total = (Money.of(unit, "VND") * quantity).round()
        discount = data.draw(
            st.integers(min_value=0, max_value=int(total.amount)), label="discount",
        )
        p = LineItemPricer().price(
            quantity=quantity,
            unit_price=Money.of(unit, "VND"),
            discount_amount=Money.of(discount, "VND"),
        )
        assert p.discount_amount.amount == Decimal(discount)
        assert p.discount_from_amount


class TestAggregationProperties:

    @given(lines=st.lists(priced_lines(), min_size=0, max_size=12))
    @settings(max_examples=150, deadline=None)
    def test_totals_are_line_sums(self, lines):
        totals = DocumentAggregator().aggregate(lines=lines, currency="VND")
        assert totals.total_amount.amount == sum(
            (line.final_price.amount for line in lines), Decimal("0"),
        )
        assert totals.sub_total.amount == sum(
            (line.total_price.amount for line in lines), Decimal("0"),
        )
        assert totals.line_count == len(lines)

    @given(lines=st.lists(priced_lines(), min_size=1, max_size=12), data=st.data())
    @settings(max_examples=100, deadline=None)
    def test_order_independent(self, lines, data):
        shuffled = data.draw(st.permutations(lines), label="shuffled")
        aggregator = DocumentAggregator()
        assert aggregator.aggregate(lines=lines, currency="VND") == aggregator.aggregate(
            lines=shuffled, currency="VND",
        )


class TestDebtProperties:

    @given(
        original=st.integers(min_value=0, max_value=10**12),
        paid=st.integers(min_value=0, max_value=2 * 10**12),
    )
    def test_progress_bounded(self, original, paid):
        progress = payment_progress(Money.of(original, "VND"), Money.of(paid, "VND"))
        assert Decimal("0") <= progress <= Decimal("100")

    @given(
        amount=st.integers(min_value=1, max_value=10**12),
        due_offset=st.integers(min_value=-365, max_value=365),
    )
    def test_paid_in_full_is_paid(self, amount, due_offset):
        as_of = date(2025, 1, 15)
        status = derive_debt_status(
            Money.of(amount, "VND"),
            Money.of(amount, "VND"),
            as_of + timedelta(days=due_offset),
            as_of,
        )
        assert status is DebtStatus.PAID
