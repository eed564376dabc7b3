"""
Procurement Domain Models.

The nouns of procurement: purchase orders, goods receipts and the catalog
products an order line can reference.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from procure_engines.aggregation import DocumentTotals
from procure_kernel.domain.values import Money
from procure_modules._line_items import LineItem, compute_totals


class OrderStatus(Enum):
    """Purchase order lifecycle states."""
    DRAFT = "draft"
    APPROVED = "approved"
    CANCELLED = "cancelled"


class ReceiptStatus(Enum):
    """Goods receipt states."""
    DRAFT = "DRAFT"
    RECEIVED = "RECEIVED"
    PARTIAL = "PARTIAL"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class CatalogProduct:
    """A product variant offered by the catalog."""
    product_ref: str
    name: str
    sku: str = ""
    unit: str = ""
    cost_price: Decimal = Decimal("0")


@dataclass(frozen=True)
class PurchaseOrder:
    """
    A purchase order, optionally bound to a contract.

    ``totals`` is derived from ``items`` and never supplied by the caller.
    """
    document_type: ClassVar[str] = "purchase_order"

    id: str
    order_number: str
    supplier_id: str
    order_date: date
    warehouse_id: str = ""
    currency: str = "VND"
    items: tuple[LineItem, ...] = ()
    contract_id: str | None = None
    status: OrderStatus = OrderStatus.DRAFT
    description: str = ""
    note: str = ""
    totals: DocumentTotals = field(init=False, compare=False)

    def __post_init__(self):
        if not self.id:
            raise ValueError("PurchaseOrder id is required")
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "totals", compute_totals(self.items, self.currency))

    @property
    def document_number(self) -> str:
        return self.order_number

    @property
    def total_value(self) -> Decimal:
        return self.totals.total_amount.amount

    def ordered_quantity(self, product_ref: str) -> int:
        return sum(i.quantity for i in self.items if i.product_ref == product_ref)


@dataclass(frozen=True)
class GoodsReceiptLine:
    """A received quantity of one product."""
    product_ref: str
    quantity: int
    unit_price: Decimal

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError(f"Received quantity must be positive, got {self.quantity}")
        if self.unit_price < 0:
            raise ValueError(f"Unit price cannot be negative, got {self.unit_price}")


@dataclass(frozen=True)
class GoodsReceipt:
    """Receipt of goods against a purchase order."""
    id: str
    receipt_code: str
    purchase_order_id: str
    receipt_date: date
    lines: tuple[GoodsReceiptLine, ...] = ()
    currency: str = "VND"
    status: ReceiptStatus = ReceiptStatus.RECEIVED
    note: str = ""

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))

    @property
    def value(self) -> Money:
        """Monetary value of the receipt, sum of quantity * unit price."""
        total = Money.zero(self.currency)
        for line in self.lines:
            total = total + Money.of(line.unit_price, self.currency) * line.quantity
        return total.round()

    def received_quantity(self, product_ref: str) -> int:
        return sum(ln.quantity for ln in self.lines if ln.product_ref == product_ref)

    @property
    def counts_toward_order(self) -> bool:
        return self.status in (ReceiptStatus.RECEIVED, ReceiptStatus.PARTIAL)
