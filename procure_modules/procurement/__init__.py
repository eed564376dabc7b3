"""
Procurement Module (``procure_modules.procurement``).

Responsibility
--------------
Purchase orders and the editing path that produces them: drafts that
re-aggregate on every change, contract binding (supplier forcing, price
pre-fill, quantity caps) and goods receipts.

Architecture position
---------------------
**Modules layer** -- domain models, workflow definitions and the binding
resolver.  Pricing and totals are delegated to ``procure_engines``.

Failure modes
-------------
* ``QuantityExceedsContractError`` / ``ProductNotInContractError`` from
  binding checks, collected into ``BindingValidationError`` on rebind.
* Pricing errors from ``procure_engines.pricing`` carry the line index.
"""

from procure_modules.procurement.binding import BindingContext, ContractBindingResolver
from procure_modules.procurement.drafts import DocumentDraft
from procure_modules.procurement.models import (
    CatalogProduct,
    GoodsReceipt,
    GoodsReceiptLine,
    OrderStatus,
    PurchaseOrder,
    ReceiptStatus,
)
from procure_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW

__all__ = [
    "BindingContext",
    "CatalogProduct",
    "ContractBindingResolver",
    "DocumentDraft",
    "GoodsReceipt",
    "GoodsReceiptLine",
    "OrderStatus",
    "PURCHASE_ORDER_WORKFLOW",
    "PurchaseOrder",
    "ReceiptStatus",
]
