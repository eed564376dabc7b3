"""
External collaborator ports.

Contract:
    The core calls these only after its own validation has passed.  Any
    transport failure an implementation raises is surfaced to the caller
    unchanged: no retry, no wrapping.

Architecture: procure_services.  Implemented outside this package (REST
client, in-memory fakes in tests).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, Union, runtime_checkable

from procure_modules.contracts.models import Contract
from procure_modules.debts.models import Debt
from procure_modules.procurement.models import CatalogProduct, PurchaseOrder

CommercialDocument = Union[Contract, PurchaseOrder]


@runtime_checkable
class DocumentStore(Protocol):
    """Remote store for contracts and purchase orders."""

    def create_document(self, document: CommercialDocument) -> str:
        """Persist a new document; returns its id."""
        ...

    def update_document(self, document: CommercialDocument) -> None:
        ...

    def fetch_document(self, document_id: str) -> CommercialDocument:
        ...

    def fetch_contract(self, contract_id: str) -> Contract:
        ...

    def approve_order(self, order_id: str) -> None:
        """Server-side approval of a purchase order."""
        ...


@runtime_checkable
class ProductCatalog(Protocol):
    """Read-only product lookup used by the binding resolver."""

    def list_products(self) -> Sequence[CatalogProduct]:
        ...

    def list_products_for_contract(self, contract_id: str) -> Sequence[CatalogProduct]:
        ...


@runtime_checkable
class DebtStore(Protocol):
    """Persistence for supplier debts."""

    def save_debt(self, debt: Debt) -> None:
        ...

    def find_debt_for_document(self, document_id: str) -> Debt | None:
        ...

    def list_supplier_debts(self, supplier_id: str) -> Sequence[Debt]:
        ...
