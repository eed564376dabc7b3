"""
Pytest fixtures for the procurement core test suite.

Provides:
- Structured log capture
- Deterministic clock
- In-memory document store, product catalog and debt store
- Supplier, contract and purchase order factories

The in-memory ports stand in for the remote REST store.  ``fail_on`` lets a
test make any store operation raise, to check that transport errors reach
the caller unchanged.
"""

import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from procure_engines.debt import DebtRecognitionMode
from procure_kernel.domain.clock import DeterministicClock
from procure_kernel.domain.values import Rate
from procure_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from procure_modules._line_items import LineItemInput, price_line_inputs
from procure_modules.contracts.models import Contract
from procure_modules.partners.models import Supplier
from procure_modules.procurement.models import CatalogProduct, OrderStatus, PurchaseOrder
from procure_services.document_service import ProcurementDocumentService


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture procure_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, debt_service):
            debt_service.view(debt)
            logs = captured_logs()
            assert any(r["message"] == "debt_status_divergence" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("procure_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock fixed at 2025-01-15 09:00 UTC."""
    return DeterministicClock(datetime(2025, 1, 15, 9, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# In-memory ports
# =============================================================================


class InMemoryDocumentStore:
    """Dict-backed DocumentStore."""

    def __init__(self):
        self.documents = {}
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}

    def _enter(self, operation: str) -> None:
        self.calls.append(operation)
        error = self.fail_on.get(operation)
        if error is not None:
            raise error

    def create_document(self, document):
        self._enter("create_document")
        self.documents[document.id] = document
        return document.id

    def update_document(self, document):
        self._enter("update_document")
        self.documents[document.id] = document

    def fetch_document(self, document_id):
        self._enter("fetch_document")
        return self.documents[document_id]

    def fetch_contract(self, contract_id):
        self._enter("fetch_contract")
        return self.documents[contract_id]

    def approve_order(self, order_id):
        self._enter("approve_order")
        order = self.documents[order_id]
        self.documents[order_id] = replace(order, status=OrderStatus.APPROVED)


class InMemoryCatalog:
    """Fixed product list; contract products keyed by contract id."""

    def __init__(self, products=(), contract_products=None):
        self.products = tuple(products)
        self.contract_products = dict(contract_products or {})

    def list_products(self):
        return self.products

    def list_products_for_contract(self, contract_id):
        return self.contract_products.get(contract_id, ())


class InMemoryDebtStore:
    """Dict-backed DebtStore keyed by debt id."""

    def __init__(self):
        self.debts = {}

    def save_debt(self, debt):
        self.debts[debt.id] = debt

    def find_debt_for_document(self, document_id):
        for debt in self.debts.values():
            if debt.source_document_id == document_id:
                return debt
        return None

    def list_supplier_debts(self, supplier_id):
        return [d for d in self.debts.values() if d.supplier_id == supplier_id]


CATALOG_PRODUCTS = (
    CatalogProduct("P-1", "Steel rebar D10", sku="RB-D10", unit="ton", cost_price=Decimal("95000")),
    CatalogProduct("P-2", "Tie wire", sku="TW-1", unit="roll", cost_price=Decimal("18000")),
    CatalogProduct("P-3", "Cement PCB40", sku="CM-40", unit="bag", cost_price=Decimal("85000")),
)


@pytest.fixture
def document_store():
    return InMemoryDocumentStore()


@pytest.fixture
def catalog():
    return InMemoryCatalog(
        CATALOG_PRODUCTS,
        contract_products={"CT-1": CATALOG_PRODUCTS[:2]},
    )


@pytest.fixture
def debt_store():
    return InMemoryDebtStore()


# =============================================================================
# Factories
# =============================================================================


def _contract_lines():
    return [
        LineItemInput(
            "P-1",
            10,
            Decimal("100000"),
            discount_rate=Rate.percent("5"),
            tax_rate=Rate.percent("10"),
        ),
        LineItemInput("P-2", 5, Decimal("20000")),
    ]


@pytest.fixture
def make_supplier():
    """Supplier factory; keyword arguments override the defaults."""

    def _make(**overrides) -> Supplier:
        fields = {
            "id": "SUP-1",
            "code": "NCC001",
            "name": "Thep Viet Steel",
            "debt_recognition_mode": DebtRecognitionMode.IMMEDIATE,
            "payment_term_days": 30,
        }
        fields.update(overrides)
        return Supplier(**fields)

    return _make


@pytest.fixture
def make_contract():
    """
    Contract factory.

    Default lines: P-1 x10 at 100,000 less 5% plus 10% tax (1,045,000) and
    P-2 x5 at 20,000 (100,000).  Pass ``lines=`` to price other inputs.
    """

    def _make(lines=None, **overrides) -> Contract:
        currency = overrides.get("currency", "VND")
        fields = {
            "id": "CT-1",
            "contract_number": "HD-2025-001",
            "title": "Rebar supply 2025",
            "supplier_id": "SUP-1",
            "start_date": date(2025, 1, 1),
            "sign_date": date(2025, 1, 10),
            "end_date": date(2025, 12, 31),
            "items": price_line_inputs(
                _contract_lines() if lines is None else lines, currency,
            ),
        }
        fields.update(overrides)
        return Contract(**fields)

    return _make


@pytest.fixture
def make_order():
    """
    Purchase order factory.

    Default line: P-1 x4 at 100,000 with no discount or tax (400,000).
    """

    def _make(lines=None, **overrides) -> PurchaseOrder:
        currency = overrides.get("currency", "VND")
        if lines is None:
            lines = [LineItemInput("P-1", 4, Decimal("100000"))]
        fields = {
            "id": "PO-1",
            "order_number": "PO-2025-001",
            "supplier_id": "SUP-1",
            "order_date": date(2025, 1, 15),
            "warehouse_id": "WH-HN",
            "items": price_line_inputs(lines, currency),
        }
        fields.update(overrides)
        return PurchaseOrder(**fields)

    return _make


@pytest.fixture
def document_service(document_store, catalog, debt_store, deterministic_clock):
    return ProcurementDocumentService(
        document_store, catalog, debt_store, clock=deterministic_clock,
    )
