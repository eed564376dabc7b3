"""
Tests for the remote API payload codec.

Covers:
- Money and rates serialized as decimal / percent strings
- Amount-based adjustments keep their basis across the wire
- Server payloads without a basis field
- Totals are recomputed on decode; mismatches are logged
- Debt snapshots: derived status on encode, reported status on decode,
  inconsistent amounts logged
- Required fields and malformed values
"""

from datetime import date
from decimal import Decimal

import pytest

from procure_engines.debt import DebtRecognitionMode, DebtStatus
from procure_kernel.domain.values import Money, Rate
from procure_kernel.exceptions import InvalidPriceError, MissingRequiredFieldError
from procure_modules._line_items import LineItemInput
from procure_modules.contracts.models import ContractStatus, PaymentTerm, TermStatus
from procure_modules.debts.models import Debt, DebtView
from procure_modules.procurement.models import OrderStatus, PurchaseOrder
from procure_services.payloads import (
    contract_from_payload,
    contract_to_payload,
    debt_from_payload,
    debt_to_payload,
    document_from_payload,
    document_to_payload,
    line_input_from_payload,
    order_from_payload,
    order_to_payload,
)


class TestOrderPayload:

    def test_encode(self, make_order):
        payload = order_to_payload(make_order(contract_id="CT-1"))
        assert payload["orderNumber"] == "PO-2025-001"
        assert payload["supplier"] == "SUP-1"
        assert payload["contract"] == "CT-1"
        assert payload["orderDate"] == "2025-01-15"
        assert payload["orderStatus"] == "DRAFT"
        assert payload["totalAmount"] == "400000"
        line = payload["products"][0]
        assert line["variantId"] == "P-1"
        assert line["unitPrice"] == "100000"
        assert line["discountRate"] == "0"
        assert line["subTotal"] == "400000"
        assert line["totalPrice"] == "400000"

    def test_round_trip(self, make_order):
        order = make_order(
            lines=[
                LineItemInput(
                    "P-1", 4, Decimal("100000"),
                    discount_rate=Rate.percent("5"), tax_rate=Rate.percent("10"),
                ),
            ],
            status=OrderStatus.APPROVED,
        )
        decoded = order_from_payload(order_to_payload(order))
        assert decoded == order
        assert decoded.totals == order.totals

    def test_amount_basis_preserved(self, make_order):
        order = make_order(
            lines=[LineItemInput("P-1", 10, Decimal("100000"), discount_amount=Decimal("30000"))],
        )
        payload = order_to_payload(order)
        assert payload["products"][0]["discountBasis"] == "AMOUNT"
        assert payload["products"][0]["discountRate"] == "3"
        spec = order_from_payload(payload).items[0].spec
        assert spec.discount_amount == Decimal("30000")
        assert spec.discount_rate is None

    def test_iso_datetime_truncated(self, make_order):
        payload = order_to_payload(make_order())
        payload["orderDate"] = "2025-01-15T08:30:00.000Z"
        assert order_from_payload(payload).order_date == date(2025, 1, 15)

    def test_totals_mismatch_logged(self, make_order, captured_logs):
        payload = order_to_payload(make_order())
        payload["totalAmount"] = "1"
        order = order_from_payload(payload)
        assert order.total_value == Decimal("400000")
        mismatch = [r for r in captured_logs() if r["message"] == "payload_totals_mismatch"]
        assert mismatch[0]["recomputed_total"] == "400000"
        assert mismatch[0]["payload_total"] == "1"

    def test_missing_supplier(self, make_order):
        payload = order_to_payload(make_order())
        payload["supplier"] = None
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            order_from_payload(payload)
        assert exc_info.value.field == "supplier"

    def test_malformed_price(self, make_order):
        payload = order_to_payload(make_order())
        payload["products"][0]["unitPrice"] = "12,5"
        with pytest.raises(InvalidPriceError):
            order_from_payload(payload)


class TestServerLinePayload:
    """Lines built by the server carry no basis field."""

    def test_rates_only(self):
        spec = line_input_from_payload({
            "variantId": "P-1",
            "quantity": 2,
            "unitPrice": "50000",
            "discountRate": "10",
            "discountAmount": None,
            "taxRate": "8",
            "taxAmount": None,
        })
        assert spec.discount_rate == Rate.percent("10")
        assert spec.discount_amount is None
        assert spec.tax_rate == Rate.percent("8")

    def test_amount_present_is_authoritative(self):
        spec = line_input_from_payload({
            "variantId": "P-1",
            "quantity": 2,
            "unitPrice": "50000",
            "discountRate": "10",
            "discountAmount": "7000",
        })
        assert spec.discount_amount == Decimal("7000")
        assert spec.discount_rate is None

    def test_rate_basis_ignores_amount(self):
        spec = line_input_from_payload({
            "productId": "P-2",
            "quantity": 1,
            "unitPrice": "18000",
            "taxRate": "10",
            "taxAmount": "1800",
            "taxBasis": "RATE",
        }, ref_key="productId")
        assert spec.product_ref == "P-2"
        assert spec.tax_rate == Rate.percent("10")
        assert spec.tax_amount is None

    def test_missing_adjustments(self):
        spec = line_input_from_payload({"variantId": "P-1", "quantity": 1, "unitPrice": "1"})
        assert spec.discount_rate is None
        assert spec.tax_rate is None


class TestContractPayload:

    def test_encode(self, make_contract):
        contract = make_contract(
            payment_term_days=45,
            debt_recognition_mode=DebtRecognitionMode.BY_COMPLETION,
            terms=(PaymentTerm("Advance", date(2025, 2, 1), Decimal("300000")),),
        )
        payload = contract_to_payload(contract)
        assert payload["contractNumber"] == "HD-2025-001"
        assert payload["status"] == "DRAFT"
        assert payload["signDate"] == "2025-01-10"
        assert payload["paymentTermDays"] == 45
        assert payload["debtRecognitionMode"] == "BY_COMPLETION"
        assert payload["totalValue"] == "1145000"
        assert payload["items"][0]["productId"] == "P-1"
        assert payload["items"][0]["discountRate"] == "5"
        assert payload["items"][0]["taxRate"] == "10"
        assert payload["items"][0]["taxAmount"] == "95000"
        assert payload["terms"][0] == {
            "title": "Advance",
            "paymentDate": None,
            "dueDate": "2025-02-01",
            "amount": "300000",
            "status": "PENDING",
            "note": "",
        }

    def test_decode_server_contract(self):
        contract = contract_from_payload({
            "id": "CT-7",
            "supplierId": "SUP-3",
            "title": "Cement 2025",
            "contractNumber": "HD-7",
            "status": "ACTIVE",
            "startDate": "2025-01-01",
            "signDate": "2025-01-02",
            "endDate": "2025-12-31",
            "items": [
                {"productId": "P-3", "quantity": 100, "unitPrice": "85000", "taxRate": "10"},
            ],
            "terms": [
                {"title": "Final", "dueDate": "2025-12-31", "amount": "9350000",
                 "status": "COMPLETED", "paymentDate": "2025-11-30T00:00:00Z"},
            ],
        })
        assert contract.status is ContractStatus.ACTIVE
        assert contract.total_value == Decimal("9350000")
        assert contract.payment_term_days is None
        assert contract.debt_recognition_mode is None
        assert contract.terms[0].status is TermStatus.COMPLETED
        assert contract.terms[0].payment_date == date(2025, 11, 30)

    def test_missing_dates(self, make_contract):
        payload = contract_to_payload(make_contract())
        del payload["endDate"]
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            contract_from_payload(payload)
        assert exc_info.value.field == "endDate"


class TestDebtPayload:
    """Debt snapshots from the remote store."""

    AS_OF = date(2025, 1, 15)

    def _debt(self, **overrides):
        fields = {
            "id": "DEBT-1",
            "supplier_id": "SUP-1",
            "source_document_id": "CT-1",
            "source_document_type": "contract",
            "original_amount": Money.of("1145000", "VND"),
            "paid_amount": Money.of("145000", "VND"),
            "due_date": date(2025, 3, 16),
            "recognition_mode": DebtRecognitionMode.BY_COMPLETION,
        }
        fields.update(overrides)
        return Debt(**fields)

    def test_encode(self):
        payload = debt_to_payload(self._debt(), self.AS_OF)
        assert payload["originalAmount"] == "1145000"
        assert payload["paidAmount"] == "145000"
        assert payload["remainingAmount"] == "1000000"
        assert payload["dueDate"] == "2025-03-16"
        assert payload["status"] == "PARTIAL"
        assert payload["debtRecognitionMode"] == "BY_COMPLETION"

    def test_round_trip(self, captured_logs):
        debt = self._debt()
        decoded = debt_from_payload(debt_to_payload(debt, self.AS_OF))
        assert decoded.original_amount == debt.original_amount
        assert decoded.paid_amount == debt.paid_amount
        assert decoded.due_date == debt.due_date
        assert decoded.source_document_id == "CT-1"
        assert decoded.source_document_type == "contract"
        assert decoded.recognition_mode is DebtRecognitionMode.BY_COMPLETION
        assert decoded.reported_status is DebtStatus.PARTIAL
        assert DebtView.of(decoded, self.AS_OF).divergence is None
        assert not any(r["message"] == "debt_snapshot_inconsistent" for r in captured_logs())

    def test_decode_nested_references(self):
        payload = {
            "id": "DEBT-7",
            "supplier": {"id": "SUP-1", "name": "Thep Viet Steel"},
            "purchaseOrder": {"id": "PO-1", "orderNumber": "PO-2025-001"},
            "originalAmount": 400000,
            "paidAmount": 0,
            "dueDate": "2025-02-14T00:00:00.000Z",
            "status": "PENDING",
        }
        debt = debt_from_payload(payload)
        assert debt.supplier_id == "SUP-1"
        assert debt.source_document_id == "PO-1"
        assert debt.source_document_type == "purchase_order"
        assert debt.recognition_mode is DebtRecognitionMode.IMMEDIATE
        assert debt.remaining_amount == Money.of("400000", "VND")
        assert debt.due_date == date(2025, 2, 14)

    def test_cancelled_status(self):
        payload = debt_to_payload(self._debt(cancelled=True), self.AS_OF)
        decoded = debt_from_payload(payload)
        assert decoded.cancelled
        assert decoded.status(self.AS_OF) is DebtStatus.CANCELLED

    def test_overpaid_snapshot(self, captured_logs):
        payload = {
            "id": "DEBT-9",
            "supplierId": "SUP-1",
            "sourceDocumentId": "PO-1",
            "originalAmount": "100",
            "paidAmount": "200",
            "remainingAmount": "0",
            "dueDate": "2025-02-14",
            "status": "PAID",
        }
        debt = debt_from_payload(payload)
        assert debt.is_overpaid
        view = DebtView.of(debt, self.AS_OF)
        assert view.remaining_amount == Money.of("0", "VND")
        assert view.progress == Decimal("100.00")
        assert view.status is DebtStatus.PAID
        assert view.divergence is None
        inconsistent = [r for r in captured_logs() if r["message"] == "debt_snapshot_inconsistent"]
        assert inconsistent[0]["debt_id"] == "DEBT-9"
        assert inconsistent[0]["paid_amount"] == "200"

    def test_remaining_mismatch_logged(self, captured_logs):
        payload = debt_to_payload(self._debt(), self.AS_OF)
        payload["remainingAmount"] = "900000"
        debt = debt_from_payload(payload)
        assert debt.remaining_amount == Money.of("1000000", "VND")
        inconsistent = [r for r in captured_logs() if r["message"] == "debt_snapshot_inconsistent"]
        assert inconsistent[0]["payload_remaining"] == "900000"

    def test_missing_supplier(self):
        payload = debt_to_payload(self._debt(), self.AS_OF)
        del payload["supplierId"]
        with pytest.raises(MissingRequiredFieldError) as exc_info:
            debt_from_payload(payload)
        assert exc_info.value.field == "supplierId"


class TestDispatch:

    def test_by_document_type(self, make_order, make_contract):
        order = make_order()
        contract = make_contract()
        decoded_order = document_from_payload(document_to_payload(order), "purchase_order")
        decoded_contract = document_from_payload(document_to_payload(contract), "contract")
        assert isinstance(decoded_order, PurchaseOrder)
        assert decoded_order.totals == order.totals
        assert decoded_contract.totals == contract.totals
        assert [i.pricing for i in decoded_contract.items] == [i.pricing for i in contract.items]

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            document_from_payload({}, "invoice")

    def test_document_type_names(self):
        assert PurchaseOrder.document_type == "purchase_order"
