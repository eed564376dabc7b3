"""
Payload codec for the remote document API.

Converts contracts and purchase orders to and from the JSON-ready dicts
the REST layer sends, using the API's camelCase field names.  Debt
snapshots decode the same way; their server status is kept only for
divergence checks.

Wire conventions:
    - Money travels as a decimal string in the document currency
      ("1045000", "12.50").  Floats never cross the boundary.
    - Rates travel as percent strings ("10" for 10%).
    - Dates travel as ISO dates; ISO datetimes are accepted on input and
      truncated to the date.
    - ``discountBasis`` / ``taxBasis`` ("RATE" or "AMOUNT") record which
      value was authoritative.  When absent (server-built payloads) a
      non-null amount is authoritative.

Decoding re-prices every line, so totals are always recomputed rather than
trusted; a mismatch with the payload's own totals is logged.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from procure_engines.debt import DebtRecognitionMode, DebtStatus
from procure_kernel.domain.values import Money, Rate, RateScale
from procure_kernel.exceptions import InvalidPriceError, MissingRequiredFieldError
from procure_kernel.logging_config import get_logger
from procure_modules._line_items import LineItem, LineItemInput, price_line_inputs
from procure_modules.contracts.models import (
    Contract,
    ContractStatus,
    ContractType,
    PaymentTerm,
    TermStatus,
)
from procure_modules.debts.models import Debt
from procure_modules.procurement.models import OrderStatus, PurchaseOrder

logger = get_logger("services.payloads")

BASIS_RATE = "RATE"
BASIS_AMOUNT = "AMOUNT"


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------


def _money_str(money: Money) -> str:
    return f"{money.amount:f}"


def _percent_str(rate: Rate) -> str:
    return f"{rate.as_percent.normalize():f}"


def _require(payload: dict[str, Any], key: str, document_type: str) -> Any:
    value = payload.get(key)
    if value is None or value == "":
        raise MissingRequiredFieldError(key, document_type)
    return value


def _decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidPriceError(value, field=field) from e


def _date(value: str) -> date:
    return date.fromisoformat(value[:10])


# ---------------------------------------------------------------------------
# Line items
# ---------------------------------------------------------------------------


def line_to_payload(item: LineItem, ref_key: str = "variantId") -> dict[str, Any]:
    pricing = item.pricing
    return {
        ref_key: item.product_ref,
        "quantity": item.quantity,
        "unitPrice": _money_str(pricing.unit_price),
        "discountRate": _percent_str(pricing.discount_rate),
        "discountAmount": _money_str(pricing.discount_amount),
        "discountBasis": BASIS_AMOUNT if pricing.discount_from_amount else BASIS_RATE,
        "taxRate": _percent_str(pricing.tax_rate),
        "taxAmount": _money_str(pricing.tax_amount),
        "taxBasis": BASIS_AMOUNT if pricing.tax_from_amount else BASIS_RATE,
        "subTotal": _money_str(pricing.total_price),
        "totalPrice": _money_str(pricing.final_price),
        "note": item.note,
    }


def _adjustment(
    payload: dict[str, Any], prefix: str,
) -> tuple[Rate | None, Decimal | None]:
    amount = payload.get(f"{prefix}Amount")
    rate = payload.get(f"{prefix}Rate")
    basis = payload.get(f"{prefix}Basis")
    if basis is None:
        basis = BASIS_AMOUNT if amount is not None else BASIS_RATE
    if basis == BASIS_AMOUNT and amount is not None:
        return None, _decimal(amount, f"{prefix}_amount")
    if rate is None:
        return None, None
    return Rate.of(_decimal(rate, f"{prefix}_rate"), RateScale.PERCENT), None


def line_input_from_payload(
    payload: dict[str, Any], ref_key: str = "variantId",
) -> LineItemInput:
    product_ref = payload.get(ref_key) or ""
    discount_rate, discount_amount = _adjustment(payload, "discount")
    tax_rate, tax_amount = _adjustment(payload, "tax")
    return LineItemInput(
        product_ref=str(product_ref),
        quantity=payload.get("quantity"),
        unit_price=_decimal(payload.get("unitPrice", "0"), "unit_price"),
        discount_rate=discount_rate,
        discount_amount=discount_amount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        note=payload.get("note") or "",
    )


def _check_totals(document: Any, payload: dict[str, Any], key: str) -> None:
    sent = payload.get(key)
    if sent is None:
        return
    recomputed = document.totals.total_amount.amount
    if _decimal(sent, key) != recomputed:
        logger.warning(
            "payload_totals_mismatch",
            extra={
                "document_id": document.id,
                "document_type": document.document_type,
                "payload_total": str(sent),
                "recomputed_total": str(recomputed),
            },
        )


# ---------------------------------------------------------------------------
# Purchase orders
# ---------------------------------------------------------------------------


def order_to_payload(order: PurchaseOrder) -> dict[str, Any]:
    totals = order.totals
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "supplier": order.supplier_id,
        "warehouse": order.warehouse_id,
        "contract": order.contract_id,
        "orderDate": order.order_date.isoformat(),
        "orderStatus": order.status.value.upper(),
        "currency": order.currency,
        "description": order.description,
        "note": order.note,
        "products": [line_to_payload(item, "variantId") for item in order.items],
        "subTotal": _money_str(totals.sub_total),
        "discountAmount": _money_str(totals.discount_amount),
        "taxAmount": _money_str(totals.tax_amount),
        "totalAmount": _money_str(totals.total_amount),
    }


def order_from_payload(payload: dict[str, Any]) -> PurchaseOrder:
    doc_type = PurchaseOrder.document_type
    currency = payload.get("currency") or "VND"
    inputs = [line_input_from_payload(p, "variantId") for p in payload.get("products") or ()]
    order = PurchaseOrder(
        id=_require(payload, "id", doc_type),
        order_number=payload.get("orderNumber") or "",
        supplier_id=_require(payload, "supplier", doc_type),
        order_date=_date(_require(payload, "orderDate", doc_type)),
        warehouse_id=payload.get("warehouse") or "",
        currency=currency,
        items=price_line_inputs(inputs, currency),
        contract_id=payload.get("contract") or None,
        status=OrderStatus((payload.get("orderStatus") or "DRAFT").lower()),
        description=payload.get("description") or "",
        note=payload.get("note") or "",
    )
    _check_totals(order, payload, "totalAmount")
    return order


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


def _term_to_payload(term: PaymentTerm) -> dict[str, Any]:
    return {
        "title": term.title,
        "paymentDate": term.payment_date.isoformat() if term.payment_date else None,
        "dueDate": term.due_date.isoformat(),
        "amount": f"{term.amount:f}",
        "status": term.status.value,
        "note": term.note,
    }


def _term_from_payload(payload: dict[str, Any]) -> PaymentTerm:
    payment_date = payload.get("paymentDate")
    return PaymentTerm(
        title=payload.get("title") or "",
        due_date=_date(_require(payload, "dueDate", "payment_term")),
        amount=_decimal(payload.get("amount", "0"), "amount"),
        payment_date=_date(payment_date) if payment_date else None,
        status=TermStatus(payload.get("status") or "PENDING"),
        note=payload.get("note") or "",
    )


def contract_to_payload(contract: Contract) -> dict[str, Any]:
    totals = contract.totals
    return {
        "id": contract.id,
        "supplierId": contract.supplier_id,
        "title": contract.title,
        "contractNumber": contract.contract_number,
        "contractType": contract.contract_type.value,
        "status": contract.status.value.upper(),
        "startDate": contract.start_date.isoformat(),
        "signDate": contract.sign_date.isoformat(),
        "endDate": contract.end_date.isoformat(),
        "paymentTermDays": contract.payment_term_days,
        "debtRecognitionMode": (
            contract.debt_recognition_mode.value
            if contract.debt_recognition_mode else None
        ),
        "currency": contract.currency,
        "items": [line_to_payload(item, "productId") for item in contract.items],
        "terms": [_term_to_payload(t) for t in contract.terms],
        "subTotal": _money_str(totals.sub_total),
        "discountAmount": _money_str(totals.discount_amount),
        "taxAmount": _money_str(totals.tax_amount),
        "totalValue": _money_str(totals.total_amount),
    }


def contract_from_payload(payload: dict[str, Any]) -> Contract:
    doc_type = Contract.document_type
    currency = payload.get("currency") or "VND"
    inputs = [line_input_from_payload(p, "productId") for p in payload.get("items") or ()]
    mode = payload.get("debtRecognitionMode")
    contract = Contract(
        id=_require(payload, "id", doc_type),
        contract_number=payload.get("contractNumber") or "",
        title=payload.get("title") or "",
        supplier_id=_require(payload, "supplierId", doc_type),
        start_date=_date(_require(payload, "startDate", doc_type)),
        sign_date=_date(_require(payload, "signDate", doc_type)),
        end_date=_date(_require(payload, "endDate", doc_type)),
        contract_type=ContractType(payload.get("contractType") or "PURCHASE"),
        currency=currency,
        items=price_line_inputs(inputs, currency),
        terms=tuple(_term_from_payload(t) for t in payload.get("terms") or ()),
        status=ContractStatus((payload.get("status") or "DRAFT").lower()),
        payment_term_days=payload.get("paymentTermDays"),
        debt_recognition_mode=DebtRecognitionMode(mode) if mode else None,
    )
    _check_totals(contract, payload, "totalValue")
    return contract


# ---------------------------------------------------------------------------
# Debts
# ---------------------------------------------------------------------------


def _ref_id(value: Any) -> str | None:
    """Nested objects (``{"id": ...}``) and bare ids are both accepted."""
    if isinstance(value, dict):
        return value.get("id")
    return value


def debt_to_payload(debt: Debt, as_of: date) -> dict[str, Any]:
    """Debt snapshot; ``status`` is the status derived as of ``as_of``."""
    return {
        "id": debt.id,
        "supplierId": debt.supplier_id,
        "sourceDocumentId": debt.source_document_id,
        "sourceDocumentType": debt.source_document_type,
        "debtRecognitionMode": debt.recognition_mode.value,
        "currency": debt.currency,
        "originalAmount": _money_str(debt.original_amount),
        "paidAmount": _money_str(debt.paid_amount),
        "remainingAmount": _money_str(debt.remaining_amount),
        "dueDate": debt.due_date.isoformat(),
        "status": debt.status(as_of).value,
        "description": debt.description,
    }


def debt_from_payload(payload: dict[str, Any]) -> Debt:
    """
    Decode a server debt snapshot.

    The server's ``status`` becomes ``reported_status``; display status is
    derived again on every read.  A snapshot whose amounts disagree with
    each other (paid above original, or a remaining amount that does not
    match) still decodes; the mismatch is logged.
    """
    doc_type = "debt"
    currency = payload.get("currency") or "VND"
    source_type = payload.get("sourceDocumentType")
    source_id = payload.get("sourceDocumentId")
    if source_id is None and payload.get("purchaseOrder") is not None:
        source_id = _ref_id(payload["purchaseOrder"])
        source_type = source_type or PurchaseOrder.document_type
    supplier_id = payload.get("supplierId") or _ref_id(payload.get("supplier"))
    if not supplier_id:
        raise MissingRequiredFieldError("supplierId", doc_type)
    if not source_id:
        raise MissingRequiredFieldError("sourceDocumentId", doc_type)

    original = Money.of(
        _decimal(_require(payload, "originalAmount", doc_type), "originalAmount"), currency,
    )
    paid = Money.of(_decimal(payload.get("paidAmount") or "0", "paidAmount"), currency)
    status = payload.get("status")
    mode = payload.get("debtRecognitionMode")
    debt = Debt(
        id=_require(payload, "id", doc_type),
        supplier_id=str(supplier_id),
        source_document_id=str(source_id),
        source_document_type=source_type or PurchaseOrder.document_type,
        original_amount=original,
        paid_amount=paid,
        due_date=_date(_require(payload, "dueDate", doc_type)),
        recognition_mode=(
            DebtRecognitionMode(mode) if mode else DebtRecognitionMode.IMMEDIATE
        ),
        cancelled=status == DebtStatus.CANCELLED.value,
        reported_status=DebtStatus(status) if status else None,
        description=payload.get("description") or "",
    )

    sent_remaining = payload.get("remainingAmount")
    remaining_mismatch = (
        sent_remaining is not None
        and _decimal(sent_remaining, "remainingAmount") != debt.remaining_amount.amount
    )
    if debt.is_overpaid or remaining_mismatch:
        logger.warning(
            "debt_snapshot_inconsistent",
            extra={
                "debt_id": debt.id,
                "original_amount": str(original.amount),
                "paid_amount": str(paid.amount),
                "payload_remaining": None if sent_remaining is None else str(sent_remaining),
                "remaining_amount": str(debt.remaining_amount.amount),
            },
        )
    return debt


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def document_to_payload(document: Contract | PurchaseOrder) -> dict[str, Any]:
    if isinstance(document, Contract):
        return contract_to_payload(document)
    return order_to_payload(document)


def document_from_payload(payload: dict[str, Any], document_type: str) -> Contract | PurchaseOrder:
    if document_type == Contract.document_type:
        return contract_from_payload(payload)
    if document_type == PurchaseOrder.document_type:
        return order_from_payload(payload)
    raise ValueError(f"Unknown document type: {document_type}")
