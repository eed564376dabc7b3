"""
Procurement Document Service (``procure_services.document_service``).

Responsibility
--------------
Orchestrates contract and purchase-order operations: create and update
(validate, price, bind, then store), status transitions through the
``WorkflowExecutor``, and debt recognition at the points the supplier's
recognition mode selects.

Architecture position
---------------------
**Services layer** -- the sole public entry point for document operations.
Composes the binding resolver, the workflow executor, the debt service and
the external ports.

Invariants enforced
-------------------
* The remote store is called only after local validation passes.
* A document leaves DRAFT only through the workflow executor; content
  updates outside DRAFT raise ``DocumentNotEditableError`` and an update
  carrying a different status raises ``InvalidTransitionError``.
* Debt checks (including an enforced ``max_debt``) run before the store
  is asked to apply a transition; the debt is saved only after the store
  accepted it.
* A purchase order bound to a contract never owns a debt.  Approval and
  completion debt belong to the contract's own transitions, and receipts
  increment the contract's debt.

Failure modes
-------------
* Typed ``ProcurementError`` subclasses for every validation failure.
* Store / transport errors are logged and re-raised unchanged.

Usage::

    service = ProcurementDocumentService(store, catalog, debt_store, clock=clock)
    service.create_order(order)
    result = service.approve_order(order.id, supplier)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from procure_config.schema import ProcurementSettings
from procure_engines.debt import RecognitionTrigger
from procure_kernel.domain.clock import Clock, SystemClock
from procure_kernel.domain.values import Money, Rate
from procure_kernel.domain.workflow import Workflow
from procure_kernel.exceptions import (
    InvalidPriceError,
    InvalidTransitionError,
    MissingRequiredFieldError,
)
from procure_kernel.logging_config import LogContext, get_logger
from procure_modules._line_items import LineItemInput
from procure_modules.contracts.models import Contract, validate_dates
from procure_modules.contracts.workflows import CONTRACT_WORKFLOW
from procure_modules.debts.models import Debt
from procure_modules.debts.service import DebtService, PendingDebt
from procure_modules.partners.models import Supplier
from procure_modules.procurement.binding import BindingContext, ContractBindingResolver
from procure_modules.procurement.drafts import DocumentDraft
from procure_modules.procurement.models import (
    GoodsReceipt,
    OrderStatus,
    PurchaseOrder,
)
from procure_modules.procurement.workflows import PURCHASE_ORDER_WORKFLOW
from procure_services.ports import DebtStore, DocumentStore, ProductCatalog
from procure_services.workflow_executor import TransitionResult, WorkflowExecutor

logger = get_logger("services.document_service")


def _entered_amount(value: Decimal | str | int | None, field: str) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidPriceError(value, field=field) from e


@dataclass(frozen=True)
class ReceiptOutcome:
    """Effect of recording a goods receipt against a purchase order."""
    receipt: GoodsReceipt
    fully_received: bool
    debt: Debt | None = None


class ProcurementDocumentService:
    """
    Contract and purchase-order operations.

    Supplier snapshots are passed into each call that may recognize debt;
    the service holds no supplier state of its own.
    """

    def __init__(
        self,
        store: DocumentStore,
        catalog: ProductCatalog,
        debt_store: DebtStore,
        clock: Clock | None = None,
        settings: ProcurementSettings | None = None,
        executor: WorkflowExecutor | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._settings = settings or ProcurementSettings()
        self._executor = executor or WorkflowExecutor()
        self.binding = ContractBindingResolver(
            catalog,
            enforce_contract_quantity=self._settings.enforce_contract_quantity,
            restrict_to_contract_products=self._settings.restrict_to_contract_products,
        )
        self.debts = DebtService(
            debt_store,
            clock=self._clock,
            warn_on_status_divergence=self._settings.warn_on_status_divergence,
            enforce_max_debt=self._settings.enforce_max_debt,
            default_payment_term_days=self._settings.default_payment_term_days,
        )

    # =========================================================================
    # Store access
    # =========================================================================

    def _call_store(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        try:
            return fn(*args)
        except Exception:
            logger.exception(
                "document_store_call_failed",
                extra={"operation": operation},
            )
            raise

    # =========================================================================
    # Drafts and binding
    # =========================================================================

    def new_draft(self, supplier_id: str | None = None) -> DocumentDraft:
        return DocumentDraft(
            currency=self._settings.currency,
            supplier_id=supplier_id,
            rounding=self._settings.rounding,
        )

    def line_input(
        self,
        product_ref: str,
        quantity: int,
        unit_price: Decimal | str | int,
        *,
        discount_rate: Decimal | str | int | None = None,
        discount_amount: Decimal | str | int | None = None,
        tax_rate: Decimal | str | int | None = None,
        tax_amount: Decimal | str | int | None = None,
        note: str = "",
    ) -> LineItemInput:
        """
        Build a line from operator-entered values.

        Rates are read in the configured ``input_rate_scale`` and normalized
        to fractions here; amounts are taken as entered.
        """
        scale = self._settings.input_rate_scale
        return LineItemInput(
            product_ref=product_ref,
            quantity=quantity,
            unit_price=_entered_amount(unit_price, "unit_price"),
            discount_rate=Rate.of(discount_rate, scale) if discount_rate is not None else None,
            discount_amount=_entered_amount(discount_amount, "discount_amount"),
            tax_rate=Rate.of(tax_rate, scale) if tax_rate is not None else None,
            tax_amount=_entered_amount(tax_amount, "tax_amount"),
            note=note,
        )

    def bind_contract(
        self,
        draft: DocumentDraft,
        contract_id: str | None,
    ) -> tuple[DocumentDraft, BindingContext]:
        """Bind (or unbind, with None) a draft to a contract fetched from the store."""
        contract = (
            self._call_store("fetch_contract", self._store.fetch_contract, contract_id)
            if contract_id else None
        )
        return self.binding.rebind(draft, contract)

    def add_line(
        self,
        draft: DocumentDraft,
        line: LineItemInput,
        context: BindingContext | None = None,
    ) -> DocumentDraft:
        """Append a line, rejecting it if it breaks the bound contract."""
        self.binding.check_line(self._context_for(draft, context), line, len(draft.lines))
        return draft.add_line(line)

    def edit_line(
        self,
        draft: DocumentDraft,
        index: int,
        context: BindingContext | None = None,
        **changes: Any,
    ) -> DocumentDraft:
        """Edit one line, e.g. ``edit_line(draft, 0, quantity=3)``, under the bound contract."""
        edited = draft.edit_line(index, **changes)
        self.binding.check_line(self._context_for(draft, context), edited.lines[index], index)
        return edited

    def _context_for(
        self, draft: DocumentDraft, context: BindingContext | None,
    ) -> BindingContext:
        if context is not None and context.contract_id == draft.contract_id:
            return context
        contract = (
            self._call_store("fetch_contract", self._store.fetch_contract, draft.contract_id)
            if draft.contract_id else None
        )
        return self.binding.resolve(draft, contract)

    # =========================================================================
    # Purchase orders
    # =========================================================================

    def _validate_order(self, order: PurchaseOrder) -> PurchaseOrder:
        if not order.supplier_id:
            raise MissingRequiredFieldError("supplier_id", order.document_type)
        if not order.contract_id:
            return order

        contract = self._call_store(
            "fetch_contract", self._store.fetch_contract, order.contract_id,
        )
        draft = DocumentDraft(
            currency=order.currency,
            supplier_id=order.supplier_id,
            rounding=self._settings.rounding,
            lines=tuple(item.spec for item in order.items),
        )
        rebound, _ = self.binding.rebind(draft, contract)
        if rebound.supplier_id != order.supplier_id:
            order = replace(order, supplier_id=rebound.supplier_id)
        return order

    def create_order(self, order: PurchaseOrder) -> PurchaseOrder:
        """Validate and store a new DRAFT purchase order."""
        with LogContext.bind(document_id=order.id):
            self._executor.check_editable(PURCHASE_ORDER_WORKFLOW, order, "create")
            order = self._validate_order(order)
            new_id = self._call_store("create_document", self._store.create_document, order)
            if new_id and new_id != order.id:
                order = replace(order, id=new_id)
            logger.info(
                "purchase_order_created",
                extra={
                    "order_id": order.id,
                    "order_number": order.order_number,
                    "supplier_id": order.supplier_id,
                    "contract_id": order.contract_id,
                    "total_amount": str(order.total_value),
                    "line_count": len(order.items),
                },
            )
            return order

    def update_order(self, order: PurchaseOrder) -> PurchaseOrder:
        with LogContext.bind(document_id=order.id):
            current = self._call_store("fetch_document", self._store.fetch_document, order.id)
            self._executor.check_editable(PURCHASE_ORDER_WORKFLOW, current, "update")
            _check_status_unchanged(PURCHASE_ORDER_WORKFLOW, current, order)
            order = self._validate_order(order)
            self._call_store("update_document", self._store.update_document, order)
            logger.info(
                "purchase_order_updated",
                extra={"order_id": order.id, "total_amount": str(order.total_value)},
            )
            return order

    def approve_order(
        self,
        order_id: str,
        supplier: Supplier,
        as_of: date | None = None,
    ) -> TransitionResult:
        """Approve a DRAFT order; IMMEDIATE suppliers get a debt now."""
        with LogContext.bind(document_id=order_id):
            order = self._call_store("fetch_document", self._store.fetch_document, order_id)
            result = self._executor.execute_transition(
                PURCHASE_ORDER_WORKFLOW, order, "approve",
            )
            if not result.success:
                return result
            pending = None
            if result.creates_debt and not _owned_by_contract(order, RecognitionTrigger.APPROVAL):
                pending = self.debts.prepare(
                    supplier=supplier,
                    document_id=order.id,
                    document_type=order.document_type,
                    amount=order.totals.total_amount,
                    trigger=RecognitionTrigger.APPROVAL,
                    trigger_date=as_of or self._clock.today(),
                    payment_term_days=self._term_days(supplier),
                )
            self._call_store("approve_order", self._store.approve_order, order_id)
            if pending is not None:
                self.debts.commit(pending)
            return result

    def cancel_order(self, order_id: str) -> TransitionResult:
        return self._transition_and_store(PURCHASE_ORDER_WORKFLOW, order_id, "cancel")

    def record_goods_receipt(
        self,
        receipt: GoodsReceipt,
        supplier: Supplier,
        previous_receipts: Sequence[GoodsReceipt] = (),
    ) -> ReceiptOutcome:
        """
        Apply a goods receipt to an approved purchase order.

        BY_RECEIPT_PARTIAL suppliers accrue the receipt's value; once every
        ordered quantity has been received, BY_COMPLETION suppliers get a
        debt for the order total.  For an order bound to a contract the
        receipt value accrues on the contract's debt instead, and completion
        is left to the contract.
        """
        with LogContext.bind(document_id=receipt.purchase_order_id):
            order = self._call_store(
                "fetch_document", self._store.fetch_document, receipt.purchase_order_id,
            )
            if order.status is not OrderStatus.APPROVED:
                raise InvalidTransitionError(
                    PURCHASE_ORDER_WORKFLOW.name, order.status.value, "receive",
                )
            if not receipt.counts_toward_order:
                return ReceiptOutcome(receipt=receipt, fully_received=False)

            receipts = [r for r in previous_receipts if r.counts_toward_order]
            receipts.append(receipt)
            fully_received = _is_fully_received(order, receipts)

            if order.contract_id:
                contract = self._call_store(
                    "fetch_contract", self._store.fetch_contract, order.contract_id,
                )
                debt = self._recognize_for_contract(
                    contract, supplier, RecognitionTrigger.RECEIPT,
                    receipt.receipt_date, amount=receipt.value,
                )
            else:
                debt = self.debts.recognize(
                    supplier=supplier,
                    document_id=order.id,
                    document_type=order.document_type,
                    amount=receipt.value,
                    trigger=RecognitionTrigger.RECEIPT,
                    trigger_date=receipt.receipt_date,
                    payment_term_days=self._term_days(supplier),
                )
            if fully_received and not _owned_by_contract(order, RecognitionTrigger.COMPLETION):
                debt = self.debts.recognize(
                    supplier=supplier,
                    document_id=order.id,
                    document_type=order.document_type,
                    amount=order.totals.total_amount,
                    trigger=RecognitionTrigger.COMPLETION,
                    trigger_date=receipt.receipt_date,
                    payment_term_days=self._term_days(supplier),
                ) or debt

            logger.info(
                "goods_receipt_recorded",
                extra={
                    "receipt_id": receipt.id,
                    "order_id": order.id,
                    "receipt_value": str(receipt.value.amount),
                    "fully_received": fully_received,
                },
            )
            return ReceiptOutcome(receipt=receipt, fully_received=fully_received, debt=debt)

    # =========================================================================
    # Contracts
    # =========================================================================

    def _validate_contract(self, contract: Contract) -> None:
        if not contract.title.strip():
            raise MissingRequiredFieldError("title", contract.document_type)
        if not contract.contract_number.strip():
            raise MissingRequiredFieldError("contract_number", contract.document_type)
        if not contract.supplier_id:
            raise MissingRequiredFieldError("supplier_id", contract.document_type)
        validate_dates(contract)

    def create_contract(self, contract: Contract) -> Contract:
        with LogContext.bind(document_id=contract.id):
            self._executor.check_editable(CONTRACT_WORKFLOW, contract, "create")
            self._validate_contract(contract)
            new_id = self._call_store("create_document", self._store.create_document, contract)
            if new_id and new_id != contract.id:
                contract = replace(contract, id=new_id)
            logger.info(
                "contract_created",
                extra={
                    "contract_id": contract.id,
                    "contract_number": contract.contract_number,
                    "supplier_id": contract.supplier_id,
                    "total_value": str(contract.total_value),
                    "line_count": len(contract.items),
                },
            )
            return contract

    def update_contract(self, contract: Contract) -> Contract:
        with LogContext.bind(document_id=contract.id):
            current = self._call_store(
                "fetch_document", self._store.fetch_document, contract.id,
            )
            self._executor.check_editable(CONTRACT_WORKFLOW, current, "update")
            _check_status_unchanged(CONTRACT_WORKFLOW, current, contract)
            self._validate_contract(contract)
            self._call_store("update_document", self._store.update_document, contract)
            logger.info(
                "contract_updated",
                extra={"contract_id": contract.id, "total_value": str(contract.total_value)},
            )
            return contract

    def activate_contract(
        self,
        contract_id: str,
        supplier: Supplier,
        as_of: date | None = None,
    ) -> TransitionResult:
        return self._transition_and_store(
            CONTRACT_WORKFLOW, contract_id, "activate",
            plan_debt=lambda contract: self._prepare_for_contract(
                contract, supplier, RecognitionTrigger.APPROVAL, as_of,
            ),
        )

    def complete_contract(
        self,
        contract_id: str,
        supplier: Supplier,
        as_of: date | None = None,
    ) -> TransitionResult:
        return self._transition_and_store(
            CONTRACT_WORKFLOW, contract_id, "complete",
            plan_debt=lambda contract: self._prepare_for_contract(
                contract, supplier, RecognitionTrigger.COMPLETION, as_of,
            ),
        )

    def cancel_contract(self, contract_id: str) -> TransitionResult:
        return self._transition_and_store(CONTRACT_WORKFLOW, contract_id, "cancel")

    def expire_contract(self, contract_id: str, as_of: date | None = None) -> TransitionResult:
        return self._transition_and_store(
            CONTRACT_WORKFLOW, contract_id, "expire",
            context={"as_of": as_of or self._clock.today()},
        )

    def _prepare_for_contract(
        self,
        contract: Contract,
        supplier: Supplier,
        trigger: RecognitionTrigger,
        as_of: date | None,
        amount: Money | None = None,
    ) -> PendingDebt | None:
        term_days = (
            contract.payment_term_days
            if contract.payment_term_days is not None
            else self._term_days(supplier)
        )
        return self.debts.prepare(
            supplier=supplier,
            document_id=contract.id,
            document_type=contract.document_type,
            amount=amount if amount is not None else contract.totals.total_amount,
            trigger=trigger,
            trigger_date=as_of or self._clock.today(),
            payment_term_days=term_days,
            mode=contract.debt_recognition_mode,
        )

    def _recognize_for_contract(
        self,
        contract: Contract,
        supplier: Supplier,
        trigger: RecognitionTrigger,
        as_of: date | None,
        amount: Money | None = None,
    ) -> Debt | None:
        pending = self._prepare_for_contract(contract, supplier, trigger, as_of, amount)
        return self.debts.commit(pending) if pending is not None else None

    # =========================================================================
    # Helpers
    # =========================================================================

    def _term_days(self, supplier: Supplier) -> int:
        if supplier.payment_term_days is not None:
            return supplier.payment_term_days
        return self._settings.default_payment_term_days

    def _transition_and_store(
        self,
        workflow: Workflow,
        document_id: str,
        action: str,
        context: dict[str, Any] | None = None,
        plan_debt: Callable[[Any], PendingDebt | None] | None = None,
    ) -> TransitionResult:
        """
        Execute ``action`` and store the result.

        ``plan_debt`` runs after the transition succeeded but before the
        store write, so a refused debt leaves the stored document untouched.
        """
        with LogContext.bind(document_id=document_id):
            document = self._call_store(
                "fetch_document", self._store.fetch_document, document_id,
            )
            result = self._executor.execute_transition(workflow, document, action, context)
            if not result.success:
                return result
            pending = None
            if result.creates_debt and plan_debt is not None:
                pending = plan_debt(result.document)
            self._call_store("update_document", self._store.update_document, result.document)
            if pending is not None:
                self.debts.commit(pending)
            return result


def _owned_by_contract(order: PurchaseOrder, trigger: RecognitionTrigger) -> bool:
    """A contract-bound order leaves approval and completion debt to its contract."""
    if not order.contract_id:
        return False
    logger.info(
        "debt_owned_by_contract",
        extra={
            "order_id": order.id,
            "contract_id": order.contract_id,
            "trigger": trigger.value,
        },
    )
    return True


def _check_status_unchanged(workflow: Workflow, current: Any, incoming: Any) -> None:
    """Status moves only through workflow actions, never through an update."""
    if incoming.status != current.status:
        logger.warning(
            "update_status_change_rejected",
            extra={
                "workflow": workflow.name,
                "current_status": current.status.value,
                "requested_status": incoming.status.value,
            },
        )
        raise InvalidTransitionError(workflow.name, current.status.value, "update")


def _is_fully_received(order: PurchaseOrder, receipts: Sequence[GoodsReceipt]) -> bool:
    ordered: dict[str, int] = {}
    for item in order.items:
        ordered[item.product_ref] = ordered.get(item.product_ref, 0) + item.quantity
    if not ordered:
        return False
    return all(
        sum(r.received_quantity(ref) for r in receipts) >= qty
        for ref, qty in ordered.items()
    )
