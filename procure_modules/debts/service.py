"""
Debt Module Service (``procure_modules.debts.service``).

Responsibility
--------------
Owns the supplier debt lifecycle: recognizing debt from contract and
purchase-order events according to the supplier's recognition mode,
applying payments, operator cancellation, and building display views.

Architecture position
---------------------
**Modules layer** -- composes the pure ``DebtRecognitionEngine`` with a
``DebtStore`` port.  Persistence happens only after the engine has decided
and every check has passed.

Invariants enforced
-------------------
* A document recognizes at most one debt; BY_RECEIPT_PARTIAL receipts
  increment that debt's original amount rather than creating new ones.
* Payments never exceed the remaining amount.
* Display status is always derived; divergence from the stored status is
  logged as ``debt_status_divergence``, never raised.

Failure modes
-------------
* ``OverpaymentError`` -- payment larger than the remaining amount.
* ``DebtCancelledError`` -- payment against a cancelled debt.
* ``DebtLimitExceededError`` -- only when ``enforce_max_debt`` is on;
  otherwise exceeding ``max_debt`` is a warning flag on the debt.
* Store errors propagate unchanged.

``prepare`` runs the checks (including the max-debt limit) and ``commit``
saves, so a caller can refuse a document transition before any remote
write.  ``recognize`` does both.

Usage::

    service = DebtService(store, clock=clock)
    debt = service.recognize(
        supplier=supplier,
        document_id=order.id,
        document_type="purchase_order",
        amount=order.totals.total_amount,
        trigger=RecognitionTrigger.APPROVAL,
    )
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from uuid import uuid4

from procure_engines.debt import (
    DebtRecognitionEngine,
    DebtRecognitionMode,
    RecognitionTrigger,
    recognizes_on,
)
from procure_kernel.domain.clock import Clock, SystemClock
from procure_kernel.domain.values import Money
from procure_kernel.exceptions import (
    DebtCancelledError,
    DebtLimitExceededError,
    OverpaymentError,
)
from procure_kernel.logging_config import get_logger
from procure_modules.debts.models import Debt, DebtPayment, DebtView
from procure_modules.partners.models import Supplier

logger = get_logger("modules.debts.service")


@dataclass(frozen=True)
class PendingDebt:
    """
    A recognition that passed every check but is not saved yet.

    ``is_new`` is False when the document already had its debt; committing
    then saves nothing.
    """
    debt: Debt
    trigger: RecognitionTrigger
    increment: Money
    is_increment: bool = False
    is_new: bool = True


class DebtService:
    """
    Supplier debt operations.

    ``store`` is any object providing ``save_debt(debt)``,
    ``find_debt_for_document(document_id)`` and
    ``list_supplier_debts(supplier_id)``.
    """

    def __init__(
        self,
        store,
        clock: Clock | None = None,
        engine: DebtRecognitionEngine | None = None,
        warn_on_status_divergence: bool = True,
        enforce_max_debt: bool = False,
        default_payment_term_days: int = 30,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._engine = engine or DebtRecognitionEngine()
        self._warn_on_divergence = warn_on_status_divergence
        self._enforce_max_debt = enforce_max_debt
        self._default_term_days = default_payment_term_days

    # =========================================================================
    # Recognition
    # =========================================================================

    def recognize(
        self,
        *,
        supplier: Supplier,
        document_id: str,
        document_type: str,
        amount: Money,
        trigger: RecognitionTrigger,
        trigger_date: date | None = None,
        payment_term_days: int | None = None,
        mode: DebtRecognitionMode | None = None,
    ) -> Debt | None:
        """
        Recognize (or increment) the debt for a document event.

        Returns the saved debt, or None when the supplier's mode does not
        recognize debt on this trigger.
        """
        pending = self.prepare(
            supplier=supplier,
            document_id=document_id,
            document_type=document_type,
            amount=amount,
            trigger=trigger,
            trigger_date=trigger_date,
            payment_term_days=payment_term_days,
            mode=mode,
        )
        if pending is None:
            return None
        return self.commit(pending)

    def prepare(
        self,
        *,
        supplier: Supplier,
        document_id: str,
        document_type: str,
        amount: Money,
        trigger: RecognitionTrigger,
        trigger_date: date | None = None,
        payment_term_days: int | None = None,
        mode: DebtRecognitionMode | None = None,
    ) -> PendingDebt | None:
        """
        Run every recognition check without saving anything.

        Raises ``DebtLimitExceededError`` here, so callers can check the
        limit before committing a document transition, then ``commit``.
        """
        mode = DebtRecognitionMode(mode or supplier.debt_recognition_mode)
        trigger = RecognitionTrigger(trigger)
        trigger_date = trigger_date or self._clock.today()
        if payment_term_days is not None:
            term_days = payment_term_days
        elif supplier.payment_term_days is not None:
            term_days = supplier.payment_term_days
        else:
            term_days = self._default_term_days

        if not recognizes_on(mode, trigger):
            logger.debug(
                "debt_not_recognized",
                extra={
                    "document_id": document_id,
                    "mode": mode.value,
                    "trigger": trigger.value,
                    "reason": "trigger_mismatch",
                },
            )
            return None

        existing = self._store.find_debt_for_document(document_id)
        if existing is not None and mode is not DebtRecognitionMode.BY_RECEIPT_PARTIAL:
            logger.info(
                "debt_already_recognized",
                extra={"debt_id": existing.id, "document_id": document_id},
            )
            return PendingDebt(debt=existing, trigger=trigger, increment=amount, is_new=False)
        if existing is not None and existing.cancelled:
            raise DebtCancelledError(existing.id)

        max_debt = (
            Money.of(supplier.max_debt, amount.currency)
            if supplier.has_debt_limit else None
        )
        outstanding = (
            self._outstanding_for(supplier.id, amount.currency.code)
            if max_debt is not None else None
        )

        decision = self._engine.plan(
            mode=mode,
            trigger=trigger,
            amount=amount,
            trigger_date=trigger_date,
            payment_term_days=term_days,
            existing_original=existing.original_amount if existing else None,
            existing_due_date=existing.due_date if existing else None,
            outstanding_supplier_debt=outstanding,
            max_debt=max_debt,
        )
        if not decision.recognize:
            logger.debug(
                "debt_not_recognized",
                extra={
                    "document_id": document_id,
                    "mode": mode.value,
                    "trigger": trigger.value,
                    "reason": decision.reason,
                },
            )
            return None

        if decision.exceeds_max_debt and self._enforce_max_debt:
            raise DebtLimitExceededError(
                supplier.id,
                str(outstanding.amount),
                str(amount.amount),
                str(max_debt.amount),
            )

        if decision.is_increment:
            debt = replace(
                existing,
                original_amount=decision.original_amount,
                exceeds_max_debt=existing.exceeds_max_debt or decision.exceeds_max_debt,
                reported_status=None,
            )
        else:
            debt = Debt(
                id=str(uuid4()),
                supplier_id=supplier.id,
                source_document_id=document_id,
                source_document_type=document_type,
                original_amount=decision.original_amount,
                paid_amount=Money.zero(amount.currency),
                due_date=decision.due_date,
                recognition_mode=mode,
                exceeds_max_debt=decision.exceeds_max_debt,
            )

        return PendingDebt(
            debt=debt,
            trigger=trigger,
            increment=amount,
            is_increment=decision.is_increment,
        )

    def commit(self, pending: PendingDebt) -> Debt:
        """Save a prepared debt; an already recognized debt is returned as is."""
        debt = pending.debt
        if not pending.is_new:
            return debt
        self._store.save_debt(debt)
        logger.info(
            "debt_recognized",
            extra={
                "debt_id": debt.id,
                "supplier_id": debt.supplier_id,
                "document_id": debt.source_document_id,
                "document_type": debt.source_document_type,
                "mode": debt.recognition_mode.value,
                "trigger": pending.trigger.value,
                "increment": str(pending.increment.amount),
                "original_amount": str(debt.original_amount.amount),
                "due_date": debt.due_date.isoformat(),
                "is_increment": pending.is_increment,
            },
        )
        return debt

    def _outstanding_for(self, supplier_id: str, currency: str) -> Money:
        total = Money.zero(currency)
        for debt in self._store.list_supplier_debts(supplier_id):
            if debt.cancelled or debt.currency != currency:
                continue
            total = total + debt.remaining_amount
        return total

    # =========================================================================
    # Payments and cancellation
    # =========================================================================

    def apply_payment(
        self,
        debt: Debt,
        amount: Money,
        payment_date: date | None = None,
        reference: str = "",
    ) -> Debt:
        if debt.cancelled:
            raise DebtCancelledError(debt.id)
        payment = DebtPayment(
            amount=amount,
            payment_date=payment_date or self._clock.today(),
            reference=reference,
        )
        remaining = debt.remaining_amount
        if amount > remaining:
            logger.info(
                "debt_overpayment_rejected",
                extra={
                    "debt_id": debt.id,
                    "payment": str(amount.amount),
                    "remaining": str(remaining.amount),
                },
            )
            raise OverpaymentError(debt.id, str(amount.amount), str(remaining.amount))

        updated = replace(
            debt,
            paid_amount=debt.paid_amount + amount,
            payments=debt.payments + (payment,),
            reported_status=None,
        )
        self._store.save_debt(updated)
        logger.info(
            "debt_payment_applied",
            extra={
                "debt_id": debt.id,
                "payment": str(amount.amount),
                "paid_amount": str(updated.paid_amount.amount),
                "remaining": str(updated.remaining_amount.amount),
            },
        )
        return updated

    def cancel(self, debt: Debt, reason: str = "") -> Debt:
        """Operator override; CANCELLED wins over the derived status."""
        if debt.cancelled:
            return debt
        updated = replace(debt, cancelled=True, reported_status=None)
        self._store.save_debt(updated)
        logger.info(
            "debt_cancelled",
            extra={"debt_id": debt.id, "reason": reason},
        )
        return updated

    # =========================================================================
    # Display
    # =========================================================================

    def view(self, debt: Debt, as_of: date | None = None) -> DebtView:
        view = DebtView.of(debt, as_of or self._clock.today())
        if view.divergence is not None and self._warn_on_divergence:
            logger.warning(
                "debt_status_divergence",
                extra={
                    "debt_id": debt.id,
                    "reported": view.divergence.reported.value,
                    "derived": view.divergence.derived.value,
                },
            )
        return view
