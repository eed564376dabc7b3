"""
Tests for the supplier debt service.

Covers:
- Recognition per supplier mode, idempotent per document
- BY_RECEIPT_PARTIAL accumulation into one running debt
- Payment term fallback to the configured default
- max_debt flagging and optional enforcement
- Checking a recognition without saving it, then committing
- Payments, overpayment and cancellation
- Overpaid snapshots load with floored remaining and clamped progress
- Display view and reported status divergence
"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from procure_engines.debt import DebtRecognitionMode, DebtStatus, RecognitionTrigger
from procure_kernel.domain.values import Money
from procure_kernel.exceptions import (
    DebtCancelledError,
    DebtLimitExceededError,
    OverpaymentError,
)
from procure_modules.debts.models import Debt, DebtPayment
from procure_modules.debts.service import DebtService


def vnd(amount) -> Money:
    return Money.of(str(amount), "VND")


@pytest.fixture
def debt_service(debt_store, deterministic_clock):
    return DebtService(debt_store, clock=deterministic_clock)


def _recognize(service, supplier, amount, trigger=RecognitionTrigger.APPROVAL, **kwargs):
    params = {
        "supplier": supplier,
        "document_id": "PO-1",
        "document_type": "purchase_order",
        "amount": vnd(amount),
        "trigger": trigger,
    }
    params.update(kwargs)
    return service.recognize(**params)


class TestRecognition:
    """When and how much debt is recognized."""

    def test_immediate_on_approval(self, debt_service, debt_store, make_supplier, captured_logs):
        debt = _recognize(debt_service, make_supplier(), 1000)
        assert debt.original_amount == vnd(1000)
        assert debt.paid_amount == vnd(0)
        assert debt.due_date == date(2025, 2, 14)
        assert debt.recognition_mode is DebtRecognitionMode.IMMEDIATE
        assert debt.source_document_id == "PO-1"
        assert debt_store.debts[debt.id] == debt
        assert any(r["message"] == "debt_recognized" for r in captured_logs())

    def test_second_approval_returns_existing(self, debt_service, debt_store, make_supplier):
        first = _recognize(debt_service, make_supplier(), 1000)
        second = _recognize(debt_service, make_supplier(), 1000)
        assert second == first
        assert len(debt_store.debts) == 1

    def test_trigger_mismatch(self, debt_service, debt_store, make_supplier):
        supplier = make_supplier(debt_recognition_mode=DebtRecognitionMode.BY_COMPLETION)
        assert _recognize(debt_service, supplier, 1000) is None
        assert debt_store.debts == {}

    def test_mode_override(self, debt_service, make_supplier):
        debt = _recognize(
            debt_service,
            make_supplier(),
            1000,
            trigger=RecognitionTrigger.COMPLETION,
            mode=DebtRecognitionMode.BY_COMPLETION,
        )
        assert debt.recognition_mode is DebtRecognitionMode.BY_COMPLETION

    def test_explicit_trigger_date_and_terms(self, debt_service, make_supplier):
        debt = _recognize(
            debt_service, make_supplier(), 1000,
            trigger_date=date(2025, 3, 1), payment_term_days=10,
        )
        assert debt.due_date == date(2025, 3, 11)

    def test_default_term_days(self, debt_store, deterministic_clock, make_supplier):
        service = DebtService(
            debt_store, clock=deterministic_clock, default_payment_term_days=45,
        )
        debt = _recognize(service, make_supplier(payment_term_days=None), 1000)
        assert debt.due_date == date(2025, 3, 1)

    def test_zero_amount_not_recognized(self, debt_service, debt_store, make_supplier):
        assert _recognize(debt_service, make_supplier(), 0) is None
        assert debt_store.debts == {}


class TestPartialRecognition:
    """BY_RECEIPT_PARTIAL: each receipt grows one running debt."""

    def setup_method(self):
        self.kwargs = {"trigger": RecognitionTrigger.RECEIPT}

    def test_receipts_accumulate(self, debt_service, debt_store, make_supplier):
        supplier = make_supplier(debt_recognition_mode=DebtRecognitionMode.BY_RECEIPT_PARTIAL)
        first = _recognize(
            debt_service, supplier, 300, trigger_date=date(2025, 1, 20), **self.kwargs,
        )
        second = _recognize(
            debt_service, supplier, 200, trigger_date=date(2025, 1, 28), **self.kwargs,
        )
        assert second.id == first.id
        assert second.original_amount == vnd(500)
        assert second.due_date == date(2025, 2, 19)
        assert list(debt_store.debts) == [first.id]

    def test_increment_keeps_payments(self, debt_service, make_supplier):
        supplier = make_supplier(debt_recognition_mode=DebtRecognitionMode.BY_RECEIPT_PARTIAL)
        first = _recognize(debt_service, supplier, 300, **self.kwargs)
        debt_service.apply_payment(first, vnd(100))
        grown = _recognize(debt_service, supplier, 200, **self.kwargs)
        assert grown.paid_amount == vnd(100)
        assert grown.remaining_amount == vnd(400)

    def test_increment_on_cancelled_debt(self, debt_service, make_supplier):
        supplier = make_supplier(debt_recognition_mode=DebtRecognitionMode.BY_RECEIPT_PARTIAL)
        first = _recognize(debt_service, supplier, 300, **self.kwargs)
        debt_service.cancel(first)
        with pytest.raises(DebtCancelledError):
            _recognize(debt_service, supplier, 200, **self.kwargs)


class TestMaxDebt:
    """Supplier debt ceiling."""

    def _seed(self, debt_store, amount):
        debt_store.save_debt(
            Debt(
                id="D-0",
                supplier_id="SUP-1",
                source_document_id="PO-0",
                original_amount=vnd(amount),
                paid_amount=vnd(0),
                due_date=date(2025, 2, 1),
            )
        )

    def test_exceeding_flags_debt(self, debt_service, debt_store, make_supplier, captured_logs):
        self._seed(debt_store, 900)
        debt = _recognize(debt_service, make_supplier(max_debt=Decimal("1000")), 200)
        assert debt.exceeds_max_debt
        assert any(r["message"] == "supplier_max_debt_exceeded" for r in captured_logs())

    def test_within_limit(self, debt_service, debt_store, make_supplier):
        self._seed(debt_store, 500)
        debt = _recognize(debt_service, make_supplier(max_debt=Decimal("1000")), 200)
        assert not debt.exceeds_max_debt

    def test_cancelled_debts_not_counted(self, debt_service, debt_store, make_supplier):
        self._seed(debt_store, 900)
        debt_service.cancel(debt_store.debts["D-0"])
        debt = _recognize(debt_service, make_supplier(max_debt=Decimal("1000")), 200)
        assert not debt.exceeds_max_debt

    def test_enforced_limit(self, debt_store, deterministic_clock, make_supplier):
        self._seed(debt_store, 900)
        service = DebtService(debt_store, clock=deterministic_clock, enforce_max_debt=True)
        with pytest.raises(DebtLimitExceededError) as exc_info:
            _recognize(service, make_supplier(max_debt=Decimal("1000")), 200)
        assert exc_info.value.max_debt == "1000"
        assert debt_store.find_debt_for_document("PO-1") is None


class TestPrepareAndCommit:
    """prepare checks without saving; commit saves."""

    def test_prepare_saves_nothing(self, debt_service, debt_store, make_supplier):
        pending = debt_service.prepare(
            supplier=make_supplier(),
            document_id="PO-1",
            document_type="purchase_order",
            amount=vnd(1000),
            trigger=RecognitionTrigger.APPROVAL,
        )
        assert pending.is_new
        assert debt_store.debts == {}
        debt = debt_service.commit(pending)
        assert debt_store.debts[debt.id] == debt
        assert debt.original_amount == vnd(1000)

    def test_prepare_enforces_limit(self, debt_store, deterministic_clock, make_supplier):
        service = DebtService(debt_store, clock=deterministic_clock, enforce_max_debt=True)
        with pytest.raises(DebtLimitExceededError):
            service.prepare(
                supplier=make_supplier(max_debt=Decimal("500")),
                document_id="PO-1",
                document_type="purchase_order",
                amount=vnd(1000),
                trigger=RecognitionTrigger.APPROVAL,
            )
        assert debt_store.debts == {}

    def test_commit_existing_saves_nothing(self, debt_service, debt_store, make_supplier):
        first = _recognize(debt_service, make_supplier(), 1000)
        pending = debt_service.prepare(
            supplier=make_supplier(),
            document_id="PO-1",
            document_type="purchase_order",
            amount=vnd(1000),
            trigger=RecognitionTrigger.APPROVAL,
        )
        assert not pending.is_new
        assert debt_service.commit(pending) is first
        assert list(debt_store.debts) == [first.id]


class TestPayments:

    def test_partial_payment(self, debt_service, debt_store, make_supplier):
        debt = _recognize(debt_service, make_supplier(), 1000)
        paid = debt_service.apply_payment(debt, vnd(400), reference="UNC-01")
        assert paid.paid_amount == vnd(400)
        assert paid.remaining_amount == vnd(600)
        assert paid.payments[0].reference == "UNC-01"
        assert paid.payments[0].payment_date == date(2025, 1, 15)
        assert debt_store.debts[debt.id] == paid
        view = debt_service.view(paid)
        assert view.status is DebtStatus.PARTIAL
        assert view.progress == Decimal("40.00")

    def test_full_payment(self, debt_service, make_supplier):
        debt = _recognize(debt_service, make_supplier(), 1000)
        paid = debt_service.apply_payment(debt, vnd(1000))
        assert debt_service.view(paid).status is DebtStatus.PAID

    def test_overpayment_rejected(self, debt_service, debt_store, make_supplier):
        debt = _recognize(debt_service, make_supplier(), 1000)
        debt = debt_service.apply_payment(debt, vnd(400))
        with pytest.raises(OverpaymentError) as exc_info:
            debt_service.apply_payment(debt, vnd(700))
        assert exc_info.value.remaining == "600"
        assert debt_store.debts[debt.id].paid_amount == vnd(400)

    def test_non_positive_payment(self, debt_service, make_supplier):
        debt = _recognize(debt_service, make_supplier(), 1000)
        with pytest.raises(ValueError):
            debt_service.apply_payment(debt, vnd(0))

    def test_payment_on_cancelled_debt(self, debt_service, make_supplier):
        debt = debt_service.cancel(_recognize(debt_service, make_supplier(), 1000), "duplicate")
        with pytest.raises(DebtCancelledError):
            debt_service.apply_payment(debt, vnd(100))

    def test_cancel_idempotent(self, debt_service, make_supplier):
        debt = debt_service.cancel(_recognize(debt_service, make_supplier(), 1000))
        assert debt_service.cancel(debt) is debt
        assert debt_service.view(debt).status is DebtStatus.CANCELLED


class TestDebtModel:

    def test_overpaid_snapshot_loads(self, debt_service):
        debt = Debt("D-1", "SUP-1", "PO-1", vnd(100), vnd(200), date(2025, 2, 1))
        assert debt.is_overpaid
        assert debt.remaining_amount == vnd(0)
        view = debt_service.view(debt)
        assert view.status is DebtStatus.PAID
        assert view.progress == Decimal("100.00")

    def test_overpaid_snapshot_rejects_payment(self, debt_service):
        debt = Debt("D-1", "SUP-1", "PO-1", vnd(100), vnd(200), date(2025, 2, 1))
        with pytest.raises(OverpaymentError):
            debt_service.apply_payment(debt, vnd(1))

    def test_mixed_currency(self):
        with pytest.raises(ValueError):
            Debt("D-1", "SUP-1", "PO-1", vnd(100), Money.of("0", "USD"), date(2025, 2, 1))

    def test_payment_must_be_positive(self):
        with pytest.raises(ValueError):
            DebtPayment(vnd(-1), date(2025, 1, 1))


class TestDebtView:
    """Display projection recomputed on every read."""

    def _debt(self, **overrides):
        fields = {
            "id": "D-1",
            "supplier_id": "SUP-1",
            "source_document_id": "PO-1",
            "original_amount": vnd(1000),
            "paid_amount": vnd(0),
            "due_date": date(2025, 1, 10),
        }
        fields.update(overrides)
        return Debt(**fields)

    def test_overdue(self, debt_service):
        view = debt_service.view(self._debt())
        assert view.is_overdue
        assert view.progress == Decimal("0.00")
        assert view.as_of == date(2025, 1, 15)

    def test_explicit_as_of(self, debt_service):
        view = debt_service.view(self._debt(), as_of=date(2025, 1, 10))
        assert view.status is DebtStatus.PENDING

    def test_divergence_logged(self, debt_service, captured_logs):
        view = debt_service.view(self._debt(reported_status="PAID"))
        assert view.status is DebtStatus.OVERDUE
        assert view.divergence.reported is DebtStatus.PAID
        logged = [r for r in captured_logs() if r["message"] == "debt_status_divergence"]
        assert logged[0]["derived"] == "OVERDUE"

    def test_matching_reported_status(self, debt_service):
        view = debt_service.view(self._debt(reported_status=DebtStatus.OVERDUE))
        assert view.divergence is None

    def test_divergence_warning_disabled(self, debt_store, deterministic_clock, captured_logs):
        service = DebtService(
            debt_store, clock=deterministic_clock, warn_on_status_divergence=False,
        )
        view = service.view(self._debt(reported_status="PAID"))
        assert view.divergence is not None
        assert not [r for r in captured_logs() if r["message"] == "debt_status_divergence"]

    def test_local_change_clears_reported_status(self, debt_service):
        debt = self._debt(due_date=date(2025, 2, 1), reported_status="PENDING")
        paid = debt_service.apply_payment(debt, vnd(100))
        assert paid.reported_status is None
        assert replace(paid, reported_status="PARTIAL").reported_status is DebtStatus.PARTIAL
