"""
Debt Domain Models (``procure_modules.debts.models``).

Responsibility
--------------
Frozen value objects for supplier debts: the stored ``Debt`` record, the
payments applied to it, and ``DebtView``, the read-side projection shown to
operators.

Invariants enforced
-------------------
* ``original_amount`` and ``paid_amount`` share one currency and are never
  negative.  ``DebtService`` never pays past ``original_amount``, but a
  stored snapshot may; it still loads, with ``remaining_amount`` floored at
  zero and progress clamped to 100.
* Display status is never stored.  ``DebtView`` derives it (and payment
  progress) from amounts and due date every time it is built.
* ``reported_status`` is whatever the remote store last returned; it is
  kept only to detect divergence from the derived status.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from procure_engines.debt import (
    DebtRecognitionMode,
    DebtStatus,
    StatusDivergence,
    compare_status,
    derive_debt_status,
    payment_progress,
    remaining_amount,
)
from procure_kernel.domain.values import Money


@dataclass(frozen=True)
class DebtPayment:
    """A payment applied against a debt."""
    amount: Money
    payment_date: date
    reference: str = ""
    note: str = ""

    def __post_init__(self):
        if not self.amount.is_positive:
            raise ValueError(f"Payment amount must be positive, got {self.amount}")


@dataclass(frozen=True)
class Debt:
    """
    A payable owed to a supplier, recognized from a contract or order.

    Contract: frozen; mutations go through ``DebtService`` and produce a
    new instance.
    """
    id: str
    supplier_id: str
    source_document_id: str
    original_amount: Money
    paid_amount: Money
    due_date: date
    source_document_type: str = "purchase_order"
    recognition_mode: DebtRecognitionMode = DebtRecognitionMode.IMMEDIATE
    cancelled: bool = False
    reported_status: DebtStatus | None = None
    exceeds_max_debt: bool = False
    description: str = ""
    payments: tuple[DebtPayment, ...] = ()

    def __post_init__(self):
        if self.original_amount.currency != self.paid_amount.currency:
            raise ValueError("original_amount and paid_amount must share a currency")
        if self.original_amount.is_negative or self.paid_amount.is_negative:
            raise ValueError("Debt amounts cannot be negative")
        object.__setattr__(self, "payments", tuple(self.payments))
        if self.reported_status is not None and not isinstance(self.reported_status, DebtStatus):
            object.__setattr__(self, "reported_status", DebtStatus(self.reported_status))

    @property
    def remaining_amount(self) -> Money:
        return remaining_amount(self.original_amount, self.paid_amount)

    @property
    def is_overpaid(self) -> bool:
        return self.paid_amount > self.original_amount

    @property
    def currency(self) -> str:
        return self.original_amount.currency.code

    def status(self, as_of: date) -> DebtStatus:
        return derive_debt_status(
            self.original_amount,
            self.paid_amount,
            self.due_date,
            as_of,
            cancelled=self.cancelled,
        )


@dataclass(frozen=True)
class DebtView:
    """Display projection of a debt as of a given date."""
    debt_id: str
    supplier_id: str
    original_amount: Money
    paid_amount: Money
    remaining_amount: Money
    due_date: date
    as_of: date
    status: DebtStatus
    progress: Decimal
    divergence: StatusDivergence | None = None

    @property
    def is_overdue(self) -> bool:
        return self.status is DebtStatus.OVERDUE

    @classmethod
    def of(cls, debt: Debt, as_of: date) -> DebtView:
        derived = debt.status(as_of)
        divergence = None
        if debt.reported_status is not None:
            divergence = compare_status(debt.reported_status, derived)
        return cls(
            debt_id=debt.id,
            supplier_id=debt.supplier_id,
            original_amount=debt.original_amount,
            paid_amount=debt.paid_amount,
            remaining_amount=debt.remaining_amount,
            due_date=debt.due_date,
            as_of=as_of,
            status=derived,
            progress=payment_progress(debt.original_amount, debt.paid_amount),
            divergence=divergence,
        )
