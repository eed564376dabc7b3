"""
Module: procure_engines.debt
Responsibility:
    Derive a supplier debt's display status and payment progress from its
    amounts and due date, and decide when a debt is recognized from a
    purchase order or contract according to the supplier's debt
    recognition mode.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Callers pass ``as_of`` dates explicitly; the engine never reads a clock.

Invariants enforced:
    - Status is a pure function of (original, paid, due date, as_of,
      cancelled) and is recomputed on every read.
    - CANCELLED is an operator override and wins over the derived value.
    - remaining = original - paid, floored at zero.
    - progress = clamp(paid / original * 100, 0, 100), zero when the
      original amount is not positive.

Failure modes:
    - ValueError when amounts mix currencies or a recognized amount is
      negative.

Usage:
    from procure_engines.debt import derive_debt_status, payment_progress

    status = derive_debt_status(
        original=Money.of("1000", "VND"),
        paid=Money.of("400", "VND"),
        due_date=date(2025, 2, 1),
        as_of=date(2025, 1, 15),
    )  # DebtStatus.PARTIAL
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from procure_kernel.domain.values import Money
from procure_kernel.logging_config import get_logger
from procure_engines.tracer import traced_engine

logger = get_logger("engines.debt")

_HUNDRED = Decimal("100")
_PROGRESS_QUANTUM = Decimal("0.01")


class DebtStatus(str, Enum):
    """Display status of a supplier debt."""

    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class DebtRecognitionMode(str, Enum):
    """Supplier policy for when a payable is generated from a document."""

    IMMEDIATE = "IMMEDIATE"  # at approval / activation
    BY_COMPLETION = "BY_COMPLETION"  # when the document completes
    BY_RECEIPT_PARTIAL = "BY_RECEIPT_PARTIAL"  # per goods receipt


class RecognitionTrigger(str, Enum):
    """Document event that may recognize debt."""

    APPROVAL = "APPROVAL"
    COMPLETION = "COMPLETION"
    RECEIPT = "RECEIPT"


# Which trigger each mode listens to
_MODE_TRIGGER: dict[DebtRecognitionMode, RecognitionTrigger] = {
    DebtRecognitionMode.IMMEDIATE: RecognitionTrigger.APPROVAL,
    DebtRecognitionMode.BY_COMPLETION: RecognitionTrigger.COMPLETION,
    DebtRecognitionMode.BY_RECEIPT_PARTIAL: RecognitionTrigger.RECEIPT,
}


# ---------------------------------------------------------------------------
# Status and progress
# ---------------------------------------------------------------------------


def derive_debt_status(
    original: Money,
    paid: Money,
    due_date: date,
    as_of: date,
    cancelled: bool = False,
) -> DebtStatus:
    """Status for display, recomputed from amounts on every read."""
    if cancelled:
        return DebtStatus.CANCELLED
    past_due = as_of > due_date
    if paid.amount <= 0:
        return DebtStatus.OVERDUE if past_due else DebtStatus.PENDING
    if paid < original:
        return DebtStatus.OVERDUE if past_due else DebtStatus.PARTIAL
    return DebtStatus.PAID


def remaining_amount(original: Money, paid: Money) -> Money:
    """original - paid, never negative."""
    remaining = original - paid
    if remaining.is_negative:
        return Money.zero(original.currency)
    return remaining


def payment_progress(original: Money, paid: Money) -> Decimal:
    """Percentage paid, clamped to [0, 100] and rounded to 2 places."""
    if original.amount <= 0:
        return Decimal("0.00")
    pct = paid.amount / original.amount * _HUNDRED
    pct = max(Decimal("0"), min(_HUNDRED, pct))
    return pct.quantize(_PROGRESS_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class StatusDivergence:
    """Server-reported status disagrees with the locally derived one."""

    reported: DebtStatus
    derived: DebtStatus

    @property
    def message(self) -> str:
        return f"reported {self.reported.value}, derived {self.derived.value}"


def compare_status(reported: DebtStatus | str, derived: DebtStatus) -> StatusDivergence | None:
    """None when statuses agree; a StatusDivergence otherwise."""
    reported = DebtStatus(reported)
    if reported == derived:
        return None
    return StatusDivergence(reported=reported, derived=derived)


# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------


def recognizes_on(mode: DebtRecognitionMode | str, trigger: RecognitionTrigger | str) -> bool:
    """True when ``mode`` recognizes debt on ``trigger``."""
    return _MODE_TRIGGER[DebtRecognitionMode(mode)] is RecognitionTrigger(trigger)


@dataclass(frozen=True)
class RecognitionDecision:
    """
    Outcome of asking whether a document event recognizes debt.

    Guarantees:
        - When ``recognize`` is False, ``original_amount`` and
          ``due_date`` are None and ``reason`` says why.
        - ``increment`` is the amount added by this event; for a new debt
          it equals ``original_amount``.
    """

    recognize: bool
    mode: DebtRecognitionMode
    trigger: RecognitionTrigger
    reason: str
    increment: Money | None = None
    original_amount: Money | None = None
    due_date: date | None = None
    is_increment: bool = False
    exceeds_max_debt: bool = False


class DebtRecognitionEngine:
    """
    Decide debt creation according to the supplier's recognition mode.

    - IMMEDIATE: a debt for the full document total at approval.
    - BY_COMPLETION: a debt for the full total only on completion.
    - BY_RECEIPT_PARTIAL: every receipt adds its value to a running debt.

    Due date is the first recognition date plus ``payment_term_days``;
    increments keep the running debt's existing due date.
    """

    @traced_engine(
        "debt_recognition",
        "1.0",
        fingerprint_fields=("mode", "trigger", "amount", "trigger_date"),
    )
    def plan(
        self,
        *,
        mode: DebtRecognitionMode,
        trigger: RecognitionTrigger,
        amount: Money,
        trigger_date: date,
        payment_term_days: int,
        existing_original: Money | None = None,
        existing_due_date: date | None = None,
        outstanding_supplier_debt: Money | None = None,
        max_debt: Money | None = None,
    ) -> RecognitionDecision:
        mode = DebtRecognitionMode(mode)
        trigger = RecognitionTrigger(trigger)
        if amount.is_negative:
            raise ValueError(f"Recognized amount cannot be negative: {amount}")
        if payment_term_days < 0:
            raise ValueError("payment_term_days cannot be negative")

        if not recognizes_on(mode, trigger):
            return RecognitionDecision(
                recognize=False,
                mode=mode,
                trigger=trigger,
                reason=f"{mode.value} does not recognize debt on {trigger.value}",
            )
        if amount.is_zero:
            return RecognitionDecision(
                recognize=False, mode=mode, trigger=trigger, reason="zero_amount",
            )

        is_increment = (
            mode is DebtRecognitionMode.BY_RECEIPT_PARTIAL
            and existing_original is not None
        )
        if is_increment:
            original = existing_original + amount
            due = existing_due_date or trigger_date + timedelta(days=payment_term_days)
        else:
            original = amount
            due = trigger_date + timedelta(days=payment_term_days)

        exceeds = False
        if max_debt is not None and max_debt.is_positive:
            outstanding = outstanding_supplier_debt or Money.zero(amount.currency)
            exceeds = outstanding + amount > max_debt
            if exceeds:
                logger.warning(
                    "supplier_max_debt_exceeded",
                    extra={
                        "outstanding": str(outstanding.amount),
                        "increment": str(amount.amount),
                        "max_debt": str(max_debt.amount),
                    },
                )

        return RecognitionDecision(
            recognize=True,
            mode=mode,
            trigger=trigger,
            reason="recognized",
            increment=amount,
            original_amount=original,
            due_date=due,
            is_increment=is_increment,
            exceeds_max_debt=exceeds,
        )
