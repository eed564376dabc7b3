"""
Contract Domain Models.

The nouns of supply contracts: contracts, their priced product lines and
their scheduled payment terms.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import ClassVar

from procure_engines.aggregation import DocumentTotals
from procure_engines.debt import DebtRecognitionMode
from procure_kernel.exceptions import InvalidDateOrderingError
from procure_kernel.logging_config import get_logger
from procure_modules._line_items import LineItem, compute_totals

logger = get_logger("modules.contracts.models")


class ContractStatus(Enum):
    """Contract lifecycle states."""
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class ContractType(Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    SERVICE = "SERVICE"


class TermStatus(Enum):
    """Payment term states."""
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"


@dataclass(frozen=True)
class PaymentTerm:
    """A scheduled partial payment obligation within a contract."""
    title: str
    due_date: date
    amount: Decimal
    payment_date: date | None = None
    status: TermStatus = TermStatus.PENDING
    note: str = ""

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Payment term amount cannot be negative, got {self.amount}")

    def display_status(self, as_of: date) -> TermStatus:
        """PENDING terms past their due date display as OVERDUE."""
        if self.status is TermStatus.PENDING and as_of > self.due_date:
            return TermStatus.OVERDUE
        return self.status


@dataclass(frozen=True)
class Contract:
    """
    A supply contract.

    Totals are derived from ``items`` at construction; passing a contract
    through ``dataclasses.replace`` recomputes them.  Date ordering is not
    enforced here so that a draft can be saved mid-edit; it is checked by
    ``validate_dates`` on create, update and activation.
    """
    document_type: ClassVar[str] = "contract"

    id: str
    contract_number: str
    title: str
    supplier_id: str
    start_date: date
    sign_date: date
    end_date: date
    contract_type: ContractType = ContractType.PURCHASE
    currency: str = "VND"
    items: tuple[LineItem, ...] = ()
    terms: tuple[PaymentTerm, ...] = ()
    status: ContractStatus = ContractStatus.DRAFT
    payment_term_days: int | None = None
    debt_recognition_mode: DebtRecognitionMode | None = None
    totals: DocumentTotals = field(init=False, compare=False)

    def __post_init__(self):
        if not self.id:
            raise ValueError("Contract id is required")
        if self.payment_term_days is not None and self.payment_term_days < 0:
            raise ValueError("payment_term_days cannot be negative")
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "terms", tuple(self.terms))
        object.__setattr__(self, "totals", compute_totals(self.items, self.currency))

    @property
    def document_number(self) -> str:
        return self.contract_number

    @property
    def total_value(self) -> Decimal:
        return self.totals.total_amount.amount

    def item_for(self, product_ref: str) -> LineItem | None:
        """Contract line for a product, matched by product identity."""
        for item in self.items:
            if item.product_ref == product_ref:
                return item
        return None

    def scheduled_terms_total(self) -> Decimal:
        """Sum of non-cancelled payment term amounts."""
        return sum(
            (t.amount for t in self.terms if t.status is not TermStatus.CANCELLED),
            Decimal("0"),
        )

    def overdue_terms(self, as_of: date) -> tuple[PaymentTerm, ...]:
        return tuple(
            t for t in self.terms if t.display_status(as_of) is TermStatus.OVERDUE
        )


def validate_dates(contract: Contract) -> None:
    """
    Enforce start_date <= sign_date <= end_date (inclusive).

    Raises:
        InvalidDateOrderingError naming the first field out of order.
    """
    if contract.sign_date < contract.start_date:
        bad_field = "sign_date"
    elif contract.end_date < contract.sign_date:
        bad_field = "end_date"
    else:
        return
    logger.info(
        "contract_date_ordering_invalid",
        extra={
            "contract_id": contract.id,
            "field": bad_field,
            "start_date": contract.start_date.isoformat(),
            "sign_date": contract.sign_date.isoformat(),
            "end_date": contract.end_date.isoformat(),
        },
    )
    raise InvalidDateOrderingError(
        bad_field, contract.start_date, contract.sign_date, contract.end_date
    )
