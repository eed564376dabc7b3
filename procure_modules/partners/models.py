"""
Partner Domain Models.

Suppliers and the policy fields that govern debt recognition.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from procure_engines.debt import DebtRecognitionMode


class SupplierType(Enum):
    COMPANY = "COMPANY"
    INDIVIDUAL = "INDIVIDUAL"


@dataclass(frozen=True)
class Supplier:
    """
    A supplier.

    ``max_debt`` of zero means no limit; ``payment_term_days`` of None
    falls back to the configured default.
    """
    id: str
    code: str
    name: str
    debt_recognition_mode: DebtRecognitionMode = DebtRecognitionMode.IMMEDIATE
    payment_term_days: int | None = None
    max_debt: Decimal = Decimal("0")
    supplier_type: SupplierType = SupplierType.COMPANY
    tax_code: str = ""
    active: bool = True

    def __post_init__(self):
        if self.payment_term_days is not None and self.payment_term_days < 0:
            raise ValueError(
                f"payment_term_days cannot be negative, got {self.payment_term_days}"
            )
        if self.max_debt < 0:
            raise ValueError(f"max_debt cannot be negative, got {self.max_debt}")
        # Accept raw API strings
        if not isinstance(self.debt_recognition_mode, DebtRecognitionMode):
            object.__setattr__(
                self,
                "debt_recognition_mode",
                DebtRecognitionMode(self.debt_recognition_mode),
            )

    @property
    def has_debt_limit(self) -> bool:
        return self.max_debt > 0
