"""
In-progress document drafts.

A ``DocumentDraft`` holds the operator's line inputs while a purchase order
or contract is being edited.  Every mutation returns a new draft whose
priced items and totals are recomputed from scratch, so totals can never
drift from the lines on screen.
"""

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP

from procure_engines.aggregation import DocumentTotals
from procure_kernel.logging_config import get_logger
from procure_modules._line_items import (
    LineItem,
    LineItemInput,
    compute_totals,
    price_line_inputs,
    pricer_for,
)

logger = get_logger("modules.procurement.drafts")


@dataclass(frozen=True)
class DocumentDraft:
    """Editable snapshot of a document's supplier, contract and lines."""
    currency: str = "VND"
    supplier_id: str | None = None
    contract_id: str | None = None
    supplier_locked: bool = False
    lines: tuple[LineItemInput, ...] = ()
    rounding: str = ROUND_HALF_UP
    items: tuple[LineItem, ...] = field(init=False, compare=False)
    totals: DocumentTotals = field(init=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))
        items = price_line_inputs(
            self.lines, self.currency, pricer=pricer_for(self.rounding),
        )
        object.__setattr__(self, "items", items)
        object.__setattr__(self, "totals", compute_totals(items, self.currency))

    def add_line(self, line: LineItemInput) -> "DocumentDraft":
        return replace(self, lines=self.lines + (line,))

    def remove_line(self, index: int) -> "DocumentDraft":
        if not 0 <= index < len(self.lines):
            raise IndexError(f"No line at index {index}")
        return replace(self, lines=self.lines[:index] + self.lines[index + 1:])

    def edit_line(self, index: int, **changes) -> "DocumentDraft":
        """Replace fields of one line, e.g. ``edit_line(0, quantity=3)``."""
        if not 0 <= index < len(self.lines):
            raise IndexError(f"No line at index {index}")
        edited = replace(self.lines[index], **changes)
        return replace(
            self, lines=self.lines[:index] + (edited,) + self.lines[index + 1:],
        )

    def with_supplier(self, supplier_id: str) -> "DocumentDraft":
        """Manual supplier choice; ignored while a contract locks the supplier."""
        if self.supplier_locked:
            logger.info(
                "draft_supplier_change_ignored",
                extra={
                    "contract_id": self.contract_id,
                    "locked_supplier_id": self.supplier_id,
                    "requested_supplier_id": supplier_id,
                },
            )
            return self
        return replace(self, supplier_id=supplier_id)
