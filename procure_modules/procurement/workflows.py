"""
Procurement Workflows.

State machine for purchase order processing.
"""

from procure_kernel.domain.workflow import Guard, Transition, Workflow
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

ORDER_NUMBER_PRESENT = Guard(
    name="order_number_present",
    description="Order number is filled in",
)

HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Document has at least one line item",
)


# -----------------------------------------------------------------------------
# Purchase Order Workflow
# -----------------------------------------------------------------------------

PURCHASE_ORDER_WORKFLOW = Workflow(
    name="purchase_order",
    description="Purchase order lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "approved",
        "cancelled",
    ),
    transitions=(
        Transition(
            "draft", "approved", action="approve",
            guards=(ORDER_NUMBER_PRESENT, HAS_LINE_ITEMS),
            creates_debt=True,
        ),
        Transition("draft", "cancelled", action="cancel"),
    ),
    editable_states=("draft",),
    terminal_states=("approved", "cancelled"),
)

logger.info(
    "procurement_po_workflow_registered",
    extra={
        "workflow_name": PURCHASE_ORDER_WORKFLOW.name,
        "state_count": len(PURCHASE_ORDER_WORKFLOW.states),
        "transition_count": len(PURCHASE_ORDER_WORKFLOW.transitions),
        "initial_state": PURCHASE_ORDER_WORKFLOW.initial_state,
    },
)
