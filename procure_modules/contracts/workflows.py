"""
Contract Workflows.

State machine for the supply contract lifecycle.
"""

from procure_kernel.domain.workflow import Guard, Transition, Workflow
from procure_kernel.logging_config import get_logger

logger = get_logger("modules.contracts.workflows")


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

TITLE_PRESENT = Guard(
    name="title_present",
    description="Contract title is filled in",
)

CONTRACT_NUMBER_PRESENT = Guard(
    name="contract_number_present",
    description="Contract number is filled in",
)

HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Contract has at least one line item",
)

DATES_ORDERED = Guard(
    name="dates_ordered",
    description="start_date <= sign_date <= end_date",
)

PAST_END_DATE = Guard(
    name="past_end_date",
    description="As-of date is after the contract end date",
)


# -----------------------------------------------------------------------------
# Contract Workflow
# -----------------------------------------------------------------------------

CONTRACT_WORKFLOW = Workflow(
    name="contract",
    description="Supply contract lifecycle",
    initial_state="draft",
    states=(
        "draft",
        "active",
        "completed",
        "cancelled",
        "expired",
    ),
    transitions=(
        Transition(
            "draft", "active", action="activate",
            guards=(TITLE_PRESENT, CONTRACT_NUMBER_PRESENT, HAS_LINE_ITEMS, DATES_ORDERED),
            creates_debt=True,
        ),
        Transition("active", "completed", action="complete", creates_debt=True),
        Transition("active", "cancelled", action="cancel"),
        Transition("active", "expired", action="expire", guards=(PAST_END_DATE,)),
    ),
    editable_states=("draft",),
    terminal_states=("completed", "cancelled", "expired"),
)

logger.info(
    "contract_workflow_registered",
    extra={
        "workflow_name": CONTRACT_WORKFLOW.name,
        "state_count": len(CONTRACT_WORKFLOW.states),
        "transition_count": len(CONTRACT_WORKFLOW.transitions),
        "initial_state": CONTRACT_WORKFLOW.initial_state,
    },
)
