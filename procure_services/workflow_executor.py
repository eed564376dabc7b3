"""
procure_services.workflow_executor -- Document status transitions.

Responsibility:
    Executes contract and purchase-order status transitions: editability
    checks, guard evaluation, and construction of the transitioned
    document.  Guard logic lives in GuardExecutor, keyed by guard name;
    workflows themselves are pure declarations.

Architecture position:
    Services layer.  May import from procure_modules/, procure_engines/
    and procure_kernel/.

Invariants enforced:
    - DRAFT-only actions on a non-draft document and any action on a
      terminal document raise DocumentNotEditableError.
    - An action undefined from the current state raises
      InvalidTransitionError.
    - Guards run before anything changes; the input document is never
      modified and a failed transition produces no new document.

Failure modes:
    - Field-level guard failures raise the typed validation error
      (MissingRequiredFieldError, InvalidDateOrderingError).
    - Condition guards that are simply not met (an expiry before the end
      date) return TransitionResult(success=False).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime
from typing import Any, Callable

from procure_kernel.domain.workflow import Guard, Workflow
from procure_kernel.exceptions import (
    DocumentNotEditableError,
    DocumentValidationError,
    InvalidTransitionError,
    MissingRequiredFieldError,
)
from procure_kernel.logging_config import LogContext, get_logger
from procure_modules.contracts.models import validate_dates

logger = get_logger("services.workflow_executor")

# Trace message and outcome codes for structured logging
TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_GUARD_FAILED = "guard_failed"
OUTCOME_NOT_EDITABLE = "not_editable"
OUTCOME_NO_TRANSITION = "no_transition"


@dataclass(frozen=True)
class TransitionResult:
    """Result of executing a workflow transition."""

    success: bool
    from_state: str
    action: str
    new_state: str | None = None
    document: Any = None
    creates_debt: bool = False
    reason: str = ""


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    document_type: str,
    document_id: str,
    from_state: str,
    outcome: str,
    reason: str,
    duration_ms: float,
    to_state: str | None = None,
    creates_debt: bool = False,
) -> None:
    """Emit a structured workflow transition record."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "workflow": workflow_name,
        "action": action,
        "document_type": document_type,
        "document_id": document_id,
        "from_state": from_state,
        "outcome": outcome,
        "reason": reason,
        "duration_ms": round(duration_ms, 3),
        "creates_debt": creates_debt,
    }
    if to_state is not None:
        record["to_state"] = to_state
    record.update(LogContext.get_all())
    logger.info("workflow_transition", extra=record)


# ---------------------------------------------------------------------------
# Guard evaluation
# ---------------------------------------------------------------------------


def _get_attr(context: Any, key: str, default: Any = None) -> Any:
    """Get attribute from context (object or dict)."""
    if context is None:
        return default
    if hasattr(context, "get") and callable(getattr(context, "get")):
        return context.get(key, default)
    return getattr(context, key, default)


def _require_field(field_name: str) -> Callable[[Any, Any], bool]:
    def evaluator(document: Any, context: Any) -> bool:
        if not (getattr(document, field_name, "") or "").strip():
            raise MissingRequiredFieldError(field_name, document.document_type)
        return True
    return evaluator


def _has_line_items(document: Any, context: Any) -> bool:
    if not document.items:
        raise MissingRequiredFieldError("items", document.document_type)
    return True


def _dates_ordered(document: Any, context: Any) -> bool:
    validate_dates(document)
    return True


def _past_end_date(document: Any, context: Any) -> bool:
    """Contract expiry: as-of date strictly after end_date."""
    as_of: date | None = _get_attr(context, "as_of")
    if as_of is None:
        return False
    return as_of > document.end_date


class GuardExecutor:
    """Evaluates workflow guards against a document and context.

    Guards are declared on transitions (name + description).  This executor
    holds the evaluation logic per guard name and is called by
    WorkflowExecutor before allowing a transition.
    """

    def __init__(self) -> None:
        self._evaluators: dict[str, Callable[[Any, Any], bool]] = {}

    def register(self, guard_name: str, evaluator: Callable[[Any, Any], bool]) -> None:
        """Register an evaluator for a guard by name."""
        self._evaluators[guard_name] = evaluator

    def evaluate(self, guard: Guard, document: Any, context: Any = None) -> bool:
        """Evaluate a guard.  Returns True if the guard passes."""
        fn = self._evaluators.get(guard.name)
        if fn is None:
            logger.warning(
                "guard_no_evaluator",
                extra={"guard_name": guard.name},
            )
            return False
        return fn(document, context)


def default_guard_executor() -> GuardExecutor:
    """Return a GuardExecutor with built-in evaluators registered."""
    ex = GuardExecutor()
    ex.register("order_number_present", _require_field("order_number"))
    ex.register("title_present", _require_field("title"))
    ex.register("contract_number_present", _require_field("contract_number"))
    ex.register("has_line_items", _has_line_items)
    ex.register("dates_ordered", _dates_ordered)
    ex.register("past_end_date", _past_end_date)
    return ex


# ---------------------------------------------------------------------------
# WorkflowExecutor
# ---------------------------------------------------------------------------


class WorkflowExecutor:
    """Executes status transitions on frozen documents.

    The document must expose ``id``, ``status`` (an Enum whose values are
    the workflow's state names) and ``document_type``.  On success the
    result carries a copy of the document in the new status.
    """

    def __init__(self, guard_executor: GuardExecutor | None = None) -> None:
        self._guard_executor = guard_executor or default_guard_executor()

    def check_editable(self, workflow: Workflow, document: Any, action: str = "update") -> None:
        """Raise DocumentNotEditableError unless the document is in an editable state."""
        state = document.status.value
        if not workflow.is_editable(state):
            raise DocumentNotEditableError(document.id, state, action)

    def execute_transition(
        self,
        workflow: Workflow,
        document: Any,
        action: str,
        context: dict[str, Any] | None = None,
    ) -> TransitionResult:
        t0 = time.monotonic()
        from_state = document.status.value
        trace = {
            "workflow_name": workflow.name,
            "action": action,
            "document_type": document.document_type,
            "document_id": document.id,
            "from_state": from_state,
        }

        # 1. Terminal documents and draft-only actions outside draft
        draft_actions = {
            a for s in workflow.editable_states for a in workflow.actions_from(s)
        }
        transition = workflow.find_transition(from_state, action)
        if workflow.is_terminal(from_state) or (
            transition is None
            and not workflow.is_editable(from_state)
            and action in draft_actions
        ):
            _emit_workflow_trace(
                **trace,
                outcome=OUTCOME_NOT_EDITABLE,
                reason=f"Document is {from_state}",
                duration_ms=(time.monotonic() - t0) * 1000,
            )
            raise DocumentNotEditableError(document.id, from_state, action)

        # 2. Undefined action
        if transition is None:
            _emit_workflow_trace(
                **trace,
                outcome=OUTCOME_NO_TRANSITION,
                reason=f"No transition from '{from_state}' via action '{action}'",
                duration_ms=(time.monotonic() - t0) * 1000,
            )
            raise InvalidTransitionError(workflow.name, from_state, action)

        # 3. Guards, in declaration order
        for guard in transition.guards:
            try:
                passed = self._guard_executor.evaluate(guard, document, context)
            except DocumentValidationError as e:
                _emit_workflow_trace(
                    **trace,
                    outcome=OUTCOME_GUARD_FAILED,
                    reason=f"{guard.name}: {e.code}",
                    duration_ms=(time.monotonic() - t0) * 1000,
                )
                raise
            if not passed:
                reason = f"Guard not satisfied: {guard.name}"
                _emit_workflow_trace(
                    **trace,
                    outcome=OUTCOME_GUARD_FAILED,
                    reason=reason,
                    duration_ms=(time.monotonic() - t0) * 1000,
                )
                return TransitionResult(
                    success=False,
                    from_state=from_state,
                    action=action,
                    reason=reason,
                )

        # 4. New document in the target state
        new_status = type(document.status)(transition.to_state)
        updated = replace(document, status=new_status)
        _emit_workflow_trace(
            **trace,
            to_state=transition.to_state,
            outcome=OUTCOME_SUCCESS,
            reason="transition allowed",
            duration_ms=(time.monotonic() - t0) * 1000,
            creates_debt=transition.creates_debt,
        )
        return TransitionResult(
            success=True,
            from_state=from_state,
            action=action,
            new_state=transition.to_state,
            document=updated,
            creates_debt=transition.creates_debt,
            reason="transition allowed",
        )
