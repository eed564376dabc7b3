"""
Procurement Services.

Stateful orchestration over modules and engines: the document service,
the workflow executor, the external ports and the payload codec.
"""

from procure_services.document_service import ProcurementDocumentService, ReceiptOutcome
from procure_services.workflow_executor import (
    GuardExecutor,
    TransitionResult,
    WorkflowExecutor,
    default_guard_executor,
)

__all__ = [
    "GuardExecutor",
    "ProcurementDocumentService",
    "ReceiptOutcome",
    "TransitionResult",
    "WorkflowExecutor",
    "default_guard_executor",
]
