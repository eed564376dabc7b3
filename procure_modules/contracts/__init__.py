"""
Contracts Module (``procure_modules.contracts``).

Supply contracts with priced lines and scheduled payment terms, and the
contract lifecycle workflow.  Date ordering (start <= sign <= end) is
checked on create, update and activation.
"""

from procure_modules.contracts.models import (
    Contract,
    ContractStatus,
    ContractType,
    PaymentTerm,
    TermStatus,
    validate_dates,
)
from procure_modules.contracts.workflows import CONTRACT_WORKFLOW

__all__ = [
    "CONTRACT_WORKFLOW",
    "Contract",
    "ContractStatus",
    "ContractType",
    "PaymentTerm",
    "TermStatus",
    "validate_dates",
]
