"""
Module: procure_engines
Responsibility:
    Package entrypoint that re-exports all public symbols from the pure
    calculation engine sub-modules.  This is the canonical import surface
    for higher layers (procure_modules, procure_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import procure_kernel (and sibling engine modules).
    MUST NOT import procure_services or procure_modules.

Invariants enforced:
    - Purity: engines never read the clock; dates are passed in.
    - Decimal-only arithmetic through Money and Rate; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from procure_engines.pricing import LineItemPricer
    from procure_engines.aggregation import DocumentAggregator
    from procure_engines.debt import DebtRecognitionEngine, derive_debt_status
"""

from procure_engines.aggregation import DocumentAggregator, DocumentTotals
from procure_engines.debt import (
    DebtRecognitionEngine,
    DebtRecognitionMode,
    DebtStatus,
    RecognitionDecision,
    RecognitionTrigger,
    StatusDivergence,
    compare_status,
    derive_debt_status,
    payment_progress,
    recognizes_on,
    remaining_amount,
)
from procure_engines.pricing import LineItemPricer, LinePricing, price_line
from procure_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "DebtRecognitionEngine",
    "DebtRecognitionMode",
    "DebtStatus",
    "DocumentAggregator",
    "DocumentTotals",
    "LineItemPricer",
    "LinePricing",
    "RecognitionDecision",
    "RecognitionTrigger",
    "StatusDivergence",
    "compare_status",
    "compute_input_fingerprint",
    "derive_debt_status",
    "payment_progress",
    "price_line",
    "recognizes_on",
    "remaining_amount",
    "traced_engine",
]
