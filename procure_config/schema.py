"""
Configuration Schema (``procure_config.schema``).

Frozen dataclass describing the procurement settings that callers may tune.
All defaults match ``defaults.yaml``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP

from procure_kernel.domain.values import RateScale


@dataclass(frozen=True)
class ProcurementSettings:
    """
    Procurement settings.

    Guarantees:
        - ``currency`` is a registered ISO 4217 code.
        - ``rounding`` is one of the ``decimal`` rounding mode names.
        - ``default_payment_term_days >= 0``.
    """

    currency: str = "VND"
    input_rate_scale: RateScale = RateScale.PERCENT
    rounding: str = ROUND_HALF_UP
    default_payment_term_days: int = 30
    enforce_contract_quantity: bool = True
    restrict_to_contract_products: bool = True
    warn_on_status_divergence: bool = True
    enforce_max_debt: bool = False
    checksum: str = ""
