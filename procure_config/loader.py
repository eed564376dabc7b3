"""
Configuration Loader (``procure_config.loader``).

Responsibility
--------------
Loads a settings YAML file and parses it into a frozen
``ProcurementSettings``.  Runtime callers go through
``procure_config.get_active_settings()`` rather than calling this module.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ConfigurationError`` naming the key.
"""

from __future__ import annotations

import decimal
import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from procure_config.schema import ProcurementSettings
from procure_kernel.domain.currency import CurrencyRegistry
from procure_kernel.domain.values import RateScale
from procure_kernel.exceptions import ConfigurationError

_ROUNDING_MODES = frozenset(
    name for name in dir(decimal) if name.startswith("ROUND_")
)
_BOOL_KEYS = (
    "enforce_contract_quantity",
    "restrict_to_contract_products",
    "warn_on_status_divergence",
    "enforce_max_debt",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError("<root>", "top level must be a mapping")
    return data


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> ProcurementSettings:
    """Validate a raw settings mapping and build ProcurementSettings."""
    known = {f.name for f in fields(ProcurementSettings)} - {"checksum"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(unknown[0], "unknown setting")

    currency = str(data.get("currency", "VND")).upper()
    if not CurrencyRegistry.is_valid(currency):
        raise ConfigurationError("currency", f"unknown currency code {currency!r}")

    try:
        rate_scale = RateScale(data.get("input_rate_scale", RateScale.PERCENT.value))
    except ValueError as e:
        raise ConfigurationError("input_rate_scale", "must be 'percent' or 'fraction'") from e

    rounding = data.get("rounding", decimal.ROUND_HALF_UP)
    if rounding not in _ROUNDING_MODES:
        raise ConfigurationError("rounding", f"unknown rounding mode {rounding!r}")

    term_days = data.get("default_payment_term_days", 30)
    if isinstance(term_days, bool) or not isinstance(term_days, int) or term_days < 0:
        raise ConfigurationError("default_payment_term_days", "must be a non-negative integer")

    flags: dict[str, bool] = {}
    for key in _BOOL_KEYS:
        value = data.get(key, getattr(ProcurementSettings, key))
        if not isinstance(value, bool):
            raise ConfigurationError(key, "must be true or false")
        flags[key] = value

    return ProcurementSettings(
        currency=currency,
        input_rate_scale=rate_scale,
        rounding=rounding,
        default_payment_term_days=term_days,
        checksum=compute_checksum(data),
        **flags,
    )


def load_settings(path: Path | str) -> ProcurementSettings:
    """Load and validate a settings file."""
    return parse_settings(load_yaml_file(Path(path)))
