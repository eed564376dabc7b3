"""
procure_config -- single public entrypoint for procurement settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  Other components receive a
    ``ProcurementSettings`` instance; they never read files or environment
    variables themselves.

Failure modes:
    - ``FileNotFoundError`` -- the requested settings file does not exist.
    - ``ConfigurationError`` -- unknown keys or invalid values.

Every successful call emits a ``PROCURE_CONFIG_TRACE`` log entry with the
settings source and checksum.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from procure_config.loader import load_settings
from procure_config.schema import ProcurementSettings

_logger = logging.getLogger("procure_kernel.config")

_DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"
ENV_CONFIG_PATH = "PROCURE_CONFIG_PATH"


def get_active_settings(path: Path | str | None = None) -> ProcurementSettings:
    """The ONLY public settings entrypoint.

    Resolution order: explicit ``path``, then ``$PROCURE_CONFIG_PATH``,
    then the packaged ``defaults.yaml``.
    """
    source = Path(path or os.environ.get(ENV_CONFIG_PATH) or _DEFAULTS_PATH)
    settings = load_settings(source)
    _logger.info(
        "PROCURE_CONFIG_TRACE",
        extra={
            "trace_type": "PROCURE_CONFIG_TRACE",
            "source": str(source),
            "checksum": settings.checksum,
            "currency": settings.currency,
            "input_rate_scale": settings.input_rate_scale.value,
        },
    )
    return settings


__all__ = ["ProcurementSettings", "get_active_settings", "load_settings"]
