"""Config module exports."""

from unitcov.config.loader import load_config
from unitcov.config.models import (
    DEFAULT_OUTPUTS,
    CoverageConfig,
    LoggingConfig,
    LogOutputConfig,
    UnitCovConfig,
)

__all__ = [
    "load_config",
    "DEFAULT_OUTPUTS",
    "CoverageConfig",
    "LoggingConfig",
    "LogOutputConfig",
    "UnitCovConfig",
]
