"""Core module exports."""

from unitcov.core.errors import (
    AmbiguousOutputPathError,
    ConfigError,
    DriverUnavailableError,
    ErrorCode,
    InternalError,
    InvalidRecordingStateError,
    RenderFailure,
    ReportingError,
    SessionClosedError,
    SnapshotError,
    UnitCovError,
)
from unitcov.core.logging import (
    clear_session_id,
    configure_logging,
    get_logger,
    get_session_id,
    set_session_id,
)

__all__ = [
    # Errors
    "AmbiguousOutputPathError",
    "ConfigError",
    "DriverUnavailableError",
    "ErrorCode",
    "InternalError",
    "InvalidRecordingStateError",
    "RenderFailure",
    "ReportingError",
    "SessionClosedError",
    "SnapshotError",
    "UnitCovError",
    # Logging
    "clear_session_id",
    "configure_logging",
    "get_logger",
    "get_session_id",
    "set_session_id",
]
