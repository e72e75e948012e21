"""unitcov error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Instrumentation driver / recording
- 4xxx: Session lifecycle
- 5xxx: Reporting
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004
    CONFIG_AMBIGUOUS_OUTPUT = 2005

    # Driver / recording (3xxx)
    DRIVER_UNAVAILABLE = 3001
    RECORDING_INVALID_STATE = 3002

    # Session (4xxx)
    SESSION_CLOSED = 4001
    SESSION_INVALID_STATE = 4002

    # Reporting (5xxx)
    RENDER_FAILED = 5001
    REPORTING_FAILED = 5002
    SNAPSHOT_INVALID = 5003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, eq=False)
class UnitCovError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'DRIVER_UNAVAILABLE')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(UnitCovError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class AmbiguousOutputPathError(ConfigError):
    """A single output path was given for several report formats."""

    @classmethod
    def for_formats(cls, formats: list[str], output: str) -> "AmbiguousOutputPathError":
        return cls(
            code=ErrorCode.CONFIG_AMBIGUOUS_OUTPUT,
            message=(
                f"Output path {output!r} is ambiguous for formats {', '.join(formats)}; "
                "map each format to its own path"
            ),
            details={"formats": list(formats), "output": output},
        )


class DriverUnavailableError(UnitCovError):
    """No instrumentation backend could be acquired."""

    @classmethod
    def no_backend(cls, driver: str, reason: str) -> "DriverUnavailableError":
        return cls(
            code=ErrorCode.DRIVER_UNAVAILABLE,
            message=f"There is no available coverage driver to be used ({driver}: {reason})",
            details={"driver": driver, "reason": reason},
        )


class InvalidRecordingStateError(UnitCovError):
    """Recording start/stop called out of order."""

    @classmethod
    def already_recording(cls, active_id: int) -> "InvalidRecordingStateError":
        return cls(
            code=ErrorCode.RECORDING_INVALID_STATE,
            message=f"Recording {active_id} is still active; recordings do not nest",
            details={"active_recording": active_id},
        )

    @classmethod
    def not_recording(cls, token_id: int) -> "InvalidRecordingStateError":
        return cls(
            code=ErrorCode.RECORDING_INVALID_STATE,
            message=f"Recording {token_id} is not active (already stopped or never started)",
            details={"recording": token_id},
        )

    @classmethod
    def not_acquired(cls) -> "InvalidRecordingStateError":
        return cls(
            code=ErrorCode.RECORDING_INVALID_STATE,
            message="Instrumentation driver has not been acquired",
        )


class SessionClosedError(UnitCovError):
    """Session call made in a state that no longer accepts it."""

    @classmethod
    def closed(cls, operation: str) -> "SessionClosedError":
        return cls(
            code=ErrorCode.SESSION_CLOSED,
            message=f"Cannot {operation}: coverage data has been finalized",
            details={"operation": operation},
        )

    @classmethod
    def invalid_state(cls, operation: str, state: str) -> "SessionClosedError":
        return cls(
            code=ErrorCode.SESSION_INVALID_STATE,
            message=f"Cannot {operation} while session is {state}",
            details={"operation": operation, "state": state},
        )


class RenderFailure(UnitCovError):
    """A single report renderer failed."""

    @property
    def format_id(self) -> str:
        return str(self.details.get("format", ""))

    @classmethod
    def from_exception(cls, format_id: str, error: BaseException) -> "RenderFailure":
        return cls(
            code=ErrorCode.RENDER_FAILED,
            message=f"{format_id} report failed: {error}",
            details={"format": format_id, "error_type": type(error).__name__},
        )


class ReportingError(UnitCovError):
    """Aggregate of every renderer failure from one reporting pass."""

    @property
    def failures(self) -> list[RenderFailure]:
        return list(self.details.get("failures", []))

    @property
    def artifacts(self) -> list[Any]:
        return list(self.details.get("artifacts", []))

    @classmethod
    def from_failures(
        cls, failures: list[RenderFailure], artifacts: list[Any]
    ) -> "ReportingError":
        formats = ", ".join(f.format_id for f in failures)
        return cls(
            code=ErrorCode.REPORTING_FAILED,
            message=f"{len(failures)} report format(s) failed: {formats}",
            details={"failures": list(failures), "artifacts": list(artifacts)},
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["details"] = {
            "failures": [f.to_dict() for f in self.failures],
            "written": [str(getattr(a, "format_id", a)) for a in self.artifacts],
        }
        return data


class SnapshotError(UnitCovError):
    """A coverage snapshot could not be read."""

    @classmethod
    def invalid(cls, path: str, reason: str) -> "SnapshotError":
        return cls(
            code=ErrorCode.SNAPSHOT_INVALID,
            message=f"Invalid coverage snapshot {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class InternalError(UnitCovError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
