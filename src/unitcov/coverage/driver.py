"""Instrumentation backends that report which lines executed.

A driver is a process-wide, exclusive resource. Whoever holds it must
``acquire()`` before the first ``start()`` and ``release()`` when done; the
RawCollector owns that lifecycle.

Backends:
- monitoring: ``sys.monitoring`` LINE events (Python 3.12+). Each location is
  reported once per recording and then disabled until the next start.
- trace: ``sys.settrace`` / ``threading.settrace``. Refuses to start when
  another tracer (debugger, other coverage tool) is installed.
"""

from __future__ import annotations

import sys
import threading
from collections import defaultdict
from types import CodeType, FrameType
from typing import Any, Protocol

import structlog

from unitcov.coverage.filter import is_synthetic_filename
from unitcov.core.errors import DriverUnavailableError

log = structlog.get_logger(__name__)

__all__ = [
    "CoverageDriver",
    "MonitoringDriver",
    "TraceDriver",
    "DRIVERS",
    "select_driver",
]


class CoverageDriver(Protocol):
    """Protocol for line-execution backends."""

    @property
    def name(self) -> str: ...

    def acquire(self) -> None:
        """Claim the backend. Raises DriverUnavailableError if it cannot."""
        ...

    def release(self) -> None: ...

    def start(self) -> None: ...

    def stop(self) -> dict[str, set[int]]:
        """Stop recording and return filename → executed line numbers."""
        ...


class MonitoringDriver:
    """sys.monitoring based line recorder."""

    def __init__(self, tool_id: int | None = None) -> None:
        monitoring = getattr(sys, "monitoring", None)
        if tool_id is None and monitoring is not None:
            tool_id = monitoring.COVERAGE_ID
        self._tool_id = tool_id
        self._acquired = False
        self._lines: defaultdict[str, set[int]] = defaultdict(set)

    @property
    def name(self) -> str:
        return "monitoring"

    def acquire(self) -> None:
        monitoring = getattr(sys, "monitoring", None)
        if monitoring is None or self._tool_id is None:
            raise DriverUnavailableError.no_backend(
                self.name, "sys.monitoring requires Python 3.12+"
            )
        if self._acquired:
            return
        try:
            monitoring.use_tool_id(self._tool_id, "unitcov")
        except ValueError as e:
            owner = monitoring.get_tool(self._tool_id)
            raise DriverUnavailableError.no_backend(
                self.name, f"tool id {self._tool_id} already in use by {owner!r}"
            ) from e
        monitoring.register_callback(self._tool_id, monitoring.events.LINE, self._on_line)
        self._acquired = True

    def release(self) -> None:
        if not self._acquired:
            return
        monitoring = sys.monitoring
        monitoring.set_events(self._tool_id, 0)  # type: ignore[arg-type]
        monitoring.register_callback(self._tool_id, monitoring.events.LINE, None)  # type: ignore[arg-type]
        monitoring.free_tool_id(self._tool_id)  # type: ignore[arg-type]
        self._acquired = False

    def start(self) -> None:
        monitoring = sys.monitoring
        self._lines = defaultdict(set)
        # Re-arm locations disabled during the previous recording
        monitoring.restart_events()
        monitoring.set_events(self._tool_id, monitoring.events.LINE)  # type: ignore[arg-type]

    def stop(self) -> dict[str, set[int]]:
        sys.monitoring.set_events(self._tool_id, 0)  # type: ignore[arg-type]
        lines, self._lines = self._lines, defaultdict(set)
        return dict(lines)

    def _on_line(self, code: CodeType, line_number: int) -> Any:
        if not is_synthetic_filename(code.co_filename):
            self._lines[code.co_filename].add(line_number)
        return sys.monitoring.DISABLE


class TraceDriver:
    """sys.settrace based line recorder."""

    def __init__(self) -> None:
        self._acquired = False
        self._lines: defaultdict[str, set[int]] = defaultdict(set)

    @property
    def name(self) -> str:
        return "trace"

    def acquire(self) -> None:
        if self._acquired:
            return
        current = sys.gettrace()
        if current is not None:
            raise DriverUnavailableError.no_backend(
                self.name, f"another tracer is installed: {current!r}"
            )
        self._acquired = True

    def release(self) -> None:
        self._acquired = False

    def start(self) -> None:
        self._lines = defaultdict(set)
        threading.settrace(self._trace)
        sys.settrace(self._trace)

    def stop(self) -> dict[str, set[int]]:
        sys.settrace(None)
        threading.settrace(None)  # type: ignore[arg-type]
        lines, self._lines = self._lines, defaultdict(set)
        return dict(lines)

    def _trace(self, frame: FrameType, event: str, arg: Any) -> Any:  # noqa: ARG002
        filename = frame.f_code.co_filename
        if is_synthetic_filename(filename):
            return None
        if event == "line":
            self._lines[filename].add(frame.f_lineno)
        return self._trace


DRIVERS: dict[str, type[MonitoringDriver] | type[TraceDriver]] = {
    "monitoring": MonitoringDriver,
    "trace": TraceDriver,
}


def select_driver(name: str = "auto") -> CoverageDriver:
    """Build the driver for a config name.

    ``auto`` prefers sys.monitoring where the interpreter has it. The driver is
    not acquired here; availability is checked when the collector opens it.
    """
    if name == "auto":
        name = "monitoring" if hasattr(sys, "monitoring") else "trace"
    driver_cls = DRIVERS.get(name)
    if driver_cls is None:
        valid = ", ".join(sorted(DRIVERS))
        raise DriverUnavailableError.no_backend(name, f"unknown driver; valid drivers: {valid}")
    log.debug("driver_selected", driver=name)
    return driver_cls()
