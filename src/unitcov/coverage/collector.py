"""Per-unit recording around an exclusive instrumentation driver."""

from __future__ import annotations

import itertools
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog

from unitcov.coverage.driver import CoverageDriver
from unitcov.core.errors import InvalidRecordingStateError

log = structlog.get_logger(__name__)

_EMPTY: Mapping[str, frozenset[int]] = MappingProxyType({})


@dataclass(frozen=True, slots=True)
class RecordingToken:
    """Handle for one active recording."""

    id: int
    started_at: float


@dataclass(frozen=True, slots=True)
class RawDelta:
    """Unmerged execution data from one recording.

    ``lines`` maps file path → executed line numbers. ``executable`` optionally
    carries the driver's view of which lines could execute, per file.
    """

    lines: Mapping[str, frozenset[int]] = field(default_factory=lambda: _EMPTY)
    executable: Mapping[str, frozenset[int]] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def from_lines(
        cls,
        lines: Mapping[str, Any],
        executable: Mapping[str, Any] | None = None,
    ) -> RawDelta:
        return cls(
            lines=MappingProxyType({path: frozenset(nums) for path, nums in lines.items()}),
            executable=MappingProxyType(
                {path: frozenset(nums) for path, nums in (executable or {}).items()}
            ),
        )

    @property
    def files(self) -> list[str]:
        return sorted(self.lines)

    def __len__(self) -> int:
        return sum(len(nums) for nums in self.lines.values())


class RawCollector:
    """Starts and stops recordings on a driver it owns.

    At most one recording is active at a time. ``recording()`` guarantees the
    stop on every exit path so the driver is never left running.
    """

    def __init__(self, driver: CoverageDriver) -> None:
        self._driver = driver
        self._open = False
        self._active: RecordingToken | None = None
        self._ids = itertools.count(1)

    @property
    def driver_name(self) -> str:
        return self._driver.name

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def active(self) -> RecordingToken | None:
        return self._active

    def open(self) -> None:
        """Acquire the driver. Raises DriverUnavailableError."""
        if not self._open:
            self._driver.acquire()
            self._open = True
            log.debug("driver_acquired", driver=self._driver.name)

    def close(self) -> None:
        """Release the driver, stopping any recording left running."""
        if not self._open:
            return
        if self._active is not None:
            log.warning("recording_abandoned", recording=self._active.id)
            self._driver.stop()
            self._active = None
        self._driver.release()
        self._open = False
        log.debug("driver_released", driver=self._driver.name)

    def __enter__(self) -> RawCollector:
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def start_recording(self) -> RecordingToken:
        self.open()
        if self._active is not None:
            raise InvalidRecordingStateError.already_recording(self._active.id)
        self._driver.start()
        self._active = RecordingToken(id=next(self._ids), started_at=time.monotonic())
        return self._active

    def stop_recording(self, token: RecordingToken) -> RawDelta:
        if self._active is None or self._active.id != token.id:
            raise InvalidRecordingStateError.not_recording(token.id)
        try:
            lines = self._driver.stop()
        finally:
            self._active = None
        delta = RawDelta.from_lines(lines)
        log.debug(
            "recording_stopped",
            recording=token.id,
            files=len(delta.lines),
            elapsed_sec=round(time.monotonic() - token.started_at, 4),
        )
        return delta

    @contextmanager
    def recording(self) -> Iterator[_RecordingResult]:
        """Record the body of a with-block.

        The delta is available on the yielded object after the block exits,
        whether it exited normally or by exception.
        """
        result = _RecordingResult()
        token = self.start_recording()
        try:
            yield result
        finally:
            result.delta = self.stop_recording(token)


@dataclass(slots=True)
class _RecordingResult:
    delta: RawDelta | None = None
