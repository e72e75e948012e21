"""Coverage session: the facade a test host drives.

Lifecycle::

    IDLE --begin()--> RUNNING --finalize()--> FINALIZED --report()--> REPORTED
                                                             \\-----> FAILED

Usage:
    with CoverageSession(config) as session:
        for test in tests:
            session.record_unit(test.id, test.run)
        session.finalize()
        session.report()

A finalize() that raises leaves the session FAILED as well.

In skip mode (coverage disabled by the host) every call succeeds without
touching the instrumentation driver, and report() produces nothing.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TextIO, TypeVar
from uuid import uuid4

import structlog

from unitcov.config.models import CoverageConfig
from unitcov.coverage.analysis import SourceAnalyzer
from unitcov.coverage.collector import RawCollector
from unitcov.coverage.driver import CoverageDriver, select_driver
from unitcov.coverage.filter import Filter
from unitcov.coverage.metrics import Metrics, Thresholds, compute_metrics
from unitcov.coverage.model import CoverageModel, FinalizedModel
from unitcov.core.errors import DriverUnavailableError, ReportingError, SessionClosedError
from unitcov.core.logging import clear_session_id, set_session_id
from unitcov.reports import RenderOptions, ReportArtifact, render_reports

log = structlog.get_logger(__name__)

T = TypeVar("T")


class SessionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINALIZED = "finalized"
    REPORTED = "reported"
    FAILED = "failed"


_CLOSED_STATES = (SessionState.FINALIZED, SessionState.REPORTED, SessionState.FAILED)


class CoverageSession:
    """Records units, merges their coverage, and emits reports.

    Args:
        config: Validated coverage configuration (frozen for the session).
        skip: Run as a no-op session (the host's "no coverage" switch).
        driver: Instrumentation backend; defaults to ``config.driver``.
        root: Project root for relative include/exclude globs and report paths.
        analyzer: Source analyzer for executable lines and functions.
        stream: Console stream for reports without an output path.
        show_colors: Use ANSI colors in console text output.
    """

    def __init__(
        self,
        config: CoverageConfig | None = None,
        *,
        skip: bool = False,
        driver: CoverageDriver | None = None,
        root: Path | None = None,
        analyzer: SourceAnalyzer | None = None,
        stream: TextIO | None = None,
        show_colors: bool = False,
    ) -> None:
        self._config = config or CoverageConfig()
        self._skip = skip
        self._driver = driver
        self._root = Path(root or Path.cwd()).resolve()
        self._stream = stream
        self._show_colors = show_colors
        self._filter = Filter(
            self._root, include=self._config.include, exclude=self._config.exclude
        )
        self._model = CoverageModel(
            self._filter, analyzer if analyzer is not None else SourceAnalyzer()
        )
        self._collector: RawCollector | None = None
        self._state = SessionState.IDLE
        self._finalized: FinalizedModel | None = None
        self._metrics: Metrics | None = None
        self._artifacts: list[ReportArtifact] = []
        self.session_id = uuid4().hex[:12]
        self._log = log.bind(session_id=self.session_id)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def skip(self) -> bool:
        return self._skip

    @property
    def config(self) -> CoverageConfig:
        return self._config

    @property
    def filter(self) -> Filter:
        return self._filter

    @property
    def finalized_model(self) -> FinalizedModel | None:
        return self._finalized

    @property
    def metrics(self) -> Metrics | None:
        return self._metrics

    @property
    def artifacts(self) -> list[ReportArtifact]:
        return list(self._artifacts)

    def begin(self) -> None:
        """IDLE → RUNNING. Raises DriverUnavailableError; the session stays IDLE."""
        self._require(SessionState.IDLE, "begin session")
        set_session_id(self.session_id)
        if self._skip:
            self._log.info("coverage_skipped")
            self._state = SessionState.RUNNING
            return

        try:
            collector = RawCollector(self._driver or select_driver(self._config.driver))
            collector.open()
        except DriverUnavailableError as e:
            clear_session_id()
            self._log.error("driver_unavailable", error=e.message)
            raise
        self._collector = collector
        self._state = SessionState.RUNNING
        self._log.info("session_started", driver=collector.driver_name, root=str(self._root))

    @contextmanager
    def unit(self, test_id: str) -> Iterator[None]:
        """Record the body of a with-block as one unit.

        The recording is stopped and merged on every exit path; an exception
        from the body propagates after its coverage has been merged.
        """
        self._require(SessionState.RUNNING, "record unit")
        if self._skip:
            yield
            return

        if self._collector is None:
            raise SessionClosedError.invalid_state("record unit", self._state.value)
        token = self._collector.start_recording()
        try:
            yield
        finally:
            delta = self._collector.stop_recording(token)
            self._model.merge(delta, test_id)
            self._log.debug("unit_recorded", test_id=test_id, lines=len(delta))

    def record_unit(self, test_id: str, run_unit: Callable[[], T]) -> T:
        """Run one unit under recording and merge its coverage."""
        with self.unit(test_id):
            result = run_unit()
        return result

    def finalize(self) -> FinalizedModel:
        """RUNNING → FINALIZED. Freezes the model and computes metrics once."""
        self._require(SessionState.RUNNING, "finalize session")
        try:
            if self._config.process_uncovered_files and not self._skip:
                for path in self._filter.discover(self._root):
                    self._model.add_uncovered_file(path)
            self._finalized = self._model.finalize()
            self._metrics = compute_metrics(
                self._finalized,
                Thresholds(
                    lower=self._config.lower_upper_bound,
                    upper=self._config.high_lower_bound,
                    crap=self._config.crap_threshold,
                ),
            )
        except Exception:
            self._state = SessionState.FAILED
            self._log.error("finalize_failed", exc_info=True)
            clear_session_id()
            raise
        finally:
            self._release()
        self._state = SessionState.FINALIZED
        self._log.info(
            "session_finalized",
            files=len(self._finalized),
            tests=len(self._finalized.tests),
            line_coverage=round(self._metrics.percent, 2),
        )
        return self._finalized

    def report(self) -> list[ReportArtifact]:
        """FINALIZED → REPORTED (or FAILED). Runs every configured renderer.

        Raises:
            ReportingError: After all renderers ran, if any of them failed.
        """
        self._require(SessionState.FINALIZED, "emit reports")
        if self._skip:
            self._state = SessionState.REPORTED
            clear_session_id()
            return []

        assert self._finalized is not None and self._metrics is not None
        outputs = {fmt: self._output_path(fmt) for fmt in self._config.format}
        options = RenderOptions(
            show_uncovered_files=self._config.show_uncovered_files,
            show_colors=self._show_colors,
            project_name=self._config.project_name,
            base_path=self._root,
        )
        try:
            self._artifacts = render_reports(
                self._finalized,
                self._metrics,
                outputs,
                options,
                fail_fast=self._config.fail_fast,
                stream=self._stream or sys.stdout,
            )
        except ReportingError as e:
            self._artifacts = e.artifacts
            self._state = SessionState.FAILED
            self._log.warning("reports_failed", failed=[f.format_id for f in e.failures])
            raise
        except Exception:
            self._state = SessionState.FAILED
            raise
        finally:
            clear_session_id()

        self._state = SessionState.REPORTED
        self._log.info("reports_written", formats=[a.format_id for a in self._artifacts])
        return self.artifacts

    emit_reports = report

    def close(self) -> None:
        """Release the instrumentation driver if still held."""
        self._release()

    def __enter__(self) -> CoverageSession:
        self.begin()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _output_path(self, format_id: str) -> Path | None:
        path = self._config.output_for(format_id)
        if path is not None and not path.is_absolute():
            path = self._root / path
        return path

    def _release(self) -> None:
        if self._collector is not None:
            self._collector.close()
            self._collector = None

    def _require(self, expected: SessionState, operation: str) -> None:
        if self._state is expected:
            return
        if expected is SessionState.RUNNING and self._state in _CLOSED_STATES:
            raise SessionClosedError.closed(operation)
        raise SessionClosedError.invalid_state(operation, self._state.value)
