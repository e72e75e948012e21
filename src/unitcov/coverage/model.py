"""Accumulating coverage model.

File-centric: coverage is keyed by normalized absolute path, then by line.
Every recorded unit is merged in as a RawDelta tagged with its test id:

- line.count += 1 for each delta that executed the line
- line.tests gains the delta's test id

Both operations are commutative and associative, so the finalized totals do
not depend on the order units ran in (or on how per-worker models are merged).
Lines outside a file's known executable set are instrumentation noise and are
dropped when the model is finalized, never at merge time.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from unitcov.coverage.analysis import FunctionInfo, SourceAnalyzer
from unitcov.coverage.collector import RawDelta
from unitcov.coverage.filter import Filter, normalize_file_id
from unitcov.core.errors import SessionClosedError

log = structlog.get_logger(__name__)

TestId = str


@dataclass(frozen=True, slots=True)
class LineCoverage:
    """Coverage of one executable line."""

    number: int
    count: int = 0
    tests: frozenset[TestId] = frozenset()

    @property
    def executed(self) -> bool:
        return self.count > 0


@dataclass(frozen=True, slots=True)
class FileCoverage:
    """Finalized coverage for a single file.

    Only executable lines are present; a line missing from ``lines`` is not
    executable.

    ``executable_known`` is False when no executable-line set was ever known
    for the file, so ``lines`` holds only the lines that ran.
    """

    path: str
    lines: tuple[LineCoverage, ...] = ()
    functions: tuple[FunctionInfo, ...] = ()
    executable_known: bool = True

    @property
    def executable_lines(self) -> int:
        return len(self.lines)

    @property
    def executed_lines(self) -> int:
        return sum(1 for line in self.lines if line.count > 0)

    @property
    def line_rate(self) -> float:
        """Fraction of executable lines executed (0.0 to 1.0)."""
        if not self.lines:
            return 0.0
        return self.executed_lines / len(self.lines)

    @property
    def uncovered_lines(self) -> list[int]:
        return [line.number for line in self.lines if line.count == 0]

    @property
    def tests(self) -> frozenset[TestId]:
        return frozenset(t for line in self.lines for t in line.tests)

    def line(self, number: int) -> LineCoverage | None:
        for line in self.lines:
            if line.number == number:
                return line
        return None

    def lines_in(self, function: FunctionInfo) -> list[LineCoverage]:
        return [line for line in self.lines if function.contains(line.number)]


@dataclass(frozen=True, slots=True)
class FinalizedModel:
    """Immutable coverage snapshot after all units have been recorded."""

    files: Mapping[str, FileCoverage] = field(default_factory=lambda: MappingProxyType({}))
    tests: frozenset[TestId] = frozenset()

    @property
    def executable_lines(self) -> int:
        return sum(f.executable_lines for f in self.files.values())

    @property
    def executed_lines(self) -> int:
        return sum(f.executed_lines for f in self.files.values())

    @property
    def line_rate(self) -> float:
        total = self.executable_lines
        return self.executed_lines / total if total > 0 else 0.0

    def __iter__(self) -> Iterator[FileCoverage]:
        return iter(self.files.values())

    def __len__(self) -> int:
        return len(self.files)


@dataclass(slots=True)
class _FileState:
    path: str
    executable: set[int] | None = None
    hits: dict[int, int] = field(default_factory=dict)
    tests: dict[int, set[TestId]] = field(default_factory=dict)
    functions: dict[str, FunctionInfo] = field(default_factory=dict)

    def add_executable(self, lines: Iterable[int]) -> None:
        if self.executable is None:
            self.executable = set()
        self.executable.update(n for n in lines if n > 0)

    def add_functions(self, functions: Iterable[FunctionInfo]) -> None:
        for func in functions:
            existing = self.functions.get(func.name)
            if existing is None:
                self.functions[func.name] = func
            else:
                # Same name from different sources: keep the widest span
                self.functions[func.name] = max(
                    existing,
                    func,
                    key=lambda f: (f.end_line - f.start_line, f.complexity, -f.start_line),
                )

    def hit(self, line: int, test_id: TestId, count: int = 1) -> None:
        self.hits[line] = self.hits.get(line, 0) + count
        self.tests.setdefault(line, set()).add(test_id)

    def freeze(self) -> FileCoverage:
        numbers = self.executable if self.executable is not None else set(self.hits)
        return FileCoverage(
            path=self.path,
            lines=tuple(
                LineCoverage(
                    number=n,
                    count=self.hits.get(n, 0),
                    tests=frozenset(self.tests.get(n, ())),
                )
                for n in sorted(numbers)
            ),
            functions=tuple(sorted(self.functions.values(), key=lambda f: (f.start_line, f.name))),
            executable_known=self.executable is not None,
        )


class CoverageModel:
    """Mutable store merged into during a run, frozen by finalize()."""

    def __init__(
        self,
        coverage_filter: Filter | None = None,
        analyzer: SourceAnalyzer | None = None,
    ) -> None:
        self._filter = coverage_filter or Filter()
        self._analyzer = analyzer
        self._files: dict[str, _FileState] = {}
        self._tests: set[TestId] = set()
        self._finalized: FinalizedModel | None = None

    @property
    def is_finalized(self) -> bool:
        return self._finalized is not None

    @property
    def files(self) -> list[str]:
        return sorted(self._files)

    @property
    def tests(self) -> frozenset[TestId]:
        return frozenset(self._tests)

    def merge(self, delta: RawDelta, test_id: TestId) -> None:
        """Merge one unit's raw delta, tagging every executed line with test_id."""
        self._check_open("merge coverage")
        self._tests.add(test_id)

        merged_files = 0
        for path in sorted(set(delta.lines) | set(delta.executable)):
            if not self._filter.is_eligible(path):
                continue
            state = self._state_for(path)
            known = delta.executable.get(path)
            if known is not None:
                state.add_executable(known)
            for line in delta.lines.get(path, ()):
                if line > 0:
                    state.hit(line, test_id)
            merged_files += 1

        log.debug("delta_merged", test_id=test_id, files=merged_files)

    def add_uncovered_file(self, path: str) -> None:
        """Register a file that never executed so its lines count as missed."""
        self._check_open("add uncovered file")
        if self._filter.is_eligible(path):
            self._state_for(path)

    def merge_model(self, other: FinalizedModel) -> None:
        """Fold a finalized model (e.g. from another worker) into this one."""
        self._check_open("merge model")
        self._tests.update(other.tests)
        for file in other.files.values():
            if not self._filter.is_eligible(file.path):
                continue
            state = self._state_for(file.path)
            if file.executable_known:
                state.add_executable(line.number for line in file.lines)
            state.add_functions(file.functions)
            for line in file.lines:
                if line.count > 0:
                    state.hits[line.number] = state.hits.get(line.number, 0) + line.count
                if line.tests:
                    state.tests.setdefault(line.number, set()).update(line.tests)

    def finalize(self) -> FinalizedModel:
        """Freeze the model. Later merges raise SessionClosedError."""
        if self._finalized is None:
            self._finalized = FinalizedModel(
                files=MappingProxyType(
                    {path: self._files[path].freeze() for path in sorted(self._files)}
                ),
                tests=frozenset(self._tests),
            )
            log.debug(
                "model_finalized",
                files=len(self._finalized.files),
                tests=len(self._finalized.tests),
            )
        return self._finalized

    def _check_open(self, operation: str) -> None:
        if self._finalized is not None:
            raise SessionClosedError.closed(operation)

    def _state_for(self, path: str) -> _FileState:
        file_id = normalize_file_id(path, self._filter.base)
        state = self._files.get(file_id)
        if state is None:
            state = self._files[file_id] = _FileState(path=file_id)
            if self._analyzer is not None:
                analysis = self._analyzer.analyze(file_id)
                if analysis is not None:
                    state.add_executable(analysis.executable_lines)
                    state.add_functions(analysis.functions)
        return state


def merge_finalized(
    models: Iterable[FinalizedModel],
    *,
    coverage_filter: Filter | None = None,
) -> FinalizedModel:
    """Merge finalized models from separate processes into one."""
    combined = CoverageModel(coverage_filter)
    for model in models:
        combined.merge_model(model)
    return combined.finalize()
