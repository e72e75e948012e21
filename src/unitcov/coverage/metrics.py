"""Derived coverage metrics: percentages, bands, and CRAP risk scores.

CRAP (Change Risk Anti-Patterns), as defined by crap4j:

    crap(m) = comp(m)^2 * (1 - cov(m))^3 + comp(m)

where ``comp`` is cyclomatic complexity and ``cov`` is line coverage as a
fraction. A method whose CRAP reaches the threshold carries a CRAP load,
the rough amount of work needed to bring it back under the threshold.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from unitcov.coverage.model import FileCoverage, FinalizedModel

__all__ = [
    "CoverageBand",
    "FileMetrics",
    "MethodMetrics",
    "Metrics",
    "Thresholds",
    "classify",
    "compute_metrics",
    "crap_load",
    "crap_score",
    "percentage",
]

DEFAULT_CRAP_THRESHOLD = 30


class CoverageBand(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class Thresholds:
    """Band boundaries on the percent scale.

    low: percent < lower; high: percent >= upper; medium otherwise.
    """

    lower: float = 35
    upper: float = 70
    crap: float = DEFAULT_CRAP_THRESHOLD

    def __post_init__(self) -> None:
        if not (0 <= self.lower <= self.upper <= 100):
            raise ValueError(
                f"Thresholds must satisfy 0 <= lower <= upper <= 100, "
                f"got lower={self.lower}, upper={self.upper}"
            )
        if self.crap <= 0:
            raise ValueError(f"CRAP threshold must be positive, got {self.crap}")


def percentage(executed: int, executable: int) -> float:
    """executed / executable on the percent scale; 0 when nothing is executable."""
    if executable <= 0:
        return 0.0
    return executed * 100.0 / executable


def classify(percent: float, thresholds: Thresholds) -> CoverageBand:
    if percent < thresholds.lower:
        return CoverageBand.LOW
    if percent >= thresholds.upper:
        return CoverageBand.HIGH
    return CoverageBand.MEDIUM


def crap_score(complexity: int, coverage_percent: float) -> float:
    uncovered = 1.0 - coverage_percent / 100.0
    return complexity**2 * uncovered**3 + complexity


def crap_load(crap: float, complexity: int, coverage_percent: float, threshold: float) -> float:
    if crap < threshold:
        return 0.0
    return complexity * (1.0 - coverage_percent / 100.0) + complexity / threshold


@dataclass(frozen=True, slots=True)
class MethodMetrics:
    name: str
    start_line: int
    end_line: int
    complexity: int
    executable_lines: int
    executed_lines: int
    percent: float
    crap: float
    crap_load: float

    @property
    def covered(self) -> bool:
        return self.executed_lines > 0


@dataclass(frozen=True, slots=True)
class FileMetrics:
    path: str
    executable_lines: int
    executed_lines: int
    percent: float
    band: CoverageBand
    complexity: int
    crap: float
    methods: tuple[MethodMetrics, ...] = ()

    @property
    def methods_covered(self) -> int:
        """Methods with every executable line executed."""
        return sum(
            1 for m in self.methods if m.executable_lines and m.executed_lines == m.executable_lines
        )


@dataclass(frozen=True, slots=True)
class Metrics:
    """Read-only snapshot derived once from a finalized model."""

    thresholds: Thresholds
    files: Mapping[str, FileMetrics] = field(default_factory=lambda: MappingProxyType({}))
    executable_lines: int = 0
    executed_lines: int = 0
    percent: float = 0.0
    band: CoverageBand = CoverageBand.LOW

    @property
    def methods(self) -> list[MethodMetrics]:
        return [m for f in self.files.values() for m in f.methods]

    @property
    def band_counts(self) -> dict[CoverageBand, int]:
        counts = {band: 0 for band in CoverageBand}
        for file in self.files.values():
            counts[file.band] += 1
        return counts


def _method_metrics(file: FileCoverage, thresholds: Thresholds) -> tuple[MethodMetrics, ...]:
    methods = []
    for func in file.functions:
        lines = file.lines_in(func)
        executed = sum(1 for line in lines if line.count > 0)
        percent = percentage(executed, len(lines))
        crap = crap_score(func.complexity, percent)
        methods.append(
            MethodMetrics(
                name=func.name,
                start_line=func.start_line,
                end_line=func.end_line,
                complexity=func.complexity,
                executable_lines=len(lines),
                executed_lines=executed,
                percent=percent,
                crap=crap,
                crap_load=crap_load(crap, func.complexity, percent, thresholds.crap),
            )
        )
    return tuple(methods)


def compute_metrics(model: FinalizedModel, thresholds: Thresholds | None = None) -> Metrics:
    """Compute metrics for every file and the whole model. Pure."""
    thresholds = thresholds or Thresholds()
    files: dict[str, FileMetrics] = {}

    for path, file in model.files.items():
        methods = _method_metrics(file, thresholds)
        complexity = sum(m.complexity for m in methods) or 1
        percent = percentage(file.executed_lines, file.executable_lines)
        files[path] = FileMetrics(
            path=path,
            executable_lines=file.executable_lines,
            executed_lines=file.executed_lines,
            percent=percent,
            band=classify(percent, thresholds),
            complexity=complexity,
            crap=crap_score(complexity, percent),
            methods=methods,
        )

    executable = model.executable_lines
    executed = model.executed_lines
    total_percent = percentage(executed, executable)
    return Metrics(
        thresholds=thresholds,
        files=MappingProxyType(files),
        executable_lines=executable,
        executed_lines=executed,
        percent=total_percent,
        band=classify(total_percent, thresholds),
    )
