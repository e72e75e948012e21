"""Tests for derived coverage metrics."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from unitcov.coverage.analysis import FunctionInfo
from unitcov.coverage.metrics import (
    CoverageBand,
    Thresholds,
    classify,
    compute_metrics,
    crap_load,
    crap_score,
    percentage,
)
from unitcov.coverage.model import FileCoverage, FinalizedModel, LineCoverage


def _file(path: str, counts: list[int], functions: tuple[FunctionInfo, ...] = ()) -> FileCoverage:
    return FileCoverage(
        path=path,
        lines=tuple(LineCoverage(number=i, count=c) for i, c in enumerate(counts, start=1)),
        functions=functions,
    )


def _model(*files: FileCoverage) -> FinalizedModel:
    return FinalizedModel(files=MappingProxyType({f.path: f for f in files}))


class TestPercentage:
    def test_ratio(self) -> None:
        assert percentage(4, 5) == pytest.approx(80.0)

    def test_zero_executable_is_zero(self) -> None:
        assert percentage(0, 0) == 0.0


class TestClassify:
    """Band boundaries: low < lower <= medium < upper <= high."""

    @pytest.mark.parametrize(
        ("percent", "band"),
        [
            (0.0, CoverageBand.LOW),
            (34.99, CoverageBand.LOW),
            (35.0, CoverageBand.MEDIUM),
            (69.99, CoverageBand.MEDIUM),
            (70.0, CoverageBand.HIGH),
            (100.0, CoverageBand.HIGH),
        ],
    )
    def test_default_bounds(self, percent: float, band: CoverageBand) -> None:
        assert classify(percent, Thresholds()) is band

    def test_equal_bounds_have_no_medium(self) -> None:
        thresholds = Thresholds(lower=50, upper=50)

        assert classify(49.9, thresholds) is CoverageBand.LOW
        assert classify(50.0, thresholds) is CoverageBand.HIGH

    @pytest.mark.parametrize(
        "kwargs",
        [{"lower": 80, "upper": 70}, {"lower": -1}, {"upper": 101}, {"crap": 0}],
    )
    def test_invalid_thresholds(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            Thresholds(**kwargs)


class TestCrap:
    @pytest.mark.parametrize(
        ("complexity", "coverage", "expected"),
        [
            (1, 100.0, 1.0),
            (1, 0.0, 2.0),
            (5, 0.0, 30.0),
            (10, 50.0, 22.5),
        ],
    )
    def test_crap_score(self, complexity: int, coverage: float, expected: float) -> None:
        assert crap_score(complexity, coverage) == pytest.approx(expected)

    def test_crap_load_below_threshold(self) -> None:
        assert crap_load(29.9, 5, 0.0, 30) == 0.0

    def test_crap_load_at_threshold(self) -> None:
        # comp * (1 - cov) + comp / threshold
        assert crap_load(30.0, 5, 0.0, 30) == pytest.approx(5 + 5 / 30)


class TestComputeMetrics:
    def test_totals_and_band(self) -> None:
        model = _model(_file("/a.py", [1, 2, 2, 1, 0]))

        metrics = compute_metrics(model)

        assert metrics.executable_lines == 5
        assert metrics.executed_lines == 4
        assert metrics.percent == pytest.approx(80.0)
        assert metrics.band is CoverageBand.HIGH
        assert metrics.files["/a.py"].band is CoverageBand.HIGH

    def test_file_with_no_executable_lines(self) -> None:
        """0/0 is 0% and low, never a division error."""
        metrics = compute_metrics(_model(_file("/empty.py", [])))

        file = metrics.files["/empty.py"]
        assert file.percent == 0.0
        assert file.band is CoverageBand.LOW
        assert metrics.percent == 0.0
        assert metrics.band is CoverageBand.LOW

    def test_empty_model(self) -> None:
        metrics = compute_metrics(FinalizedModel())

        assert metrics.percent == 0.0
        assert metrics.band is CoverageBand.LOW
        assert metrics.methods == []

    def test_method_metrics(self) -> None:
        funcs = (
            FunctionInfo(name="covered", start_line=1, end_line=2, complexity=1),
            FunctionInfo(name="risky", start_line=3, end_line=5, complexity=5),
        )
        metrics = compute_metrics(_model(_file("/a.py", [1, 1, 0, 0, 0], funcs)))

        file = metrics.files["/a.py"]
        covered, risky = file.methods
        assert covered.percent == pytest.approx(100.0)
        assert covered.crap == pytest.approx(1.0)
        assert covered.crap_load == 0.0
        assert risky.executed_lines == 0
        assert not risky.covered
        assert risky.crap == pytest.approx(30.0)
        assert risky.crap_load == pytest.approx(5 + 5 / 30)
        assert file.methods_covered == 1
        assert file.complexity == 6

    def test_custom_thresholds(self) -> None:
        model = _model(_file("/a.py", [1, 0, 0, 0]))

        metrics = compute_metrics(model, Thresholds(lower=20, upper=90))

        assert metrics.band is CoverageBand.MEDIUM
        assert metrics.thresholds.upper == 90

    @pytest.mark.parametrize(
        ("executed", "thresholds", "band"),
        [
            (29, Thresholds(lower=29, upper=70), CoverageBand.MEDIUM),
            (57, Thresholds(lower=35, upper=57), CoverageBand.HIGH),
            (28, Thresholds(lower=29, upper=70), CoverageBand.LOW),
        ],
    )
    def test_exact_bound_hits_upper_band(
        self, executed: int, thresholds: Thresholds, band: CoverageBand
    ) -> None:
        """A file sitting exactly on a configured bound belongs to the band above it."""
        model = _model(_file("/a.py", [1] * executed + [0] * (100 - executed)))

        metrics = compute_metrics(model, thresholds)

        assert metrics.percent == float(executed)
        assert metrics.files["/a.py"].band is band
        assert metrics.band is band

    def test_band_counts(self) -> None:
        metrics = compute_metrics(
            _model(_file("/low.py", [0, 0]), _file("/mid.py", [1, 0]), _file("/high.py", [1]))
        )

        assert metrics.band_counts == {
            CoverageBand.LOW: 1,
            CoverageBand.MEDIUM: 1,
            CoverageBand.HIGH: 1,
        }
