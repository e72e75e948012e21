"""Tests for the accumulating coverage model.

Covers:
- Per-line execution counts and covering tests
- Order independence of merges
- Noise filtering against the executable set at finalize
- Finalization and post-finalize rejection
- Merging finalized models from separate workers
"""

from __future__ import annotations

import itertools
from pathlib import Path

import pytest

from unitcov.coverage.analysis import SourceAnalyzer
from unitcov.coverage.collector import RawDelta
from unitcov.coverage.filter import Filter
from unitcov.coverage.model import CoverageModel, FinalizedModel, merge_finalized
from unitcov.core.errors import SessionClosedError

APP = "/proj/src/app.php"
EXECUTABLE = {APP: range(1, 6)}


def _delta(lines: dict[str, range | set[int]]) -> RawDelta:
    return RawDelta.from_lines(lines, executable=EXECUTABLE)


def _as_tuples(model: FinalizedModel) -> dict[str, list[tuple[int, int, frozenset[str]]]]:
    return {
        path: [(line.number, line.count, line.tests) for line in file.lines]
        for path, file in model.files.items()
    }


class TestMerge:
    """Line counts and covering tests."""

    def test_two_units_overlapping(self) -> None:
        """A runs 1-3, B runs 2-4 of 5 executable lines."""
        model = CoverageModel(Filter(Path("/proj")))

        model.merge(_delta({APP: range(1, 4)}), "A")
        model.merge(_delta({APP: range(2, 5)}), "B")
        finalized = model.finalize()

        file = finalized.files[APP]
        assert [line.count for line in file.lines] == [1, 2, 2, 1, 0]
        assert [sorted(line.tests) for line in file.lines] == [
            ["A"],
            ["A", "B"],
            ["A", "B"],
            ["B"],
            [],
        ]
        assert file.executed_lines == 4
        assert file.executable_lines == 5
        assert file.line_rate == pytest.approx(0.8)
        assert finalized.tests == frozenset({"A", "B"})

    def test_same_test_id_counts_each_delta(self) -> None:
        model = CoverageModel(Filter(Path("/proj")))

        model.merge(_delta({APP: {1}}), "A")
        model.merge(_delta({APP: {1}}), "A")

        assert model.finalize().files[APP].line(1).count == 2  # type: ignore[union-attr]

    def test_merge_order_does_not_matter(self) -> None:
        deltas = [
            (_delta({APP: {1, 2}}), "A"),
            (_delta({APP: {2, 3}}), "B"),
            (_delta({APP: {5}, "/proj/src/other.php": {7}}), "C"),
        ]
        results = []
        for order in itertools.permutations(deltas):
            model = CoverageModel(Filter(Path("/proj")))
            for delta, test_id in order:
                model.merge(delta, test_id)
            results.append(_as_tuples(model.finalize()))

        assert all(result == results[0] for result in results)

    def test_ineligible_files_ignored(self) -> None:
        model = CoverageModel(Filter(Path("/proj"), include=["src/*"], exclude=["src/vendor/*"]))

        model.merge(
            RawDelta.from_lines(
                {APP: {1}, "/proj/src/vendor/x.php": {1}, "/proj/tests/t.php": {1}}
            ),
            "A",
        )

        assert list(model.finalize().files) == [APP]

    def test_non_positive_lines_ignored(self) -> None:
        model = CoverageModel(Filter(Path("/proj")))

        model.merge(RawDelta.from_lines({APP: {0, -1, 3}}), "A")

        assert [line.number for line in model.finalize().files[APP].lines] == [3]


class TestNoiseFiltering:
    """Lines outside the executable set."""

    def test_hits_outside_executable_set_dropped(self) -> None:
        model = CoverageModel(Filter(Path("/proj")))

        model.merge(_delta({APP: {1, 9}}), "A")

        numbers = [line.number for line in model.finalize().files[APP].lines]
        assert numbers == [1, 2, 3, 4, 5]

    def test_executable_set_learned_later_still_filters(self) -> None:
        """Noise is filtered at finalize, whatever the merge order."""
        model = CoverageModel(Filter(Path("/proj")))

        model.merge(RawDelta.from_lines({APP: {1, 9}}), "A")
        model.merge(_delta({APP: {2}}), "B")

        numbers = [line.number for line in model.finalize().files[APP].lines]
        assert 9 not in numbers

    def test_analyzer_supplies_executable_lines(self, write_source, tmp_path: Path) -> None:
        path = write_source("pkg/mod.py", "a = 1\n\nif a:\n    b = 2\n")
        model = CoverageModel(Filter(tmp_path.resolve()), SourceAnalyzer())

        model.merge(RawDelta.from_lines({path: {1, 3, 99}}), "A")

        file = model.finalize().files[path]
        assert [(line.number, line.count) for line in file.lines] == [(1, 1), (3, 1), (4, 0)]


class TestFinalize:
    def test_finalize_is_idempotent(self) -> None:
        model = CoverageModel()
        model.merge(_delta({APP: {1}}), "A")

        assert model.finalize() is model.finalize()
        assert model.is_finalized

    @pytest.mark.parametrize(
        "operation",
        [
            lambda m: m.merge(RawDelta.from_lines({APP: {1}}), "late"),
            lambda m: m.add_uncovered_file(APP),
            lambda m: m.merge_model(FinalizedModel()),
        ],
    )
    def test_changes_after_finalize_rejected(self, operation) -> None:
        model = CoverageModel()
        model.merge(_delta({APP: {1}}), "A")
        finalized = model.finalize()

        with pytest.raises(SessionClosedError):
            operation(model)

        assert model.finalize() is finalized

    def test_empty_model(self) -> None:
        finalized = CoverageModel().finalize()

        assert len(finalized) == 0
        assert finalized.line_rate == 0.0


class TestUncoveredFiles:
    def test_added_with_zero_counts(self, write_source, tmp_path: Path) -> None:
        path = write_source("src/never.py", "x = 1\ny = 2\n")
        model = CoverageModel(Filter(tmp_path.resolve()), SourceAnalyzer())

        model.add_uncovered_file(path)

        file = model.finalize().files[path]
        assert file.executed_lines == 0
        assert file.uncovered_lines == [1, 2]


class TestMergeFinalized:
    """Combining models from separate processes."""

    def test_counts_and_tests_combine(self) -> None:
        first = CoverageModel()
        first.merge(_delta({APP: {1, 2}}), "A")
        second = CoverageModel()
        second.merge(_delta({APP: {2, 3}}), "B")

        merged = merge_finalized([first.finalize(), second.finalize()])

        file = merged.files[APP]
        assert [line.count for line in file.lines] == [1, 2, 1, 0, 0]
        assert file.line(2).tests == frozenset({"A", "B"})  # type: ignore[union-attr]
        assert merged.tests == frozenset({"A", "B"})

    def test_per_worker_merge_matches_single_process(self) -> None:
        """Noise from a delta without an executable set is dropped either way."""
        noisy = RawDelta.from_lines({APP: {1, 2, 99}})
        known = RawDelta.from_lines({APP: {3}}, executable=EXECUTABLE)

        single = CoverageModel()
        single.merge(noisy, "A")
        single.merge(known, "B")
        worker_a = CoverageModel()
        worker_a.merge(noisy, "A")
        worker_b = CoverageModel()
        worker_b.merge(known, "B")

        for workers in ([worker_a, worker_b], [worker_b, worker_a]):
            merged = merge_finalized(w.finalize() for w in workers)
            assert _as_tuples(merged) == _as_tuples(single.finalize())
        assert [(line.number, line.count) for line in single.finalize().files[APP].lines] == [
            (1, 1),
            (2, 1),
            (3, 1),
            (4, 0),
            (5, 0),
        ]

    def test_unknown_executable_set_stays_unknown(self) -> None:
        model = CoverageModel()
        model.merge(RawDelta.from_lines({APP: {1, 99}}), "A")

        merged = merge_finalized([model.finalize()])

        assert not merged.files[APP].executable_known
        assert [line.number for line in merged.files[APP].lines] == [1, 99]

    def test_filter_applied(self) -> None:
        model = CoverageModel()
        model.merge(_delta({APP: {1}}), "A")

        merged = merge_finalized(
            [model.finalize()], coverage_filter=Filter(Path("/proj"), exclude=["src/*"])
        )

        assert len(merged) == 0
