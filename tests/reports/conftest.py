"""Shared fixtures for renderer tests."""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pytest

from unitcov.coverage.analysis import SourceAnalyzer
from unitcov.coverage.collector import RawDelta
from unitcov.coverage.filter import Filter
from unitcov.coverage.metrics import Metrics, compute_metrics
from unitcov.coverage.model import CoverageModel, FinalizedModel
from unitcov.reports.base import RenderOptions

APP_SOURCE = """\
def add(a, b):
    return a + b


def _unused(x):
    if x:
        return 1
    return 2
"""

GENERATED_AT = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class Sample:
    base: Path
    app: str
    never: str
    model: FinalizedModel
    metrics: Metrics

    def options(self, **kwargs: object) -> RenderOptions:
        kwargs.setdefault("base_path", self.base)
        kwargs.setdefault("generated_at", GENERATED_AT)
        return RenderOptions(**kwargs)  # type: ignore[arg-type]


@pytest.fixture
def sample(tmp_path: Path) -> Sample:
    """Two files: src/app.py (3 of 6 lines run by two tests), src/never.py (never run).

    app.py counts: line 1 → 2, line 2 → 1, line 5 → 2, lines 6-8 → 0.
    """
    base = tmp_path.resolve()
    (base / "src").mkdir()
    (base / "src" / "app.py").write_text(APP_SOURCE)
    (base / "src" / "never.py").write_text("x = 1\n")
    app = (base / "src" / "app.py").as_posix()
    never = (base / "src" / "never.py").as_posix()

    model = CoverageModel(Filter(base), SourceAnalyzer())
    model.merge(RawDelta.from_lines({app: {1, 2, 5}}), "test_add")
    model.merge(RawDelta.from_lines({app: {1, 5}}), "test_other")
    model.add_uncovered_file(never)
    finalized = model.finalize()

    return Sample(
        base=base,
        app=app,
        never=never,
        model=finalized,
        metrics=compute_metrics(finalized),
    )
