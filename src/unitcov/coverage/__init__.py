"""Coverage recording, merging, and metrics.

This package provides:
- Include/exclude filtering of source files
- Instrumentation drivers and per-unit recording
- An order-independent coverage model keyed by file and line
- Percentages, coverage bands, and CRAP risk scores

Usage:
    from unitcov.coverage import CoverageModel, Filter, RawDelta, compute_metrics

    model = CoverageModel(Filter(include=["src/*"]))
    model.merge(RawDelta.from_lines({"src/app.py": {1, 2, 3}}), "test_app")
    metrics = compute_metrics(model.finalize())
"""

from unitcov.coverage.analysis import FileAnalysis, FunctionInfo, SourceAnalyzer
from unitcov.coverage.collector import RawCollector, RawDelta, RecordingToken
from unitcov.coverage.driver import CoverageDriver, MonitoringDriver, TraceDriver, select_driver
from unitcov.coverage.filter import Filter, normalize_file_id
from unitcov.coverage.metrics import (
    CoverageBand,
    FileMetrics,
    MethodMetrics,
    Metrics,
    Thresholds,
    classify,
    compute_metrics,
)
from unitcov.coverage.model import (
    CoverageModel,
    FileCoverage,
    FinalizedModel,
    LineCoverage,
    merge_finalized,
)

__all__ = [
    # Filter
    "Filter",
    "normalize_file_id",
    # Recording
    "CoverageDriver",
    "MonitoringDriver",
    "TraceDriver",
    "select_driver",
    "RawCollector",
    "RawDelta",
    "RecordingToken",
    # Analysis
    "FileAnalysis",
    "FunctionInfo",
    "SourceAnalyzer",
    # Model
    "CoverageModel",
    "FileCoverage",
    "FinalizedModel",
    "LineCoverage",
    "merge_finalized",
    # Metrics
    "CoverageBand",
    "FileMetrics",
    "MethodMetrics",
    "Metrics",
    "Thresholds",
    "classify",
    "compute_metrics",
]
