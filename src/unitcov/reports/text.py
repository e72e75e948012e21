"""Plain-text coverage report.

Layout:

    Code Coverage Report:
      2026-10-19 12:00:00

     Summary:
      Methods:  50.00% (1/2)
      Lines:    80.00% (4/5)

    src/app.py
      Methods:  50.00% ( 1/ 2)   Lines:  80.00% (  4/  5)

Colors, when enabled, follow the coverage band of each line.
"""

from __future__ import annotations

from unitcov.coverage.metrics import CoverageBand, FileMetrics, Metrics, classify, percentage
from unitcov.coverage.model import FinalizedModel
from unitcov.reports.base import RenderOptions, ReportArtifact

_COLORS = {
    CoverageBand.LOW: "\x1b[30;41m",
    CoverageBand.MEDIUM: "\x1b[30;43m",
    CoverageBand.HIGH: "\x1b[30;42m",
}
_HEADER_COLOR = "\x1b[1;37;40m"
_RESET = "\x1b[0m"


def _ratio(covered: int, total: int, width: int = 0) -> str:
    return f"{percentage(covered, total):6.2f}% ({covered:>{width}}/{total:>{width}})"


class TextRenderer:
    """Renders a tabular text summary."""

    @property
    def format_id(self) -> str:
        return "text"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact:
        def paint(text: str, color: str) -> str:
            return f"{color}{text}{_RESET}" if options.show_colors else text

        methods = metrics.methods
        methods_covered = sum(f.methods_covered for f in metrics.files.values())
        method_band = classify(percentage(methods_covered, len(methods)), metrics.thresholds)

        out = [
            paint("Code Coverage Report:", _HEADER_COLOR),
            f"  {options.generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
            "",
            paint(" Summary:", _HEADER_COLOR),
            paint(f"  Methods: {_ratio(methods_covered, len(methods))}", _COLORS[method_band]),
            paint(
                f"  Lines:   {_ratio(metrics.executed_lines, metrics.executable_lines)}",
                _COLORS[metrics.band],
            ),
            "",
        ]

        width = len(str(max((f.executable_lines for f in metrics.files.values()), default=0)))
        for path in sorted(model.files, key=options.display_path):
            file_metrics = metrics.files[path]
            if file_metrics.executed_lines == 0 and not options.show_uncovered_files:
                continue
            out.append(options.display_path(path))
            out.append(paint(self._file_line(file_metrics, width), _COLORS[file_metrics.band]))

        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=("\n".join(out) + "\n").encode("utf-8"),
        )

    def _file_line(self, file: FileMetrics, width: int) -> str:
        method_width = len(str(len(file.methods)))
        return (
            f"  Methods: {_ratio(file.methods_covered, len(file.methods), method_width)}"
            f"   Lines: {_ratio(file.executed_lines, file.executable_lines, width)}"
        )
