"""Navigable HTML report rendered with Jinja2.

Writes a directory:
- index.html: every file with its line/method coverage and band
- files/<path>.html: the source with covered, uncovered and non-executable lines
  highlighted; hovering a covered line lists the tests that ran it
- style.css
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any

from jinja2 import Environment, PackageLoader

from unitcov import __version__
from unitcov.coverage.metrics import Metrics, percentage
from unitcov.coverage.model import FileCoverage, FinalizedModel
from unitcov.reports.base import (
    RenderOptions,
    ReportArtifact,
    document_name,
    read_source_lines,
)


def _environment() -> Environment:
    env = Environment(
        loader=PackageLoader("unitcov.reports", "templates"),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["pct"] = lambda value: f"{value:.2f}%"
    return env


def _root_prefix(page: str) -> str:
    return "../" * (len(PurePosixPath(page).parts) - 1)


class HtmlRenderer:
    """Renders the HTML directory report."""

    def __init__(self) -> None:
        self._env = _environment()

    @property
    def format_id(self) -> str:
        return "html"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact:
        pages: dict[str, bytes] = {}
        rows: list[dict[str, Any]] = []

        for path in sorted(model.files, key=options.display_path):
            file = model.files[path]
            file_metrics = metrics.files[path]
            display = options.display_path(path)
            page = document_name(display, ".html")
            rows.append(
                {
                    "name": display,
                    "href": page,
                    "executed": file_metrics.executed_lines,
                    "executable": file_metrics.executable_lines,
                    "percent": file_metrics.percent,
                    "band": file_metrics.band.value,
                    "methods": len(file_metrics.methods),
                    "methods_covered": file_metrics.methods_covered,
                    "crap": file_metrics.crap,
                }
            )
            pages[page] = self._file_page(file, metrics, options, display, page)

        methods_covered = sum(f.methods_covered for f in metrics.files.values())
        method_count = len(metrics.methods)
        index = self._env.get_template("index.html").render(
            project_name=options.project_name,
            generated_at=options.generated_at.strftime("%Y-%m-%d %H:%M:%S"),
            version=__version__,
            root="",
            thresholds=metrics.thresholds,
            totals={
                "executed": metrics.executed_lines,
                "executable": metrics.executable_lines,
                "percent": metrics.percent,
                "band": metrics.band.value,
                "methods": method_count,
                "methods_covered": methods_covered,
                "methods_percent": percentage(methods_covered, method_count),
                "tests": len(model.tests),
            },
            files=rows,
        )
        pages["index.html"] = index.encode("utf-8")
        pages["style.css"] = self._env.get_template("style.css").render().encode("utf-8")

        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=pages,
        )

    def _file_page(
        self,
        file: FileCoverage,
        metrics: Metrics,
        options: RenderOptions,
        display: str,
        page: str,
    ) -> bytes:
        file_metrics = metrics.files[file.path]
        by_number = {line.number: line for line in file.lines}
        source = read_source_lines(file.path)
        if source is None:
            last = max(by_number, default=0)
            source_available = False
            source = [""] * last
        else:
            source_available = True

        lines = []
        for number, text in enumerate(source, start=1):
            line = by_number.get(number)
            if line is None:
                status = "none"
            elif line.count > 0:
                status = "covered"
            else:
                status = "uncovered"
            lines.append(
                {
                    "number": number,
                    "text": text,
                    "status": status,
                    "count": line.count if line else None,
                    "tests": sorted(line.tests) if line else [],
                }
            )

        return (
            self._env.get_template("file.html")
            .render(
                project_name=options.project_name,
                generated_at=options.generated_at.strftime("%Y-%m-%d %H:%M:%S"),
                version=__version__,
                root=_root_prefix(page),
                name=display,
                file=file_metrics,
                methods=file_metrics.methods,
                lines=lines,
                source_available=source_available,
            )
            .encode("utf-8")
        )
