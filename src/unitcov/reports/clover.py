"""Clover XML report.

Structure:
<coverage generated="..." clover="...">
  <project timestamp="..." name="...">
    <file name="/abs/path/app.py" path="/abs/path/app.py">
      <line num="3" type="method" name="App.run" complexity="2" crap="2.0" count="1"/>
      <line num="4" type="stmt" count="1"/>
      <metrics loc="..." ncloc="..." classes="0" methods="..." coveredmethods="..."
               conditionals="0" coveredconditionals="0" statements="..."
               coveredstatements="..." elements="..." coveredelements="..."/>
    </file>
    <metrics files="..." .../>
  </project>
</coverage>
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from unitcov import __version__
from unitcov.coverage.metrics import FileMetrics, Metrics
from unitcov.coverage.model import FileCoverage, FinalizedModel
from unitcov.reports.base import RenderOptions, ReportArtifact, read_source_lines

_METRIC_KEYS = (
    "loc",
    "ncloc",
    "classes",
    "methods",
    "coveredmethods",
    "conditionals",
    "coveredconditionals",
    "statements",
    "coveredstatements",
    "elements",
    "coveredelements",
)


def _loc(file: FileCoverage) -> tuple[int, int]:
    source = read_source_lines(file.path)
    if source is None:
        last = max((line.number for line in file.lines), default=0)
        return last, file.executable_lines
    ncloc = sum(1 for text in source if text.strip() and not text.lstrip().startswith("#"))
    return len(source), ncloc


def _file_metrics(file: FileCoverage, metrics: FileMetrics) -> dict[str, int]:
    loc, ncloc = _loc(file)
    methods = len(metrics.methods)
    covered_methods = sum(1 for m in metrics.methods if m.covered)
    return {
        "loc": loc,
        "ncloc": ncloc,
        "classes": 0,
        "methods": methods,
        "coveredmethods": covered_methods,
        "conditionals": 0,
        "coveredconditionals": 0,
        "statements": metrics.executable_lines,
        "coveredstatements": metrics.executed_lines,
        "elements": metrics.executable_lines + methods,
        "coveredelements": metrics.executed_lines + covered_methods,
    }


class CloverRenderer:
    """Renders a single Clover XML document."""

    @property
    def format_id(self) -> str:
        return "clover"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact:
        root = ET.Element("coverage", generated=str(options.timestamp), clover=__version__)
        project = ET.SubElement(
            root, "project", timestamp=str(options.timestamp), name=options.project_name
        )

        totals = dict.fromkeys(_METRIC_KEYS, 0)
        for path, file in model.files.items():
            file_metrics = metrics.files[path]
            file_elem = ET.SubElement(project, "file", name=path, path=path)

            for method in file_metrics.methods:
                count = max(
                    (
                        line.count
                        for line in file.lines
                        if method.start_line <= line.number <= method.end_line
                    ),
                    default=0,
                )
                private = method.name.rsplit(".", 1)[-1].startswith("_")
                ET.SubElement(
                    file_elem,
                    "line",
                    num=str(method.start_line),
                    type="method",
                    name=method.name,
                    visibility="private" if private else "public",
                    complexity=str(method.complexity),
                    crap=f"{method.crap:.2f}",
                    count=str(count),
                )
            for line in file.lines:
                ET.SubElement(
                    file_elem, "line", num=str(line.number), type="stmt", count=str(line.count)
                )

            counts = _file_metrics(file, file_metrics)
            ET.SubElement(file_elem, "metrics", {k: str(v) for k, v in counts.items()})
            for key, value in counts.items():
                totals[key] += value

        ET.SubElement(
            project,
            "metrics",
            {"files": str(len(model.files)), **{k: str(v) for k, v in totals.items()}},
        )

        ET.indent(root)
        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n",
        )
