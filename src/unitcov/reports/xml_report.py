"""Per-line XML report for CI ingestion.

Writes a directory:
- index.xml: project totals, the recorded tests, one <file> entry per source
- files/<path>.xml: one document per source file, with method totals and every
  executable line listing the tests that covered it
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from unitcov import __version__
from unitcov.coverage.metrics import FileMetrics, Metrics, percentage
from unitcov.coverage.model import FileCoverage, FinalizedModel
from unitcov.reports.base import RenderOptions, ReportArtifact, document_name

NAMESPACE = "https://unitcov.dev/xml/coverage/1.0"


def _serialize(root: ET.Element) -> bytes:
    ET.indent(root)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n"


def _totals(parent: ET.Element, executable: int, executed: int, methods: int, tested: int) -> None:
    totals = ET.SubElement(parent, "totals")
    ET.SubElement(
        totals,
        "lines",
        executable=str(executable),
        executed=str(executed),
        percent=f"{percentage(executed, executable):.2f}",
    )
    ET.SubElement(
        totals,
        "methods",
        count=str(methods),
        tested=str(tested),
        percent=f"{percentage(tested, methods):.2f}",
    )


class XmlRenderer:
    """Renders the per-file XML directory."""

    @property
    def format_id(self) -> str:
        return "xml"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact:
        documents: dict[str, bytes] = {}

        index = ET.Element("coverage", xmlns=NAMESPACE)
        build = ET.SubElement(index, "build", time=options.generated_at.isoformat())
        ET.SubElement(build, "generator", name="unitcov", version=__version__)
        project = ET.SubElement(
            index,
            "project",
            name=options.project_name,
            source=str(options.base_path) if options.base_path else "",
        )
        tests = ET.SubElement(project, "tests")
        for test_id in sorted(model.tests):
            ET.SubElement(tests, "test", name=test_id)

        all_methods = metrics.methods
        _totals(
            project,
            metrics.executable_lines,
            metrics.executed_lines,
            len(all_methods),
            sum(f.methods_covered for f in metrics.files.values()),
        )

        for path, file in model.files.items():
            file_metrics = metrics.files[path]
            display = options.display_path(path)
            href = document_name(display, ".xml")
            entry = ET.SubElement(project, "file", name=display, href=href)
            _totals(
                entry,
                file_metrics.executable_lines,
                file_metrics.executed_lines,
                len(file_metrics.methods),
                file_metrics.methods_covered,
            )
            documents[href] = self._file_document(file, file_metrics, display)

        documents["index.xml"] = _serialize(index)
        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=documents,
        )

    def _file_document(self, file: FileCoverage, metrics: FileMetrics, display: str) -> bytes:
        root = ET.Element("coverage", xmlns=NAMESPACE)
        file_elem = ET.SubElement(root, "file", name=display, path=file.path)
        _totals(
            file_elem,
            metrics.executable_lines,
            metrics.executed_lines,
            len(metrics.methods),
            metrics.methods_covered,
        )
        for method in metrics.methods:
            ET.SubElement(
                file_elem,
                "method",
                name=method.name,
                start=str(method.start_line),
                end=str(method.end_line),
                complexity=str(method.complexity),
                crap=f"{method.crap:.2f}",
                coverage=f"{method.percent:.2f}",
            )
        lines = ET.SubElement(file_elem, "coverage")
        for line in file.lines:
            line_elem = ET.SubElement(lines, "line", nr=str(line.number), count=str(line.count))
            for test_id in sorted(line.tests):
                ET.SubElement(line_elem, "covered", by=test_id)
        return _serialize(root)
