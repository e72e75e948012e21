"""crap4j risk report.

One <method> per analyzed function plus per-file risk, ordered as found.
Values are rounded to two decimals, as crap4j does.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import PurePosixPath

from unitcov.coverage.metrics import Metrics
from unitcov.coverage.model import FinalizedModel
from unitcov.reports.base import RenderOptions, ReportArtifact


def _package(display_path: str) -> str:
    """Dotted module path, e.g. 'src/app/models.py' -> 'src.app.models'."""
    return ".".join(PurePosixPath(display_path.lstrip("/")).with_suffix("").parts)


def _text(parent: ET.Element, tag: str, value: object) -> None:
    ET.SubElement(parent, tag).text = str(value)


class Crap4jRenderer:
    """Renders the CRAP risk report."""

    @property
    def format_id(self) -> str:
        return "crap4j"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact:
        threshold = metrics.thresholds.crap
        root = ET.Element("crap_result")
        _text(root, "project", options.project_name)
        _text(root, "timestamp", options.generated_at.strftime("%Y-%m-%d %H:%M:%S"))

        stats = ET.SubElement(root, "stats")
        methods_elem = ET.SubElement(root, "methods")
        files_elem = ET.SubElement(root, "files")

        method_count = 0
        crap_method_count = 0
        total_crap = 0.0
        total_crap_load = 0.0

        for path in model.files:
            file_metrics = metrics.files[path]
            display = options.display_path(path)
            package = _package(display)

            for method in file_metrics.methods:
                method_count += 1
                total_crap += method.crap
                total_crap_load += method.crap_load
                if method.crap >= threshold:
                    crap_method_count += 1

                class_name, _, method_name = method.name.rpartition(".")
                elem = ET.SubElement(methods_elem, "method")
                _text(elem, "package", package)
                _text(elem, "className", class_name)
                _text(elem, "methodName", method_name)
                _text(elem, "methodSignature", method_name)
                _text(elem, "fullMethod", method.name)
                _text(elem, "crap", round(method.crap, 2))
                _text(elem, "complexity", method.complexity)
                _text(elem, "coverage", round(method.percent, 2))
                _text(elem, "crapLoad", round(method.crap_load, 2))

            file_elem = ET.SubElement(files_elem, "file")
            _text(file_elem, "path", display)
            _text(file_elem, "crap", round(file_metrics.crap, 2))
            _text(file_elem, "complexity", file_metrics.complexity)
            _text(file_elem, "coverage", round(file_metrics.percent, 2))

        crap_percent = crap_method_count / method_count * 100 if method_count else 0.0
        _text(stats, "name", "Method Crap Stats")
        _text(stats, "methodCount", method_count)
        _text(stats, "crapMethodCount", crap_method_count)
        _text(stats, "crapLoad", round(total_crap_load, 2))
        _text(stats, "totalCrap", round(total_crap, 2))
        _text(stats, "crapMethodPercent", round(crap_percent, 2))

        ET.indent(root)
        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=ET.tostring(root, encoding="utf-8", xml_declaration=True) + b"\n",
        )
