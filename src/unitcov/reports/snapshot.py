"""Serialized coverage snapshot (JSON) for later merging or re-rendering.

Schema:
{
    "format": "unitcov-snapshot",
    "version": 1,
    "generated_at": str,          # ISO 8601
    "tests": [str, ...],
    "files": {
        "<abs path>": {
            "lines": {"<line>": {"count": int, "tests": [str, ...]}, ...},
            "executable_known": bool,  # false: lines are only those that ran
            "functions": [
                {"name": str, "start_line": int, "end_line": int, "complexity": int},
                ...
            ]
        },
        ...
    }
}
"""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any

from unitcov.coverage.analysis import FunctionInfo
from unitcov.coverage.metrics import Metrics
from unitcov.coverage.model import FileCoverage, FinalizedModel, LineCoverage
from unitcov.core.errors import SnapshotError
from unitcov.reports.base import RenderOptions, ReportArtifact

SNAPSHOT_FORMAT = "unitcov-snapshot"
SNAPSHOT_VERSION = 1


def snapshot_to_dict(model: FinalizedModel, options: RenderOptions | None = None) -> dict[str, Any]:
    files: dict[str, Any] = {}
    for path, file in model.files.items():
        files[path] = {
            "lines": {
                str(line.number): {"count": line.count, "tests": sorted(line.tests)}
                for line in file.lines
            },
            "functions": [
                {
                    "name": func.name,
                    "start_line": func.start_line,
                    "end_line": func.end_line,
                    "complexity": func.complexity,
                }
                for func in file.functions
            ],
            "executable_known": file.executable_known,
        }
    data: dict[str, Any] = {
        "format": SNAPSHOT_FORMAT,
        "version": SNAPSHOT_VERSION,
        "tests": sorted(model.tests),
        "files": files,
    }
    if options is not None:
        data["generated_at"] = options.generated_at.isoformat()
    return data


def snapshot_from_dict(data: dict[str, Any], source: str = "<snapshot>") -> FinalizedModel:
    if not isinstance(data, dict) or data.get("format") != SNAPSHOT_FORMAT:
        raise SnapshotError.invalid(source, "not a unitcov snapshot")
    if data.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError.invalid(source, f"unsupported version {data.get('version')!r}")

    files: dict[str, FileCoverage] = {}
    try:
        for path, entry in sorted(data.get("files", {}).items()):
            lines = tuple(
                LineCoverage(
                    number=int(number),
                    count=int(line["count"]),
                    tests=frozenset(line.get("tests", ())),
                )
                for number, line in sorted(entry.get("lines", {}).items(), key=lambda i: int(i[0]))
            )
            functions = tuple(
                FunctionInfo(
                    name=func["name"],
                    start_line=int(func["start_line"]),
                    end_line=int(func["end_line"]),
                    complexity=int(func["complexity"]),
                )
                for func in entry.get("functions", ())
            )
            files[path] = FileCoverage(
                path=path,
                lines=lines,
                functions=functions,
                executable_known=bool(entry.get("executable_known", True)),
            )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise SnapshotError.invalid(source, f"malformed file entry: {e}") from e

    return FinalizedModel(
        files=MappingProxyType(files),
        tests=frozenset(data.get("tests", ())),
    )


def load_snapshot(path: Path) -> FinalizedModel:
    """Restore a finalized model from a snapshot file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SnapshotError.invalid(str(path), str(e)) from e
    except json.JSONDecodeError as e:
        raise SnapshotError.invalid(str(path), f"invalid JSON: {e}") from e
    return snapshot_from_dict(data, source=str(path))


class SnapshotRenderer:
    """Renders the finalized model as a JSON snapshot."""

    @property
    def format_id(self) -> str:
        return "snapshot"

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions  # noqa: ARG002
    ) -> ReportArtifact:
        body = json.dumps(snapshot_to_dict(model, options), indent=2, sort_keys=True)
        return ReportArtifact(
            format_id=self.format_id,
            destination=options.destination,
            content=(body + "\n").encode("utf-8"),
        )
