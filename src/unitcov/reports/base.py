"""Report renderer protocol and shared artifact types."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Protocol

from unitcov.coverage.metrics import Metrics
from unitcov.coverage.model import FinalizedModel


@dataclass(frozen=True, slots=True)
class RenderOptions:
    """Inputs shared by every renderer.

    ``destination`` is filled in per format by the dispatcher; None means the
    artifact is not written to disk (text goes to the console instead).
    """

    show_uncovered_files: bool = True
    show_colors: bool = False
    project_name: str = "unitcov"
    base_path: Path | None = None
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    destination: Path | None = None

    @property
    def timestamp(self) -> int:
        return int(self.generated_at.timestamp())

    def display_path(self, path: str) -> str:
        """Path relative to base_path when inside it, else the absolute path."""
        if self.base_path is not None:
            try:
                return PurePosixPath(path).relative_to(Path(self.base_path).as_posix()).as_posix()
            except ValueError:
                pass
        return path


def document_name(display_path: str, suffix: str) -> str:
    """Per-file document path inside a directory report.

    Files under the base path live in ``files/``, files outside it in
    ``external/``, so neither can shadow the report index or each other.
    """
    if PurePosixPath(display_path).is_absolute():
        return f"external/{display_path.lstrip('/')}{suffix}"
    return f"files/{display_path}{suffix}"


@dataclass(frozen=True, slots=True)
class ReportArtifact:
    """Output of one renderer.

    ``content`` is the file body for single-file formats, or a mapping of
    relative POSIX path → file body for directory formats.
    """

    format_id: str
    destination: Path | None
    content: bytes | Mapping[str, bytes]

    @property
    def is_directory(self) -> bool:
        return not isinstance(self.content, (bytes, bytearray))

    @property
    def text(self) -> str:
        if self.is_directory:
            raise TypeError(f"{self.format_id} artifact is a directory tree")
        return bytes(self.content).decode("utf-8")  # type: ignore[arg-type]

    def write(self) -> Path | None:
        """Write the artifact to its destination; returns the path written."""
        if self.destination is None:
            return None
        if self.is_directory:
            self.destination.mkdir(parents=True, exist_ok=True)
            for rel, body in self.content.items():  # type: ignore[union-attr]
                target = self.destination / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(body)
        else:
            self.destination.parent.mkdir(parents=True, exist_ok=True)
            self.destination.write_bytes(bytes(self.content))  # type: ignore[arg-type]
        return self.destination


class Renderer(Protocol):
    """Protocol for report renderers.

    Each renderer handles one output format. Rendering is pure: the model and
    metrics are read, never changed, and nothing is written to disk.
    """

    @property
    def format_id(self) -> str:
        """Format identifier (e.g., 'clover', 'html')."""
        ...

    def render(
        self, model: FinalizedModel, metrics: Metrics, options: RenderOptions
    ) -> ReportArtifact: ...


def read_source_lines(path: str) -> list[str] | None:
    """Source file lines, or None when the file is gone or unreadable."""
    try:
        with open(os.fspath(path), encoding="utf-8", errors="replace") as f:
            return f.read().splitlines()
    except OSError:
        return None
