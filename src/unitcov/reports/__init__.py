"""Report renderer registry and dispatch.

This module provides:
- RENDERER_REGISTRY: All available renderers
- RENDERER_BY_FORMAT: Format tag → renderer
- render_reports: Run every configured renderer, isolating failures

Supported formats:
    - text: tabular per-file summary (console or file)
    - clover: Clover XML (single file)
    - xml: per-file XML with covering tests (directory)
    - html: navigable HTML report (directory)
    - crap4j: CRAP risk report (single file)
    - snapshot: JSON serialization of the finalized model (single file)
"""

from collections.abc import Mapping, Sequence
from dataclasses import replace
from pathlib import Path
from typing import TextIO

import structlog

from unitcov.coverage.metrics import Metrics
from unitcov.coverage.model import FinalizedModel
from unitcov.core.errors import RenderFailure, ReportingError

from .base import Renderer, RenderOptions, ReportArtifact
from .clover import CloverRenderer
from .crap4j import Crap4jRenderer
from .html import HtmlRenderer
from .snapshot import SnapshotRenderer, load_snapshot
from .text import TextRenderer
from .xml_report import XmlRenderer

log = structlog.get_logger(__name__)

RENDERER_REGISTRY: Sequence[Renderer] = (
    TextRenderer(),
    CloverRenderer(),
    XmlRenderer(),
    HtmlRenderer(),
    Crap4jRenderer(),
    SnapshotRenderer(),
)

RENDERER_BY_FORMAT: dict[str, Renderer] = {r.format_id: r for r in RENDERER_REGISTRY}

__all__ = [
    "RENDERER_REGISTRY",
    "RENDERER_BY_FORMAT",
    "Renderer",
    "RenderOptions",
    "ReportArtifact",
    "CloverRenderer",
    "Crap4jRenderer",
    "HtmlRenderer",
    "SnapshotRenderer",
    "TextRenderer",
    "XmlRenderer",
    "load_snapshot",
    "render_reports",
]


def render_reports(
    model: FinalizedModel,
    metrics: Metrics,
    outputs: Mapping[str, Path | None],
    options: RenderOptions | None = None,
    *,
    fail_fast: bool = False,
    stream: TextIO | None = None,
    renderers: Mapping[str, Renderer] | None = None,
) -> list[ReportArtifact]:
    """Render and write every configured format.

    Args:
        model: Finalized coverage model.
        metrics: Metrics computed from the model.
        outputs: Format tag → destination; None sends the output to ``stream``.
        options: Shared render options; the destination is set per format.
        fail_fast: Raise the first RenderFailure instead of collecting them.
        stream: Console stream for artifacts without a destination.
        renderers: Override the renderer registry (mainly for tests).

    Returns:
        Artifacts that were produced, in configuration order.

    Raises:
        ReportingError: After all renderers ran, if any of them failed.
        RenderFailure: With fail_fast, on the first failure.
    """
    options = options or RenderOptions()
    registry = renderers if renderers is not None else RENDERER_BY_FORMAT
    artifacts: list[ReportArtifact] = []
    failures: list[RenderFailure] = []

    for format_id, destination in outputs.items():
        log.info("report_generating", format=format_id, destination=str(destination or "-"))
        try:
            renderer = registry.get(format_id)
            if renderer is None:
                raise KeyError(f"no renderer registered for {format_id!r}")
            artifact = renderer.render(model, metrics, replace(options, destination=destination))
            if artifact.destination is None:
                if stream is not None and not artifact.is_directory:
                    stream.write(artifact.text)
            else:
                artifact.write()
        except Exception as e:
            failure = RenderFailure.from_exception(format_id, e)
            if fail_fast:
                raise failure from e
            log.warning("report_failed", format=format_id, error=str(e), exc_info=True)
            failures.append(failure)
            continue
        artifacts.append(artifact)

    if failures:
        raise ReportingError.from_failures(failures, artifacts)
    return artifacts
