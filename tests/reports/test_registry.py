"""Tests for renderer dispatch and failure isolation."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

from unitcov.core.errors import RenderFailure, ReportingError
from unitcov.reports import RENDERER_BY_FORMAT, RENDERER_REGISTRY, render_reports
from unitcov.reports.base import ReportArtifact


class _BrokenRenderer:
    format_id = "clover"

    def render(self, model, metrics, options) -> ReportArtifact:  # noqa: ARG002
        raise OSError("disk full")


class TestRegistry:
    def test_every_format_registered(self) -> None:
        assert set(RENDERER_BY_FORMAT) == {"text", "clover", "xml", "html", "crap4j", "snapshot"}
        assert len(RENDERER_REGISTRY) == len(RENDERER_BY_FORMAT)


class TestRenderReports:
    """Dispatch to every configured format."""

    def test_writes_each_destination(self, sample, tmp_path: Path) -> None:
        outputs = {
            "clover": tmp_path / "out" / "clover.xml",
            "snapshot": tmp_path / "out" / "coverage.json",
            "html": tmp_path / "out" / "html",
        }

        artifacts = render_reports(sample.model, sample.metrics, outputs, sample.options())

        assert [a.format_id for a in artifacts] == ["clover", "snapshot", "html"]
        assert outputs["clover"].is_file()
        assert json.loads(outputs["snapshot"].read_text())["tests"] == ["test_add", "test_other"]
        assert (outputs["html"] / "index.html").is_file()

    def test_text_without_destination_goes_to_stream(self, sample) -> None:
        stream = io.StringIO()

        artifacts = render_reports(
            sample.model, sample.metrics, {"text": None}, sample.options(), stream=stream
        )

        assert stream.getvalue().startswith("Code Coverage Report:")
        assert artifacts[0].destination is None

    def test_failure_does_not_stop_other_formats(self, sample, tmp_path: Path) -> None:
        renderers = {**RENDERER_BY_FORMAT, "clover": _BrokenRenderer()}
        outputs = {
            "clover": tmp_path / "clover.xml",
            "snapshot": tmp_path / "coverage.json",
        }

        with pytest.raises(ReportingError) as exc_info:
            render_reports(
                sample.model, sample.metrics, outputs, sample.options(), renderers=renderers
            )

        error = exc_info.value
        assert [f.format_id for f in error.failures] == ["clover"]
        assert [a.format_id for a in error.artifacts] == ["snapshot"]
        assert (tmp_path / "coverage.json").is_file()
        assert not (tmp_path / "clover.xml").exists()

    def test_fail_fast_raises_first_failure(self, sample, tmp_path: Path) -> None:
        renderers = {**RENDERER_BY_FORMAT, "clover": _BrokenRenderer()}
        outputs = {"clover": tmp_path / "clover.xml", "snapshot": tmp_path / "coverage.json"}

        with pytest.raises(RenderFailure) as exc_info:
            render_reports(
                sample.model,
                sample.metrics,
                outputs,
                sample.options(),
                fail_fast=True,
                renderers=renderers,
            )

        assert exc_info.value.format_id == "clover"
        assert not (tmp_path / "coverage.json").exists()

    def test_unknown_format_is_a_render_failure(self, sample, tmp_path: Path) -> None:
        with pytest.raises(ReportingError) as exc_info:
            render_reports(sample.model, sample.metrics, {"pdf": tmp_path / "x.pdf"})

        assert exc_info.value.failures[0].format_id == "pdf"

    def test_rendering_does_not_change_model(self, sample, tmp_path: Path) -> None:
        before = sample.model.files[sample.app]

        render_reports(
            sample.model,
            sample.metrics,
            {"xml": tmp_path / "xml", "crap4j": tmp_path / "crap4j.xml"},
            sample.options(),
        )

        assert sample.model.files[sample.app] == before
