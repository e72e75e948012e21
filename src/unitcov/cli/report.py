"""unitcov report command - merge snapshots and re-render them."""

import sys
from pathlib import Path

import click

from unitcov.cli.options import apply_overrides, coverage_overrides, report_options
from unitcov.config.loader import load_config
from unitcov.coverage.filter import Filter
from unitcov.coverage.metrics import Thresholds, compute_metrics
from unitcov.coverage.model import merge_finalized
from unitcov.core.errors import ReportingError, UnitCovError
from unitcov.reports import RenderOptions, load_snapshot, render_reports


@click.command()
@click.argument(
    "snapshots",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--config",
    "config_file",
    type=click.Path(path_type=Path),
    default=None,
    help="Config file (default: unitcov.yaml in the current directory)",
)
@report_options
def report_command(
    snapshots: tuple[Path, ...],
    config_file: Path | None,
    formats: tuple[str, ...],
    output: str | None,
) -> None:
    """Merge SNAPSHOTS (from separate runs or workers) and write reports."""
    root = Path.cwd().resolve()
    try:
        config = load_config(root, config_file=config_file)
        coverage = apply_overrides(config.coverage, coverage_overrides(formats, output))
        model = merge_finalized(
            (load_snapshot(path) for path in snapshots),
            coverage_filter=Filter(root, exclude=coverage.exclude),
        )
        metrics = compute_metrics(
            model,
            Thresholds(
                lower=coverage.lower_upper_bound,
                upper=coverage.high_lower_bound,
                crap=coverage.crap_threshold,
            ),
        )
        outputs = {}
        for fmt in coverage.format:
            path = coverage.output_for(fmt)
            outputs[fmt] = root / path if path is not None and not path.is_absolute() else path
        artifacts = render_reports(
            model,
            metrics,
            outputs,
            RenderOptions(
                show_uncovered_files=coverage.show_uncovered_files,
                project_name=coverage.project_name,
                base_path=root,
            ),
            fail_fast=coverage.fail_fast,
            stream=sys.stdout,
        )
    except ReportingError as e:
        for failure in e.failures:
            click.echo(f"Report {failure.format_id} failed: {failure.message}", err=True)
        raise click.ClickException(str(e)) from e
    except UnitCovError as e:
        raise click.ClickException(str(e)) from e

    for artifact in artifacts:
        if artifact.destination is not None:
            click.echo(f"Wrote {artifact.format_id} report to {artifact.destination}")
