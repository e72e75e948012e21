"""Options shared by the run and report commands."""

from collections.abc import Callable
from typing import Any, TypeVar

import click

from unitcov.config.models import FORMAT_ALIASES, CoverageConfig
from unitcov.core.errors import UnitCovError

F = TypeVar("F", bound=Callable[..., Any])

FORMAT_CHOICES = ("html", "xml", "clover", "snapshot", "text", "crap4j", *FORMAT_ALIASES)


def report_options(func: F) -> F:
    """Attach -f/--format and -o/--output."""
    func = click.option(
        "-o",
        "--output",
        type=click.Path(),
        default=None,
        help="Destination path. Only valid with a single format.",
    )(func)
    func = click.option(
        "-f",
        "--format",
        "formats",
        multiple=True,
        type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
        help="Report format (repeatable). Overrides the configured formats.",
    )(func)
    return func


def coverage_overrides(formats: tuple[str, ...], output: str | None) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if formats:
        overrides["format"] = list(formats)
    if output is not None:
        overrides["output"] = output
    return overrides


def apply_overrides(config: CoverageConfig, overrides: dict[str, Any]) -> CoverageConfig:
    """Re-validate config with command-line overrides applied."""
    if not overrides:
        return config
    data = config.model_dump()
    data.update(overrides)
    try:
        return CoverageConfig.model_validate(data)
    except UnitCovError as e:
        raise click.UsageError(e.message) from e
