"""unitcov run command - run scripts as units and report their coverage."""

import runpy
import sys
from pathlib import Path

import click
import structlog

from unitcov.cli.options import apply_overrides, coverage_overrides, report_options
from unitcov.config.loader import load_config
from unitcov.core.errors import DriverUnavailableError, ReportingError, UnitCovError
from unitcov.core.logging import configure_logging
from unitcov.session import CoverageSession

log = structlog.get_logger(__name__)


def run_script(script: Path) -> None:
    """Execute a script as __main__ the way ``python script.py`` would.

    The script gets its own argv and its directory first on sys.path.
    SystemExit(0) is success.
    """
    saved_argv, saved_path = sys.argv, list(sys.path)
    sys.argv = [str(script)]
    sys.path.insert(0, str(script.parent))
    try:
        runpy.run_path(str(script), run_name="__main__")
    except SystemExit as e:
        if e.code not in (None, 0):
            raise
    finally:
        sys.argv = saved_argv
        sys.path[:] = saved_path


@click.command()
@click.argument(
    "scripts",
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
@click.option("--no-coverage", is_flag=True, help="Run the scripts without recording coverage")
@report_options
@click.pass_context
def run_command(
    ctx: click.Context,
    scripts: tuple[Path, ...],
    config_file: Path | None,
    no_coverage: bool,
    formats: tuple[str, ...],
    output: str | None,
) -> None:
    """Run SCRIPTS, each as one unit, then write coverage reports.

    Each script's path is its test id. Without include rules, only files
    under the current directory are accounted.
    """
    root = Path.cwd().resolve()
    try:
        config = load_config(root, config_file=config_file)
    except UnitCovError as e:
        raise click.ClickException(str(e)) from e

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    if not verbose:
        configure_logging(config=config.logging)

    coverage = apply_overrides(config.coverage, coverage_overrides(formats, output))
    session = CoverageSession(coverage, skip=no_coverage, root=root)
    if not coverage.include:
        session.filter.add_include_path("*")

    failed: list[str] = []
    try:
        session.begin()
    except DriverUnavailableError as e:
        raise click.ClickException(str(e)) from e

    try:
        for script in scripts:
            test_id = script.as_posix()
            try:
                session.record_unit(test_id, lambda s=script: run_script(s.resolve()))
            except Exception as e:  # noqa: BLE001
                log.warning("unit_failed", test_id=test_id, error=str(e))
                click.echo(f"FAILED {test_id}: {type(e).__name__}: {e}", err=True)
                failed.append(test_id)
            except SystemExit as e:
                click.echo(f"FAILED {test_id}: exit status {e.code}", err=True)
                failed.append(test_id)

        session.finalize()
        try:
            artifacts = session.report()
        except ReportingError as e:
            for failure in e.failures:
                click.echo(f"Report {failure.format_id} failed: {failure.message}", err=True)
            raise click.ClickException(str(e)) from e
        except UnitCovError as e:
            raise click.ClickException(str(e)) from e
    finally:
        session.close()

    for artifact in artifacts:
        if artifact.destination is not None:
            click.echo(f"Wrote {artifact.format_id} report to {artifact.destination}")

    if failed:
        ctx.exit(1)
