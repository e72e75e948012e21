"""unitcov CLI - unitcov command."""

import click

from unitcov import __version__
from unitcov.cli.report import report_command
from unitcov.cli.run import run_command
from unitcov.core.logging import configure_logging


@click.group()
@click.version_option(version=__version__, prog_name="unitcov")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """unitcov - per-test line coverage with merged reports."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(run_command, name="run")
cli.add_command(report_command, name="report")


if __name__ == "__main__":
    cli()
