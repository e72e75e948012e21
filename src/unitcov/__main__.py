from unitcov.cli.main import cli

cli()
