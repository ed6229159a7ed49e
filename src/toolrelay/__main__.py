"""Allow ``python -m toolrelay``."""

from toolrelay.cli.app import cli

cli()
