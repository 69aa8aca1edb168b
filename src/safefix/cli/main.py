"""Click CLI entry point for SafeFix."""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from safefix._version import __version__
from safefix.core.output import error_console


@click.group()
@click.version_option(version=__version__, prog_name="safefix")
@click.option("--verbose", "-v", is_flag=True, help="Log each pipeline stage")
def cli(verbose: bool):
    """SafeFix - apply generated code fixes safely.

    Every fix is checked, backed up, applied and validated as one unit;
    anything that goes wrong is rolled back.
    """
    if verbose:
        logger = logging.getLogger("safefix")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(RichHandler(console=error_console, show_path=False))


# Import and register subcommands
from safefix.cli.apply_cmd import apply  # noqa: E402
from safefix.cli.risk_cmd import risk  # noqa: E402
from safefix.cli.cleanup_cmd import cleanup  # noqa: E402
from safefix.cli.recover_cmd import recover  # noqa: E402

cli.add_command(apply)
cli.add_command(risk)
cli.add_command(cleanup)
cli.add_command(recover)


if __name__ == "__main__":
    cli()
