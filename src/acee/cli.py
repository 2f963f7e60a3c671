"""Command line entry point for acee."""

import logging

import click

from acee import __version__
from acee.commands.audit import audit
from acee.commands.restore import restore
from acee.commands.run import run
from acee.commands.status import status

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@click.group()
@click.version_option(__version__, prog_name="acee")
@click.option("-v", "--verbose", count=True, help="-v for progress, -vv for debug output.")
def main(verbose: int) -> None:
    """acee - evolve JavaScript functions with an LLM, safely."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


main.add_command(run)
main.add_command(audit)
main.add_command(status)
main.add_command(restore)
