"""CLI entry point for `sqlgate`."""

from __future__ import annotations

import click

from sqlgate.cli._shared import configure_logging
from sqlgate.cli.connect import connect
from sqlgate.cli.schema import schema
from sqlgate.cli.serve import serve
from sqlgate.cli.shell import shell
from sqlgate.cli.validate import validate


@click.group()
@click.version_option(package_name="sqlgate")
@click.option("-v", "--verbose", is_flag=True, help="Debug-level logging on stderr.")
def main(verbose: bool) -> None:
    """sqlgate: a confirmation gate between AI agents and your database."""
    configure_logging(verbose)


main.add_command(connect)
main.add_command(schema)
main.add_command(validate)
main.add_command(serve)
main.add_command(shell)
