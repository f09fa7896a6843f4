"""The `validate` command: classify SQL without touching a database."""

from __future__ import annotations

import click

from sqlgate.cli._output import format_result
from sqlgate.cli._shared import resolve_sql_stdin
from sqlgate.policy import run_policy


@click.command()
@click.argument("sql", required=False)
@click.option("--from-stdin", is_flag=True, help="Read SQL from stdin.")
@click.option("--dialect", default=None, help="SQL dialect for advisory checks (sqlite, postgres, ...).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format.",
)
def validate(sql: str | None, from_stdin: bool, dialect: str | None, output_format: str) -> None:
    """Show how SQL would be gated: read, mutating (needs confirmation) or forbidden.

    Exits 1 when the SQL is forbidden.
    """
    sql = resolve_sql_stdin(sql, from_stdin)
    result = run_policy(sql, dialect=dialect)
    click.echo(format_result(result, output_format=output_format))
    if result.blocked:
        raise SystemExit(1)
