"""Shared helpers for CLI commands."""

from __future__ import annotations

import logging
import sys

import click

from sqlgate.adapters._base import ConnectionConfig
from sqlgate.connections import ConnectionRegistry, ConnectionStringError


def resolve_sql_stdin(sql: str | None, from_stdin: bool) -> str:
    """Resolve SQL from positional argument or stdin. Exactly one source required."""
    if sql and from_stdin:
        raise click.UsageError("Provide SQL as an argument or --from-stdin, not both.")
    if from_stdin:
        if sys.stdin.isatty():
            raise click.UsageError("--from-stdin requires piped input (stdin is a terminal).")
        text = sys.stdin.read().strip()
        if not text:
            raise click.UsageError("--from-stdin: stdin was empty.")
        return text
    if not sql:
        raise click.UsageError("Missing argument 'SQL'. Provide SQL or use --from-stdin.")
    return sql


def parse_db(value: str) -> ConnectionConfig:
    """Resolve a --db value: named connection first, then 'type:key=val' format."""
    try:
        return ConnectionRegistry().resolve(value)
    except ConnectionStringError as e:
        raise click.BadParameter(
            f"{e}\n  Add it: sqlgate connect add {value} <type> <param>=<val>",
            param_hint="'--db'",
        ) from e


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
