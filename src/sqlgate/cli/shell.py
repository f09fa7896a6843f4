"""The `shell` command: an interactive gate session over one connection.

Reads run immediately. A write prints a confirmation token; typing
``confirm <token>`` executes it. Tokens are shared by the whole session.
"""

from __future__ import annotations

import asyncio

import click

from sqlgate.adapters._base import AdapterError, ConnectionConfig, schema_text
from sqlgate.adapters._registry import get_adapter
from sqlgate.cli._output import format_execute_text, format_propose_text
from sqlgate.cli._shared import parse_db
from sqlgate.config import Config, load_config
from sqlgate.gateway import Gateway
from sqlgate.querylog import audit_confirm, audit_propose, cleanup_old_logs
from sqlgate.tokens import TokenStore
from sqlgate.tools import format_execute, format_propose

_EXIT_COMMANDS = {"exit", "quit", r"\q"}


async def _handle_line(
    line: str, gateway: Gateway, connection: ConnectionConfig, output_format: str
) -> None:
    word, _, rest = line.partition(" ")
    lowered = word.lower()

    if lowered == "confirm":
        result = await gateway.confirm_and_execute(rest.strip())
        audit_confirm(result, db=connection.name)
        text = format_execute(result) if output_format == "json" else format_execute_text(result)
        click.echo(text, err=not result.success and output_format == "text")
        return

    if lowered == "schema" and not rest.strip():
        try:
            click.echo(schema_text(await gateway.database.introspect()))
        except AdapterError as e:
            click.echo(f"error: {e}", err=True)
        return

    result = await gateway.propose(line)
    audit_propose(result, db=connection.name)
    click.echo(format_propose(result) if output_format == "json" else format_propose_text(result))


async def _session(connection: ConnectionConfig, config: Config, output_format: str) -> None:
    adapter = get_adapter(connection.db_type)()
    await adapter.connect(connection)
    store = TokenStore(
        expiration_ms=config.token.expiration_ms,
        cleanup_interval_ms=config.token.cleanup_interval_ms,
    )
    store.start()
    gateway = Gateway(
        adapter,
        store,
        dialect=adapter.dialect(),
        execute_endpoint=config.execute_endpoint,
    )
    try:
        while True:
            try:
                line = await asyncio.to_thread(
                    click.prompt, "sqlgate", prompt_suffix="> ", default="", show_default=False
                )
            except (EOFError, click.Abort):
                break
            line = line.strip()
            if not line:
                continue
            if line.lower() in _EXIT_COMMANDS:
                break
            await _handle_line(line, gateway, connection, output_format)
    finally:
        await store.close()
        await adapter.close()


@click.command()
@click.option("--db", required=True, envvar="SQLGATE_DB", help="Connection name or type:key=val.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format. json prints exactly what an agent tool call returns.",
)
def shell(db: str, output_format: str) -> None:
    """Interactive session: reads run, writes wait for `confirm <token>`."""
    connection = parse_db(db)
    config = load_config()
    cleanup_old_logs()
    try:
        asyncio.run(_session(connection, config, output_format))
    except AdapterError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1) from None
