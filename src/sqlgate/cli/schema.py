"""The `schema` command: print the tables and columns an agent can query."""

from __future__ import annotations

import asyncio
import json

import click

from sqlgate.adapters._base import AdapterError, ConnectionConfig, SchemaMetadata, schema_text
from sqlgate.adapters._registry import get_adapter
from sqlgate.cli._shared import parse_db


async def _introspect(config: ConnectionConfig) -> SchemaMetadata:
    adapter = get_adapter(config.db_type)()
    await adapter.connect(config)
    try:
        return await adapter.introspect()
    finally:
        await adapter.close()


def _metadata_to_dict(metadata: SchemaMetadata) -> dict[str, object]:
    return {
        "tables": [
            {
                "schema": t.schema,
                "table": t.name,
                "columns": [
                    {
                        "name": c.name,
                        "type": c.data_type,
                        "nullable": c.is_nullable,
                        "primary_key": c.is_primary_key,
                    }
                    for c in t.columns
                ],
            }
            for t in metadata.tables
        ]
    }


@click.command("schema")
@click.option("--db", required=True, envvar="SQLGATE_DB", help="Connection name or type:key=val.")
@click.option("--format", "output_format", type=click.Choice(["json", "text"]), default="text")
def schema(db: str, output_format: str) -> None:
    """Show the database schema, in the text form served to agents."""
    config = parse_db(db)

    try:
        metadata = asyncio.run(_introspect(config))
    except AdapterError as e:
        if output_format == "json":
            click.echo(json.dumps({"error": str(e)}, indent=2))
        else:
            click.echo(f"error: {e}", err=True)
        raise SystemExit(1) from None

    if output_format == "json":
        click.echo(json.dumps(_metadata_to_dict(metadata), indent=2))
    else:
        click.echo(schema_text(metadata))
