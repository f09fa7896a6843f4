"""The `serve` command: run the HTTP gateway."""

from __future__ import annotations

import click
import uvicorn

from sqlgate.cli._shared import parse_db
from sqlgate.config import load_config
from sqlgate.querylog import cleanup_old_logs
from sqlgate.server import create_app


@click.command()
@click.option("--db", required=True, envvar="SQLGATE_DB", help="Connection name or type:key=val.")
@click.option("--host", default=None, help="Bind address. [default: SQLGATE_HOST or localhost]")
@click.option("--port", type=int, default=None, help="Bind port. [default: SQLGATE_PORT or 4113]")
def serve(db: str, host: str | None, port: int | None) -> None:
    """Serve /sql/run and /sql/execute over HTTP.

    Confirmation tokens live in this process; restarting it invalidates
    every outstanding token.
    """
    connection = parse_db(db)
    config = load_config()
    cleanup_old_logs()
    app = create_app(connection, config)
    uvicorn.run(app, host=host or config.host, port=port or config.port)
