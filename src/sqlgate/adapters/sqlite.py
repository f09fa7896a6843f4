"""SQLite adapter: the default backend, file or in-memory."""

from __future__ import annotations

import sqlite3
import time

from sqlgate.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseType,
    ExecutionResult,
    SchemaMetadata,
    TableInfo,
)
from sqlgate.policy.normalize import normalize_sql

_STATEMENT_PADDING = " \t\r\n;"


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _is_blank(text: str) -> bool:
    return not normalize_sql(text).strip(_STATEMENT_PADDING)


def split_script(sql: str) -> list[str]:
    """Split SQL text into the statements SQLite sees.

    A ';' only ends a statement where ``sqlite3.complete_statement`` agrees,
    so semicolons inside literals, identifiers and trigger bodies stay put.
    Empty and comment-only pieces are dropped; an unterminated tail is kept
    as is.
    """
    statements: list[str] = []
    buf = ""
    parts = sql.split(";")
    for i, part in enumerate(parts):
        buf += part
        if i < len(parts) - 1:
            buf += ";"
        if sqlite3.complete_statement(buf):
            if not _is_blank(buf):
                statements.append(buf)
            buf = ""
    if not _is_blank(buf):
        statements.append(buf)
    return statements


class SQLiteAdapter:
    """SQLite adapter using the stdlib driver in autocommit mode."""

    def __init__(self) -> None:
        self._conn: sqlite3.Connection | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        path = config.params.get("path", ":memory:")
        try:
            # Only ever used from the event loop thread, which may not be the
            # thread that opened it (e.g. test clients).
            self._conn = sqlite3.connect(path, isolation_level=None, check_same_thread=False)
        except sqlite3.Error as e:
            raise AdapterError(f"SQLite connection failed: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise AdapterError("Not connected. Call connect() first.")
        return self._conn

    async def execute(self, sql: str) -> ExecutionResult:
        """Execute SQL text, which may hold several statements.

        Statements run one at a time, in order. The rows of the last statement
        that returns a result set win, as with the postgres adapter.
        """
        conn = self._ensure_conn()
        changes_before = conn.total_changes

        t0 = time.monotonic()
        try:
            columns: list[str] = []
            rows_raw: list[tuple] = []
            for statement in split_script(sql):
                cur = conn.execute(statement)
                if cur.description:
                    columns = [desc[0] for desc in cur.description]
                    rows_raw = cur.fetchall()
            rows_affected = conn.total_changes - changes_before
            last_insert_rowid = None
            if rows_affected > 0:
                last_insert_rowid = conn.execute("SELECT last_insert_rowid()").fetchone()[0]
        except (sqlite3.Error, sqlite3.Warning) as e:
            raise AdapterError(f"SQLite execution failed: {e}") from e
        duration_ms = (time.monotonic() - t0) * 1000

        rows = [dict(zip(columns, row, strict=True)) for row in rows_raw]

        return ExecutionResult(
            columns=columns,
            rows=rows,
            row_count=len(rows),
            rows_affected=rows_affected,
            last_insert_rowid=last_insert_rowid,
            duration_ms=duration_ms,
        )

    async def introspect(self) -> SchemaMetadata:
        conn = self._ensure_conn()
        tables: list[TableInfo] = []

        try:
            table_rows = conn.execute(
                "SELECT name FROM sqlite_master "
                "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' "
                "ORDER BY name"
            ).fetchall()

            for (table_name,) in table_rows:
                col_rows = conn.execute(
                    f"PRAGMA table_info({_quote_ident(table_name)})"
                ).fetchall()
                columns = [
                    ColumnInfo(
                        name=col_name,
                        data_type=data_type,
                        is_nullable=not notnull,
                        is_primary_key=bool(pk),
                    )
                    for _cid, col_name, data_type, notnull, _default, pk in col_rows
                ]
                tables.append(TableInfo(schema=None, name=table_name, columns=columns))
        except sqlite3.Error as e:
            raise AdapterError(f"SQLite introspection failed: {e}") from e

        return SchemaMetadata(tables=tables)

    def db_type(self) -> DatabaseType:
        return DatabaseType.SQLITE

    def dialect(self) -> str:
        return "sqlite"
