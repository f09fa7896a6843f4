"""DuckDB adapter: local/in-memory analytics database."""

from __future__ import annotations

import time

import duckdb as _duckdb

from sqlgate.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseType,
    ExecutionResult,
    SchemaMetadata,
    TableInfo,
)

_READ_PREFIXES = ("SELECT", "WITH", "FROM", "VALUES")


class DuckDBAdapter:
    """DuckDB adapter: in-process, no server needed."""

    def __init__(self) -> None:
        self._conn: _duckdb.DuckDBPyConnection | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        path = config.params.get("path", ":memory:")
        try:
            self._conn = _duckdb.connect(path, config={"custom_user_agent": "sqlgate/0.1.0"})
        except Exception as e:
            raise AdapterError(f"DuckDB connection failed: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> _duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise AdapterError("Not connected. Call connect() first.")
        return self._conn

    async def execute(self, sql: str) -> ExecutionResult:
        conn = self._ensure_conn()

        t0 = time.monotonic()
        try:
            result = conn.execute(sql)
            columns = [desc[0] for desc in result.description] if result.description else []
            rows_raw = result.fetchall() if result.description else []
        except Exception as e:
            raise AdapterError(f"DuckDB execution failed: {e}") from e
        duration_ms = (time.monotonic() - t0) * 1000

        # DML reports its effect as a single "Count" row instead of a rowcount.
        rows_affected = 0
        if (
            columns == ["Count"]
            and len(rows_raw) == 1
            and not sql.lstrip().upper().startswith(_READ_PREFIXES)
        ):
            rows_affected = int(rows_raw[0][0])
            columns, rows_raw = [], []

        rows = [dict(zip(columns, row, strict=True)) for row in rows_raw]

        return ExecutionResult(
            columns=columns,
            rows=rows,
            row_count=len(rows),
            rows_affected=rows_affected,
            duration_ms=duration_ms,
        )

    async def introspect(self) -> SchemaMetadata:
        conn = self._ensure_conn()
        tables: list[TableInfo] = []

        try:
            table_rows = conn.execute(
                "SELECT table_schema, table_name "
                "FROM information_schema.tables "
                "WHERE table_schema NOT IN ('pg_catalog', 'information_schema') "
                "ORDER BY table_schema, table_name"
            ).fetchall()

            for schema, table_name in table_rows:
                col_rows = conn.execute(
                    "SELECT column_name, data_type, is_nullable "
                    "FROM information_schema.columns "
                    "WHERE table_schema = ? AND table_name = ? "
                    "ORDER BY ordinal_position",
                    [schema, table_name],
                ).fetchall()
                columns = [
                    ColumnInfo(
                        name=col_name,
                        data_type=data_type,
                        is_nullable=(nullable == "YES"),
                    )
                    for col_name, data_type, nullable in col_rows
                ]
                tables.append(TableInfo(schema=schema, name=table_name, columns=columns))
        except Exception as e:
            raise AdapterError(f"DuckDB introspection failed: {e}") from e

        return SchemaMetadata(tables=tables)

    def db_type(self) -> DatabaseType:
        return DatabaseType.DUCKDB

    def dialect(self) -> str:
        return "duckdb"
