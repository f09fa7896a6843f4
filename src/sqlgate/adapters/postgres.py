"""PostgreSQL adapter: async psycopg, autocommit."""

from __future__ import annotations

import time

import psycopg

from sqlgate.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseType,
    ExecutionResult,
    SchemaMetadata,
    TableInfo,
)


class PostgresAdapter:
    """PostgreSQL adapter using psycopg (async)."""

    def __init__(self) -> None:
        self._conn: psycopg.AsyncConnection | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        dsn = config.params.get("dsn")
        if not dsn:
            raise AdapterError("PostgreSQL requires 'dsn' in connection params")
        try:
            self._conn = await psycopg.AsyncConnection.connect(
                dsn, autocommit=True, application_name="sqlgate"
            )
        except Exception as e:
            raise AdapterError(f"PostgreSQL connection failed: {e}") from e

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> psycopg.AsyncConnection:
        if self._conn is None:
            raise AdapterError("Not connected. Call connect() first.")
        return self._conn

    async def execute(self, sql: str) -> ExecutionResult:
        """Execute SQL text; with several statements the last result wins."""
        conn = self._ensure_conn()

        t0 = time.monotonic()
        try:
            async with conn.cursor() as cur:
                await cur.execute(sql)
                while cur.nextset():
                    pass
                columns = [desc.name for desc in cur.description] if cur.description else []
                rows_raw = await cur.fetchall() if cur.description else []
                rows_affected = cur.rowcount if not cur.description and cur.rowcount > 0 else 0
        except Exception as e:
            raise AdapterError(f"PostgreSQL execution failed: {e}") from e
        duration_ms = (time.monotonic() - t0) * 1000

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
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT table_schema, table_name "
                    "FROM information_schema.tables "
                    "WHERE table_schema NOT IN ('pg_catalog', 'information_schema') "
                    "ORDER BY table_schema, table_name"
                )
                table_rows = await cur.fetchall()

                for schema, table_name in table_rows:
                    await cur.execute(
                        "SELECT column_name, data_type, is_nullable "
                        "FROM information_schema.columns "
                        "WHERE table_schema = %s AND table_name = %s "
                        "ORDER BY ordinal_position",
                        (schema, table_name),
                    )
                    col_rows = await cur.fetchall()
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
            raise AdapterError(f"PostgreSQL introspection failed: {e}") from e

        return SchemaMetadata(tables=tables)

    def db_type(self) -> DatabaseType:
        return DatabaseType.POSTGRES

    def dialect(self) -> str:
        return "postgres"
