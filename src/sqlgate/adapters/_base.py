"""Database adapter protocol: the boundary between the gateway and drivers."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


class DatabaseType(enum.Enum):
    SQLITE = "sqlite"
    DUCKDB = "duckdb"
    POSTGRES = "postgres"


@dataclass
class ConnectionConfig:
    name: str
    db_type: DatabaseType
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class ExecutionResult:
    """Query execution result."""

    columns: list[str]
    rows: list[dict[str, object]]
    row_count: int
    rows_affected: int = 0
    last_insert_rowid: int | None = None
    duration_ms: float | None = None


class AdapterError(Exception):
    """Raised by adapters for connection/execution failures."""


@dataclass
class ColumnInfo:
    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False


@dataclass
class TableInfo:
    schema: str | None
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)

    @property
    def qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name


@dataclass
class SchemaMetadata:
    tables: list[TableInfo] = field(default_factory=list)


@runtime_checkable
class DatabaseAdapter(Protocol):
    async def connect(self, config: ConnectionConfig) -> None: ...
    async def close(self) -> None: ...
    async def execute(self, sql: str) -> ExecutionResult: ...
    async def introspect(self) -> SchemaMetadata: ...
    def db_type(self) -> DatabaseType: ...
    def dialect(self) -> str: ...


def schema_text(metadata: SchemaMetadata) -> str:
    """Render schema metadata as compact text for prompts and the schema view."""
    if not metadata.tables:
        return "-- no tables"

    blocks: list[str] = []
    for table in metadata.tables:
        lines = [f"TABLE {table.qualified_name}"]
        for col in table.columns:
            parts = [f"  {col.name}", col.data_type or "ANY"]
            if not col.is_nullable:
                parts.append("NOT NULL")
            if col.is_primary_key:
                parts.append("PRIMARY KEY")
            lines.append(" ".join(parts))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)
