"""Database adapters: implementations of the DatabaseAdapter protocol."""

from sqlgate.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseAdapter,
    DatabaseType,
    ExecutionResult,
    SchemaMetadata,
    TableInfo,
    schema_text,
)

__all__ = [
    "AdapterError",
    "ColumnInfo",
    "ConnectionConfig",
    "DatabaseAdapter",
    "DatabaseType",
    "ExecutionResult",
    "SchemaMetadata",
    "TableInfo",
    "schema_text",
]
