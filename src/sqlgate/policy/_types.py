"""Internal types for the policy engine."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class StatementKind(enum.Enum):
    READ = "read"
    MUTATING = "mutating"
    FORBIDDEN = "forbidden"


class QueryType(enum.Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class Classification:
    kind: StatementKind
    statements: list[str] = field(default_factory=list)
    keyword: str | None = None           # set when FORBIDDEN
    query_type: QueryType | None = None  # set when MUTATING
    tables: list[str] = field(default_factory=list)
