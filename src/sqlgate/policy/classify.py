"""Classify SQL submissions as READ, MUTATING or FORBIDDEN.

Security-critical, and deliberately lexical: a statement is only allowed when
its leading clause is on a short allow-list. Anything else (DDL, PRAGMA,
GRANT, an unrecognised word) is FORBIDDEN and names its first token.
"""

from __future__ import annotations

import re

from sqlgate.policy._types import Classification, QueryType, StatementKind
from sqlgate.policy.normalize import split_statements

_SELECT = re.compile(r"^\s*SELECT\b")

_ALLOWED_PATTERNS = (
    _SELECT,
    re.compile(r"^\s*INSERT\s+INTO\b"),
    re.compile(r"^\s*UPDATE\s+\S+.*?\bSET\b"),
    re.compile(r"^\s*DELETE\s+FROM\b"),
)

# Leading clause of a statement, checked in priority order.
_QUERY_TYPE_MARKERS = (
    (QueryType.INSERT, re.compile(r"^\s*INSERT\s+INTO\b")),
    (QueryType.UPDATE, re.compile(r"^\s*UPDATE\s+\S+.*?\bSET\b")),
    (QueryType.DELETE, re.compile(r"^\s*DELETE\s+FROM\b")),
)

_IDENT = r"([^\s(,;]+)"
_TABLE_PATTERNS = (
    re.compile(r"^\s*INSERT\s+INTO\s+" + _IDENT),
    re.compile(r"^\s*UPDATE\s+" + _IDENT),
    re.compile(r"^\s*DELETE\s+FROM\s+" + _IDENT),
)
_QUOTE_CHARS = str.maketrans("", "", '`"[]')


def find_forbidden_operation(statements: list[str]) -> str | None:
    """Return the leading keyword of the first disallowed statement, if any."""
    for statement in statements:
        if not statement.strip():
            continue
        if not any(p.search(statement) for p in _ALLOWED_PATTERNS):
            return statement.split()[0]
    return None


def is_mutating(statements: list[str]) -> bool:
    """True if any non-empty statement is something other than a SELECT."""
    return any(
        statement.strip() and not _SELECT.search(statement)
        for statement in statements
    )


def classify_query_type(normalized: str) -> QueryType:
    """Pick the query type of an upper-cased, normalized submission.

    Only the leading clause of each statement counts, so keywords inside a
    WHERE clause or a literal do not. Falls back to UPDATE when no statement
    starts with a marker.
    """
    statements = normalized.split(";")
    for query_type, pattern in _QUERY_TYPE_MARKERS:
        if any(pattern.search(statement) for statement in statements):
            return query_type
    return QueryType.UPDATE


def extract_table_names(normalized: str) -> list[str]:
    """Best-effort target tables of INSERT/UPDATE/DELETE statements.

    Only the first table after each leading clause is captured per statement.
    Quotes are stripped, schema qualification is dropped and names are
    lower-cased. Order of first appearance is kept.
    """
    tables: list[str] = []
    for statement in normalized.split(";"):
        for pattern in _TABLE_PATTERNS:
            match = pattern.search(statement)
            if match is None:
                continue
            name = _unquote(match.group(1))
            if name and name not in tables:
                tables.append(name)
    return tables


def _unquote(identifier: str) -> str:
    bare = identifier.translate(_QUOTE_CHARS)
    return bare.rsplit(".", 1)[-1].lower()


def classify(sql: str) -> Classification:
    """Classify a raw submission (possibly several statements)."""
    statements = split_statements(sql)

    keyword = find_forbidden_operation(statements)
    if keyword is not None:
        return Classification(
            kind=StatementKind.FORBIDDEN, statements=statements, keyword=keyword,
        )

    if is_mutating(statements):
        normalized = "; ".join(statements)
        return Classification(
            kind=StatementKind.MUTATING,
            statements=statements,
            query_type=classify_query_type(normalized),
            tables=extract_table_names(normalized),
        )

    return Classification(kind=StatementKind.READ, statements=statements)
