"""Advisory safety checks on mutating submissions, using the sqlglot AST.

These never decide whether a submission is allowed; the gate is lexical.
They only add warnings to a confirmation request so the person confirming
sees that, say, a DELETE has no WHERE clause.
"""

from __future__ import annotations

import logging

import sqlglot
from sqlglot import exp

from sqlgate.diagnostics import Diagnostic, codes

logger = logging.getLogger(__name__)


def check_delete_without_where(statement: exp.Expression) -> Diagnostic | None:
    """Warn on DELETE statements that have no WHERE clause."""
    if not isinstance(statement, exp.Delete):
        return None
    if statement.args.get("where") is not None:
        return None

    return (
        Diagnostic.warning(codes.DELETE_WITHOUT_WHERE, "DELETE without WHERE clause")
        .note("this would affect all rows in the table")
    )


def check_update_without_where(statement: exp.Expression) -> Diagnostic | None:
    """Warn on UPDATE statements that have no WHERE clause."""
    if not isinstance(statement, exp.Update):
        return None
    if statement.args.get("where") is not None:
        return None

    return (
        Diagnostic.warning(codes.UPDATE_WITHOUT_WHERE, "UPDATE without WHERE clause")
        .note("this would affect all rows in the table")
    )


_CHECKS = (check_delete_without_where, check_update_without_where)


def advisory_checks(sql: str, *, dialect: str | None = None) -> list[Diagnostic]:
    """Run every advisory check on each statement sqlglot can parse.

    Unparseable SQL yields no warnings, and neither does SQL sqlglot fails
    on internally (deep nesting raises RecursionError).
    """
    try:
        statements = sqlglot.parse(sql, dialect=dialect)
    except sqlglot.errors.SqlglotError:
        return []
    except Exception:
        logger.debug("advisory checks skipped", exc_info=True)
        return []

    diagnostics: list[Diagnostic] = []
    for statement in statements:
        if statement is None:
            continue
        for check in _CHECKS:
            diag = check(statement)
            if diag is not None:
                diagnostics.append(diag)
    return diagnostics
