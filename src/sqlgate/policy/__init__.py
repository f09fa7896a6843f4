"""Policy engine: normalize, classify, run advisory checks, return diagnostics."""

from __future__ import annotations

from sqlgate.diagnostics import Diagnostic, DiagnosticResult, codes
from sqlgate.policy._types import Classification, QueryType, StatementKind
from sqlgate.policy.classify import classify
from sqlgate.policy.safety import advisory_checks

__all__ = [
    "Classification",
    "QueryType",
    "StatementKind",
    "classify",
    "run_policy",
]


def run_policy(sql: str, *, dialect: str | None = None) -> DiagnosticResult:
    """Run the full policy pipeline on a SQL submission.

    Steps:
        1. Normalize and split into statements
        2. Classify (READ / MUTATING / FORBIDDEN)
        3. Block forbidden submissions
        4. Advisory checks for mutating submissions
        5. Return DiagnosticResult

    Args:
        sql: The raw SQL text from the agent, unmodified.
        dialect: sqlglot dialect used by the advisory checks (None = generic).

    Returns:
        DiagnosticResult describing the decision. ``original_sql`` is the
        submission exactly as given.
    """
    classification = classify(sql)
    diagnostics: list[Diagnostic] = []

    if classification.kind == StatementKind.FORBIDDEN:
        diagnostics.append(
            Diagnostic.error(
                codes.FORBIDDEN_OPERATION,
                f"Forbidden SQL operation detected: {classification.keyword}",
            ).note("only SELECT, INSERT, UPDATE and DELETE statements are permitted")
        )
        return DiagnosticResult(
            original_sql=sql,
            classification=classification.kind.value,
            diagnostics=diagnostics,
            blocked=True,
            statements=classification.statements,
            forbidden_keyword=classification.keyword,
        )

    if classification.kind == StatementKind.MUTATING:
        query_type = classification.query_type
        assert query_type is not None
        diagnostics.append(
            Diagnostic.info(
                codes.CONFIRMATION_REQUIRED,
                "This SQL operation modifies data and requires confirmation",
            )
        )
        diagnostics.extend(advisory_checks(sql, dialect=dialect))
        return DiagnosticResult(
            original_sql=sql,
            classification=classification.kind.value,
            diagnostics=diagnostics,
            blocked=False,
            statements=classification.statements,
            query_type=query_type.value,
            tables=classification.tables,
        )

    return DiagnosticResult(
        original_sql=sql,
        classification=classification.kind.value,
        diagnostics=diagnostics,
        blocked=False,
        statements=classification.statements,
    )
