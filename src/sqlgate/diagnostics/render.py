"""Render diagnostics for terminal (text) and agent (JSON) output."""

from __future__ import annotations

from sqlgate.diagnostics.types import Diagnostic, DiagnosticResult


def render_json(result: DiagnosticResult) -> dict:
    """Render a DiagnosticResult as a JSON-serializable dict."""
    d: dict = {
        "original_sql": result.original_sql,
        "classification": result.classification,
        "blocked": result.blocked,
        "statements": result.statements,
        "diagnostics": [diagnostic_to_dict(diag) for diag in result.diagnostics],
    }
    if result.forbidden_keyword is not None:
        d["forbidden_keyword"] = result.forbidden_keyword
    if result.query_type is not None:
        d["query_type"] = result.query_type
        d["tables"] = result.tables
    return d


def render_text(result: DiagnosticResult) -> str:
    """Render a DiagnosticResult as human-readable text."""
    lines: list[str] = [f"classification: {result.classification}"]
    if result.query_type is not None:
        tables = ", ".join(result.tables) or "-"
        lines.append(f"query type: {result.query_type} (tables: {tables})")
    for d in result.diagnostics:
        lines.append(f"{d.level.name.lower()}[{d.code}]: {d.message}")
        for note in d.notes:
            lines.append(f"  = note: {note}")
    return "\n".join(lines)


def diagnostic_to_dict(d: Diagnostic) -> dict:
    return {
        "level": d.level.name.lower(),
        "code": str(d.code),
        "message": d.message,
        "notes": d.notes,
    }
