"""Shared output formatting for CLI commands."""

from __future__ import annotations

import json

from sqlgate.adapters._base import ExecutionResult
from sqlgate.diagnostics.render import render_json, render_text
from sqlgate.diagnostics.types import DiagnosticResult
from sqlgate.gateway import ExecuteResult, ProposeResult, ProposeStatus, json_safe_rowid


def format_result(result: DiagnosticResult, *, output_format: str = "text") -> str:
    if output_format == "json":
        return json.dumps(render_json(result), indent=2)
    return render_text(result)


def format_execution_result(result: ExecutionResult) -> str:
    """Simple tabular output, followed by the effect summary."""
    lines: list[str] = []
    if result.columns:
        lines.append(" | ".join(result.columns))
        lines.append("-+-".join("-" * max(len(c), 5) for c in result.columns))
        for row in result.rows:
            lines.append(" | ".join(str(row.get(c, "")) for c in result.columns))
        lines.append("")

    duration = f", {result.duration_ms:.0f}ms" if result.duration_ms is not None else ""
    summary = f"({result.row_count} rows, {result.rows_affected} affected{duration})"
    if result.last_insert_rowid is not None:
        summary += f" last insert id: {json_safe_rowid(result.last_insert_rowid)}"
    lines.append(summary)
    return "\n".join(lines)


def format_propose_text(result: ProposeResult) -> str:
    if result.status == ProposeStatus.FORBIDDEN:
        return f"error: Forbidden SQL operation detected: {result.keyword}"
    if result.status == ProposeStatus.ERROR:
        return f"error: {result.error}"
    if result.status == ProposeStatus.SUCCESS:
        assert result.execution is not None
        return format_execution_result(result.execution)

    tables = ", ".join(result.tables) or "unknown tables"
    lines = [f"confirmation required: {result.query_type} on {tables}"]
    for d in result.warnings:
        lines.append(f"  warning[{d.code}]: {d.message}")
    lines.append(f"  token expires in {result.expires_in}")
    lines.append(f"  run: confirm {result.token}")
    return "\n".join(lines)


def format_execute_text(result: ExecuteResult) -> str:
    diag = result.diagnostic
    if diag is not None:
        return f"error[{diag.code}]: {diag.message}"
    assert result.execution is not None
    return format_execution_result(result.execution)
