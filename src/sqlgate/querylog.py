"""Audit log: one JSON line per gate decision, daily files per project."""

from __future__ import annotations

import contextlib
import json
import logging
import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlgate.gateway import ExecuteResult, ProposeResult

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30
_LOG_ROOT = Path.home() / ".sqlgate" / "logs"


def _project_slug() -> str:
    """Encode cwd into a directory-safe slug."""
    cwd = os.getcwd()
    return cwd.replace("/", "-").lstrip("-")


def _log_dir() -> Path:
    return _LOG_ROOT / _project_slug()


def _today_file() -> Path:
    today = datetime.now(UTC).strftime("%Y-%m-%d")
    return _log_dir() / f"{today}.jsonl"


def log_event(
    *,
    event: str,
    sql: str | None,
    status: str,
    db: str | None = None,
    query_type: str | None = None,
    tables: list[str] | None = None,
    keyword: str | None = None,
    rows_affected: int | None = None,
    duration_ms: float | None = None,
    error: str | None = None,
) -> None:
    """Append one audit entry to today's JSONL file.

    ``event`` is "propose" or "confirm". Confirmation tokens are never logged.
    """
    entry = {
        "ts": datetime.now(UTC).isoformat(),
        "event": event,
        "status": status,
        "db": db,
        "sql": sql,
        "query_type": query_type,
        "tables": tables or [],
        "keyword": keyword,
        "rows_affected": rows_affected,
        "duration_ms": duration_ms,
        "error": error,
    }

    log_file = _today_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "a") as f:
        f.write(json.dumps(entry, default=str) + "\n")


def audit_propose(result: ProposeResult, *, db: str | None) -> None:
    """Record a propose decision. A failed write is logged, never raised."""
    execution = result.execution
    _log_quietly(
        event="propose",
        sql=result.sql,
        status=result.status.value,
        db=db,
        query_type=result.query_type,
        tables=result.tables,
        keyword=result.keyword,
        rows_affected=execution.rows_affected if execution else None,
        duration_ms=execution.duration_ms if execution else None,
        error=result.error,
    )


def audit_confirm(result: ExecuteResult, *, db: str | None) -> None:
    """Record a confirm decision. A failed write is logged, never raised."""
    execution = result.execution
    _log_quietly(
        event="confirm",
        sql=result.query,
        status=result.status.value,
        db=db,
        rows_affected=execution.rows_affected if execution else None,
        duration_ms=execution.duration_ms if execution else None,
        error=result.error,
    )


def _log_quietly(**fields) -> None:
    try:
        log_event(**fields)
    except OSError:
        logger.exception("audit log write failed")


def cleanup_old_logs(*, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
    """Delete log files older than retention_days. Returns count of deleted files."""
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    deleted = 0

    log_dir = _log_dir()
    if not log_dir.exists():
        return 0

    for log_file in log_dir.glob("*.jsonl"):
        try:
            file_date = datetime.strptime(log_file.stem, "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            continue
        if file_date < cutoff:
            log_file.unlink()
            deleted += 1

    # Remove empty project directories
    with contextlib.suppress(OSError):
        log_dir.rmdir()

    return deleted
