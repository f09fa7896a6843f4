"""Execution gateway: the two-phase propose / confirm-and-execute workflow.

``propose`` runs the policy engine over a raw submission. Forbidden SQL is
refused, read-only SQL runs at once, and mutating SQL is parked behind a
single-use confirmation token. ``confirm_and_execute`` redeems a token and
runs the exact text that was proposed.

The database is never touched for a forbidden or mutating proposal.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlgate.adapters._base import DatabaseAdapter, ExecutionResult
from sqlgate.diagnostics import Diagnostic, codes
from sqlgate.diagnostics.render import diagnostic_to_dict
from sqlgate.policy import run_policy
from sqlgate.tokens import TokenStore

logger = logging.getLogger(__name__)

DEFAULT_EXECUTE_ENDPOINT = "/sql/execute"

INVALID_TOKEN_ERROR = "Invalid or expired confirmation token"
CONFIRMATION_WARNING = (
    "WARNING: This SQL operation modifies data and requires confirmation"
)

# Largest integer a JSON consumer with IEEE-754 doubles represents exactly.
MAX_SAFE_INTEGER = 2**53 - 1


class ProposeStatus(enum.Enum):
    SUCCESS = "success"
    NEEDS_CONFIRMATION = "needsConfirmation"
    FORBIDDEN = "forbidden"
    ERROR = "error"


class ExecuteStatus(enum.Enum):
    SUCCESS = "success"
    INVALID_REQUEST = "invalidRequest"
    UNAUTHORIZED = "unauthorized"
    EXECUTION_ERROR = "executionError"


_FAILURE_CODES = {
    ExecuteStatus.INVALID_REQUEST: codes.INVALID_REQUEST,
    ExecuteStatus.UNAUTHORIZED: codes.TOKEN_INVALID,
    ExecuteStatus.EXECUTION_ERROR: codes.EXECUTION_FAILED,
}


def describe_error(exc: BaseException) -> str:
    """Display string for any exception, even one without a usable message."""
    message = str(exc)
    return message if message else type(exc).__name__


def json_safe_rowid(value: object) -> int | str | None:
    """Keep insert ids exact once serialized: int when safe, str otherwise."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        if -MAX_SAFE_INTEGER <= value <= MAX_SAFE_INTEGER:
            return value
        return str(value)
    return str(value)


def _result_payload(result: ExecutionResult) -> dict[str, object]:
    return {
        "rowsAffected": result.rows_affected,
        "lastInsertRowid": json_safe_rowid(result.last_insert_rowid),
        "columns": result.columns,
        "rows": result.rows,
    }


@dataclass
class ProposeResult:
    status: ProposeStatus
    sql: str
    keyword: str | None = None
    token: str | None = None
    expires_in: str | None = None
    execute_endpoint: str | None = None
    query_type: str | None = None
    tables: list[str] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    execution: ExecutionResult | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, object]:
        if self.status == ProposeStatus.FORBIDDEN:
            return {
                "status": self.status.value,
                "error": f"Forbidden SQL operation detected: {self.keyword}",
                "keyword": self.keyword,
            }
        if self.status == ProposeStatus.NEEDS_CONFIRMATION:
            return {
                "status": self.status.value,
                "warning": CONFIRMATION_WARNING,
                "query": self.sql,
                "confirmationToken": self.token,
                "executeEndpoint": self.execute_endpoint,
                "expiresIn": self.expires_in,
                "estimatedImpact": {
                    "queryType": self.query_type,
                    "tables": self.tables,
                },
                "diagnostics": [diagnostic_to_dict(d) for d in self.warnings],
            }
        if self.status == ProposeStatus.SUCCESS:
            assert self.execution is not None
            payload = _result_payload(self.execution)
            return {
                "status": self.status.value,
                "rows": payload["rows"],
                "columns": payload["columns"],
                "rowsAffected": payload["rowsAffected"],
                "lastInsertRowid": payload["lastInsertRowid"],
            }
        return {"status": self.status.value, "error": self.error}


@dataclass
class ExecuteResult:
    status: ExecuteStatus
    query: str | None = None
    execution: ExecutionResult | None = None
    executed_at: datetime | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.status == ExecuteStatus.SUCCESS

    @property
    def diagnostic(self) -> Diagnostic | None:
        """The failure as an error diagnostic; None on success."""
        code = _FAILURE_CODES.get(self.status)
        if code is None:
            return None
        return Diagnostic.error(code, self.error or self.status.value)

    def to_dict(self) -> dict[str, object]:
        if self.success:
            assert self.execution is not None and self.executed_at is not None
            return {
                "success": True,
                "query": self.query,
                "result": _result_payload(self.execution),
                "executedAt": self.executed_at.isoformat(),
            }
        doc: dict[str, object] = {"success": False, "error": self.error}
        if self.query is not None:
            doc["query"] = self.query
        return doc


class Gateway:
    """Mediates every SQL submission between the agent and the database."""

    def __init__(
        self,
        database: DatabaseAdapter,
        store: TokenStore,
        *,
        dialect: str | None = None,
        execute_endpoint: str = DEFAULT_EXECUTE_ENDPOINT,
    ) -> None:
        self.database = database
        self.store = store
        self.dialect = dialect
        self.execute_endpoint = execute_endpoint

    async def propose(self, sql: str) -> ProposeResult:
        policy_result = run_policy(sql, dialect=self.dialect)

        if policy_result.blocked:
            logger.info("refused forbidden operation %s", policy_result.forbidden_keyword)
            return ProposeResult(
                status=ProposeStatus.FORBIDDEN,
                sql=sql,
                keyword=policy_result.forbidden_keyword,
            )

        if policy_result.needs_confirmation:
            token = self.store.generate_token()
            self.store.store(token, sql)
            logger.info(
                "issued confirmation token for %s on %s",
                policy_result.query_type,
                ", ".join(policy_result.tables) or "unknown tables",
            )
            return ProposeResult(
                status=ProposeStatus.NEEDS_CONFIRMATION,
                sql=sql,
                token=token,
                expires_in=self.store.expires_in,
                execute_endpoint=self.execute_endpoint,
                query_type=policy_result.query_type,
                tables=policy_result.tables,
                warnings=policy_result.warnings,
            )

        try:
            execution = await self.database.execute(sql)
        except Exception as e:
            logger.warning("read-only query failed: %s", describe_error(e))
            return ProposeResult(status=ProposeStatus.ERROR, sql=sql, error=describe_error(e))

        return ProposeResult(status=ProposeStatus.SUCCESS, sql=sql, execution=execution)

    async def confirm_and_execute(self, token: object) -> ExecuteResult:
        if not isinstance(token, str) or not token:
            return ExecuteResult(
                status=ExecuteStatus.INVALID_REQUEST,
                error="Invalid request: token must be a non-empty string",
            )

        query = self.store.get_and_invalidate(token)
        if query is None:
            return ExecuteResult(status=ExecuteStatus.UNAUTHORIZED, error=INVALID_TOKEN_ERROR)

        try:
            execution = await self.database.execute(query)
        except Exception as e:
            # The token is spent either way; the caller has to propose again.
            logger.warning("confirmed query failed: %s", describe_error(e))
            return ExecuteResult(
                status=ExecuteStatus.EXECUTION_ERROR,
                query=query,
                error=f"SQL execution failed: {describe_error(e)}",
            )

        return ExecuteResult(
            status=ExecuteStatus.SUCCESS,
            query=query,
            execution=execution,
            executed_at=datetime.now(UTC),
        )
