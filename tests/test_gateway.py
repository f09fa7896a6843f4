"""Test the propose / confirm-and-execute workflow against a recording adapter."""

from __future__ import annotations

import asyncio

import pytest

from sqlgate.adapters._base import AdapterError, DatabaseType, ExecutionResult, SchemaMetadata
from sqlgate.gateway import (
    CONFIRMATION_WARNING,
    INVALID_TOKEN_ERROR,
    MAX_SAFE_INTEGER,
    ExecuteStatus,
    Gateway,
    ProposeStatus,
    describe_error,
    json_safe_rowid,
)
from sqlgate.tokens import TokenStore


class RecordingAdapter:
    """Records every SQL string it is asked to run."""

    def __init__(self, result: ExecutionResult | None = None, error: BaseException | None = None):
        self.calls: list[str] = []
        self.result = result or ExecutionResult(columns=[], rows=[], row_count=0, rows_affected=1)
        self.error = error

    async def connect(self, config) -> None:
        pass

    async def close(self) -> None:
        pass

    async def execute(self, sql: str) -> ExecutionResult:
        self.calls.append(sql)
        if self.error is not None:
            raise self.error
        return self.result

    async def introspect(self) -> SchemaMetadata:
        return SchemaMetadata()

    def db_type(self) -> DatabaseType:
        return DatabaseType.SQLITE

    def dialect(self) -> str:
        return "sqlite"


class BareError(Exception):
    def __str__(self) -> str:
        return ""


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def gateway(adapter):
    return Gateway(adapter, TokenStore(cleanup_interval_ms=0), dialect="sqlite")


class TestPropose:
    def test_forbidden_never_touches_database(self, gateway, adapter) -> None:
        result = asyncio.run(gateway.propose("DROP TABLE users"))
        assert result.status == ProposeStatus.FORBIDDEN
        assert result.keyword == "DROP"
        assert adapter.calls == []
        assert result.to_dict() == {
            "status": "forbidden",
            "error": "Forbidden SQL operation detected: DROP",
            "keyword": "DROP",
        }

    def test_mutating_returns_token_without_executing(self, gateway, adapter) -> None:
        sql = "DELETE FROM users WHERE id = 1"
        result = asyncio.run(gateway.propose(sql))
        assert result.status == ProposeStatus.NEEDS_CONFIRMATION
        assert adapter.calls == []
        assert len(result.token) == 64
        doc = result.to_dict()
        assert doc["status"] == "needsConfirmation"
        assert doc["warning"] == CONFIRMATION_WARNING
        assert doc["query"] == sql
        assert doc["confirmationToken"] == result.token
        assert doc["executeEndpoint"] == "/sql/execute"
        assert doc["expiresIn"] == "5 minutes"
        assert doc["estimatedImpact"] == {"queryType": "DELETE", "tables": ["users"]}
        assert doc["diagnostics"] == []

    def test_mutating_carries_advisory_warnings(self, gateway) -> None:
        result = asyncio.run(gateway.propose("UPDATE users SET active = 0"))
        assert [d["code"] for d in result.to_dict()["diagnostics"]] == ["Q0203"]

    def test_custom_execute_endpoint(self, adapter) -> None:
        gw = Gateway(adapter, TokenStore(cleanup_interval_ms=0), execute_endpoint="/v1/confirm")
        result = asyncio.run(gw.propose("INSERT INTO t VALUES (1)"))
        assert result.to_dict()["executeEndpoint"] == "/v1/confirm"

    def test_read_runs_immediately(self, adapter) -> None:
        adapter.result = ExecutionResult(
            columns=["id"], rows=[{"id": 1}], row_count=1, rows_affected=0
        )
        gw = Gateway(adapter, TokenStore(cleanup_interval_ms=0))
        result = asyncio.run(gw.propose("select id from users"))
        assert result.status == ProposeStatus.SUCCESS
        assert adapter.calls == ["select id from users"]
        assert result.to_dict() == {
            "status": "success",
            "rows": [{"id": 1}],
            "columns": ["id"],
            "rowsAffected": 0,
            "lastInsertRowid": None,
        }

    def test_read_failure_is_error_status(self, adapter) -> None:
        adapter.error = AdapterError("no such table: users")
        gw = Gateway(adapter, TokenStore(cleanup_interval_ms=0))
        result = asyncio.run(gw.propose("SELECT * FROM users"))
        assert result.status == ProposeStatus.ERROR
        assert result.to_dict() == {"status": "error", "error": "no such table: users"}


class TestConfirm:
    def test_executes_exact_proposed_text(self, gateway, adapter) -> None:
        sql = "  insert into Users (name) values ('Alice') -- keep me\n"

        async def go():
            proposal = await gateway.propose(sql)
            return await gateway.confirm_and_execute(proposal.token)

        result = asyncio.run(go())
        assert result.status == ExecuteStatus.SUCCESS
        assert adapter.calls == [sql]
        doc = result.to_dict()
        assert doc["success"] is True
        assert doc["query"] == sql
        assert doc["result"]["rowsAffected"] == 1
        assert "executedAt" in doc

    def test_token_single_use(self, gateway, adapter) -> None:
        async def go():
            proposal = await gateway.propose("DELETE FROM users WHERE id = 1")
            first = await gateway.confirm_and_execute(proposal.token)
            second = await gateway.confirm_and_execute(proposal.token)
            return first, second

        first, second = asyncio.run(go())
        assert first.success
        assert second.status == ExecuteStatus.UNAUTHORIZED
        assert second.to_dict() == {"success": False, "error": INVALID_TOKEN_ERROR}
        assert len(adapter.calls) == 1

    def test_unknown_token(self, gateway, adapter) -> None:
        result = asyncio.run(gateway.confirm_and_execute("deadbeef"))
        assert result.status == ExecuteStatus.UNAUTHORIZED
        assert adapter.calls == []

    @pytest.mark.parametrize("token", ["", None, 42, ["abc"]])
    def test_malformed_token(self, gateway, token) -> None:
        result = asyncio.run(gateway.confirm_and_execute(token))
        assert result.status == ExecuteStatus.INVALID_REQUEST
        assert result.to_dict()["success"] is False

    def test_execution_failure_spends_token(self, gateway, adapter) -> None:
        adapter.error = AdapterError("UNIQUE constraint failed: users.id")

        async def go():
            proposal = await gateway.propose("INSERT INTO users VALUES (1)")
            failed = await gateway.confirm_and_execute(proposal.token)
            retried = await gateway.confirm_and_execute(proposal.token)
            return failed, retried

        failed, retried = asyncio.run(go())
        assert failed.status == ExecuteStatus.EXECUTION_ERROR
        assert str(failed.diagnostic.code) == "Q0801"
        assert failed.to_dict() == {
            "success": False,
            "error": "SQL execution failed: UNIQUE constraint failed: users.id",
            "query": "INSERT INTO users VALUES (1)",
        }
        assert retried.status == ExecuteStatus.UNAUTHORIZED

    def test_exception_without_message(self, gateway, adapter) -> None:
        adapter.error = BareError()

        async def go():
            proposal = await gateway.propose("INSERT INTO users VALUES (1)")
            return await gateway.confirm_and_execute(proposal.token)

        result = asyncio.run(go())
        assert result.error == "SQL execution failed: BareError"

    def test_large_rowid_serialized_as_string(self, gateway, adapter) -> None:
        adapter.result = ExecutionResult(
            columns=[], rows=[], row_count=0, rows_affected=1, last_insert_rowid=2**62
        )

        async def go():
            proposal = await gateway.propose("INSERT INTO users VALUES (1)")
            return await gateway.confirm_and_execute(proposal.token)

        result = asyncio.run(go())
        assert result.to_dict()["result"]["lastInsertRowid"] == str(2**62)


def test_json_safe_rowid():
    assert json_safe_rowid(None) is None
    assert json_safe_rowid(7) == 7
    assert json_safe_rowid(MAX_SAFE_INTEGER) == MAX_SAFE_INTEGER
    assert json_safe_rowid(-MAX_SAFE_INTEGER) == -MAX_SAFE_INTEGER
    assert json_safe_rowid(MAX_SAFE_INTEGER + 1) == str(MAX_SAFE_INTEGER + 1)


def test_describe_error():
    assert describe_error(ValueError("boom")) == "boom"
    assert describe_error(BareError()) == "BareError"


def test_failure_diagnostic_codes(gateway):
    async def go():
        bad = await gateway.confirm_and_execute("")
        unknown = await gateway.confirm_and_execute("deadbeef")
        return bad, unknown

    bad, unknown = asyncio.run(go())
    assert str(bad.diagnostic.code) == "Q0001"
    assert str(unknown.diagnostic.code) == "Q0701"
    assert unknown.diagnostic.message == INVALID_TOKEN_ERROR


@pytest.mark.parametrize(
    "sql",
    [
        "/* comment */ CREATE TABLE t (id INT)",
        "SELECT 1; DROP TABLE x;",
        "alter table users add column x int",
        "TRUNCATE users",
    ],
)
def test_ddl_never_reaches_database(gateway, adapter, sql):
    result = asyncio.run(gateway.propose(sql))
    assert result.status == ProposeStatus.FORBIDDEN
    assert adapter.calls == []
    assert gateway.store.active_token_count() == 0


def test_reads_never_mint_tokens(gateway, adapter):
    result = asyncio.run(gateway.propose("SELECT 1; SELECT 2"))
    assert result.status == ProposeStatus.SUCCESS
    assert adapter.calls == ["SELECT 1; SELECT 2"]
    assert gateway.store.active_token_count() == 0


def test_deeply_nested_write_still_needs_confirmation(gateway, adapter):
    sql = "UPDATE t SET a = " + "(" * 200 + "1" + ")" * 200 + " WHERE id = 1"
    result = asyncio.run(gateway.propose(sql))
    assert result.status == ProposeStatus.NEEDS_CONFIRMATION
    assert result.query_type == "UPDATE"
    assert adapter.calls == []
