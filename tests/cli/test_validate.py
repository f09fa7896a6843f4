"""Test the validate CLI command end-to-end."""

import json

from click.testing import CliRunner

from sqlgate.cli import main


def test_validate_select() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "SELECT id FROM users"])
    assert result.exit_code == 0
    assert "classification: read" in result.output


def test_validate_forbidden_exits_1() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "SELECT 1; DROP TABLE x"])
    assert result.exit_code == 1
    assert "Forbidden SQL operation detected: DROP" in result.output


def test_validate_mutating_shows_impact() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "DELETE FROM users"])
    assert result.exit_code == 0
    assert "query type: DELETE (tables: users)" in result.output
    assert "DELETE without WHERE clause" in result.output


def test_validate_json_output() -> None:
    runner = CliRunner()
    result = runner.invoke(
        main, ["validate", "--format", "json", "UPDATE users SET a = 1 WHERE id = 2"]
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["blocked"] is False
    assert data["classification"] == "mutating"
    assert data["query_type"] == "UPDATE"
    assert data["tables"] == ["users"]


def test_validate_json_forbidden() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "--format", "json", "TRUNCATE users"])
    assert result.exit_code == 1
    data = json.loads(result.output)
    assert data["blocked"] is True
    assert data["forbidden_keyword"] == "TRUNCATE"


def test_validate_from_stdin() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "--from-stdin"], input="SELECT 1\n")
    assert result.exit_code == 0
    assert "classification: read" in result.output


def test_validate_requires_sql() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate"])
    assert result.exit_code == 2
    assert "Missing argument" in result.output


def test_validate_rejects_both_sources() -> None:
    runner = CliRunner()
    result = runner.invoke(main, ["validate", "SELECT 1", "--from-stdin"], input="SELECT 2")
    assert result.exit_code == 2
