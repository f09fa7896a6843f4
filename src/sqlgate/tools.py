"""Agent-facing tools: function specs plus the text each call returns.

An LLM agent gets RUN_SQL_TOOL_SPEC and SQL_EXECUTE_TOOL_SPEC, and every
tool call is routed through call_tool(). The agent only ever sees text;
confirmation requests come back as a JSON document it can relay to a human.
"""

from __future__ import annotations

import json

from sqlgate.gateway import ExecuteResult, Gateway, ProposeResult, ProposeStatus

RUN_SQL_TOOL_SPEC = {
    "type": "function",
    "function": {
        "name": "run_sql",
        "description": (
            "Execute SQL queries against the database. Supports SELECT queries for "
            "data retrieval and INSERT/UPDATE/DELETE operations for data manipulation. "
            "Update operations require user confirmation before execution, and DDL "
            "operations (CREATE, DROP, etc.) are prohibited."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "sql": {
                    "type": "string",
                    "description": (
                        "SQL query to execute. Supports SELECT, INSERT, UPDATE, "
                        "and DELETE statements."
                    ),
                }
            },
            "required": ["sql"],
        },
    },
}

SQL_EXECUTE_TOOL_SPEC = {
    "type": "function",
    "function": {
        "name": "sql_execute",
        "description": "Execute a confirmed SQL query with its confirmation token.",
        "parameters": {
            "type": "object",
            "properties": {
                "token": {
                    "type": "string",
                    "minLength": 1,
                    "description": "Confirmation token returned by run_sql.",
                }
            },
            "required": ["token"],
        },
    },
}

TOOL_SPECS = [RUN_SQL_TOOL_SPEC, SQL_EXECUTE_TOOL_SPEC]


class UnknownToolError(KeyError):
    """Raised by call_tool for a tool name it does not serve."""


def format_propose(result: ProposeResult) -> str:
    if result.status == ProposeStatus.FORBIDDEN:
        return (
            f"ERROR: Forbidden SQL operation detected: {result.keyword}\n"
            "Only SELECT and allowed update operations are permitted."
        )
    if result.status == ProposeStatus.ERROR:
        return f"Error: {result.error}"
    return json.dumps(result.to_dict(), indent=2, default=str)


def format_execute(result: ExecuteResult) -> str:
    return json.dumps(result.to_dict(), indent=2, default=str)


async def run_sql(gateway: Gateway, sql: str) -> str:
    return format_propose(await gateway.propose(sql))


async def sql_execute(gateway: Gateway, token: object) -> str:
    return format_execute(await gateway.confirm_and_execute(token))


async def call_tool(gateway: Gateway, name: str, arguments: dict) -> str:
    """Dispatch one agent tool call and return the text shown to the agent."""
    if name == "run_sql":
        sql = arguments.get("sql")
        if not isinstance(sql, str):
            return "Error: run_sql requires a string 'sql' argument"
        return await run_sql(gateway, sql)
    if name == "sql_execute":
        return await sql_execute(gateway, arguments.get("token"))
    raise UnknownToolError(name)
