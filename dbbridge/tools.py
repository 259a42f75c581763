"""The ``execute_sql`` tool and its registration on an MCP server."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from mcp import types
from mcp.server.lowlevel import Server

from .connectors import Connector
from .errors import DBBridgeError, QueryExecutionError, ReadOnlyViolation
from .safety import enforce_read_only

LOG = logging.getLogger(__name__)

EXECUTE_SQL = "execute_sql"

EXECUTE_SQL_TOOL = types.Tool(
    name=EXECUTE_SQL,
    description="Execute a SQL query on the current database",
    inputSchema={
        "type": "object",
        "properties": {
            "sql": {
                "type": "string",
                "description": "SQL query or multiple SQL statements to execute (separated by semicolons)",
            },
        },
        "required": ["sql"],
    },
)


def json_default(value: Any) -> Any:
    """Serialise driver values that :mod:`json` does not know about."""

    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)


def dump_payload(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, default=json_default)


def success_payload(data: dict[str, Any]) -> dict[str, Any]:
    return {"success": True, "data": data}


def error_payload(message: str, code: str) -> dict[str, Any]:
    return {"success": False, "error": message, "code": code}


async def execute_sql(sql: str, *, connector: Connector, readonly: bool) -> dict[str, Any]:
    """Run ``sql`` on ``connector`` and build the tool payload.

    In read-only mode the whole batch is classified before the driver sees
    any of it.
    """

    try:
        if readonly:
            enforce_read_only(sql, connector.dialect)
        result = await connector.execute_sql(sql)
    except ReadOnlyViolation as exc:
        LOG.warning("Rejected non read-only batch")
        return error_payload(str(exc), exc.code)
    except DBBridgeError as exc:
        # Connection and pool failures are reported like driver errors.
        LOG.info("SQL execution failed: %s", exc)
        return error_payload(str(exc), QueryExecutionError.code)
    return success_payload({"rows": result.rows, "count": result.count})


def to_call_result(payload: dict[str, Any]) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=dump_payload(payload))],
        isError=not payload["success"],
    )


def register_tools(server: Server, connector: Connector, *, readonly: bool) -> None:
    """Attach ``execute_sql`` to ``server``, bound to ``connector``."""

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return [EXECUTE_SQL_TOOL]

    @server.call_tool()
    async def _call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        if name != EXECUTE_SQL:
            return to_call_result(error_payload(f"Unknown tool: {name}", "UNKNOWN_TOOL"))
        payload = await execute_sql(str(arguments.get("sql", "")), connector=connector, readonly=readonly)
        return to_call_result(payload)


__all__ = [
    "EXECUTE_SQL",
    "EXECUTE_SQL_TOOL",
    "dump_payload",
    "error_payload",
    "execute_sql",
    "json_default",
    "register_tools",
    "success_payload",
    "to_call_result",
]
