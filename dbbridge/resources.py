"""``db://schemas`` resources exposing connector introspection."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any
from urllib.parse import unquote

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents

from .connectors import Connector
from .errors import (
    InvalidResourceError,
    ObjectNotFoundError,
    QueryExecutionError,
    UnsupportedOperationError,
)
from .tools import dump_payload

LOG = logging.getLogger(__name__)

SCHEME = "db://"
MIME_TYPE = "application/json"

SCHEMAS_RESOURCE = types.Resource(
    uri="db://schemas",
    name="schemas",
    description="Schemas in the connected database",
    mimeType=MIME_TYPE,
)

RESOURCE_TEMPLATES = [
    types.ResourceTemplate(
        uriTemplate="db://schemas/{schema}/tables",
        name="tables_in_schema",
        description="Tables in a schema",
        mimeType=MIME_TYPE,
    ),
    types.ResourceTemplate(
        uriTemplate="db://schemas/{schema}/tables/{table}",
        name="table_structure",
        description="Column definitions for a table",
        mimeType=MIME_TYPE,
    ),
    types.ResourceTemplate(
        uriTemplate="db://schemas/{schema}/tables/{table}/indexes",
        name="indexes_in_table",
        description="Indexes defined on a table",
        mimeType=MIME_TYPE,
    ),
    types.ResourceTemplate(
        uriTemplate="db://schemas/{schema}/procedures",
        name="procedures_in_schema",
        description="Stored procedures and functions in a schema",
        mimeType=MIME_TYPE,
    ),
    types.ResourceTemplate(
        uriTemplate="db://schemas/{schema}/procedures/{procedure}",
        name="procedure_details",
        description="Definition of a stored procedure or function",
        mimeType=MIME_TYPE,
    ),
]


def parse_resource_uri(uri: str) -> list[str]:
    """Split a ``db://`` URI into its decoded path segments."""

    if not uri.startswith(SCHEME):
        raise InvalidResourceError(f"Unknown resource URI: {uri}")
    return [unquote(segment) for segment in uri[len(SCHEME):].strip("/").split("/") if segment]


async def _require_table(connector: Connector, schema: str, table: str) -> None:
    if not await connector.table_exists(table, schema):
        raise ObjectNotFoundError(f"Table '{table}' does not exist in schema '{schema}'")


async def read_resource(uri: str, connector: Connector) -> dict[str, Any]:
    """Resolve ``uri`` against ``connector`` and return the JSON payload."""

    match parse_resource_uri(uri):
        case ["schemas"]:
            schemas = await connector.get_schemas()
            return {"schemas": schemas, "count": len(schemas)}
        case ["schemas", schema, "tables"]:
            tables = await connector.get_tables(schema)
            return {"schema": schema, "tables": tables, "count": len(tables)}
        case ["schemas", schema, "tables", table]:
            await _require_table(connector, schema, table)
            columns = await connector.get_table_schema(table, schema)
            return {"schema": schema, "table": table, "columns": [asdict(column) for column in columns]}
        case ["schemas", schema, "tables", table, "indexes"]:
            await _require_table(connector, schema, table)
            indexes = await connector.get_table_indexes(table, schema)
            return {
                "schema": schema,
                "table": table,
                "indexes": [asdict(index) for index in indexes],
            }
        case ["schemas", schema, "procedures"]:
            procedures = await connector.get_stored_procedures(schema)
            return {"schema": schema, "procedures": procedures, "count": len(procedures)}
        case ["schemas", schema, "procedures", procedure]:
            detail = await connector.get_stored_procedure_detail(procedure, schema)
            return {"schema": schema, "procedure": asdict(detail)}
        case _:
            raise InvalidResourceError(f"Unknown resource URI: {uri}")


async def read_resource_payload(uri: str, connector: Connector) -> dict[str, Any]:
    """Like :func:`read_resource` but folds per-request failures into a payload."""

    try:
        return await read_resource(uri, connector)
    except (
        InvalidResourceError,
        ObjectNotFoundError,
        QueryExecutionError,
        UnsupportedOperationError,
    ) as exc:
        LOG.info("Resource %s failed: %s", uri, exc)
        return {"error": str(exc), "code": exc.code}


def register_resources(server: Server, connector: Connector) -> None:
    """Attach the schema resources to ``server``, bound to ``connector``."""

    @server.list_resources()
    async def _list_resources() -> list[types.Resource]:
        return [SCHEMAS_RESOURCE]

    @server.list_resource_templates()
    async def _list_resource_templates() -> list[types.ResourceTemplate]:
        return list(RESOURCE_TEMPLATES)

    @server.read_resource()
    async def _read_resource(uri: Any) -> list[ReadResourceContents]:
        payload = await read_resource_payload(str(uri), connector)
        return [ReadResourceContents(content=dump_payload(payload), mime_type=MIME_TYPE)]


__all__ = [
    "RESOURCE_TEMPLATES",
    "SCHEMAS_RESOURCE",
    "parse_resource_uri",
    "read_resource",
    "read_resource_payload",
    "register_resources",
]
