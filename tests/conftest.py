"""Shared fakes for connector-facing tests."""

from __future__ import annotations

from typing import Any

import pytest

from dbbridge.dsn import PostgresDSNParser
from dbbridge.errors import ObjectNotFoundError, QueryExecutionError
from dbbridge.models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, SQLResult, StoredProcedure


class FakeConnector:
    """In-memory connector that records every call it receives."""

    dialect = Dialect.POSTGRES
    name = "Fake"

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.dsn_parser = PostgresDSNParser()
        self.rows = rows if rows is not None else [{"id": 1, "email": "alice@example.com"}]
        self.executed: list[str] = []
        self.connected_with: ConnectionConfig | None = None
        self.disconnects = 0
        self.fail_with: Exception | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.connected_with = config

    async def disconnect(self) -> None:
        self.disconnects += 1

    async def get_schemas(self) -> list[str]:
        return ["public", "sales"]

    async def get_tables(self, schema: str | None = None) -> list[str]:
        return ["accounts", "orders"] if schema in (None, "public") else []

    async def table_exists(self, table: str, schema: str | None = None) -> bool:
        return table in await self.get_tables(schema)

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]:
        return [
            ColumnInfo(name="id", data_type="integer", nullable=False, default="nextval('accounts_id_seq')"),
            ColumnInfo(name="email", data_type="text", nullable=True),
        ]

    async def get_table_indexes(self, table: str, schema: str | None = None) -> list[IndexInfo]:
        return [IndexInfo(name=f"{table}_pkey", columns=("id",), is_unique=True, is_primary=True)]

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        return ["refresh_totals"]

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        if name != "refresh_totals":
            raise ObjectNotFoundError(f"Stored procedure '{name}' not found in schema '{schema}'")
        return StoredProcedure(name=name, kind="function", parameters="days integer", return_type="void", language="plpgsql")

    async def execute_sql(self, sql: str) -> SQLResult:
        self.executed.append(sql)
        if "boom" in sql:
            raise QueryExecutionError('relation "boom" does not exist')
        return SQLResult(rows=list(self.rows))


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()
