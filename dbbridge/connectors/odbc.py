"""Shared plumbing for the connectors that talk ODBC through aioodbc."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from ..dsn import DSNParser
from ..errors import DatabaseConnectionError, ObjectNotFoundError, QueryExecutionError
from ..models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, Row, SQLResult, StoredProcedure
from ..safety import split_statements
from .base import group_index_rows, is_nullable, rows_from_cursor

LOG = logging.getLogger(__name__)

# Schema filters bind the schema twice so a NULL argument disables them.
_SCHEMA_FILTER = "(? IS NULL OR {column} = ?)"


def odbc_value(value: object) -> str:
    """Brace-quote a connection string value so ``;`` and ``}`` survive."""

    text = str(value)
    return "{" + text.replace("}", "}}") + "}"


class ODBCConnector(ABC):
    """Base for INFORMATION_SCHEMA speaking databases reached through ODBC.

    Subclasses supply the connection string and may swap in catalog queries
    that their engine answers more precisely.
    """

    dialect: Dialect = Dialect.ANSI
    name = "ODBC"
    default_schema: str | None = None

    _SYSTEM_SCHEMAS = "('INFORMATION_SCHEMA', 'information_schema')"

    _SCHEMAS_QUERY = f"""
        SELECT SCHEMA_NAME AS schema_name
        FROM INFORMATION_SCHEMA.SCHEMATA
        WHERE SCHEMA_NAME NOT IN {_SYSTEM_SCHEMAS}
        ORDER BY SCHEMA_NAME
    """

    _TABLES_QUERY = f"""
        SELECT TABLE_NAME AS table_name
        FROM INFORMATION_SCHEMA.TABLES
        WHERE {_SCHEMA_FILTER.format(column="TABLE_SCHEMA")}
        ORDER BY TABLE_NAME
    """

    _TABLE_EXISTS_QUERY = f"""
        SELECT COUNT(*) AS table_count
        FROM INFORMATION_SCHEMA.TABLES
        WHERE {_SCHEMA_FILTER.format(column="TABLE_SCHEMA")} AND TABLE_NAME = ?
    """

    _COLUMNS_QUERY = f"""
        SELECT
            COLUMN_NAME AS column_name,
            DATA_TYPE AS data_type,
            IS_NULLABLE AS is_nullable,
            COLUMN_DEFAULT AS column_default
        FROM INFORMATION_SCHEMA.COLUMNS
        WHERE {_SCHEMA_FILTER.format(column="TABLE_SCHEMA")} AND TABLE_NAME = ?
        ORDER BY ORDINAL_POSITION
    """

    # Only constraint-backed indexes are visible through INFORMATION_SCHEMA.
    _INDEXES_QUERY = f"""
        SELECT
            tc.CONSTRAINT_NAME AS index_name,
            kcu.COLUMN_NAME AS column_name,
            1 AS is_unique,
            CASE WHEN tc.CONSTRAINT_TYPE = 'PRIMARY KEY' THEN 1 ELSE 0 END AS is_primary
        FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc
        JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu
            ON kcu.CONSTRAINT_SCHEMA = tc.CONSTRAINT_SCHEMA
            AND kcu.CONSTRAINT_NAME = tc.CONSTRAINT_NAME
            AND kcu.TABLE_NAME = tc.TABLE_NAME
        WHERE {_SCHEMA_FILTER.format(column="tc.TABLE_SCHEMA")}
            AND tc.TABLE_NAME = ?
            AND tc.CONSTRAINT_TYPE IN ('PRIMARY KEY', 'UNIQUE')
        ORDER BY tc.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
    """

    _PROCEDURES_QUERY = f"""
        SELECT ROUTINE_NAME AS routine_name
        FROM INFORMATION_SCHEMA.ROUTINES
        WHERE {_SCHEMA_FILTER.format(column="ROUTINE_SCHEMA")}
        ORDER BY ROUTINE_NAME
    """

    _PROCEDURE_DETAIL_QUERY = f"""
        SELECT
            ROUTINE_NAME AS procedure_name,
            ROUTINE_TYPE AS procedure_type,
            DATA_TYPE AS return_type,
            ROUTINE_DEFINITION AS definition
        FROM INFORMATION_SCHEMA.ROUTINES
        WHERE {_SCHEMA_FILTER.format(column="ROUTINE_SCHEMA")} AND ROUTINE_NAME = ?
    """

    _PARAMETERS_QUERY = f"""
        SELECT
            PARAMETER_MODE AS parameter_mode,
            PARAMETER_NAME AS parameter_name,
            DATA_TYPE AS data_type
        FROM INFORMATION_SCHEMA.PARAMETERS
        WHERE {_SCHEMA_FILTER.format(column="SPECIFIC_SCHEMA")}
            AND SPECIFIC_NAME = ?
            AND ORDINAL_POSITION > 0
        ORDER BY ORDINAL_POSITION
    """

    def __init__(self, *, dsn_parser: DSNParser, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        self.dsn_parser = dsn_parser
        self._connect_timeout = connect_timeout
        self._max_pool_size = max_pool_size
        self._pool: Any = None
        self._schema: str | None = self.default_schema

    @abstractmethod
    def connection_string(self, config: ConnectionConfig) -> str:
        """Build the ODBC connection string handed to aioodbc."""

    async def connect(self, config: ConnectionConfig) -> None:
        # pyodbc needs the system ODBC manager at import time.
        try:
            import aioodbc

            self._pool = await aioodbc.create_pool(
                dsn=self.connection_string(config),
                minsize=1,
                maxsize=self._max_pool_size,
                autocommit=True,
                timeout=int(float(config.options.get("connect_timeout", self._connect_timeout))),
            )
        except Exception as exc:
            self._pool = None
            raise DatabaseConnectionError(
                f"Failed to connect to {self.name} at {config.host}:{config.port}: {exc}"
            ) from exc
        self._schema = config.options.get("schema") or self.default_schema
        LOG.info("Connected to %s", self.name, extra={"host": config.host, "database": config.database})

    async def disconnect(self) -> None:
        pool, self._pool = self._pool, None
        if pool is None:
            return
        pool.close()
        await pool.wait_closed()

    async def get_schemas(self) -> list[str]:
        rows = await self._fetch(self._SCHEMAS_QUERY)
        return [str(row["schema_name"]) for row in rows]

    async def get_tables(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(self._TABLES_QUERY, *self._schema_args(schema))
        return [str(row["table_name"]) for row in rows]

    async def table_exists(self, table: str, schema: str | None = None) -> bool:
        rows = await self._fetch(self._TABLE_EXISTS_QUERY, *self._schema_args(schema), table)
        return bool(rows and int(rows[0]["table_count"]) > 0)

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]:
        rows = await self._fetch(self._COLUMNS_QUERY, *self._schema_args(schema), table)
        return [
            ColumnInfo(
                name=str(row["column_name"]),
                data_type=str(row["data_type"]),
                nullable=is_nullable(row["is_nullable"]),
                default=row["column_default"],
            )
            for row in rows
        ]

    async def get_table_indexes(self, table: str, schema: str | None = None) -> list[IndexInfo]:
        rows = await self._fetch(self._INDEXES_QUERY, *self._schema_args(schema), table)
        return group_index_rows(rows)

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(self._PROCEDURES_QUERY, *self._schema_args(schema))
        return [str(row["routine_name"]) for row in rows]

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        args = self._schema_args(schema)
        rows = await self._fetch(self._PROCEDURE_DETAIL_QUERY, *args, name)
        if not rows:
            raise ObjectNotFoundError(f"Stored procedure '{name}' not found in schema '{args[0] or 'default'}'")
        row = rows[0]
        params = await self._fetch(self._PARAMETERS_QUERY, *args, name)
        parameters = ", ".join(
            " ".join(str(part) for part in (param["parameter_mode"], param["parameter_name"], param["data_type"]) if part)
            for param in params
        )
        kind = str(row["procedure_type"]).lower()
        return StoredProcedure(
            name=str(row["procedure_name"]),
            kind=kind,
            parameters=parameters or None,
            return_type=row["return_type"] if kind == "function" else None,
            language="sql",
            definition=row["definition"],
        )

    async def execute_sql(self, sql: str) -> SQLResult:
        pool = self._require_pool()
        rows: list[Row] = []
        try:
            async with pool.acquire() as conn:
                async with conn.cursor() as cur:
                    for statement in split_statements(sql):
                        await cur.execute(statement)
                        rows.extend(await self._drain(cur))
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return SQLResult(rows=rows)

    async def _drain(self, cur: Any) -> list[Row]:
        """Collect every result set the last statement produced."""

        rows: list[Row] = []
        while True:
            if cur.description:
                rows.extend(rows_from_cursor(cur.description, await cur.fetchall()))
            if not await cur.nextset():
                return rows

    async def _fetch(self, query: str, *args: Any) -> list[Row]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, *args)
                    records = await cur.fetchall()
                    description = cur.description
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return rows_from_cursor(description, records)

    def _schema_args(self, schema: str | None) -> tuple[str | None, str | None]:
        resolved = schema or self._schema
        return resolved, resolved

    def _require_pool(self) -> Any:
        if self._pool is None:
            raise DatabaseConnectionError(f"Not connected to {self.name}. Call connect() first.")
        return self._pool


__all__ = ["ODBCConnector", "odbc_value"]
