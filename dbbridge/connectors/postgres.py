"""PostgreSQL connector backed by an asyncpg pool."""

from __future__ import annotations

import logging
from typing import Any

import asyncpg

from ..dsn import PostgresDSNParser
from ..errors import DatabaseConnectionError, ObjectNotFoundError, QueryExecutionError
from ..models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, Row, SQLResult, StoredProcedure
from ..safety import split_statements
from .base import group_index_rows, is_nullable

LOG = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"


class PostgresConnector:
    """Connector that queries PostgreSQL via asyncpg."""

    dialect = Dialect.POSTGRES
    name = "PostgreSQL"

    _SCHEMAS_QUERY = """
        SELECT schema_name
        FROM information_schema.schemata
        WHERE schema_name NOT LIKE 'pg\\_%' AND schema_name <> 'information_schema'
        ORDER BY schema_name
    """

    _TABLES_QUERY = """
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = $1
        ORDER BY table_name
    """

    _TABLE_EXISTS_QUERY = """
        SELECT EXISTS (
            SELECT 1 FROM information_schema.tables
            WHERE table_schema = $1 AND table_name = $2
        ) AS table_exists
    """

    _COLUMNS_QUERY = """
        SELECT column_name, data_type, is_nullable, column_default
        FROM information_schema.columns
        WHERE table_schema = $1 AND table_name = $2
        ORDER BY ordinal_position
    """

    _INDEXES_QUERY = """
        SELECT
            i.relname AS index_name,
            a.attname AS column_name,
            ix.indisunique AS is_unique,
            ix.indisprimary AS is_primary
        FROM pg_catalog.pg_class t
        JOIN pg_catalog.pg_namespace ns ON ns.oid = t.relnamespace
        JOIN pg_catalog.pg_index ix ON ix.indrelid = t.oid
        JOIN pg_catalog.pg_class i ON i.oid = ix.indexrelid
        CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, position)
        JOIN pg_catalog.pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
        WHERE ns.nspname = $1 AND t.relname = $2
        ORDER BY i.relname, k.position
    """

    _PROCEDURES_QUERY = """
        SELECT DISTINCT routine_name
        FROM information_schema.routines
        WHERE routine_schema = $1 AND routine_type IN ('PROCEDURE', 'FUNCTION')
        ORDER BY routine_name
    """

    _PROCEDURE_DETAIL_QUERY = """
        SELECT
            p.proname AS procedure_name,
            CASE p.prokind WHEN 'p' THEN 'procedure' ELSE 'function' END AS procedure_type,
            l.lanname AS language,
            pg_catalog.pg_get_function_arguments(p.oid) AS parameter_list,
            pg_catalog.pg_get_function_result(p.oid) AS return_type,
            pg_catalog.pg_get_functiondef(p.oid) AS definition
        FROM pg_catalog.pg_proc p
        JOIN pg_catalog.pg_namespace n ON n.oid = p.pronamespace
        JOIN pg_catalog.pg_language l ON l.oid = p.prolang
        WHERE n.nspname = $1 AND p.proname = $2 AND p.prokind IN ('f', 'p')
        LIMIT 1
    """

    def __init__(self, *, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        self.dsn_parser = PostgresDSNParser()
        self._connect_timeout = connect_timeout
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        try:
            self._pool = await asyncpg.create_pool(**self._connect_kwargs(config))
        except Exception as exc:
            self._pool = None
            raise DatabaseConnectionError(
                f"Failed to connect to PostgreSQL at {config.host}:{config.port}: {exc}"
            ) from exc
        LOG.info("Connected to PostgreSQL", extra={"host": config.host, "database": config.database})

    async def disconnect(self) -> None:
        pool, self._pool = self._pool, None
        if pool is None:
            return
        await pool.close()

    async def get_schemas(self) -> list[str]:
        rows = await self._fetch(self._SCHEMAS_QUERY)
        return [str(row["schema_name"]) for row in rows]

    async def get_tables(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(self._TABLES_QUERY, schema or DEFAULT_SCHEMA)
        return [str(row["table_name"]) for row in rows]

    async def table_exists(self, table: str, schema: str | None = None) -> bool:
        rows = await self._fetch(self._TABLE_EXISTS_QUERY, schema or DEFAULT_SCHEMA, table)
        return bool(rows and rows[0]["table_exists"])

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]:
        rows = await self._fetch(self._COLUMNS_QUERY, schema or DEFAULT_SCHEMA, table)
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
        rows = await self._fetch(self._INDEXES_QUERY, schema or DEFAULT_SCHEMA, table)
        return group_index_rows(rows)

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(self._PROCEDURES_QUERY, schema or DEFAULT_SCHEMA)
        return [str(row["routine_name"]) for row in rows]

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        schema = schema or DEFAULT_SCHEMA
        rows = await self._fetch(self._PROCEDURE_DETAIL_QUERY, schema, name)
        if not rows:
            raise ObjectNotFoundError(f"Stored procedure '{name}' not found in schema '{schema}'")
        row = rows[0]
        return StoredProcedure(
            name=str(row["procedure_name"]),
            kind=str(row["procedure_type"]),
            parameters=row["parameter_list"],
            return_type=row["return_type"],
            language=row["language"],
            definition=row["definition"],
        )

    async def execute_sql(self, sql: str) -> SQLResult:
        pool = self._require_pool()
        rows: list[Row] = []
        try:
            async with pool.acquire() as conn:
                for statement in split_statements(sql):
                    records = await conn.fetch(statement)
                    rows.extend(dict(record) for record in records)
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return SQLResult(rows=rows)

    async def _fetch(self, query: str, *args: Any) -> list[Row]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                records = await conn.fetch(query, *args)
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return [dict(record) for record in records]

    def _require_pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseConnectionError("Not connected to PostgreSQL. Call connect() first.")
        return self._pool

    def _connect_kwargs(self, config: ConnectionConfig) -> dict[str, object]:
        kwargs: dict[str, object] = {
            "host": config.host or "localhost",
            "port": config.port,
            "min_size": 1,
            "max_size": self._max_pool_size,
            "timeout": float(config.options.get("connect_timeout", self._connect_timeout)),
        }
        if config.user:
            kwargs["user"] = config.user
        if config.password is not None:
            kwargs["password"] = config.password
        if config.database:
            kwargs["database"] = config.database
        if config.ssl_mode:
            kwargs["ssl"] = config.ssl_mode
        if config.options.get("application_name"):
            kwargs["server_settings"] = {"application_name": config.options["application_name"]}
        return kwargs


__all__ = ["PostgresConnector"]
