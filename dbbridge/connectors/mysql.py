"""MySQL and MariaDB connectors backed by an aiomysql pool."""

from __future__ import annotations

import logging
import ssl
from typing import Any

import aiomysql

from ..dsn import MariaDBDSNParser, MySQLDSNParser
from ..errors import DatabaseConnectionError, ObjectNotFoundError, QueryExecutionError
from ..models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, Row, SQLResult, StoredProcedure
from ..safety import split_statements
from .base import group_index_rows, is_nullable

LOG = logging.getLogger(__name__)

# A NULL schema argument falls back to the database named in the DSN.
_SCHEMA = "COALESCE(%s, DATABASE())"


def build_ssl_context(mode: str | None) -> ssl.SSLContext | None:
    """Translate a libpq-style sslmode into an SSL context for aiomysql."""

    if mode in (None, "disable"):
        return None
    context = ssl.create_default_context()
    if mode in ("allow", "prefer", "require"):
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    elif mode == "verify-ca":
        context.check_hostname = False
    return context


class MySQLConnector:
    """Connector that queries MySQL via aiomysql."""

    dialect = Dialect.MYSQL
    name = "MySQL"

    _SCHEMAS_QUERY = """
        SELECT SCHEMA_NAME AS schema_name
        FROM information_schema.SCHEMATA
        WHERE SCHEMA_NAME NOT IN ('mysql', 'information_schema', 'performance_schema', 'sys')
        ORDER BY SCHEMA_NAME
    """

    _TABLES_QUERY = f"""
        SELECT TABLE_NAME AS table_name
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = {_SCHEMA}
        ORDER BY TABLE_NAME
    """

    _TABLE_EXISTS_QUERY = f"""
        SELECT COUNT(*) AS table_count
        FROM information_schema.TABLES
        WHERE TABLE_SCHEMA = {_SCHEMA} AND TABLE_NAME = %s
    """

    _COLUMNS_QUERY = f"""
        SELECT
            COLUMN_NAME AS column_name,
            DATA_TYPE AS data_type,
            IS_NULLABLE AS is_nullable,
            COLUMN_DEFAULT AS column_default
        FROM information_schema.COLUMNS
        WHERE TABLE_SCHEMA = {_SCHEMA} AND TABLE_NAME = %s
        ORDER BY ORDINAL_POSITION
    """

    _INDEXES_QUERY = f"""
        SELECT
            INDEX_NAME AS index_name,
            COLUMN_NAME AS column_name,
            NON_UNIQUE = 0 AS is_unique,
            INDEX_NAME = 'PRIMARY' AS is_primary
        FROM information_schema.STATISTICS
        WHERE TABLE_SCHEMA = {_SCHEMA} AND TABLE_NAME = %s
        ORDER BY INDEX_NAME, SEQ_IN_INDEX
    """

    _PROCEDURES_QUERY = f"""
        SELECT ROUTINE_NAME AS routine_name
        FROM information_schema.ROUTINES
        WHERE ROUTINE_SCHEMA = {_SCHEMA}
        ORDER BY ROUTINE_NAME
    """

    _PROCEDURE_DETAIL_QUERY = f"""
        SELECT
            ROUTINE_NAME AS procedure_name,
            LOWER(ROUTINE_TYPE) AS procedure_type,
            ROUTINE_BODY AS language,
            DTD_IDENTIFIER AS return_type,
            ROUTINE_DEFINITION AS definition
        FROM information_schema.ROUTINES
        WHERE ROUTINE_SCHEMA = {_SCHEMA} AND ROUTINE_NAME = %s
        LIMIT 1
    """

    _PARAMETERS_QUERY = f"""
        SELECT
            PARAMETER_MODE AS parameter_mode,
            PARAMETER_NAME AS parameter_name,
            DTD_IDENTIFIER AS data_type
        FROM information_schema.PARAMETERS
        WHERE SPECIFIC_SCHEMA = {_SCHEMA} AND SPECIFIC_NAME = %s AND ORDINAL_POSITION > 0
        ORDER BY ORDINAL_POSITION
    """

    def __init__(self, *, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        self.dsn_parser = MySQLDSNParser()
        self._connect_timeout = connect_timeout
        self._max_pool_size = max_pool_size
        self._pool: aiomysql.Pool | None = None

    async def connect(self, config: ConnectionConfig) -> None:
        try:
            self._pool = await aiomysql.create_pool(**self._connect_kwargs(config))
        except Exception as exc:
            self._pool = None
            raise DatabaseConnectionError(
                f"Failed to connect to {self.name} at {config.host}:{config.port}: {exc}"
            ) from exc
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
        rows = await self._fetch(self._TABLES_QUERY, (schema,))
        return [str(row["table_name"]) for row in rows]

    async def table_exists(self, table: str, schema: str | None = None) -> bool:
        rows = await self._fetch(self._TABLE_EXISTS_QUERY, (schema, table))
        return bool(rows and int(rows[0]["table_count"]) > 0)

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]:
        rows = await self._fetch(self._COLUMNS_QUERY, (schema, table))
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
        rows = await self._fetch(self._INDEXES_QUERY, (schema, table))
        return group_index_rows(rows)

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(self._PROCEDURES_QUERY, (schema,))
        return [str(row["routine_name"]) for row in rows]

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        rows = await self._fetch(self._PROCEDURE_DETAIL_QUERY, (schema, name))
        if not rows:
            raise ObjectNotFoundError(f"Stored procedure '{name}' not found in schema '{schema or 'current database'}'")
        row = rows[0]
        params = await self._fetch(self._PARAMETERS_QUERY, (schema, name))
        parameters = ", ".join(
            " ".join(str(part) for part in (param["parameter_mode"], param["parameter_name"], param["data_type"]) if part)
            for param in params
        )
        kind = str(row["procedure_type"])
        return StoredProcedure(
            name=str(row["procedure_name"]),
            kind=kind,
            parameters=parameters or None,
            return_type=row["return_type"] if kind == "function" else None,
            language=row["language"],
            definition=row["definition"],
        )

    async def execute_sql(self, sql: str) -> SQLResult:
        pool = self._require_pool()
        rows: list[Row] = []
        try:
            async with pool.acquire() as conn:
                async with conn.cursor(aiomysql.DictCursor) as cur:
                    for statement in split_statements(sql):
                        await cur.execute(statement)
                        if cur.description:
                            rows.extend(dict(row) for row in await cur.fetchall())
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return SQLResult(rows=rows)

    async def _fetch(self, query: str, args: tuple[Any, ...] | None = None) -> list[Row]:
        pool = self._require_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.cursor(aiomysql.DictCursor) as cur:
                    await cur.execute(query, args)
                    records = await cur.fetchall()
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return [dict(record) for record in records]

    def _require_pool(self) -> aiomysql.Pool:
        if self._pool is None:
            raise DatabaseConnectionError(f"Not connected to {self.name}. Call connect() first.")
        return self._pool

    def _connect_kwargs(self, config: ConnectionConfig) -> dict[str, object]:
        kwargs: dict[str, object] = {
            "host": config.host or "localhost",
            "port": config.port or 3306,
            "user": config.user,
            "password": config.password or "",
            "charset": config.options.get("charset", "utf8mb4"),
            "autocommit": True,
            "minsize": 1,
            "maxsize": self._max_pool_size,
            "connect_timeout": float(config.options.get("connect_timeout", self._connect_timeout)),
        }
        if config.database:
            kwargs["db"] = config.database
        context = build_ssl_context(config.ssl_mode)
        if context is not None:
            kwargs["ssl"] = context
        return kwargs


class MariaDBConnector(MySQLConnector):
    """MariaDB shares MySQL's wire protocol and information_schema layout."""

    dialect = Dialect.MARIADB
    name = "MariaDB"

    def __init__(self, *, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        super().__init__(connect_timeout=connect_timeout, max_pool_size=max_pool_size)
        self.dsn_parser = MariaDBDSNParser()


__all__ = ["MariaDBConnector", "MySQLConnector", "build_ssl_context"]
