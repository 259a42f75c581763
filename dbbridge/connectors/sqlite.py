"""SQLite connector backed by a single aiosqlite connection."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiosqlite

from ..dsn import SQLiteDSNParser
from ..errors import DatabaseConnectionError, QueryExecutionError, UnsupportedOperationError
from ..models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, Row, SQLResult, StoredProcedure
from ..safety import split_statements
from .base import quote_identifier

LOG = logging.getLogger(__name__)

DEFAULT_SCHEMA = "main"


class SQLiteConnector:
    """Connector for SQLite files and in-memory databases.

    SQLite has one connection per database, so batches submitted through
    :meth:`execute_sql` are serialised with a lock.
    """

    dialect = Dialect.SQLITE
    name = "SQLite"

    def __init__(self) -> None:
        self.dsn_parser = SQLiteDSNParser()
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def connect(self, config: ConnectionConfig) -> None:
        path = config.database or ":memory:"
        try:
            conn = await aiosqlite.connect(path, isolation_level=None)
        except Exception as exc:
            self._conn = None
            raise DatabaseConnectionError(f"Failed to open SQLite database '{path}': {exc}") from exc
        conn.row_factory = aiosqlite.Row
        self._conn = conn
        LOG.info("Connected to SQLite", extra={"database": path})

    async def disconnect(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        await conn.close()

    async def get_schemas(self) -> list[str]:
        rows = await self._fetch("PRAGMA database_list")
        return [str(row["name"]) for row in rows]

    async def get_tables(self, schema: str | None = None) -> list[str]:
        rows = await self._fetch(
            f"SELECT name FROM {self._schema(schema)}.sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\' ORDER BY name"
        )
        return [str(row["name"]) for row in rows]

    async def table_exists(self, table: str, schema: str | None = None) -> bool:
        rows = await self._fetch(
            f"SELECT COUNT(*) AS table_count FROM {self._schema(schema)}.sqlite_master "
            "WHERE type = 'table' AND name = ?",
            table,
        )
        return bool(rows and rows[0]["table_count"])

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]:
        rows = await self._fetch(f"PRAGMA {self._schema(schema)}.table_info({quote_identifier(table)})")
        return [
            ColumnInfo(
                name=str(row["name"]),
                data_type=str(row["type"]),
                nullable=not row["notnull"] and not row["pk"],
                default=row["dflt_value"],
            )
            for row in rows
        ]

    async def get_table_indexes(self, table: str, schema: str | None = None) -> list[IndexInfo]:
        prefix = self._schema(schema)
        index_rows = await self._fetch(f"PRAGMA {prefix}.index_list({quote_identifier(table)})")
        indexes: list[IndexInfo] = []
        for row in index_rows:
            columns = await self._fetch(f"PRAGMA {prefix}.index_info({quote_identifier(str(row['name']))})")
            indexes.append(
                IndexInfo(
                    name=str(row["name"]),
                    columns=tuple(str(column["name"]) for column in sorted(columns, key=lambda c: c["seqno"])),
                    is_unique=bool(row["unique"]),
                    is_primary=row["origin"] == "pk",
                )
            )
        if not any(index.is_primary for index in indexes):
            # INTEGER PRIMARY KEY aliases the rowid and gets no index of its own.
            table_info = await self._fetch(f"PRAGMA {prefix}.table_info({quote_identifier(table)})")
            pk_columns = [row for row in table_info if row["pk"]]
            if pk_columns:
                indexes.insert(
                    0,
                    IndexInfo(
                        name="PRIMARY",
                        columns=tuple(str(row["name"]) for row in sorted(pk_columns, key=lambda r: r["pk"])),
                        is_unique=True,
                        is_primary=True,
                    ),
                )
        return indexes

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        raise UnsupportedOperationError("SQLite does not support stored procedures")

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        raise UnsupportedOperationError("SQLite does not support stored procedures")

    async def execute_sql(self, sql: str) -> SQLResult:
        conn = self._require_conn()
        rows: list[Row] = []
        async with self._lock:
            for statement in split_statements(sql):
                try:
                    async with conn.execute(statement) as cursor:
                        rows.extend(dict(record) for record in await cursor.fetchall())
                except Exception as exc:
                    # The connection is shared; never leave a client's BEGIN open.
                    if conn.in_transaction:
                        await conn.rollback()
                        LOG.warning("Rolled back open transaction after failed statement")
                    raise QueryExecutionError(str(exc)) from exc
        return SQLResult(rows=rows)

    async def _fetch(self, query: str, *args: Any) -> list[Row]:
        conn = self._require_conn()
        try:
            async with conn.execute(query, args) as cursor:
                records = await cursor.fetchall()
        except Exception as exc:
            raise QueryExecutionError(str(exc)) from exc
        return [dict(record) for record in records]

    def _schema(self, schema: str | None) -> str:
        return quote_identifier(schema or DEFAULT_SCHEMA)

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise DatabaseConnectionError("Not connected to SQLite. Call connect() first.")
        return self._conn


__all__ = ["SQLiteConnector"]
