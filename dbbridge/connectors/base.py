"""Connector contract shared by every dialect variant."""

from __future__ import annotations

from typing import Any, Iterable, Protocol, Sequence, runtime_checkable

from ..dsn import DSNParser
from ..models import ColumnInfo, ConnectionConfig, Dialect, IndexInfo, Row, SQLResult, StoredProcedure


@runtime_checkable
class Connector(Protocol):
    """Protocol implemented by the dialect connectors."""

    dialect: Dialect
    name: str
    dsn_parser: DSNParser

    async def connect(self, config: ConnectionConfig) -> None:
        """Open the driver handle; raise DatabaseConnectionError on failure."""

    async def disconnect(self) -> None:
        """Release the driver handle; safe to call more than once."""

    async def get_schemas(self) -> list[str]: ...

    async def get_tables(self, schema: str | None = None) -> list[str]: ...

    async def table_exists(self, table: str, schema: str | None = None) -> bool: ...

    async def get_table_schema(self, table: str, schema: str | None = None) -> list[ColumnInfo]: ...

    async def get_table_indexes(self, table: str, schema: str | None = None) -> list[IndexInfo]: ...

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]: ...

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure: ...

    async def execute_sql(self, sql: str) -> SQLResult:
        """Run one or more semicolon-separated statements and collect their rows."""


def quote_identifier(name: str, quote: str = '"') -> str:
    """Quote an identifier for dialects that cannot bind catalog names."""

    closing = "]" if quote == "[" else quote
    return f"{quote}{name.replace(closing, closing * 2)}{closing}"


def is_nullable(flag: Any) -> bool:
    return str(flag).strip().upper() in {"YES", "Y", "TRUE", "1"}


def rows_from_cursor(description: Sequence[Sequence[Any]] | None, records: Iterable[Sequence[Any]]) -> list[Row]:
    """Zip DB-API cursor rows with their column names."""

    if not description:
        return []
    columns = [str(column[0]) for column in description]
    return [dict(zip(columns, record)) for record in records]


def group_index_rows(rows: Iterable[Row]) -> list[IndexInfo]:
    """Fold one-row-per-column catalog output into :class:`IndexInfo` records.

    Rows must carry ``index_name``, ``column_name``, ``is_unique`` and
    ``is_primary`` and arrive ordered by index then key position.
    """

    grouped: dict[str, dict[str, Any]] = {}
    for row in rows:
        name = str(row["index_name"])
        entry = grouped.setdefault(
            name,
            {"columns": [], "is_unique": bool(row["is_unique"]), "is_primary": bool(row["is_primary"])},
        )
        entry["columns"].append(str(row["column_name"]))
    return [
        IndexInfo(
            name=name,
            columns=tuple(entry["columns"]),
            is_unique=entry["is_unique"],
            is_primary=entry["is_primary"],
        )
        for name, entry in grouped.items()
    ]


__all__ = ["Connector", "group_index_rows", "is_nullable", "quote_identifier", "rows_from_cursor"]
