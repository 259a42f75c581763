"""Shared dataclasses used across the DSN, connector and tool modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

Row = dict[str, Any]


class Dialect(str, Enum):
    """Closed set of supported SQL dialects."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MARIADB = "mariadb"
    MSSQL = "sqlserver"
    SQLITE = "sqlite"
    ANSI = "ansi"


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Structured form of a DSN, handed to ``Connector.connect``."""

    dialect: Dialect
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = field(default=None, repr=False)
    database: str | None = None
    ssl_mode: str | None = None
    options: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __repr__(self) -> str:
        password = "***" if self.password else None
        return (
            f"ConnectionConfig(dialect={self.dialect.value!r}, host={self.host!r}, port={self.port!r}, "
            f"user={self.user!r}, password={password!r}, database={self.database!r}, "
            f"ssl_mode={self.ssl_mode!r}, options={dict(self.options)!r})"
        )


@dataclass(frozen=True, slots=True)
class SQLResult:
    """Rows returned by a batch, in the order the driver produced them."""

    rows: list[Row] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """Column descriptor shared by every dialect."""

    name: str
    data_type: str
    nullable: bool
    default: str | None = None


@dataclass(frozen=True, slots=True)
class IndexInfo:
    """Index descriptor; ``columns`` follow key order."""

    name: str
    columns: tuple[str, ...]
    is_unique: bool
    is_primary: bool


@dataclass(frozen=True, slots=True)
class StoredProcedure:
    """Stored procedure or function descriptor."""

    name: str
    kind: str = "procedure"
    parameters: str | None = None
    return_type: str | None = None
    language: str | None = None
    definition: str | None = None


__all__ = [
    "ColumnInfo",
    "ConnectionConfig",
    "Dialect",
    "IndexInfo",
    "Row",
    "SQLResult",
    "StoredProcedure",
]
