"""Dialect connectors and the factory that picks one."""

from __future__ import annotations

from typing import assert_never

from ..models import Dialect
from .ansi import ANSIConnector
from .base import Connector
from .mssql import SQLServerConnector
from .mysql import MariaDBConnector, MySQLConnector
from .postgres import PostgresConnector
from .sqlite import SQLiteConnector


def create_connector(dialect: Dialect) -> Connector:
    """Instantiate the connector variant for ``dialect``."""

    match dialect:
        case Dialect.POSTGRES:
            return PostgresConnector()
        case Dialect.MYSQL:
            return MySQLConnector()
        case Dialect.MARIADB:
            return MariaDBConnector()
        case Dialect.MSSQL:
            return SQLServerConnector()
        case Dialect.SQLITE:
            return SQLiteConnector()
        case Dialect.ANSI:
            return ANSIConnector()
        case _:
            assert_never(dialect)


__all__ = [
    "ANSIConnector",
    "Connector",
    "MariaDBConnector",
    "MySQLConnector",
    "PostgresConnector",
    "SQLServerConnector",
    "SQLiteConnector",
    "create_connector",
]
