"""SQL Server connector over ODBC."""

from __future__ import annotations

from ..dsn import SQLServerDSNParser
from ..models import ConnectionConfig, Dialect
from .odbc import ODBCConnector, odbc_value

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"


def encryption_settings(ssl_mode: str | None) -> dict[str, str]:
    """Map sslmode onto the driver's ``Encrypt``/``TrustServerCertificate`` pair."""

    match ssl_mode:
        case None:
            return {}
        case "disable":
            return {"Encrypt": "no"}
        case "verify-ca" | "verify-full":
            return {"Encrypt": "yes", "TrustServerCertificate": "no"}
        case _:
            return {"Encrypt": "yes", "TrustServerCertificate": "yes"}


class SQLServerConnector(ODBCConnector):
    dialect = Dialect.MSSQL
    name = "SQL Server"
    default_schema = "dbo"

    _SCHEMAS_QUERY = """
        SELECT name AS schema_name
        FROM sys.schemas
        WHERE name NOT IN ('sys', 'INFORMATION_SCHEMA', 'guest') AND name NOT LIKE 'db[_]%'
        ORDER BY name
    """

    _INDEXES_QUERY = """
        SELECT
            i.name AS index_name,
            c.name AS column_name,
            i.is_unique AS is_unique,
            i.is_primary_key AS is_primary
        FROM sys.indexes i
        JOIN sys.index_columns ic ON ic.object_id = i.object_id AND ic.index_id = i.index_id
        JOIN sys.columns c ON c.object_id = ic.object_id AND c.column_id = ic.column_id
        JOIN sys.tables t ON t.object_id = i.object_id
        JOIN sys.schemas s ON s.schema_id = t.schema_id
        WHERE (? IS NULL OR s.name = ?) AND t.name = ? AND i.name IS NOT NULL AND ic.is_included_column = 0
        ORDER BY i.name, ic.key_ordinal
    """

    def __init__(self, *, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        super().__init__(
            dsn_parser=SQLServerDSNParser(),
            connect_timeout=connect_timeout,
            max_pool_size=max_pool_size,
        )

    def connection_string(self, config: ConnectionConfig) -> str:
        instance = config.options.get("instanceName")
        # A named instance is located by the SQL Browser, not by port.
        server = f"{config.host}\\{instance}" if instance else f"{config.host},{config.port or 1433}"
        settings = {
            "DRIVER": odbc_value(config.options.get("driver", DEFAULT_DRIVER)),
            "SERVER": odbc_value(server),
            "DATABASE": odbc_value(config.database),
            "UID": odbc_value(config.user),
        }
        if config.password is not None:
            settings["PWD"] = odbc_value(config.password)
        settings.update(encryption_settings(config.ssl_mode))
        trust = config.options.get("TrustServerCertificate")
        if trust is not None:
            settings["TrustServerCertificate"] = "yes" if trust.strip().lower() in ("1", "true", "yes") else "no"
        if config.options.get("application_name"):
            settings["APP"] = odbc_value(config.options["application_name"])
        return ";".join(f"{key}={value}" for key, value in settings.items())


__all__ = ["DEFAULT_DRIVER", "SQLServerConnector", "encryption_settings"]
