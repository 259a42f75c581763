"""Generic ANSI SQL connector for any database with an ODBC driver."""

from __future__ import annotations

from ..dsn import ANSIDSNParser
from ..errors import UnsupportedOperationError
from ..models import ConnectionConfig, Dialect, StoredProcedure
from .odbc import ODBCConnector, odbc_value

# Query options consumed here rather than forwarded to the driver.
_RESERVED_OPTIONS = frozenset({"driver", "odbc_dsn", "schema", "connect_timeout"})


class ANSIConnector(ODBCConnector):
    """Sticks to INFORMATION_SCHEMA views so it works against unknown engines."""

    dialect = Dialect.ANSI
    name = "ANSI SQL"

    def __init__(self, *, connect_timeout: float = 10.0, max_pool_size: int = 10) -> None:
        super().__init__(
            dsn_parser=ANSIDSNParser(),
            connect_timeout=connect_timeout,
            max_pool_size=max_pool_size,
        )

    def connection_string(self, config: ConnectionConfig) -> str:
        settings: dict[str, str] = {}
        if config.options.get("odbc_dsn"):
            settings["DSN"] = odbc_value(config.options["odbc_dsn"])
        else:
            settings["DRIVER"] = odbc_value(config.options["driver"])
            if config.host:
                settings["SERVER"] = config.host
            if config.port:
                settings["PORT"] = str(config.port)
        if config.database:
            settings["DATABASE"] = odbc_value(config.database)
        if config.user:
            settings["UID"] = odbc_value(config.user)
        if config.password is not None:
            settings["PWD"] = odbc_value(config.password)
        for key, value in config.options.items():
            if key not in _RESERVED_OPTIONS:
                settings[key] = odbc_value(value)
        return ";".join(f"{key}={value}" for key, value in settings.items())

    async def get_stored_procedures(self, schema: str | None = None) -> list[str]:
        raise UnsupportedOperationError("Stored procedures are not supported by the generic ANSI connector")

    async def get_stored_procedure_detail(self, name: str, schema: str | None = None) -> StoredProcedure:
        raise UnsupportedOperationError("Stored procedures are not supported by the generic ANSI connector")


__all__ = ["ANSIConnector"]
