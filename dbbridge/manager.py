"""Ownership of the single connector installed for the process."""

from __future__ import annotations

import logging
from typing import Callable

from .connectors import Connector, create_connector
from .dsn import redact_dsn, resolve_dialect
from .dsn import sample_dsns as _sample_dsns
from .errors import ConnectorNotReadyError, DBBridgeError
from .models import Dialect

LOG = logging.getLogger(__name__)

ConnectorFactory = Callable[[Dialect], Connector]


class ConnectorManager:
    """Connects once at startup and hands the connector to the transports."""

    def __init__(self, connector_factory: ConnectorFactory | None = None) -> None:
        self._factory = connector_factory or create_connector
        self._connector: Connector | None = None

    @property
    def current(self) -> Connector:
        if self._connector is None:
            raise ConnectorNotReadyError("No database connector installed. Call connect_with_dsn() first.")
        return self._connector

    def get_current_connector(self) -> Connector:
        return self.current

    @property
    def is_connected(self) -> bool:
        return self._connector is not None

    async def connect_with_dsn(self, dsn: str) -> Connector:
        """Resolve, parse and connect ``dsn``, then install the connector.

        Nothing is installed when any step fails; ``DSNParseError`` and
        ``DatabaseConnectionError`` propagate to the caller.
        """

        if self._connector is not None:
            raise DBBridgeError("A database connector is already installed for this process")
        connector = self._factory(resolve_dialect(dsn))
        config = connector.dsn_parser.parse(dsn)
        LOG.debug("Connecting %s using %s", connector.name, redact_dsn(dsn))
        await connector.connect(config)
        self._connector = connector
        return connector

    async def disconnect(self) -> None:
        connector, self._connector = self._connector, None
        if connector is None:
            return
        await connector.disconnect()
        LOG.info("Disconnected from %s", connector.name)

    @staticmethod
    def sample_dsns() -> dict[Dialect, str]:
        return _sample_dsns()


__all__ = ["ConnectorFactory", "ConnectorManager"]
