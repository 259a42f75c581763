"""MCP server factory and the stdio transport loop."""

from __future__ import annotations

import logging
import signal

import anyio
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from . import SERVER_NAME, __version__
from .connectors import Connector
from .manager import ConnectorManager
from .resources import register_resources
from .tools import register_tools

LOG = logging.getLogger(__name__)


def build_server(connector: Connector, *, readonly: bool = False) -> Server:
    """Create a server with tools and resources bound to ``connector``."""

    server: Server = Server(SERVER_NAME, version=__version__)
    register_tools(server, connector, readonly=readonly)
    register_resources(server, connector)
    return server


async def run_stdio(server: Server, manager: ConnectorManager) -> None:
    """Serve ``server`` over stdin/stdout until EOF or SIGINT/SIGTERM.

    Either way the connector is disconnected exactly once on the way out.
    """

    try:
        async with anyio.create_task_group() as tg:

            async def watch_signals() -> None:
                with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
                    async for signum in signals:
                        LOG.info("Received %s", signal.Signals(signum).name)
                        tg.cancel_scope.cancel()
                        return

            tg.start_soon(watch_signals)
            LOG.info("Starting with STDIO transport")
            async with stdio_server() as (read_stream, write_stream):
                await server.run(read_stream, write_stream, server.create_initialization_options())
            tg.cancel_scope.cancel()
    finally:
        LOG.info("Shutting down...")
        with anyio.CancelScope(shield=True):
            await manager.disconnect()


__all__ = ["build_server", "run_stdio"]
