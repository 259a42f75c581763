"""Composition root: configuration, logging, connector and transport."""

from __future__ import annotations

import functools
import logging
import sys
from typing import Sequence

import anyio

from . import __version__
from .auth import BearerAuthPolicy
from .config import ServerConfig, load_config
from .dsn import redact_dsn, sample_dsns
from .errors import ConfigurationError, DatabaseConnectionError, DSNParseError, DSNResolutionError
from .http import create_app, run_http
from .manager import ConnectorManager
from .server import build_server, run_stdio

LOG = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Route all logging to stderr; stdout belongs to the stdio transport."""

    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def missing_dsn_message() -> str:
    samples = "\n".join(f"  - {dialect.value}: {dsn}" for dialect, dsn in sample_dsns().items())
    return (
        "Database connection string (DSN) is required.\n"
        "Provide it in one of these ways (in order of priority):\n"
        "  1. Command line argument: --dsn=\"your-connection-string\"\n"
        "  2. Environment variable: export DSN=\"your-connection-string\"\n"
        "  3. .env file: DSN=your-connection-string\n"
        f"Example formats:\n{samples}"
    )


def log_startup(config: ServerConfig) -> None:
    LOG.info("dbbridge v%s", __version__)
    LOG.info("Connecting with DSN: %s", redact_dsn(config.dsn))
    LOG.info("DSN source: %s", config.source_of("dsn"))
    LOG.info("Using transport: %s (source: %s)", config.transport, config.source_of("transport"))
    modes = config.active_modes()
    if modes:
        details = []
        if config.readonly:
            details.append("only read only queries allowed")
        if config.require_auth:
            details.append("authentication required")
        elif config.auth_enabled:
            details.append("authentication enabled")
        LOG.info("Running in %s mode - %s", " and ".join(modes), ", ".join(details))
    if config.auth_enabled:
        LOG.info("Authentication token loaded from: %s", config.source_of("auth_token"))


async def serve(config: ServerConfig, manager: ConnectorManager | None = None) -> None:
    """Connect once, then run the configured transport until it stops."""

    manager = manager or ConnectorManager()
    connector = await manager.connect_with_dsn(config.dsn)
    LOG.info("Connected to %s", connector.name)
    if config.transport == "http":
        factory = functools.partial(build_server, connector, readonly=config.readonly)
        policy = BearerAuthPolicy(token=config.auth_token, required=config.require_auth)
        app = create_app(factory, auth_policy=policy)
        LOG.info("Port source: %s", config.source_of("port"))
        try:
            await run_http(app, config.port, log_level=config.log_level)
        finally:
            with anyio.CancelScope(shield=True):
                await manager.disconnect()
    else:
        await run_stdio(build_server(connector, readonly=config.readonly), manager)


def main(argv: Sequence[str] | None = None) -> None:
    """Console entry point; exits with status 1 on startup errors."""

    configure_logging()
    try:
        config = load_config(argv)
    except DSNResolutionError:
        LOG.error(missing_dsn_message())
        sys.exit(1)
    except ConfigurationError as exc:
        LOG.error("Configuration error: %s", exc)
        sys.exit(1)

    configure_logging(config.log_level)
    log_startup(config)
    try:
        anyio.run(serve, config)
    except (ConfigurationError, DSNParseError, DatabaseConnectionError) as exc:
        LOG.error("Fatal error: %s", exc)
        sys.exit(1)


__all__ = ["configure_logging", "log_startup", "main", "missing_dsn_message", "serve"]


if __name__ == "__main__":
    main()
