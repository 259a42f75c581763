"""Multi-dialect SQL execution and schema introspection over MCP."""

from __future__ import annotations

__version__ = "0.4.0"

SERVER_NAME = "dbbridge"

__all__ = ["SERVER_NAME", "__version__"]
