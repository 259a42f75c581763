"""Error taxonomy shared by the connectors, the safety gate and the transports."""

from __future__ import annotations


class DBBridgeError(RuntimeError):
    """Base error; ``code`` is surfaced in structured tool payloads."""

    code = "INTERNAL_ERROR"


class ConfigurationError(DBBridgeError):
    """Raised when startup configuration is invalid or incomplete."""

    code = "CONFIGURATION_ERROR"


class DSNResolutionError(ConfigurationError):
    """Raised when no DSN is found in any configuration source."""

    code = "DSN_MISSING"


class DSNParseError(DBBridgeError):
    """Raised when a DSN is malformed or uses an unsupported scheme."""

    code = "DSN_INVALID"


class DatabaseConnectionError(DBBridgeError):
    """Raised when a driver cannot connect (network, auth or SSL failure)."""

    code = "CONNECTION_ERROR"


class ConnectorNotReadyError(DBBridgeError):
    """Raised when the connector is requested before one was installed."""

    code = "CONNECTOR_NOT_READY"


class ReadOnlyViolation(DBBridgeError):
    """Raised when read-only mode rejects a batch before it reaches the driver."""

    code = "READONLY_VIOLATION"


class QueryExecutionError(DBBridgeError):
    """Raised when the driver fails while executing SQL."""

    code = "EXECUTION_ERROR"


class UnsupportedOperationError(DBBridgeError):
    """Raised when a dialect lacks the requested capability."""

    code = "UNSUPPORTED_OPERATION"


class ObjectNotFoundError(DBBridgeError):
    """Raised when an introspected catalog object does not exist."""

    code = "NOT_FOUND"


class InvalidResourceError(DBBridgeError):
    """Raised when a resource URI does not match any known template."""

    code = "INVALID_RESOURCE"


class AuthError(DBBridgeError):
    """Raised when a bearer token is missing, malformed or incorrect."""

    code = "AUTH_ERROR"

    def __init__(self, message: str, *, status_code: int = 401, reason: str = "Invalid authentication format") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


class OriginError(DBBridgeError):
    """Raised for cross-origin requests from non-localhost origins."""

    code = "FORBIDDEN_ORIGIN"
    status_code = 403


__all__ = [
    "AuthError",
    "ConfigurationError",
    "ConnectorNotReadyError",
    "DBBridgeError",
    "DSNParseError",
    "DSNResolutionError",
    "DatabaseConnectionError",
    "InvalidResourceError",
    "ObjectNotFoundError",
    "OriginError",
    "QueryExecutionError",
    "ReadOnlyViolation",
    "UnsupportedOperationError",
]
