"""Bearer token validation for the HTTP transport."""

from __future__ import annotations

import hmac
import re
from dataclasses import dataclass

from .errors import AuthError

BEARER_PREFIX = "Bearer "

_INVALID_TOKEN_CHARS = re.compile(r"[\r\n\t\x00-\x1F\x7F-\x9F]")


@dataclass(frozen=True, slots=True)
class BearerAuthPolicy:
    """Expected token and whether requests without a header are rejected."""

    token: str | None = None
    required: bool = False

    @property
    def enabled(self) -> bool:
        return self.token is not None


def tokens_match(provided: str, expected: str) -> bool:
    """Constant-time token comparison; unequal lengths never reach the digest."""

    if not provided or not expected:
        return False
    provided_bytes = provided.encode("utf-8")
    expected_bytes = expected.encode("utf-8")
    if len(provided_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(provided_bytes, expected_bytes)


def extract_bearer_token(header: str) -> str:
    """Return the token carried by an ``Authorization`` header.

    The header is checked as received. Surrounding whitespace is not
    trimmed, so a token followed by a newline is rejected.
    """

    if not header.startswith(BEARER_PREFIX):
        raise AuthError("Authorization header must use Bearer token format")
    token = header[len(BEARER_PREFIX):]
    if not token.strip():
        raise AuthError("Bearer token cannot be empty")
    if token != token.strip() or _INVALID_TOKEN_CHARS.search(token):
        raise AuthError("Bearer token contains invalid characters")
    return token


def authenticate(header: str | None, policy: BearerAuthPolicy) -> bool:
    """Validate ``header`` against ``policy``.

    Returns True when a token was checked, False when the request passes
    through unauthenticated. Raises :class:`AuthError` carrying the HTTP
    status otherwise.
    """

    if header is None:
        if policy.required:
            raise AuthError("Missing Authorization header", reason="Authentication required")
        return False
    token = extract_bearer_token(header)
    if policy.token is None or not tokens_match(token, policy.token):
        raise AuthError("Invalid token", status_code=403, reason="Authentication failed")
    return True


__all__ = ["BEARER_PREFIX", "BearerAuthPolicy", "authenticate", "extract_bearer_token", "tokens_match"]
