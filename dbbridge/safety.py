"""Read-only safety gate: statement splitting and leading-keyword classification."""

from __future__ import annotations

from typing import assert_never

from .dsn import SCHEMES
from .errors import ReadOnlyViolation
from .models import Dialect

DEFAULT_READ_ONLY_KEYWORDS = frozenset({"select", "with", "explain"})

_POSTGRES_KEYWORDS = frozenset({"select", "with", "explain", "analyze", "show"})
_MYSQL_KEYWORDS = frozenset({"select", "with", "explain", "analyze", "show", "describe", "desc"})
_MSSQL_KEYWORDS = frozenset({"select", "with", "explain", "showplan"})
_SQLITE_KEYWORDS = frozenset({"select", "with", "explain", "analyze", "pragma"})


def split_statements(sql: str) -> list[str]:
    """Split ``sql`` on semicolons, trimming and discarding empty segments.

    The split is purely lexical: a ``;`` inside a string literal or a comment
    still ends a segment. Read-only classification is defined over these
    segments, so changing the split changes what the gate lets through.
    """

    return [statement for statement in (chunk.strip() for chunk in sql.split(";")) if statement]


def coerce_dialect(tag: Dialect | str) -> Dialect:
    """Map a dialect tag onto :class:`Dialect`; unknown tags become ANSI."""

    if isinstance(tag, Dialect):
        return tag
    return SCHEMES.get(str(tag).lower(), Dialect.ANSI)


def read_only_keywords(dialect: Dialect | str) -> frozenset[str]:
    """Leading keywords accepted in read-only mode for ``dialect``."""

    resolved = coerce_dialect(dialect)
    match resolved:
        case Dialect.POSTGRES:
            return _POSTGRES_KEYWORDS
        case Dialect.MYSQL | Dialect.MARIADB:
            return _MYSQL_KEYWORDS
        case Dialect.MSSQL:
            return _MSSQL_KEYWORDS
        case Dialect.SQLITE:
            return _SQLITE_KEYWORDS
        case Dialect.ANSI:
            return DEFAULT_READ_ONLY_KEYWORDS
        case _:
            assert_never(resolved)


def leading_keyword(statement: str) -> str:
    """Lower-cased first whitespace-delimited token, or "" for a blank statement."""

    tokens = statement.strip().lower().split(None, 1)
    return tokens[0] if tokens else ""


def is_read_only(statement: str, dialect: Dialect | str) -> bool:
    """Return True when the statement's first token is an allowed read keyword."""

    return leading_keyword(statement) in read_only_keywords(dialect)


def are_all_read_only(sql: str, dialect: Dialect | str) -> bool:
    """True when every split statement is read-only; empty batches pass."""

    return all(is_read_only(statement, dialect) for statement in split_statements(sql))


def enforce_read_only(sql: str, dialect: Dialect | str) -> None:
    """Raise :class:`ReadOnlyViolation` unless the whole batch is read-only."""

    if are_all_read_only(sql, dialect):
        return
    allowed = ", ".join(sorted(read_only_keywords(dialect)))
    raise ReadOnlyViolation(
        f"Read-only mode is enabled. Only the following SQL operations are allowed: {allowed}"
    )


__all__ = [
    "DEFAULT_READ_ONLY_KEYWORDS",
    "are_all_read_only",
    "coerce_dialect",
    "enforce_read_only",
    "is_read_only",
    "leading_keyword",
    "read_only_keywords",
    "split_statements",
]
