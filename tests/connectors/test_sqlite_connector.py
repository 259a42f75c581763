"""Tests for the SQLite connector against a real temporary database."""

from __future__ import annotations

from pathlib import Path

import pytest

from dbbridge.connectors import SQLiteConnector, create_connector
from dbbridge.errors import DatabaseConnectionError, QueryExecutionError, UnsupportedOperationError
from dbbridge.models import Dialect

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    nickname TEXT DEFAULT 'anon'
);
CREATE TABLE memberships (
    user_id INTEGER NOT NULL,
    team TEXT NOT NULL,
    PRIMARY KEY (user_id, team)
);
CREATE INDEX idx_users_nickname ON users (nickname);
INSERT INTO users (email) VALUES ('alice@example.com');
INSERT INTO users (email, nickname) VALUES ('bob@example.com', 'bobby')
"""


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def connector(tmp_path: Path):
    connector = SQLiteConnector()
    await connector.connect(connector.dsn_parser.parse(f"sqlite://{tmp_path / 'app.db'}"))
    await connector.execute_sql(SCHEMA)
    try:
        yield connector
    finally:
        await connector.disconnect()


def test_factory_returns_sqlite_connector() -> None:
    assert isinstance(create_connector(Dialect.SQLITE), SQLiteConnector)


@pytest.mark.anyio
async def test_execute_concatenates_statement_rows(connector: SQLiteConnector) -> None:
    result = await connector.execute_sql(
        "SELECT email FROM users WHERE id = 1; SELECT nickname FROM users ORDER BY id"
    )

    assert result.rows == [{"email": "alice@example.com"}, {"nickname": "anon"}, {"nickname": "bobby"}]
    assert result.count == 3


@pytest.mark.anyio
async def test_writes_are_autocommitted(tmp_path: Path, connector: SQLiteConnector) -> None:
    await connector.execute_sql("INSERT INTO users (email) VALUES ('carol@example.com')")

    other = SQLiteConnector()
    await other.connect(other.dsn_parser.parse(f"sqlite://{tmp_path / 'app.db'}"))
    try:
        result = await other.execute_sql("SELECT COUNT(*) AS n FROM users")
    finally:
        await other.disconnect()

    assert result.rows == [{"n": 3}]


@pytest.mark.anyio
async def test_driver_error_keeps_message(connector: SQLiteConnector) -> None:
    with pytest.raises(QueryExecutionError, match="no such table: ghosts"):
        await connector.execute_sql("SELECT * FROM ghosts")


@pytest.mark.anyio
async def test_introspection(connector: SQLiteConnector) -> None:
    assert await connector.get_schemas() == ["main"]
    assert await connector.get_tables() == ["memberships", "users"]
    assert await connector.table_exists("users")
    assert not await connector.table_exists("ghosts")

    columns = {column.name: column for column in await connector.get_table_schema("users")}
    assert columns["email"].nullable is False
    assert columns["nickname"].nullable is True
    assert columns["nickname"].default == "'anon'"


@pytest.mark.anyio
async def test_rowid_primary_key_is_reported(connector: SQLiteConnector) -> None:
    indexes = {index.name: index for index in await connector.get_table_indexes("users")}

    assert indexes["PRIMARY"].columns == ("id",)
    assert indexes["PRIMARY"].is_primary
    assert indexes["idx_users_nickname"].is_unique is False
    assert any(index.is_unique and index.columns == ("email",) for index in indexes.values())


@pytest.mark.anyio
async def test_composite_primary_key_uses_autoindex(connector: SQLiteConnector) -> None:
    indexes = await connector.get_table_indexes("memberships")

    primary = [index for index in indexes if index.is_primary]
    assert len(primary) == 1
    assert primary[0].columns == ("user_id", "team")


@pytest.mark.anyio
async def test_procedures_are_unsupported(connector: SQLiteConnector) -> None:
    with pytest.raises(UnsupportedOperationError):
        await connector.get_stored_procedures()
    with pytest.raises(UnsupportedOperationError):
        await connector.get_stored_procedure_detail("anything")


@pytest.mark.anyio
async def test_execute_before_connect_raises() -> None:
    with pytest.raises(DatabaseConnectionError):
        await SQLiteConnector().execute_sql("SELECT 1")


@pytest.mark.anyio
async def test_unopenable_path_is_connection_error(tmp_path: Path) -> None:
    connector = SQLiteConnector()
    missing_dir = tmp_path / "does" / "not" / "exist" / "app.db"

    with pytest.raises(DatabaseConnectionError):
        await connector.connect(connector.dsn_parser.parse(f"sqlite://{missing_dir}"))
    await connector.disconnect()


@pytest.mark.anyio
async def test_failed_batch_rolls_back_open_transaction(connector: SQLiteConnector) -> None:
    with pytest.raises(QueryExecutionError, match="UNIQUE constraint failed"):
        await connector.execute_sql(
            "BEGIN; INSERT INTO users (email) VALUES ('dup@example.com'); "
            "INSERT INTO users (email) VALUES ('dup@example.com'); COMMIT"
        )

    await connector.execute_sql("BEGIN; INSERT INTO users (email) VALUES ('carol@example.com'); COMMIT")
    result = await connector.execute_sql("SELECT email FROM users WHERE email IN ('dup@example.com', 'carol@example.com')")

    assert result.rows == [{"email": "carol@example.com"}]
