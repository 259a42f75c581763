"""Tests for the db://schemas resources."""

from __future__ import annotations

import pytest

from dbbridge.errors import InvalidResourceError, UnsupportedOperationError
from dbbridge.resources import parse_resource_uri, read_resource, read_resource_payload


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


def test_parse_decodes_segments() -> None:
    assert parse_resource_uri("db://schemas/my%20schema/tables/") == ["schemas", "my schema", "tables"]


def test_parse_rejects_other_schemes() -> None:
    with pytest.raises(InvalidResourceError):
        parse_resource_uri("file:///etc/passwd")


@pytest.mark.anyio
async def test_schemas(fake_connector) -> None:
    assert await read_resource("db://schemas", fake_connector) == {"schemas": ["public", "sales"], "count": 2}


@pytest.mark.anyio
async def test_tables_in_schema(fake_connector) -> None:
    payload = await read_resource("db://schemas/public/tables", fake_connector)

    assert payload == {"schema": "public", "tables": ["accounts", "orders"], "count": 2}


@pytest.mark.anyio
async def test_table_structure(fake_connector) -> None:
    payload = await read_resource("db://schemas/public/tables/accounts", fake_connector)

    assert payload["table"] == "accounts"
    assert payload["columns"][0] == {
        "name": "id",
        "data_type": "integer",
        "nullable": False,
        "default": "nextval('accounts_id_seq')",
    }


@pytest.mark.anyio
async def test_table_indexes(fake_connector) -> None:
    payload = await read_resource("db://schemas/public/tables/orders/indexes", fake_connector)

    assert payload["indexes"] == [{"name": "orders_pkey", "columns": ("id",), "is_unique": True, "is_primary": True}]


@pytest.mark.anyio
async def test_procedure_detail(fake_connector) -> None:
    payload = await read_resource("db://schemas/public/procedures/refresh_totals", fake_connector)

    assert payload["procedure"]["kind"] == "function"
    assert payload["procedure"]["parameters"] == "days integer"


@pytest.mark.anyio
async def test_missing_table_is_not_found(fake_connector) -> None:
    payload = await read_resource_payload("db://schemas/sales/tables/ghosts", fake_connector)

    assert payload["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_missing_procedure_is_not_found(fake_connector) -> None:
    payload = await read_resource_payload("db://schemas/public/procedures/nope", fake_connector)

    assert payload["code"] == "NOT_FOUND"


@pytest.mark.anyio
async def test_unknown_uri_is_invalid(fake_connector) -> None:
    payload = await read_resource_payload("db://schemas/public/views", fake_connector)

    assert payload["code"] == "INVALID_RESOURCE"


@pytest.mark.anyio
async def test_unsupported_operation_becomes_payload(fake_connector, monkeypatch: pytest.MonkeyPatch) -> None:
    async def _unsupported(schema=None):
        raise UnsupportedOperationError("SQLite does not support stored procedures")

    monkeypatch.setattr(fake_connector, "get_stored_procedures", _unsupported)

    payload = await read_resource_payload("db://schemas/main/procedures", fake_connector)

    assert payload == {"error": "SQLite does not support stored procedures", "code": "UNSUPPORTED_OPERATION"}
