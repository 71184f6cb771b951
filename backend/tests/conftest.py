"""Shared test fixtures.

PostgreSQL and PostgREST are mocked. Tests never require running instances
of these services.
"""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.api.deps import get_postgres_client, get_postgrest_client, get_settings
from app.core.config import Settings
from app.core.postgrest import PostgrestClient
from app.main import app


class FakePostgres:
    """Stands in for PostgresClient.

    ``responses`` maps a query string to the rows (or exception) ``fetch``
    returns for it. ``conn`` is what ``acquire`` yields.
    """

    def __init__(self, responses: dict | None = None, conn=None):
        self.responses = responses or {}
        self.conn = conn if conn is not None else MagicMock()
        self.fetch_calls: list[tuple[str, list | None]] = []
        self.acquired = 0
        self.released = 0

    async def fetch(self, query: str, params: list | None = None) -> list[dict]:
        self.fetch_calls.append((query, params))
        result = self.responses.get(query, [])
        if isinstance(result, Exception):
            raise result
        return result

    @asynccontextmanager
    async def acquire(self):
        self.acquired += 1
        try:
            yield self.conn
        finally:
            self.released += 1

    async def ping(self) -> bool:
        return True


def make_query_conn(rows: list[dict], columns: list[tuple[str, int]] | None = None):
    """Connection mock whose prepared statement returns ``rows``."""
    if columns is None:
        columns = [(name, 25) for name in (rows[0].keys() if rows else [])]
    statement = MagicMock()
    statement.fetch = AsyncMock(return_value=rows)
    statement.get_attributes = MagicMock(
        return_value=[
            SimpleNamespace(name=name, type=SimpleNamespace(oid=oid)) for name, oid in columns
        ]
    )
    conn = MagicMock()
    conn.prepare = AsyncMock(return_value=statement)
    conn.fetch = AsyncMock(return_value=rows)
    return conn


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        read_only=True,
        features="database,docs,postgrest",
        postgrest_url="http://postgrest.test/rest/v1",
        postgrest_jwt="test-jwt",
    )


@pytest.fixture
def fake_postgres() -> FakePostgres:
    return FakePostgres()


@pytest.fixture
def mock_postgrest() -> MagicMock:
    postgrest = MagicMock(spec=PostgrestClient)
    postgrest.get = AsyncMock(return_value=[])
    return postgrest


@pytest.fixture
async def client(test_settings, fake_postgres, mock_postgrest) -> AsyncClient:
    """Provide an httpx AsyncClient wired to the FastAPI app with mocked stores."""
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_postgres_client] = lambda: fake_postgres
    app.dependency_overrides[get_postgrest_client] = lambda: mock_postgrest

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.pop(get_settings, None)
    app.dependency_overrides.pop(get_postgres_client, None)
    app.dependency_overrides.pop(get_postgrest_client, None)


def rpc(method: str, params=None, rpc_id: int | str = 1) -> dict:
    body = {"jsonrpc": "2.0", "id": rpc_id, "method": method}
    if params is not None:
        body["params"] = params
    return body


@pytest.fixture
def postgres_factory():
    """Build a FakePostgres with canned responses."""
    return FakePostgres


@pytest.fixture
def query_conn():
    """Build a connection mock whose prepared statement returns given rows."""
    return make_query_conn


@pytest.fixture
def rpc_body():
    """Build a JSON-RPC request body."""
    return rpc
