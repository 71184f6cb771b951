"""PostgreSQL async client (asyncpg).

Owns the shared connection pool used by every tool call. Connections are only
handed out through ``acquire()``, an async context manager that returns the
connection to the pool on every exit path.

Driver and connection failures are re-raised as ``DataAccessError`` carrying
the engine's own message.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import asyncpg  # type: ignore[import-untyped]
import structlog

from app.core.config import Settings
from app.core.errors import DataAccessError

logger = structlog.stdlib.get_logger("sbsh.postgres")

_DRIVER_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


def _to_data_access_error(exc: BaseException) -> DataAccessError:
    sqlstate = getattr(exc, "sqlstate", None)
    message = str(exc) or exc.__class__.__name__
    return DataAccessError(message, sqlstate=sqlstate)


@dataclass
class PostgresClient:
    """Async PostgreSQL client over a bounded asyncpg pool.

    The pool is created at startup; if the database is unreachable then, it is
    created lazily on the first acquire instead.
    """

    dsn: str
    min_size: int = 1
    max_size: int = 10
    connect_timeout: float = 5.0
    idle_timeout: float = 30.0

    _pool: asyncpg.Pool | None = field(default=None, init=False, repr=False)
    _pool_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    async def create_pool(self) -> None:
        """Create the asyncpg connection pool."""
        async with self._pool_lock:
            if self._pool is not None:
                return
            try:
                self._pool = await asyncpg.create_pool(
                    dsn=self.dsn,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    timeout=self.connect_timeout,
                    max_inactive_connection_lifetime=self.idle_timeout,
                )
            except _DRIVER_ERRORS as exc:
                raise _to_data_access_error(exc) from exc
            logger.info(
                "postgres_pool_created",
                min_size=self.min_size,
                max_size=self.max_size,
            )

    async def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("postgres_pool_closed")

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow one pooled connection for the duration of the block."""
        if self._pool is None:
            await self.create_pool()
        assert self._pool is not None
        try:
            async with self._pool.acquire(timeout=self.connect_timeout) as conn:
                yield conn
        except _DRIVER_ERRORS as exc:
            raise _to_data_access_error(exc) from exc

    async def fetch(self, query: str, params: list | None = None) -> list[dict]:
        """Execute a parameterized query and return rows as dicts."""
        async with self.acquire() as conn:
            rows = await conn.fetch(query, *(params or []))
            return [dict(row) for row in rows]

    async def ping(self) -> bool:
        """Health check."""
        try:
            await self.fetch("SELECT 1")
            return True
        except DataAccessError as exc:
            logger.info("postgres_ping_failed", reason=exc.message)
            return False


def get_postgres_client(settings: Settings) -> PostgresClient:
    return PostgresClient(
        dsn=settings.pg_dsn,
        min_size=settings.pg_pool_min_size,
        max_size=settings.pg_pool_max_size,
        connect_timeout=settings.pg_connect_timeout,
        idle_timeout=settings.pg_idle_timeout,
    )
