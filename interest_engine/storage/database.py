"""
asyncpg pool shared by the engine's repositories.

Repositories receive a connected ``Database`` and call its ``fetch*`` /
``execute`` helpers, each of which borrows a pooled connection for one
statement. Multi-statement work goes through ``transaction()``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import asyncpg

from interest_engine.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


async def _init_connection(conn: asyncpg.Connection) -> None:
    # Vectors travel as text literals ('[0.1,0.2]'); no codec registration needed.
    await conn.execute("SET TIME ZONE 'UTC'")


class Database:
    """
    Pooled PostgreSQL access with the pgvector extension enabled.

    Usage:
        async with Database() as db:
            await create_tables(db)
            service = build_interest_service(db)
    """

    def __init__(self, settings: Settings | None = None, dsn: str | None = None) -> None:
        self._settings = settings or get_settings()
        self._dsn = dsn or str(self._settings.database_url)
        self._pool: asyncpg.Pool | None = None

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        s = self._settings
        pool = await asyncpg.create_pool(
            self._dsn,
            min_size=s.db_pool_min_size,
            max_size=max(s.db_pool_min_size, s.db_pool_max_size),
            command_timeout=s.db_command_timeout,
            init=_init_connection,
        )
        try:
            async with pool.acquire() as conn:
                await conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        except asyncpg.PostgresError:
            await pool.close()
            raise
        self._pool = pool
        logger.info(
            "Connected to PostgreSQL (pool %d-%d)",
            s.db_pool_min_size,
            s.db_pool_max_size,
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("PostgreSQL pool closed")

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._pool

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[asyncpg.Connection]:
        async with self.pool.acquire() as conn:
            yield conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """Borrow a connection with an open transaction, committed on clean exit."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def execute(self, query: str, *args: Any) -> str:
        async with self.acquire() as conn:
            return await conn.execute(query, *args)

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        async with self.acquire() as conn:
            return await conn.fetch(query, *args)

    async def fetchrow(self, query: str, *args: Any) -> asyncpg.Record | None:
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query: str, *args: Any) -> Any:
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)

    async def ping(self) -> bool:
        """True when the pool can round-trip a trivial query."""
        try:
            return await self.fetchval("SELECT 1") == 1
        except (asyncpg.PostgresError, OSError, RuntimeError) as e:
            logger.warning("Database ping failed: %s", e)
            return False
