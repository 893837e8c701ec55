"""Tests for the asyncpg Database wrapper."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import asyncpg
import pytest

from interest_engine.storage.database import Database


class FakePool:
    def __init__(self) -> None:
        self.conn = MagicMock()
        self.conn.execute = AsyncMock(return_value="OK")
        self.conn.fetchval = AsyncMock(return_value=1)
        self.conn.transaction = MagicMock(side_effect=self._transaction)
        self.transactions = 0
        self.close = AsyncMock()

    @asynccontextmanager
    async def _transaction(self):
        self.transactions += 1
        yield

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def pool() -> FakePool:
    return FakePool()


@pytest.fixture
def create_pool(pool):
    with patch("asyncpg.create_pool", AsyncMock(return_value=pool)) as mocked:
        yield mocked


class TestConnect:
    @pytest.mark.asyncio
    async def test_pool_sized_from_settings(self, test_settings, create_pool, pool):
        db = Database(test_settings)

        await db.connect()

        args, kwargs = create_pool.call_args
        assert args[0].endswith("/interest_engine_test")
        assert kwargs["min_size"] == test_settings.db_pool_min_size
        assert kwargs["max_size"] == test_settings.db_pool_max_size
        assert kwargs["command_timeout"] == test_settings.db_command_timeout
        pool.conn.execute.assert_awaited_with("CREATE EXTENSION IF NOT EXISTS vector")
        assert db.is_connected

    @pytest.mark.asyncio
    async def test_connect_is_idempotent(self, test_settings, create_pool):
        db = Database(test_settings)

        await db.connect()
        await db.connect()

        assert create_pool.await_count == 1

    @pytest.mark.asyncio
    async def test_extension_failure_closes_pool(self, test_settings, create_pool, pool):
        pool.conn.execute.side_effect = asyncpg.PostgresError("permission denied")
        db = Database(test_settings)

        with pytest.raises(asyncpg.PostgresError):
            await db.connect()

        pool.close.assert_awaited_once()
        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_context_manager_closes(self, test_settings, create_pool, pool):
        async with Database(test_settings) as db:
            assert db.is_connected

        pool.close.assert_awaited_once()
        assert not db.is_connected


class TestQueries:
    def test_pool_requires_connect(self, test_settings):
        with pytest.raises(RuntimeError, match="not connected"):
            Database(test_settings).pool

    @pytest.mark.asyncio
    async def test_transaction_wraps_connection(self, test_settings, create_pool, pool):
        db = Database(test_settings)
        await db.connect()

        async with db.transaction() as conn:
            await conn.execute("UPDATE user_semantic_tags SET weight = weight")

        assert pool.transactions == 1

    @pytest.mark.asyncio
    async def test_ping(self, test_settings, create_pool, pool):
        db = Database(test_settings)
        assert await db.ping() is False

        await db.connect()
        assert await db.ping() is True

        pool.conn.fetchval.side_effect = ConnectionResetError("gone")
        assert await db.ping() is False
