"""
Shared pytest fixtures for the TTS backend tests.

The asyncpg pool is replaced by FakePool: query methods are AsyncMocks that
tests program with return values or side effects.
"""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest

from tts_backend.config import DatabaseConfig, RetryConfig
from tts_backend.database import DatabasePool
from tts_backend.database import retry as retry_module


class FakeConnection:
    """Stand-in for an asyncpg connection checked out of a pool."""

    def __init__(self):
        self.execute = AsyncMock(return_value="OK")
        self.fetchrow = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])

    @asynccontextmanager
    async def transaction(self):
        yield self


class FakePool:
    """Stand-in for asyncpg.Pool."""

    def __init__(self, name: str = "pool"):
        self.name = name
        self.closing = False
        self.connection = FakeConnection()
        self.execute = AsyncMock(return_value="OK")
        self.fetchrow = AsyncMock(return_value=None)
        self.fetch = AsyncMock(return_value=[])
        self.close = AsyncMock(side_effect=self._mark_closed)
        self.terminate = MagicMock()

    async def _mark_closed(self):
        self.closing = True

    def is_closing(self) -> bool:
        return self.closing

    @asynccontextmanager
    async def acquire(self):
        yield self.connection

    def get_size(self):
        return 3

    def get_idle_size(self):
        return 2

    def get_min_size(self):
        return 0

    def get_max_size(self):
        return 10

    def __repr__(self):
        return f"FakePool({self.name})"


class PoolFactory:
    """Records every pool it builds and the kwargs it was called with."""

    def __init__(self):
        self.pools = []
        self.calls = []
        self.failures = []
        self.delay = 0.0

    def fail_next(self, *errors):
        self.failures.extend(errors)

    async def __call__(self, **kwargs):
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        pool = FakePool(name=f"pool-{len(self.pools) + 1}")
        self.pools.append(pool)
        return pool


@pytest.fixture
def db_config():
    return DatabaseConfig(
        host="db.example.test",
        user="tts",
        password="secret-password",
        database="tts",
        command_timeout=5.0,
    )


@pytest.fixture
def retry_config():
    return RetryConfig(max_retries=2, base_delay=0.5, schema_max_attempts=3, schema_base_delay=1.0)


@pytest.fixture
def pool_factory():
    return PoolFactory()


@pytest.fixture
async def db(db_config, pool_factory):
    manager = DatabasePool(db_config, pool_factory=pool_factory)
    yield manager
    # Also waits for pools retired in the background
    await manager.close()


@pytest.fixture
async def live_pool(db, pool_factory):
    """The pool the manager hands out first; tests program its query mocks."""
    return await db.acquire_pool()


@pytest.fixture
def sleeps(monkeypatch):
    """Hand the retry controllers a recording sleep so tests run instantly."""
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry_module, "backoff_sleep", fake_sleep)
    return recorded
