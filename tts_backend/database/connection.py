"""
Database connection pool management.
Owns the single shared asyncpg pool: lazy creation, health checks,
invalidation after fatal errors and graceful shutdown.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import asyncpg

from tts_backend.config import DatabaseConfig
from tts_backend.database.models import ConnectionCheck
from tts_backend.shared.errors import ConnectionFailedError, classify_error
from tts_backend.utils.timezone import to_utc_datetime

logger = logging.getLogger(__name__)

PoolFactory = Callable[..., Awaitable[asyncpg.Pool]]


class DatabasePool:
    """
    Async database connection pool manager.

    Holds at most one current pool. A pool that fails fatally is discarded
    (``invalidate``) and the next ``acquire_pool`` builds a fresh one; a
    pool is never repaired in place.
    """

    def __init__(self, config: DatabaseConfig, pool_factory: Optional[PoolFactory] = None):
        """
        Initialize database pool.

        Args:
            config: Database configuration
            pool_factory: Coroutine used to build the pool (defaults to asyncpg.create_pool)
        """
        self.config = config
        self._pool_factory = pool_factory or asyncpg.create_pool
        self._pool: Optional[asyncpg.Pool] = None
        self._lock = asyncio.Lock()
        self._retiring: Set[asyncio.Task] = set()

    @property
    def current_pool(self) -> Optional[asyncpg.Pool]:
        return self._pool

    def _ssl_mode(self):
        if not self.config.ssl:
            return False
        return "require" if self.config.trust_server_certificate else "verify-full"

    @staticmethod
    def _is_live(pool: asyncpg.Pool) -> bool:
        return not pool.is_closing()

    async def _create_pool(self) -> asyncpg.Pool:
        logger.info(
            f"Creating connection pool (min={self.config.pool_min_size}, max={self.config.pool_max_size})"
        )
        pool = await self._pool_factory(
            host=self.config.host,
            port=self.config.port,
            user=self.config.user,
            password=self.config.password,
            database=self.config.database,
            ssl=self._ssl_mode(),
            timeout=self.config.connect_timeout,
            command_timeout=self.config.command_timeout,
            min_size=self.config.pool_min_size,
            max_size=self.config.pool_max_size,
            max_inactive_connection_lifetime=self.config.pool_idle_timeout,
        )
        logger.info("✅ Database connection pool created successfully")
        return pool

    async def acquire_pool(self) -> asyncpg.Pool:
        """
        Get the live pool, creating or rebuilding it if needed.

        Returns:
            Active connection pool

        Raises:
            ConnectionFailedError: If the pool could not be (re)connected
        """
        pool = self._pool
        if pool is not None and self._is_live(pool):
            return pool

        async with self._lock:
            # Another coroutine may have rebuilt it while we waited
            pool = self._pool
            if pool is not None and self._is_live(pool):
                return pool

            if pool is not None:
                logger.warning("Connection pool is closed, reconnecting")
                self._pool = None

            try:
                pool = await self._create_pool()
            except Exception as e:
                logger.error(f"❌ Failed to connect to database at {self.config.host}: {e}")
                raise ConnectionFailedError(f"Could not connect to database: {e}") from e

            self._pool = pool
            return pool

    def invalidate(self, pool: Optional[asyncpg.Pool] = None) -> bool:
        """
        Discard the current pool so the next acquisition builds a new one.

        Args:
            pool: The pool that failed. If another pool has already replaced
                it, nothing is discarded.

        Returns:
            True if the singleton reference was cleared
        """
        current = self._pool
        if current is None or (pool is not None and pool is not current):
            return False

        self._pool = None
        logger.warning("Discarding database connection pool after fatal error")
        self._retire(current)
        return True

    def _retire(self, pool: asyncpg.Pool) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            pool.terminate()
            return
        task = loop.create_task(self._close_pool(pool))
        self._retiring.add(task)
        task.add_done_callback(self._retiring.discard)

    async def _close_pool(self, pool: asyncpg.Pool) -> None:
        try:
            await asyncio.wait_for(pool.close(), timeout=self.config.command_timeout)
        except Exception as e:
            logger.warning(f"Graceful pool close failed, terminating connections: {e}")
            pool.terminate()

    async def close(self) -> None:
        """Close the connection pool. Failures are logged, never raised."""
        pool, self._pool = self._pool, None
        if pool is not None:
            logger.info("Closing database connection pool")
            try:
                await pool.close()
                logger.info("✅ Database connection pool closed")
            except Exception as e:
                logger.error(f"❌ Error closing database connection pool: {e}")

        if self._retiring:
            await asyncio.gather(*self._retiring, return_exceptions=True)

    @asynccontextmanager
    async def acquire(self):
        """
        Async context manager for acquiring a connection from the pool.

        Usage:
            async with db.acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)

        Yields:
            Database connection from pool
        """
        pool = await self.acquire_pool()
        async with pool.acquire() as connection:
            yield connection

    async def check_connection(self) -> ConnectionCheck:
        """
        Run a round trip against the database.

        Returns:
            ConnectionCheck with the server time on success or the error text on failure
        """
        pool = None
        try:
            pool = await self.acquire_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow("SELECT 1 AS test, NOW() AS server_time")
            logger.info("✅ Database connection test successful")
            return ConnectionCheck(success=row["test"] == 1, server_time=to_utc_datetime(row["server_time"]))
        except Exception as e:
            logger.error(f"❌ Database connection test failed: {e}")
            if pool is not None and classify_error(e).is_transient:
                self.invalidate(pool)
            return ConnectionCheck(success=False, error=str(e))

    async def test_connection(self) -> bool:
        """
        Test database connectivity.

        Returns:
            True if connection successful, False otherwise
        """
        return (await self.check_connection()).success

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot of the current pool's size for health output."""
        pool = self._pool
        if pool is None:
            return {"status": "not_initialized"}
        return {
            "status": "closing" if pool.is_closing() else "connected",
            "size": pool.get_size(),
            "idle": pool.get_idle_size(),
            "min_size": pool.get_min_size(),
            "max_size": pool.get_max_size(),
        }


async def test_connection(config: Optional[DatabaseConfig] = None) -> bool:
    """
    Standalone function to test database connectivity.
    Creates a temporary connection pool and tests it.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        db = DatabasePool(config or DatabaseConfig.from_env())
    except Exception as e:
        logger.error(f"❌ Database test failed: {e}")
        return False

    try:
        return await db.test_connection()
    finally:
        await db.close()
