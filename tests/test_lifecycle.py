"""
Tests for startup and shutdown hooks.
"""

import asyncio
import os
import signal
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

from tts_backend import lifecycle
from tts_backend.config import Config, RetryConfig
from tts_backend.database.schema import SCHEMA_STATEMENTS
from tts_backend.lifecycle import SHUTDOWN_SIGNALS, install_shutdown_handlers, shutdown, startup


class TestStartup:

    async def test_initializes_schema(self, db, db_config, pool_factory, sleeps):
        config = Config(database=db_config, retry=RetryConfig())

        returned = await startup(config, db)

        assert returned is db
        pool = pool_factory.pools[0]
        assert pool.connection.execute.await_count == len(SCHEMA_STATEMENTS)

    async def test_uses_schema_backoff(self, db, db_config, pool_factory, sleeps):
        pool_factory.fail_next(OSError("refused"))
        config = Config(database=db_config, retry=RetryConfig(schema_base_delay=2.0))

        await startup(config, db)

        assert sleeps == [2.0]


class TestShutdown:

    async def test_closes_pool(self, db, live_pool):
        await shutdown(db)

        live_pool.close.assert_awaited_once()
        assert db.current_pool is None

    async def test_never_raises(self):
        db = MagicMock()
        db.close = AsyncMock(side_effect=RuntimeError("already closed"))

        await shutdown(db)

        db.close.assert_awaited_once()


class TestShutdownHandlers:

    def test_registers_sigint_and_sigterm(self):
        loop = MagicMock()

        install_shutdown_handlers(MagicMock(), loop=loop)

        registered = [call.args[0] for call in loop.add_signal_handler.call_args_list]
        assert registered == [signal.SIGINT, signal.SIGTERM]

    def test_unsupported_platform_is_tolerated(self):
        loop = MagicMock()
        loop.add_signal_handler.side_effect = NotImplementedError

        install_shutdown_handlers(MagicMock(), loop=loop)

        assert loop.add_signal_handler.call_count == 2

    def test_pending_shutdown_task_is_retained(self):
        loop = MagicMock()
        task = MagicMock()
        loop.create_task.return_value = task

        install_shutdown_handlers(MagicMock(), loop=loop)
        callback, sig = loop.add_signal_handler.call_args_list[1].args[1:]
        callback(sig)

        assert task in lifecycle._shutdown_tasks
        task.add_done_callback.assert_called_once_with(lifecycle._shutdown_tasks.discard)
        loop.create_task.call_args.args[0].close()
        lifecycle._shutdown_tasks.discard(task)

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
    async def test_sigterm_closes_pool(self, db, live_pool):
        loop = asyncio.get_running_loop()
        stopped = asyncio.Event()
        install_shutdown_handlers(db, stop_event=stopped)

        try:
            os.kill(os.getpid(), signal.SIGTERM)
            await asyncio.wait_for(stopped.wait(), timeout=5)
        finally:
            for sig in SHUTDOWN_SIGNALS:
                loop.remove_signal_handler(sig)

        live_pool.close.assert_awaited_once()
        assert db.current_pool is None
