"""
Process lifecycle hooks: schema setup on startup, pool close on shutdown.
"""

import asyncio
import logging
import signal
from typing import Optional, Set

from tts_backend.config import Config
from tts_backend.database import DatabasePool, initialize_database

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Strong references to in-flight shutdown tasks until they finish
_shutdown_tasks: Set[asyncio.Task] = set()


async def startup(config: Config, db: Optional[DatabasePool] = None) -> DatabasePool:
    """
    Create the pool manager and make sure the schema exists.

    Returns:
        The pool manager to share with repositories and services
    """
    db = db or DatabasePool(config.database)
    await initialize_database(
        db,
        max_attempts=config.retry.schema_max_attempts,
        base_delay=config.retry.schema_base_delay,
    )
    return db


async def shutdown(db: DatabasePool) -> None:
    """Close the pool. Never raises; close failures are logged."""
    logger.info("Shutting down, closing database pool")
    try:
        await db.close()
    except Exception as e:
        logger.error(f"❌ Error during database shutdown: {e}")


def install_shutdown_handlers(
    db: DatabasePool,
    loop: Optional[asyncio.AbstractEventLoop] = None,
    stop_event: Optional[asyncio.Event] = None,
) -> None:
    """
    Close the pool gracefully when SIGINT or SIGTERM arrives.

    Args:
        db: Pool manager to close
        loop: Event loop to register on (defaults to the running loop)
        stop_event: Set once the pool is closed so the caller can exit
    """
    loop = loop or asyncio.get_running_loop()

    async def _on_signal(sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}")
        await shutdown(db)
        if stop_event is not None:
            stop_event.set()

    def _schedule(sig: signal.Signals) -> None:
        task = loop.create_task(_on_signal(sig))
        _shutdown_tasks.add(task)
        task.add_done_callback(_shutdown_tasks.discard)

    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, _schedule, sig)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            logger.warning(f"Signal handler for {sig.name} not supported on this platform")
