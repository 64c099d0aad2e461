"""
Schema creation for the users and audio_files tables.
Idempotent, safe to run on every startup.
"""

import logging

import asyncpg
from tenacity import RetryCallState

from tts_backend.config.constants import SCHEMA_INIT_BASE_DELAY_SECONDS, SCHEMA_INIT_MAX_ATTEMPTS
from tts_backend.database.connection import DatabasePool
from tts_backend.database.retry import build_retrying, is_transient_failure

logger = logging.getLogger(__name__)

CREATE_USERS_TABLE = """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(50) PRIMARY KEY,
        email VARCHAR(255) UNIQUE NOT NULL,
        name VARCHAR(255) NOT NULL,
        password VARCHAR(255) NOT NULL,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW(),
        last_login_at TIMESTAMPTZ,
        login_count INTEGER DEFAULT 0,
        subscription_status VARCHAR(20) DEFAULT 'free',
        monthly_usage INTEGER DEFAULT 0 CHECK (monthly_usage >= 0),
        usage_reset_date TIMESTAMPTZ DEFAULT NOW()
    )
"""

CREATE_AUDIO_FILES_TABLE = """
    CREATE TABLE IF NOT EXISTS audio_files (
        id VARCHAR(50) PRIMARY KEY,
        user_id VARCHAR(50) NOT NULL,
        filename VARCHAR(255) NOT NULL,
        text TEXT NOT NULL,
        voice VARCHAR(100),
        settings TEXT,
        audio_url VARCHAR(500),
        file_size INTEGER,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        FOREIGN KEY (user_id) REFERENCES users(id)
    )
"""

CREATE_AUDIO_FILES_USER_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_audio_files_user_created
    ON audio_files (user_id, created_at DESC)
"""

SCHEMA_STATEMENTS = (
    CREATE_USERS_TABLE,
    CREATE_AUDIO_FILES_TABLE,
    CREATE_AUDIO_FILES_USER_INDEX,
)


async def create_tables(pool: asyncpg.Pool) -> None:
    """Create users and audio_files (plus index) if they don't exist."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)


async def initialize_database(
    db: DatabasePool,
    max_attempts: int = SCHEMA_INIT_MAX_ATTEMPTS,
    base_delay: float = SCHEMA_INIT_BASE_DELAY_SECONDS,
) -> None:
    """
    Create the schema, retrying independently of the query retry wrapper.

    Any failure is retried; connection-level failures also discard the
    pool they happened on so the next attempt reconnects.

    Args:
        db: Pool manager
        max_attempts: Total attempts before giving up
        base_delay: Backoff base in seconds (delay = base * attempt)

    Raises:
        Exception: The last failure once all attempts are used
    """
    state = {"pool": None, "attempts": 0}

    def discard_failed_pool(retry_state: RetryCallState) -> None:
        pool = state["pool"]
        if pool is not None and is_transient_failure(retry_state.outcome.exception()):
            db.invalidate(pool)

    retrying = build_retrying(
        max_attempts=max_attempts,
        base_delay=base_delay,
        retry_on=lambda exc: isinstance(exc, Exception),
        after=discard_failed_pool,
        operation_name="Database initialization",
    )

    try:
        async for attempt in retrying:
            with attempt:
                state["pool"] = None
                state["attempts"] = attempt.retry_state.attempt_number
                state["pool"] = await db.acquire_pool()
                await create_tables(state["pool"])
    except Exception as e:
        logger.error(f"❌ Database initialization failed after {state['attempts']} attempts: {e}")
        raise

    logger.info("✅ Database tables initialized successfully")
