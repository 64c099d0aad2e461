"""
Data access layer for database operations.
Separates SQL queries from business logic. Every query runs through
``with_retry`` and uses bound parameters only.
"""

import logging
import secrets
import string
from typing import List, Optional

import asyncpg

from tts_backend.config import RetryConfig
from tts_backend.config.constants import (
    AUDIO_ID_PREFIX,
    AUDIO_ID_RANDOM_LENGTH,
    DASHBOARD_RECENT_FILES_LIMIT,
    DEFAULT_AUDIO_FILES_LIMIT,
    TIER_FREE,
)
from tts_backend.database.connection import DatabasePool
from tts_backend.database.models import (
    AudioFile,
    NewAudioFile,
    UsageSummary,
    User,
    UserDashboard,
    UserLoginHistory,
    UserSubscription,
    UserSummary,
    get_character_limit,
)
from tts_backend.database.retry import Operation, with_retry
from tts_backend.utils.timezone import epoch_millis

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def normalize_email(email: str) -> str:
    """Emails are stored and looked up lowercased."""
    return email.strip().lower()


def generate_audio_id() -> str:
    """Timestamp plus random base36 suffix, e.g. ``audio_1760770000000_k3x9q0a1z``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(AUDIO_ID_RANDOM_LENGTH))
    return f"{AUDIO_ID_PREFIX}_{epoch_millis()}_{suffix}"


def affected_rows(status: Optional[str]) -> int:
    """Row count from an asyncpg command status such as ``'UPDATE 3'``."""
    if not status:
        return 0
    try:
        return int(status.rsplit(" ", 1)[-1])
    except ValueError:
        return 0


class BaseRepository:
    """Shared plumbing: the pool manager and retry tuning."""

    def __init__(self, db: DatabasePool, retry: Optional[RetryConfig] = None):
        self.db = db
        self.retry = retry or RetryConfig()

    async def _run(self, operation_name: str, operation: Operation):
        return await with_retry(
            self.db,
            operation,
            max_retries=self.retry.max_retries,
            base_delay=self.retry.base_delay,
            operation_name=operation_name,
        )


class UserRepository(BaseRepository):
    """Repository for user account operations."""

    async def create_user(self, user_id: str, email: str, name: str, password: str) -> None:
        """
        Insert a new user.

        Args:
            user_id: Opaque user ID
            email: Email address (lowercased before insert)
            name: Display name
            password: Already-hashed password

        Raises:
            ConflictError: If the id or email already exists
        """
        async def insert(pool: asyncpg.Pool):
            await pool.execute(
                """
                INSERT INTO users (id, email, name, password)
                VALUES ($1, $2, $3, $4)
                """,
                user_id,
                normalize_email(email),
                name,
                password,
            )

        await self._run("create_user", insert)
        logger.info(f"✅ Created user {user_id}")

    async def find_user_by_email(self, email: str) -> Optional[User]:
        """
        Fetch a user by email, case-insensitively.

        Returns:
            User if found, None otherwise
        """
        async def fetch(pool: asyncpg.Pool):
            return await pool.fetchrow(
                "SELECT * FROM users WHERE email = $1",
                normalize_email(email),
            )

        row = await self._run("find_user_by_email", fetch)
        return User.from_db_row(row) if row else None

    async def find_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Fetch a user by ID.

        Returns:
            User if found, None otherwise
        """
        async def fetch(pool: asyncpg.Pool):
            return await pool.fetchrow("SELECT * FROM users WHERE id = $1", user_id)

        row = await self._run("find_user_by_id", fetch)
        return User.from_db_row(row) if row else None

    async def update_login_tracking(self, user_id: str) -> bool:
        """
        Stamp the last login time and bump the login counter.

        Returns:
            True if the user row was updated
        """
        async def update(pool: asyncpg.Pool):
            return await pool.execute(
                """
                UPDATE users
                SET last_login_at = NOW(),
                    login_count = COALESCE(login_count, 0) + 1
                WHERE id = $1
                """,
                user_id,
            )

        status = await self._run("update_login_tracking", update)
        updated = affected_rows(status) > 0
        if not updated:
            logger.warning(f"Login tracking skipped, user {user_id} not found")
        return updated

    async def get_user_login_history(self, user_id: str) -> Optional[UserLoginHistory]:
        """Login tracking projection, or None if the user doesn't exist."""
        async def fetch(pool: asyncpg.Pool):
            return await pool.fetchrow(
                """
                SELECT id, email, name, last_login_at, login_count, created_at
                FROM users
                WHERE id = $1
                """,
                user_id,
            )

        row = await self._run("get_user_login_history", fetch)
        return UserLoginHistory.from_db_row(row) if row else None

    async def get_user_with_subscription(self, user_id: str) -> Optional[UserSubscription]:
        """Subscription and usage projection, or None if the user doesn't exist."""
        async def fetch(pool: asyncpg.Pool):
            return await pool.fetchrow(
                """
                SELECT id, email, name,
                       subscription_status, monthly_usage, usage_reset_date,
                       last_login_at, login_count, created_at
                FROM users
                WHERE id = $1
                """,
                user_id,
            )

        row = await self._run("get_user_with_subscription", fetch)
        return UserSubscription.from_db_row(row) if row else None


class AudioFileRepository(BaseRepository):
    """Repository for generated audio records."""

    async def save_audio_file(self, data: NewAudioFile) -> str:
        """
        Insert an audio file record.

        Args:
            data: Audio file data; settings are stored JSON-encoded

        Returns:
            The generated audio file ID
        """
        audio_id = generate_audio_id()
        settings = data.settings_json()

        async def insert(pool: asyncpg.Pool):
            await pool.execute(
                """
                INSERT INTO audio_files (id, user_id, filename, text, voice, settings, audio_url, file_size)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
                """,
                audio_id,
                data.user_id,
                data.filename,
                data.text,
                data.voice,
                settings,
                data.audio_url,
                data.file_size,
            )

        await self._run("save_audio_file", insert)
        logger.info(f"✅ Saved audio file {audio_id} for user {data.user_id}")
        return audio_id

    async def get_user_audio_files(self, user_id: str, limit: int = DEFAULT_AUDIO_FILES_LIMIT) -> List[AudioFile]:
        """
        Most recent audio files for a user, newest first.

        Args:
            user_id: User ID
            limit: Maximum number of rows

        Returns:
            Up to ``limit`` audio files ordered by creation time descending
        """
        if limit < 0:
            raise ValueError("limit must not be negative")

        async def fetch(pool: asyncpg.Pool):
            return await pool.fetch(
                """
                SELECT id, filename, text, voice, settings, audio_url, file_size, created_at
                FROM audio_files
                WHERE user_id = $1
                ORDER BY created_at DESC
                LIMIT $2
                """,
                user_id,
                limit,
            )

        rows = await self._run("get_user_audio_files", fetch)
        return [AudioFile.from_db_row(row) for row in rows[:limit]]


class DashboardRepository(BaseRepository):
    """Read model combining the user, their usage and recent audio files."""

    def __init__(self, db: DatabasePool, retry: Optional[RetryConfig] = None):
        super().__init__(db, retry)
        self.user_repo = UserRepository(db, self.retry)
        self.audio_repo = AudioFileRepository(db, self.retry)

    async def get_user_dashboard(self, user_id: str) -> UserDashboard:
        """
        Build the dashboard for a user.

        A missing user does not fail: the usage block falls back to the
        free tier with zero consumption.
        """
        user = await self.user_repo.get_user_with_subscription(user_id)
        recent_files = await self.audio_repo.get_user_audio_files(user_id, DASHBOARD_RECENT_FILES_LIMIT)

        if user is None:
            summary = UserSummary()
        else:
            summary = UserSummary(
                id=user.id,
                email=user.email,
                name=user.name,
                subscription_status=user.subscription_status or TIER_FREE,
                monthly_usage=user.monthly_usage or 0,
                usage_reset_date=user.usage_reset_date,
            )

        usage = UsageSummary(
            current=summary.monthly_usage,
            limit=get_character_limit(summary.subscription_status),
        )
        return UserDashboard(user=summary, usage=usage, recent_files=recent_files)
