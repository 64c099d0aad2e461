"""
Monthly character quota enforcement.

Per user the quota is either within limits or exceeded; every check
re-evaluates it from the stored usage and subscription tier.

``can_use_characters`` followed by ``update_usage`` is two round trips with
no lock in between, so concurrent requests for the same user can both pass
the check and briefly overshoot the limit. Callers that need a hard cap use
``reserve_characters``, which checks and increments in one statement.
"""

import logging
from datetime import datetime
from typing import Optional

import asyncpg

from tts_backend.config import RetryConfig
from tts_backend.config.constants import (
    FREE_MONTHLY_CHARACTER_LIMIT,
    PREMIUM_MONTHLY_CHARACTER_LIMIT,
    PRO_MONTHLY_CHARACTER_LIMIT,
    TIER_FREE,
    TIER_PREMIUM,
    TIER_PRO,
)
from tts_backend.database import (
    DatabasePool,
    QuotaCheck,
    UsageSummary,
    UserRepository,
    get_character_limit,
)
from tts_backend.database.repositories import BaseRepository, affected_rows
from tts_backend.utils.timezone import get_utc_now, one_month_before, to_utc_datetime

logger = logging.getLogger(__name__)


class UsageQuotaService(BaseRepository):
    """Service for checking, recording and resetting character usage."""

    def __init__(self, db: DatabasePool, retry: Optional[RetryConfig] = None):
        super().__init__(db, retry)
        self.user_repo = UserRepository(db, self.retry)

    async def can_use_characters(self, user_id: str, characters_needed: int) -> QuotaCheck:
        """
        Check whether a user may consume more characters this period.

        Must run before any billable work. It does not reserve capacity.

        Args:
            user_id: User ID
            characters_needed: Characters the pending request will consume

        Returns:
            QuotaCheck; an unknown user gets can_use=False with zero usage and limit
        """
        user = await self.user_repo.get_user_with_subscription(user_id)
        if user is None:
            logger.warning(f"Usage check for unknown user {user_id}")
            return QuotaCheck(can_use=False, current_usage=0, limit=0)

        current = user.monthly_usage or 0
        limit = get_character_limit(user.subscription_status)
        can_use = current + characters_needed <= limit

        if not can_use:
            logger.info(
                f"User {user_id} over quota: {current} + {characters_needed} > {limit}"
            )
        return QuotaCheck(can_use=can_use, current_usage=current, limit=limit)

    async def update_usage(self, user_id: str, characters_used: int) -> bool:
        """
        Add consumed characters to the user's monthly usage.

        Call only after the billable work succeeded.

        Returns:
            True if the user row was updated
        """
        if characters_used < 0:
            raise ValueError("characters_used must not be negative")

        async def update(pool: asyncpg.Pool):
            return await pool.execute(
                """
                UPDATE users
                SET monthly_usage = COALESCE(monthly_usage, 0) + $2
                WHERE id = $1
                """,
                user_id,
                characters_used,
            )

        status = await self._run("update_usage", update)
        updated = affected_rows(status) > 0
        if updated:
            logger.info(f"✅ Recorded {characters_used} characters for user {user_id}")
        else:
            logger.warning(f"Usage not recorded, user {user_id} not found")
        return updated

    async def reserve_characters(self, user_id: str, characters_needed: int) -> QuotaCheck:
        """
        Atomically check the quota and add the characters if they fit.

        Returns:
            QuotaCheck with the usage as it was before the reservation.
            can_use=False means nothing was added.
        """
        if characters_needed < 0:
            raise ValueError("characters_needed must not be negative")

        async def reserve(pool: asyncpg.Pool):
            return await pool.fetchrow(
                """
                UPDATE users
                SET monthly_usage = COALESCE(monthly_usage, 0) + $2
                WHERE id = $1
                  AND COALESCE(monthly_usage, 0) + $2 <= CASE subscription_status
                      WHEN $4 THEN $6::int
                      WHEN $5 THEN $7::int
                      ELSE $3::int
                  END
                RETURNING monthly_usage, subscription_status
                """,
                user_id,
                characters_needed,
                FREE_MONTHLY_CHARACTER_LIMIT,
                TIER_PRO,
                TIER_PREMIUM,
                PRO_MONTHLY_CHARACTER_LIMIT,
                PREMIUM_MONTHLY_CHARACTER_LIMIT,
            )

        row = await self._run("reserve_characters", reserve)
        if row is not None:
            return QuotaCheck(
                can_use=True,
                current_usage=row["monthly_usage"] - characters_needed,
                limit=get_character_limit(row["subscription_status"]),
            )

        # Nothing was added: the user is missing or the characters did not fit.
        # The re-read only supplies figures; it never turns this into a grant.
        user = await self.user_repo.get_user_with_subscription(user_id)
        if user is None:
            logger.warning(f"Reservation for unknown user {user_id}")
            return QuotaCheck(can_use=False, current_usage=0, limit=0)

        current = user.monthly_usage or 0
        limit = get_character_limit(user.subscription_status)
        logger.info(
            f"Reservation of {characters_needed} characters rejected for user {user_id} (usage {current}/{limit})"
        )
        return QuotaCheck(can_use=False, current_usage=current, limit=limit)

    async def get_usage_summary(self, user_id: str) -> UsageSummary:
        """Current usage, limit and remaining characters; free tier defaults for unknown users."""
        user = await self.user_repo.get_user_with_subscription(user_id)
        if user is None:
            return UsageSummary(current=0, limit=get_character_limit(TIER_FREE))
        return UsageSummary(
            current=user.monthly_usage or 0,
            limit=get_character_limit(user.subscription_status),
        )

    async def reset_monthly_usage(self, now: Optional[datetime] = None) -> int:
        """
        Zero usage for every user whose quota period has elapsed.

        A row is due when at least one calendar month has passed since its
        usage_reset_date. Rows not yet due are untouched.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of users reset
        """
        now = to_utc_datetime(now) if now is not None else get_utc_now()
        cutoff = one_month_before(now)

        async def reset(pool: asyncpg.Pool):
            return await pool.execute(
                """
                UPDATE users
                SET monthly_usage = 0,
                    usage_reset_date = $1
                WHERE usage_reset_date IS NULL OR usage_reset_date <= $2
                """,
                now,
                cutoff,
            )

        status = await self._run("reset_monthly_usage", reset)
        count = affected_rows(status)
        logger.info(f"✅ Monthly usage reset for {count} users (cutoff {cutoff.isoformat()})")
        return count
