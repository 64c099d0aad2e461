"""
Tests for the query retry wrapper.

Tests cover:
- Immediate success (single attempt, no pool discard)
- Transient failures followed by success
- Exhaustion after max_retries + 1 attempts
- Linear backoff delays
- Caller-raised TransientQueryError is retried like a driver failure
- Permanent failures surfaced on first occurrence
- Pool acquisition failures counted as attempts
"""

from unittest.mock import patch

import asyncpg
import pytest

from tts_backend.database import with_retry
from tts_backend.shared import (
    ConflictError,
    ConnectionFailedError,
    PermanentQueryError,
    TransientQueryError,
)


class FlakyOperation:
    """Fails with the queued errors, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.pools = []

    async def __call__(self, pool):
        self.pools.append(pool)
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestWithRetry:

    async def test_success_first_try(self, db, pool_factory, sleeps):
        op = FlakyOperation([], result=42)

        with patch.object(db, "invalidate", wraps=db.invalidate) as invalidate:
            result = await with_retry(db, op)

        assert result == 42
        assert len(op.pools) == 1
        assert invalidate.call_count == 0
        assert sleeps == []
        assert len(pool_factory.pools) == 1

    async def test_two_transient_failures_then_success(self, db, pool_factory, sleeps):
        op = FlakyOperation(
            [
                asyncpg.exceptions.ConnectionDoesNotExistError("connection was closed"),
                TimeoutError("query timed out"),
            ],
            result="done",
        )

        with patch.object(db, "invalidate", wraps=db.invalidate) as invalidate:
            result = await with_retry(db, op, max_retries=2, base_delay=0.5)

        assert result == "done"
        assert invalidate.call_count == 2
        # Each retry ran on a freshly built pool
        assert len(pool_factory.pools) == 3
        assert op.pools == pool_factory.pools
        assert sleeps == [0.5, 1.0]

    async def test_discarded_pools_are_closed(self, db, pool_factory, sleeps):
        op = FlakyOperation([asyncpg.exceptions.ConnectionDoesNotExistError("gone")])

        await with_retry(db, op)
        await db.close()

        first, second = pool_factory.pools
        first.close.assert_awaited()
        assert db.current_pool is None
        second.close.assert_awaited()

    async def test_exhaustion_raises_last_error(self, db, sleeps):
        errors = [asyncpg.exceptions.ConnectionDoesNotExistError(f"failure {i}") for i in range(1, 10)]
        op = FlakyOperation(errors)

        with pytest.raises(asyncpg.exceptions.ConnectionDoesNotExistError, match="failure 3"):
            await with_retry(db, op, max_retries=2, base_delay=0.5)

        assert len(op.pools) == 3
        assert sleeps == [0.5, 1.0]

    async def test_zero_retries_means_single_attempt(self, db, sleeps):
        op = FlakyOperation([TimeoutError("slow")] * 3)

        with pytest.raises(TimeoutError):
            await with_retry(db, op, max_retries=0)

        assert len(op.pools) == 1
        assert sleeps == []

    async def test_unique_violation_is_not_retried(self, db, sleeps):
        op = FlakyOperation([asyncpg.exceptions.UniqueViolationError("duplicate key value")])

        with patch.object(db, "invalidate", wraps=db.invalidate) as invalidate:
            with pytest.raises(ConflictError) as exc_info:
                await with_retry(db, op)

        assert isinstance(exc_info.value.__cause__, asyncpg.exceptions.UniqueViolationError)
        assert len(op.pools) == 1
        assert invalidate.call_count == 0
        assert sleeps == []

    async def test_other_postgres_error_is_permanent(self, db, sleeps):
        op = FlakyOperation([asyncpg.exceptions.UndefinedTableError('relation "users" does not exist')])

        with pytest.raises(PermanentQueryError):
            await with_retry(db, op)

        assert len(op.pools) == 1
        assert sleeps == []

    async def test_programming_error_propagates_unchanged(self, db, sleeps):
        op = FlakyOperation([KeyError("monthly_usage")])

        with pytest.raises(KeyError):
            await with_retry(db, op)

        assert len(op.pools) == 1

    async def test_pool_connect_failure_is_retried(self, db, pool_factory, sleeps):
        pool_factory.fail_next(OSError("connection refused"))
        op = FlakyOperation([], result="recovered")

        result = await with_retry(db, op, max_retries=2, base_delay=0.5)

        assert result == "recovered"
        assert len(pool_factory.calls) == 2
        assert sleeps == [0.5]

    async def test_pool_connect_failure_exhausts(self, db, pool_factory, sleeps):
        pool_factory.fail_next(*[OSError("connection refused")] * 3)
        op = FlakyOperation([])

        with pytest.raises(ConnectionFailedError):
            await with_retry(db, op, max_retries=2, base_delay=0.5)

        assert op.pools == []
        assert len(pool_factory.calls) == 3

    async def test_backoff_grows_linearly(self, db, sleeps):
        op = FlakyOperation([TimeoutError("slow")] * 3, result="late")

        result = await with_retry(db, op, max_retries=3, base_delay=1.0)

        assert result == "late"
        assert sleeps == [1.0, 2.0, 3.0]

    async def test_caller_raised_transient_error_is_retried(self, db, pool_factory, sleeps):
        op = FlakyOperation([TransientQueryError("upstream request aborted")], result="ok")

        with patch.object(db, "invalidate", wraps=db.invalidate) as invalidate:
            result = await with_retry(db, op)

        assert result == "ok"
        assert invalidate.call_count == 1
        assert len(pool_factory.pools) == 2
        assert sleeps == [0.5]
