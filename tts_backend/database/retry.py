"""
Retry wrapper for database operations.

Every repository and quota query goes through ``with_retry``: it borrows the
current pool, runs the operation and, on connection/request/timeout failures,
discards the pool and tries again after a linear backoff.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

import asyncpg
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from tts_backend.config.constants import DB_RETRY_BASE_DELAY_SECONDS, DB_RETRY_MAX_RETRIES
from tts_backend.database.connection import DatabasePool
from tts_backend.shared.errors import (
    ConflictError,
    ErrorKind,
    PermanentQueryError,
    classify_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[asyncpg.Pool], Awaitable[T]]

# Sleep used between attempts; tests swap it for a recorder
backoff_sleep = asyncio.sleep


def is_transient_failure(exc: BaseException) -> bool:
    return classify_error(exc).is_transient


def build_retrying(
    max_attempts: int,
    base_delay: float,
    retry_on: Callable[[BaseException], bool],
    after: Callable[[RetryCallState], None],
    operation_name: str,
) -> AsyncRetrying:
    """
    Retry controller with linear backoff (``base_delay * attempt``).

    Args:
        max_attempts: Total attempts, including the first one
        base_delay: Backoff base in seconds
        retry_on: Predicate deciding whether a failure is retried
        after: Hook run after every failed attempt that qualifies for retry
        operation_name: Label used in log lines

    Returns:
        AsyncRetrying that re-raises the last error once attempts run out
    """
    def log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        logger.warning(
            f"{operation_name} attempt {retry_state.attempt_number} failed "
            f"({classify_error(exc).value}): {exc}; "
            f"retrying in {retry_state.next_action.sleep:.1f}s"
        )

    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=base_delay, increment=base_delay),
        retry=retry_if_exception(retry_on),
        after=after,
        before_sleep=log_retry,
        sleep=backoff_sleep,
        reraise=True,
    )


def to_permanent_error(exc: BaseException) -> Optional[PermanentQueryError]:
    """
    Wrap a non-retryable database failure, or return None to propagate it as is.

    Constraint violations become ConflictError; other server-side errors
    become PermanentQueryError. Anything else is not a database failure.
    """
    if classify_error(exc) is ErrorKind.CONSTRAINT:
        return ConflictError(str(exc), constraint=getattr(exc, "constraint_name", None) or "")
    if isinstance(exc, asyncpg.PostgresError):
        return PermanentQueryError(str(exc))
    return None


async def with_retry(
    db: DatabasePool,
    operation: Operation,
    max_retries: int = DB_RETRY_MAX_RETRIES,
    base_delay: float = DB_RETRY_BASE_DELAY_SECONDS,
    operation_name: str = "database operation",
) -> T:
    """
    Run ``operation`` against a freshly borrowed pool with bounded retries.

    Args:
        db: Pool manager to borrow from
        operation: Coroutine function receiving the pool
        max_retries: Retries allowed after the first attempt
        base_delay: Backoff base in seconds
        operation_name: Label used in log lines

    Returns:
        Whatever the operation returns

    Raises:
        ConflictError: On a constraint violation (never retried)
        PermanentQueryError: On any other server-side error (never retried)
        Exception: The last transient error once retries are exhausted
    """
    state = {"pool": None, "attempts": 0}

    def discard_failed_pool(retry_state: RetryCallState) -> None:
        # The pool that produced a transient failure is not trusted again
        pool = state["pool"]
        if pool is not None:
            db.invalidate(pool)

    retrying = build_retrying(
        max_attempts=max_retries + 1,
        base_delay=base_delay,
        retry_on=is_transient_failure,
        after=discard_failed_pool,
        operation_name=operation_name,
    )

    try:
        async for attempt in retrying:
            with attempt:
                state["pool"] = None
                state["attempts"] = attempt.retry_state.attempt_number
                state["pool"] = await db.acquire_pool()
                return await operation(state["pool"])
    except Exception as e:
        kind = classify_error(e)
        if kind.is_transient:
            logger.error(
                f"{operation_name} failed after {state['attempts']} "
                f"attempts ({kind.value}): {e}"
            )
            raise

        logger.error(f"{operation_name} failed ({kind.value}): {e}")
        permanent = to_permanent_error(e)
        if permanent is None:
            raise
        raise permanent from e
