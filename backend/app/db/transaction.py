"""
Bounded-retry unit of work.

Every coordinator call runs as one store transaction. When the store
aborts it (serialization failure, deadlock, lock timeout, dropped
connection), the whole unit of work is re-run from scratch on a fresh
session, so no attempt ever leaves partial state behind. After the last
attempt the failure is surfaced as TransientStoreFailure, without any
storage-layer detail.
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import get_settings
from app.core.exceptions import TransientStoreFailure
from app.core.logging import get_logger
from app.core.metrics import record_retry, record_transaction_failure

logger = get_logger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = {"40001", "40P01", "55P03"}
SQLITE_BUSY_MESSAGES = ("database is locked", "database table is locked")
UNIQUE_VIOLATION = "23505"


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    return getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)


def is_unique_violation(exc: DBAPIError) -> bool:
    """True for a unique constraint or unique index violation, and no other integrity error."""
    if _sqlstate(exc) == UNIQUE_VIOLATION:
        return True
    # SQLite: "UNIQUE constraint failed: ..."
    return "unique constraint" in str(exc.orig).lower()


def is_transient(exc: BaseException) -> bool:
    """True if the store aborted the transaction and a fresh attempt may succeed."""
    if isinstance(exc, PoolTimeoutError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True

    orig = exc.orig
    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True

    message = str(orig).lower()
    return any(text in message for text in SQLITE_BUSY_MESSAGES)


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    operation: str,
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> T:
    """
    Run `work` inside a single transaction, retrying transient aborts.

    Domain errors raised by `work` roll the transaction back and propagate
    unchanged on the first attempt.
    """
    settings = get_settings()
    max_attempts = max_attempts or settings.REGISTRATION_MAX_ATTEMPTS
    base_delay = settings.REGISTRATION_RETRY_BASE_DELAY if base_delay is None else base_delay

    for attempt in range(1, max_attempts + 1):
        try:
            async with session_factory() as session:
                async with session.begin():
                    return await work(session)
        except (DBAPIError, PoolTimeoutError) as exc:
            if not is_transient(exc):
                raise

            if attempt == max_attempts:
                record_transaction_failure(operation)
                logger.error(
                    "transaction_retries_exhausted",
                    operation=operation,
                    attempts=attempt,
                    error=type(exc).__name__,
                )
                raise TransientStoreFailure() from exc

            record_retry(operation)
            # Exponential backoff with full jitter
            delay = random.uniform(0, base_delay * (2 ** (attempt - 1)))
            logger.info(
                "transaction_retry",
                operation=operation,
                attempt=attempt,
                delay_ms=round(delay * 1000, 2),
                reason=type(exc).__name__,
            )
            await asyncio.sleep(delay)

    # max_attempts < 1
    raise TransientStoreFailure()
