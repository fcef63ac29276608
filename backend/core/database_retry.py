# backend/core/database_retry.py

import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterable, Optional, Set, TypeVar

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Database error codes that indicate retry-able conditions
RETRY_ERROR_CODES: Set[str] = {
    # PostgreSQL
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
    # SQLite (for testing)
    "database is locked",
    "database table is locked",
}


def _root_error(error: BaseException) -> BaseException:
    # Store wrappers chain the driver error as __cause__
    if not isinstance(error, DBAPIError) and isinstance(
        error.__cause__, DBAPIError
    ):
        return error.__cause__
    return error


def is_retryable_error(error: BaseException) -> bool:
    """
    Check if a database error is a transient locking condition

    Args:
        error: The exception to check

    Returns:
        True if the error indicates a condition that may succeed on retry
    """
    error = _root_error(error)
    if isinstance(error, (OperationalError, DBAPIError)) and not isinstance(
        error, IntegrityError
    ):
        error_str = str(error).lower()
        if any(code in error_str for code in ["deadlock", "serialization", "locked"]):
            return True

        orig = getattr(error, "orig", None)
        if orig is not None and getattr(orig, "pgcode", None):
            return orig.pgcode in RETRY_ERROR_CODES
        if orig is not None and getattr(orig, "args", None):
            error_code = str(orig.args[0])
            return any(code in error_code for code in RETRY_ERROR_CODES)

    return False


def is_unique_violation(error: BaseException, markers: Iterable[str]) -> bool:
    """
    Check if an IntegrityError was raised by one of the given unique indexes

    Postgres reports the index name, SQLite reports "table.column", so
    callers pass every spelling they care about.
    """
    error = _root_error(error)
    if not isinstance(error, IntegrityError):
        return False
    message = str(error.orig if error.orig is not None else error)
    return any(marker in message for marker in markers)


async def retry_on_conflict(
    func: Callable[..., Awaitable[T]],
    *args,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    max_retries: int = 3,
    initial_delay: float = 0.05,
    max_delay: float = 1.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    **kwargs,
) -> T:
    """
    Retry an async unit of work on lock contention or a lost compare-and-set

    Args:
        func: The async function to retry; it must open its own transaction
        retry_if: Extra predicate marking errors as retryable
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        jitter: Add random jitter to prevent thundering herd

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries fail
    """
    delay = initial_delay

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            retryable = is_retryable_error(e) or (retry_if is not None and retry_if(e))
            if not retryable or attempt == max_retries:
                raise

            actual_delay = min(delay, max_delay)
            if jitter:
                # Add random jitter (0-25% of delay)
                actual_delay *= 1 + random.random() * 0.25

            logger.warning(
                f"Write conflict on attempt {attempt + 1}/{max_retries + 1}. "
                f"Retrying in {actual_delay:.2f}s. Error: {str(e)}"
            )

            await asyncio.sleep(actual_delay)
            delay *= backoff_factor

    raise RuntimeError("retry_on_conflict exhausted without result")
