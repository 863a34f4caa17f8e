"""
Bounded exponential backoff around a single remote operation.

Drive answers bursts of requests with rate-limit errors (403/429) and the
occasional 5xx. Every failure is treated as transient here; once the
attempt ceiling is reached the last error is raised as fatal for the run.
"""

import logging
import random
import time
from typing import Any, Callable, TypeVar

from googleapiclient.errors import HttpError

from .errors import BackoffExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RATE_LIMIT_REASONS = ('userRateLimitExceeded', 'rateLimitExceeded')


def is_rate_limit_error(error: Exception) -> bool:
    """Check if error is a Drive rate limit"""
    if isinstance(error, HttpError):
        status = getattr(error.resp, 'status', None)
        if status == 429:
            return True
        content = error.content
        if isinstance(content, bytes):
            content = content.decode('utf-8', errors='replace')
        return status == 403 and any(reason in str(content) for reason in RATE_LIMIT_REASONS)
    return False


def backoff_delay(
    attempt: int,
    max_backoff: float,
    jitter: Callable[[], float] = random.random
) -> float:
    """
    Delay before the next attempt.

    Args:
        attempt: Zero-based number of the attempt that just failed
        max_backoff: Upper bound in seconds
        jitter: Source of a random value in [0, 1)

    Returns:
        float: min(max_backoff, 2**attempt + jitter) seconds
    """
    return min(max_backoff, 2 ** attempt + jitter())


def with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int,
    max_backoff: float,
    sleep: Callable[[float], Any] = time.sleep,
    jitter: Callable[[], float] = random.random,
    description: str = 'remote operation'
) -> T:
    """
    Call `operation` until it succeeds.

    The operation runs at most ``max_attempts + 1`` times. There is no
    sleep after the final failure.

    Returns:
        The operation's result

    Raises:
        BackoffExhaustedError: every attempt failed; chained from the last error
    """
    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if attempt >= max_attempts:
                logger.error(f"❌ {description} failed after {attempt + 1} attempts: {e}")
                raise BackoffExhaustedError(
                    f"{description} failed after {attempt + 1} attempts",
                    attempts=attempt + 1,
                    last_error=e
                ) from e

            if is_rate_limit_error(e):
                logger.warning(f"🚫 Rate limit on {description}")
            else:
                logger.warning(f"⚠️ {description} attempt {attempt + 1}/{max_attempts + 1} failed: {e}")

            delay = backoff_delay(attempt, max_backoff, jitter)
            logger.info(f"⏳ Retrying in {delay:.1f}s...")
            sleep(delay)
            attempt += 1


def make_retry(max_attempts: int, max_backoff: float, sleep: Callable[[float], Any] = time.sleep):
    """
    Bind the retry limits once so callers only pass the operation.

    Returns:
        Callable[[Callable[[], T], str], T]
    """
    def retry(operation: Callable[[], T], description: str = 'remote operation') -> T:
        return with_backoff(
            operation,
            max_attempts=max_attempts,
            max_backoff=max_backoff,
            sleep=sleep,
            description=description
        )

    return retry
