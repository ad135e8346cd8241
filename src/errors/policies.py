"""RetryPolicy configurations for external calls.

Only transport-level failures of the search API are retried. Completion
errors abort the current stage and scraping failures are recorded per URL,
so neither goes through a retry policy.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Type, TypeVar

import httpx

from src.errors.exceptions import RateLimitError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# RetryPolicy Configuration
# =============================================================================


@dataclass
class RetryPolicy:
    """Configuration for retry behavior on errors.

    Attributes:
        max_attempts: Maximum number of attempts (including the initial one)
        initial_interval: Initial delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff
        max_interval: Maximum delay between retries in seconds
        jitter: Whether to add random jitter to delays
        retry_on: Tuple of exception types to retry on
        should_retry: Optional custom function to determine if should retry
    """

    max_attempts: int = 3
    initial_interval: float = 1.0
    backoff_factor: float = 2.0
    max_interval: float = 60.0
    jitter: bool = True
    retry_on: tuple[Type[Exception], ...] = field(
        default_factory=lambda: (Exception,)
    )
    should_retry: Callable[[Exception, int], bool] | None = None

    def get_delay(self, attempt: int, error: Exception | None = None) -> float:
        """Calculate delay before next retry.

        Uses the server supplied ``retry_after`` when present, otherwise
        exponential backoff with optional jitter.

        Args:
            attempt: The current attempt number (0-indexed)
            error: The exception that triggered the retry

        Returns:
            Delay in seconds before next retry
        """
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            return min(float(retry_after), self.max_interval)

        delay = min(
            self.initial_interval * (self.backoff_factor ** attempt),
            self.max_interval
        )

        if self.jitter:
            # Add 0-50% random jitter
            delay = delay * (1 + random.random() * 0.5)

        return delay

    def should_attempt_retry(self, error: Exception, attempt: int) -> bool:
        """Determine if a retry should be attempted.

        Args:
            error: The exception that occurred
            attempt: The current attempt number (0-indexed)

        Returns:
            True if retry should be attempted
        """
        if attempt >= self.max_attempts - 1:
            return False

        if not isinstance(error, self.retry_on):
            return False

        if self.should_retry is not None:
            return self.should_retry(error, attempt)

        return True


async def retry_async(
    policy: RetryPolicy,
    func: Callable[[], Awaitable[T]],
    description: str = "operation",
) -> T:
    """Run ``func`` under ``policy``, sleeping between attempts.

    The last error is re-raised once the policy stops retrying.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not policy.should_attempt_retry(e, attempt):
                raise
            delay = policy.get_delay(attempt, e)
            logger.info(
                f"{description} failed ({e.__class__.__name__}), "
                f"retrying in {delay:.1f}s (attempt {attempt + 2}/{policy.max_attempts})"
            )
            await asyncio.sleep(delay)
            attempt += 1


# =============================================================================
# Pre-configured Policies
# =============================================================================


def create_search_retry_policy(
    max_attempts: int = 3,
    initial_interval: float = 2.0,
) -> RetryPolicy:
    """Create a retry policy for search page requests.

    Handles rate limits and transient transport failures.

    Args:
        max_attempts: Maximum attempts per page
        initial_interval: Initial delay in seconds

    Returns:
        Configured RetryPolicy
    """
    return RetryPolicy(
        max_attempts=max_attempts,
        initial_interval=initial_interval,
        backoff_factor=2.0,
        max_interval=60.0,
        jitter=True,
        retry_on=(
            RateLimitError,
            httpx.TimeoutException,
            httpx.TransportError,
        ),
        should_retry=_should_retry_search_error,
    )


NO_RETRY_POLICY = RetryPolicy(max_attempts=1, jitter=False)
"""Policy that never retries."""


# =============================================================================
# Retry Decision Functions
# =============================================================================


def _should_retry_search_error(error: Exception, attempt: int) -> bool:
    """Determine if a search error should be retried.

    Args:
        error: The exception that occurred
        attempt: Current attempt number

    Returns:
        True if should retry
    """
    if isinstance(error, RateLimitError):
        logger.info(
            f"Search rate limit hit, will retry (attempt {attempt + 1}). "
            f"Retry after: {error.retry_after or 'unknown'}"
        )
        return True

    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        logger.info(f"Search connection issue, will retry (attempt {attempt + 1})")
        return True

    return False
