"""Exponential backoff retry wrapper for async upstream calls.

RetryingClient runs an async call and, when the failure is transient, sleeps
and tries again with a doubled delay. Backoff is deterministic (no jitter):
fine for a single service instance, but many concurrent clients retrying in
lockstep would hit the upstream together.

Worst-case added latency is initial_delay * (2 ** max_retries - 1).
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from chefgpt.utils.errors import UpstreamError
from chefgpt.utils.logger import logger


T = TypeVar("T")


def is_retryable_error(error: Exception) -> bool:
    """Decide whether a failure is worth retrying.

    Retryable: UpstreamError with status 429 (rate limited), any 5xx, or no
    status at all (connection error, timeout). Everything else is permanent:
    other 4xx responses, missing credentials, invalid input, bugs.
    """
    if not isinstance(error, UpstreamError):
        return False
    if error.status is None:
        return True
    return error.is_rate_limited or error.status >= 500


class RetryingClient:
    """Invoke async calls with bounded retries and exponential backoff."""

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        retry_on: Optional[Callable[[Exception], bool]] = None,
    ) -> None:
        """Initialize RetryingClient.

        Args:
            max_retries: Retry attempts after the first call (default: 3).
                Total attempts never exceed max_retries + 1.
            initial_delay: Delay in seconds before the first retry, doubled
                after every retry (default: 1.0).
            retry_on: Predicate deciding whether an error is transient.
                Defaults to is_retryable_error.

        Raises:
            ValueError: If max_retries is negative or initial_delay not positive.
        """
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got: {max_retries}")
        if initial_delay <= 0:
            raise ValueError(f"initial_delay must be > 0, got: {initial_delay}")

        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.retry_on = retry_on or is_retryable_error

    async def invoke(self, call: Callable[[], Awaitable[T]], operation: str = "upstream call") -> T:
        """Run call(), retrying transient failures.

        Args:
            call: Zero-argument callable returning a fresh awaitable per attempt.
            operation: Description used in log messages.

        Returns:
            The result of the first successful attempt.

        Raises:
            Exception: The error of the last attempt, unchanged. Non-retryable
                errors are raised on the attempt that produced them.
        """
        delay = self.initial_delay
        retries_left = self.max_retries
        attempt = 0

        while True:
            attempt += 1
            try:
                return await call()
            except Exception as e:
                if not self.retry_on(e):
                    logger.debug(f"{operation} failed permanently on attempt {attempt}: {e}")
                    raise
                if retries_left <= 0:
                    logger.error(f"{operation} failed after {attempt} attempt(s): {e}")
                    raise

                logger.warning(
                    f"{operation} failed ({e}), retrying in {delay:g}s... "
                    f"(attempt {attempt}/{self.max_retries + 1})"
                )
                await asyncio.sleep(delay)
                delay *= 2
                retries_left -= 1
