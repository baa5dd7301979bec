"""Rate limiting and retry handling for platform API calls."""

import time
from typing import Callable, Optional, TypeVar

from loguru import logger as default_logger

from .exceptions import ApiError, RateLimitError

T = TypeVar('T')


class RateLimiter:
    """Token bucket rate limiter for API requests."""

    def __init__(self, requests_per_second: float = 10.0):
        """Initialize rate limiter.

        Args:
            requests_per_second: Maximum requests per second allowed
        """
        self.requests_per_second = requests_per_second
        self.tokens = requests_per_second
        self.last_update = time.monotonic()

    def acquire(self) -> None:
        """Acquire a token for making a request.

        Blocks until a token is available.
        """
        now = time.monotonic()
        elapsed = now - self.last_update

        # Add tokens based on elapsed time
        self.tokens = min(
            self.requests_per_second, self.tokens + elapsed * self.requests_per_second
        )
        self.last_update = now

        if self.tokens >= 1:
            self.tokens -= 1
            return

        sleep_time = (1 - self.tokens) / self.requests_per_second
        time.sleep(sleep_time)
        self.tokens = 0
        self.last_update = time.monotonic()


class RetryPolicy:
    """Bounded retry with exponential backoff for retryable API errors.

    Only rate-limit and network errors are retried. Everything else, and the
    last retryable error once attempts run out, propagates to the caller.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_factor: float = 1.0,
        max_backoff: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        logger=None,
    ):
        """Initialize retry policy.

        Args:
            max_attempts: Total attempts including the first one
            backoff_factor: Base delay; attempt n waits factor * 2 ** (n - 1)
            max_backoff: Upper bound for any single wait
            sleep: Sleep function
            logger: Logger to report retries on
        """
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')
        self.max_attempts = max_attempts
        self.backoff_factor = backoff_factor
        self.max_backoff = max_backoff
        self.sleep = sleep
        self.logger = (logger or default_logger).bind(component='RetryPolicy')

    def delay_for(self, attempt: int, error: Optional[ApiError] = None) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        delay = self.backoff_factor * (2 ** (attempt - 1))
        if isinstance(error, RateLimitError) and error.retry_after:
            delay = max(delay, float(error.retry_after))
        return min(delay, self.max_backoff)

    def call(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call ``func`` and retry it on retryable API errors.

        Returns:
            Function result

        Raises:
            ApiError: Non-retryable errors immediately, retryable ones once
                attempts are exhausted
        """
        attempt = 1
        while True:
            try:
                return func(*args, **kwargs)
            except ApiError as e:
                if not e.retryable or attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt, e)
                self.logger.warning(
                    f'{e.kind.value} error on attempt {attempt}/{self.max_attempts}, '
                    f'retrying in {delay:.1f}s: {e}'
                )
                self.sleep(delay)
                attempt += 1
