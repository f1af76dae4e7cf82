"""core.retry

Retry utilities with exponential back-off + optional jitter for transport calls.

Only the transport retries. Adapter errors (unknown model, filtered content,
provider-reported failures) are deterministic and are never passed through here.
"""

from __future__ import annotations

import functools
import logging
import secrets
import time
from typing import TYPE_CHECKING, ParamSpec, TypeVar

from pydantic import BaseModel, Field

from model_dispatch.core.exceptions import GenerationTimeoutError, RateLimitExceededError

if TYPE_CHECKING:
    from collections.abc import Callable

P = ParamSpec('P')
T = TypeVar('T')

logger = logging.getLogger(__name__)


class RetryStrategy(BaseModel):
    """Configuration for exponential back-off retry with optional jitter."""

    max_attempts: int = Field(default=5, ge=1, description='Total attempts including the first call')
    base_backoff_sec: float = Field(default=1.0, ge=0.0, description='Initial delay before first retry (seconds)')
    max_backoff_sec: float = Field(default=60.0, ge=0.0, description='Upper bound for any sleep interval')
    jitter: bool = Field(default=True, description='Add random jitter (0-1s) to each interval')

    model_config = {
        'frozen': True,
    }

    def compute_delay(self, attempt_number: int) -> float:
        """Calculate sleep duration for the given attempt number (1-indexed)."""
        delay = min(self.base_backoff_sec * (2 ** (attempt_number - 1)), self.max_backoff_sec)
        if self.jitter:
            delay += secrets.randbelow(101) / 100
        return delay


def with_retry(
    strategy: RetryStrategy | None = None,
    retry_on: tuple[type[Exception], ...] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Retry decorator that retries a function according to the specified strategy.

    Parameters
    ----------
    strategy
        Retry policy. Defaults to RetryStrategy() if None.
    retry_on
        Exception types that trigger a retry. Defaults to
        (RateLimitExceededError, ConnectionError).

    Raises
    ------
    GenerationTimeoutError
        Once the last attempt still fails with a retryable error.

    """
    retry_strategy = strategy or RetryStrategy()
    retry_exceptions = retry_on or (RateLimitExceededError, ConnectionError)

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @functools.wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt_number = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as exc:
                    if attempt_number >= retry_strategy.max_attempts:
                        raise GenerationTimeoutError('Retry limit exceeded') from exc
                    delay = retry_strategy.compute_delay(attempt_number)
                    logger.warning(
                        '%s failed (%s), retrying in %.2fs (attempt %d/%d)',
                        func.__name__,
                        exc,
                        delay,
                        attempt_number,
                        retry_strategy.max_attempts,
                    )
                    time.sleep(delay)
                    attempt_number += 1

        return wrapper

    return decorator
