"""
Retry policy for outbound email delivery.

SMTP relays drop connections and rate limit bursts, so delivery is retried
with exponential backoff before a batch is marked failed. The policy comes
from the CERTWATCH_EMAIL_RETRY setting.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterator, TypeVar

from django.conf import settings

from certwatch.constants import EMAIL_RETRY_BASE_DELAY, EMAIL_RETRY_MAX_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar('T')


@dataclass(frozen=True)
class RetryPolicy:
    """
    How often and how patiently to retry.

    Attributes:
        max_retries: attempts after the first one
        base_delay: seconds before the first retry, doubled on each retry
        max_delay: upper bound for a single wait
    """

    max_retries: int = EMAIL_RETRY_MAX_RETRIES
    base_delay: float = EMAIL_RETRY_BASE_DELAY
    max_delay: float = 30.0

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        overrides = getattr(settings, "CERTWATCH_EMAIL_RETRY", {})
        return cls(**overrides)

    def delays(self) -> Iterator[float]:
        """Wait before each retry, e.g. 1.0, 2.0, 4.0 for three retries."""
        for retry in range(self.max_retries):
            yield min(self.base_delay * (2 ** retry), self.max_delay)


def retry_with_backoff(
    policy: RetryPolicy,
    retryable_exceptions: tuple = (Exception,),
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries ``func`` according to ``policy``.

    Only ``retryable_exceptions`` are retried; anything else propagates from
    the first attempt. When every attempt fails the last error is re-raised.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 1
            for delay in policy.delays():
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    logger.warning(
                        f"{func.__name__} attempt {attempt} failed, "
                        f"retrying in {delay:.2f}s: {e}"
                    )
                time.sleep(delay)
                attempt += 1

            try:
                return func(*args, **kwargs)
            except retryable_exceptions as e:
                logger.error(f"Giving up on {func.__name__} after {attempt} attempts: {e}")
                raise
        return wrapper
    return decorator
