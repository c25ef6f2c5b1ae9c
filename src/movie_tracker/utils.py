"""Retry helpers for the catalog fetch."""

import time
import logging
from functools import wraps
from typing import TypeVar, Callable

import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Server-side throttling is worth waiting out; other 4xx answers are final
RETRYABLE_STATUS_CODES = frozenset({429})


def is_transient_http_error(exc: BaseException) -> bool:
    """True for transport failures, 5xx responses and 429; False for anything else."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status in RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    retry_if: Callable[[BaseException], bool] = is_transient_http_error,
):
    """
    Retry a call with exponential backoff while `retry_if` accepts the error.

    Errors `retry_if` rejects propagate on the first attempt, as does the
    error from the final attempt.

    Args:
        max_retries: Total number of attempts
        initial_delay: Seconds to wait before the second attempt
        backoff_factor: Multiplier applied to the delay after each failure
        retry_if: Predicate deciding whether an exception is worth retrying
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            attempt = 1
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not retry_if(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(f"{func.__name__} gave up after {attempt} attempts: {e}")
                        raise
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{max_retries}): {e}. "
                        f"Retrying in {delay:.1f}s..."
                    )
                time.sleep(delay)
                delay *= backoff_factor
                attempt += 1

        return wrapper
    return decorator
