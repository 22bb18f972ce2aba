"""
Exponential backoff for table store reads.

List and get calls are idempotent, so a rate-limited or dropped request
is simply sent again after a growing, jittered delay. Record writes are
never wrapped: a failed create or update is reported, not replayed.

Usage:
    from utils.retry import is_retryable_api_exception, retry_with_backoff

    read = retry_with_backoff(max_retries=3, retry_if=is_retryable_api_exception)(client._request)
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

import requests

logger = logging.getLogger(__name__)

# 429 is the store's HTTP-level rate limit; 5xx are gateway or backend hiccups
RETRYABLE_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})

MIN_DELAY = 0.1


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Delay before retry number ``attempt + 1``

    Args:
        attempt: Zero-based index of the failed attempt
        base_delay: Delay after the first failure, in seconds
        max_delay: Cap applied before jitter
        exponential_base: Growth factor per attempt
        jitter: Spread the delay by up to 25% either way

    Returns:
        Delay in seconds, never below MIN_DELAY when jitter is on
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if not jitter:
        return delay
    spread = delay * 0.25
    return max(MIN_DELAY, delay + random.uniform(-spread, spread))


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    retry_if: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Decorator that retries a call with exponential backoff

    An exception is retried only if it matches ``retryable_exceptions``
    (when given) and ``retry_if`` accepts it (when given). The last
    failure is re-raised once ``max_retries`` retries are spent.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Growth factor per attempt
        jitter: Randomize delays so parallel readers do not retry in lockstep
        retryable_exceptions: Exception types eligible for retry (default: all)
        retry_if: Predicate deciding whether a caught exception is transient
        on_retry: Callback(attempt, exception, delay), e.g. for metrics

    Example:
        @retry_with_backoff(max_retries=5, retry_if=is_retryable_api_exception)
        def list_page(table_id, page_token=None):
            return client.list_records(table_id, page_token)
    """
    def should_retry(exc: Exception) -> bool:
        if retryable_exceptions and not isinstance(exc, retryable_exceptions):
            return False
        return retry_if is None or retry_if(exc)

    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, "__name__", "function")

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e):
                        logger.debug(f"{func_name} failed with a permanent error: {type(e).__name__}: {e}")
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"{func_name} still failing after {max_retries} retries: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = compute_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                    attempt += 1
                    logger.warning(
                        f"{func_name} failed ({type(e).__name__}: {e}), "
                        f"retry {attempt}/{max_retries} in {delay:.2f}s"
                    )

                    if on_retry:
                        try:
                            on_retry(attempt, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Error in retry callback: {callback_error}")

                    time.sleep(delay)

        return wrapper
    return decorator


def is_retryable_api_exception(exception: Exception) -> bool:
    """
    Decide whether a failed table store call is worth repeating

    TableStoreError declares this itself through ``retryable`` (rate-limit
    codes, 429/5xx, dropped connections). For other exceptions, transport
    failures and retryable HTTP statuses count as transient.
    """
    declared = getattr(exception, "retryable", None)
    if isinstance(declared, bool):
        return declared

    if isinstance(exception, (requests.ConnectionError, requests.Timeout)):
        return True

    if isinstance(exception, requests.HTTPError) and exception.response is not None:
        return exception.response.status_code in RETRYABLE_HTTP_STATUSES

    return isinstance(exception, (ConnectionError, TimeoutError))
