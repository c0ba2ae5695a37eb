"""
Retry utilities with exception-aware handling.

Uses the exception hierarchy to make retry decisions:
- Transient errors (429 rate limiting): retry with exponential backoff
- Auth errors: fail immediately, token lifecycle is out of our hands
- Permanent errors: fail immediately (no retry)
- Anything outside the GalleryError hierarchy: fail immediately

Only the listing path retries. Media downloads classify and report a
single attempt; they never go through this module.
"""

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps

from gallery_core.errors.exceptions import GalleryError, ThrottlingError
from gallery_core.types import ErrorCategory

logger = logging.getLogger(__name__)


def _extract_error_category(error: Exception) -> str:
    """Return a string error category for log extras."""
    cat = error.category if isinstance(error, GalleryError) else ErrorCategory.UNKNOWN
    return cat.value if hasattr(cat, "value") else str(cat)


def _log_retry_failure(
    func_name: str,
    e: Exception,
    error_category: str,
    config: "RetryConfig",
) -> None:
    """Log permanent-error or max-retries-exhausted."""
    error_type = type(e).__name__
    if not isinstance(e, GalleryError) or not e.is_retryable:
        logger.debug(
            "Permanent error for %s, not retrying: %s",
            func_name,
            str(e)[:200],
            extra={
                "operation": func_name,
                "error_type": error_type,
                "error_category": error_category,
            },
        )
        return

    logger.error(
        "Max retries exhausted for %s: %s",
        func_name,
        str(e)[:200],
        extra={
            "operation": func_name,
            "error_type": error_type,
            "error_category": error_category,
            "max_attempts": config.max_attempts,
            "error_message": str(e)[:200],
        },
    )


def _log_retry_attempt(
    func_name: str,
    attempt: int,
    config: "RetryConfig",
    error_category: str,
    delay: float,
    e: Exception,
) -> None:
    """Build log extras and emit the retry-attempt warning."""
    log_extras: dict[str, object] = {
        "operation": func_name,
        "attempt": attempt + 1,
        "max_attempts": config.max_attempts,
        "error_category": error_category,
        "delay_seconds": round(delay, 2),
        "error_message": str(e)[:200],
    }

    using_server_delay = (
        config.respect_retry_after
        and isinstance(e, ThrottlingError)
        and e.retry_after is not None
    )

    if using_server_delay:
        log_extras["server_retry_after"] = e.retry_after
        log_extras["delay_source"] = "server"
        log_message = "Retryable error for %s, will retry (using server-provided delay)"
    else:
        log_extras["delay_source"] = "exponential_backoff"
        log_message = "Retryable error for %s, will retry"

    logger.warning(log_message, func_name, extra=log_extras)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0

    # Add up to 25% random jitter on top of the exponential delay
    jitter: bool = True

    # If True, use retry_after from ThrottlingError when available
    respect_retry_after: bool = True

    def __post_init__(self):
        """Ensure proper types from YAML/env vars."""
        self.max_attempts = int(self.max_attempts)
        self.base_delay = float(self.base_delay)
        self.max_delay = float(self.max_delay)
        self.exponential_base = float(self.exponential_base)
        # bool('false') would be True, so only coerce non-bools
        self.jitter = self.jitter if isinstance(self.jitter, bool) else bool(self.jitter)
        self.respect_retry_after = (
            self.respect_retry_after
            if isinstance(self.respect_retry_after, bool)
            else bool(self.respect_retry_after)
        )

    def get_delay(self, attempt: int, error: Exception | None = None) -> float:
        """
        Calculate the delay before the next attempt.

        The base delay doubles per attempt (with the default exponential_base);
        a server-provided Retry-After wins when present. Both are capped at
        max_delay.

        Args:
            attempt: 0-indexed attempt number
            error: Optional exception to check for retry_after

        Returns:
            Delay in seconds
        """
        if (
            self.respect_retry_after
            and isinstance(error, ThrottlingError)
            and error.retry_after is not None
        ):
            return min(error.retry_after, self.max_delay)

        delay = self.base_delay * (self.exponential_base**attempt)
        if self.jitter and delay > 0:
            delay += random.uniform(0, delay / 4)

        return min(delay, self.max_delay)

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Determine if error should be retried.

        Args:
            error: The exception that occurred
            attempt: 0-indexed current attempt

        Returns:
            True if should retry
        """
        if attempt >= self.max_attempts - 1:
            return False

        # Only the GalleryError hierarchy carries retryability
        return isinstance(error, GalleryError) and error.is_retryable


# Listing profile: 1s, 2s, 4s, 8s between five attempts
LISTING_RETRY = RetryConfig(max_attempts=5, base_delay=1.0, max_delay=32.0)


def with_retry_async(config: RetryConfig = LISTING_RETRY):
    """
    Decorator for retrying async functions with exponential backoff.

    Args:
        config: Retry configuration (defaults to LISTING_RETRY)

    Usage:
        @with_retry_async(config=LISTING_RETRY)
        async def fetch_page():
            ...

        # Or with a config only known at runtime:
        page = await with_retry_async(config=self.retry_config)(self._fetch)(url)
    """

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_error: Exception | None = None

            for attempt in range(config.max_attempts):
                try:
                    result = await func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(
                            "Retry succeeded for %s after %d attempts",
                            func.__name__,
                            attempt + 1,
                            extra={
                                "operation": func.__name__,
                                "attempt": attempt + 1,
                                "total_attempts": config.max_attempts,
                            },
                        )

                    return result

                except Exception as e:
                    last_error = e
                    error_category = _extract_error_category(e)

                    if not config.should_retry(e, attempt):
                        _log_retry_failure(func.__name__, e, error_category, config)
                        raise

                    delay = config.get_delay(attempt, e)
                    _log_retry_attempt(func.__name__, attempt, config, error_category, delay, e)

                    await asyncio.sleep(delay)

            if last_error:
                raise last_error

        return wrapper

    return decorator


__all__ = [
    "RetryConfig",
    "with_retry_async",
    "LISTING_RETRY",
]
