"""
Resilience patterns module.

Components:
    - RetryConfig: Exponential backoff configuration
    - @with_retry_async decorator: Retry async calls on transient errors
    - Standard config: LISTING_RETRY
"""

from .retry import (
    LISTING_RETRY,
    RetryConfig,
    with_retry_async,
)

__all__ = [
    "RetryConfig",
    "with_retry_async",
    "LISTING_RETRY",
]
