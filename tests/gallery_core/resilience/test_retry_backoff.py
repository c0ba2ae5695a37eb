"""
Tests for retry logic with exponential backoff.

Covers the delay schedule, Retry-After handling and which errors retry.
"""

from unittest.mock import AsyncMock, patch

import pytest

from gallery_core.errors import (
    AuthError,
    ThrottlingError,
    TransportError,
)
from gallery_core.resilience import LISTING_RETRY, RetryConfig, with_retry_async


def _named(mock: AsyncMock):
    """Plain coroutine function around a mock, so the decorator can read __name__."""

    async def fetch_page():
        return await mock()

    return fetch_page


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_default_values(self):
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 30.0
        assert config.respect_retry_after is True

    def test_listing_profile(self):
        assert LISTING_RETRY.max_attempts == 5
        assert LISTING_RETRY.base_delay == 1.0
        assert LISTING_RETRY.max_delay == 32.0

    def test_type_conversion_from_strings(self):
        """Config handles string inputs (e.g., from YAML)."""
        config = RetryConfig(max_attempts="5", base_delay="2.5", max_delay="60")
        assert config.max_attempts == 5
        assert config.base_delay == 2.5
        assert config.max_delay == 60.0

    def test_delay_doubles_per_attempt(self):
        config = RetryConfig(base_delay=1.0, max_delay=100.0, jitter=False)
        assert [config.get_delay(a) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)
        assert config.get_delay(10) == 5.0

    def test_jitter_adds_at_most_a_quarter(self):
        config = RetryConfig(base_delay=4.0, max_delay=100.0, jitter=True)
        for _ in range(20):
            assert 4.0 <= config.get_delay(0) <= 5.0

    def test_retry_after_wins_and_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=10.0, jitter=False)
        assert config.get_delay(0, ThrottlingError("x", retry_after=3)) == 3
        assert config.get_delay(0, ThrottlingError("x", retry_after=60)) == 10.0

    def test_retry_after_ignored_when_disabled(self):
        config = RetryConfig(base_delay=1.0, jitter=False, respect_retry_after=False)
        assert config.get_delay(0, ThrottlingError("x", retry_after=9)) == 1.0


class TestShouldRetry:
    def test_throttling_retries(self):
        assert RetryConfig(max_attempts=3).should_retry(ThrottlingError("x"), 0) is True

    def test_last_attempt_never_retries(self):
        assert RetryConfig(max_attempts=3).should_retry(ThrottlingError("x"), 2) is False

    def test_auth_and_transport_errors_do_not_retry(self):
        config = RetryConfig(max_attempts=5)
        assert config.should_retry(AuthError("x"), 0) is False
        assert config.should_retry(TransportError("x", status_code=500), 0) is False

    def test_unclassified_errors_do_not_retry(self):
        assert RetryConfig(max_attempts=5).should_retry(TimeoutError("read"), 0) is False


class TestWithRetryAsync:
    @pytest.mark.asyncio
    async def test_succeeds_after_throttling(self):
        calls = AsyncMock(side_effect=[ThrottlingError("429"), ThrottlingError("429"), "ok"])
        config = RetryConfig(max_attempts=5, base_delay=0.5, jitter=False)

        with patch("gallery_core.resilience.retry.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await with_retry_async(config=config)(_named(calls))()

        assert result == "ok"
        assert calls.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_last_error(self):
        calls = AsyncMock(side_effect=ThrottlingError("429"))
        config = RetryConfig(max_attempts=3, base_delay=0, jitter=False)

        with patch("gallery_core.resilience.retry.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ThrottlingError):
                await with_retry_async(config=config)(_named(calls))()

        assert calls.await_count == 3

    @pytest.mark.asyncio
    async def test_permanent_error_raises_immediately(self):
        calls = AsyncMock(side_effect=AuthError("401"))

        with pytest.raises(AuthError):
            await with_retry_async(config=RetryConfig(max_attempts=5))(_named(calls))()

        assert calls.await_count == 1

    @pytest.mark.asyncio
    async def test_unclassified_errors_raise_unwrapped(self):
        calls = AsyncMock(side_effect=RuntimeError("weird"))

        with pytest.raises(RuntimeError):
            await with_retry_async(config=RetryConfig(max_attempts=5))(_named(calls))()

        assert calls.await_count == 1
