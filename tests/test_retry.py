"""Tests for retry with exponential backoff."""

import pytest

from codetime.sync.retry import (
    RetryConfig,
    RetryExhausted,
    calculate_delay,
    retry_with_backoff,
)


class TestCalculateDelay:
    """Tests for calculate_delay."""

    def test_exponential_growth(self):
        config = RetryConfig(base_delay=1.0, exponential_base=2.0, jitter=False)

        assert [calculate_delay(i, config) for i in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_capped_at_max_delay(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)

        assert calculate_delay(10, config) == 5.0

    def test_jitter_within_range(self):
        config = RetryConfig(base_delay=4.0, jitter=True)

        for _ in range(20):
            assert 3.0 <= calculate_delay(0, config) <= 5.0


class TestRetryWithBackoff:
    """Tests for retry_with_backoff."""

    def setup_method(self):
        """Set up test fixtures."""
        self.sleeps = []
        self.config = RetryConfig(max_retries=2, base_delay=1.0, jitter=False)

    def test_success_first_try(self):
        result = retry_with_backoff(lambda: 42, self.config, sleep=self.sleeps.append)

        assert result == 42
        assert self.sleeps == []

    def test_retries_then_succeeds(self):
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("reset")
            return "ok"

        result = retry_with_backoff(
            flaky, self.config, (ConnectionError,), sleep=self.sleeps.append
        )

        assert result == "ok"
        assert self.sleeps == [1.0, 2.0]

    def test_exhausted(self):
        def always_fail():
            raise ConnectionError("reset")

        with pytest.raises(RetryExhausted) as exc_info:
            retry_with_backoff(
                always_fail, self.config, (ConnectionError,), sleep=self.sleeps.append
            )

        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, ConnectionError)

    def test_non_retryable_propagates(self):
        def bad():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            retry_with_backoff(bad, self.config, (ConnectionError,), sleep=self.sleeps.append)
        assert self.sleeps == []
