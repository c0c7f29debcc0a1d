"""Tests for the exponential backoff retry engine."""

import pytest

from registry_credentials_core.exceptions import NetworkError
from registry_credentials_core.retry import (
    RetryConfig,
    RetryEngine,
    create_retry_engine,
    retry_with_backoff,
)


class FlakyOperation:
    """Fails a fixed number of times, then returns a value."""

    def __init__(self, failures: int, value: bytes = b"ok") -> None:
        self.failures = failures
        self.value = value
        self.calls = 0

    def __call__(self) -> bytes:
        self.calls += 1
        if self.calls <= self.failures:
            raise NetworkError("metadata unreachable")
        return self.value


class TestRetryConfig:
    """Test RetryConfig validation."""

    def test_defaults(self) -> None:
        """Test the defaults retry forever from 100ms up to 60s."""
        config = RetryConfig()
        assert config.max_attempts is None
        assert config.base_delay == 0.1
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0
        assert config.jitter is False

    def test_invalid_max_attempts(self) -> None:
        """Test invalid max_attempts validation."""
        with pytest.raises(ValueError, match="max_attempts must be at least 1"):
            RetryConfig(max_attempts=0)

    def test_invalid_base_delay(self) -> None:
        """Test invalid base_delay validation."""
        with pytest.raises(ValueError, match="base_delay must be positive"):
            RetryConfig(base_delay=0)

    def test_invalid_max_delay(self) -> None:
        """Test invalid max_delay validation."""
        with pytest.raises(ValueError, match="max_delay must be positive"):
            RetryConfig(max_delay=-1)

    def test_invalid_exponential_base(self) -> None:
        """Test invalid exponential_base validation."""
        with pytest.raises(ValueError, match="exponential_base must be greater than 1"):
            RetryConfig(exponential_base=1.0)

    def test_invalid_jitter_range(self) -> None:
        """Test invalid jitter_range validation."""
        with pytest.raises(ValueError, match="jitter_range must be"):
            RetryConfig(jitter_range=(1.0, 0.5))


class TestRetryEngine:
    """Test RetryEngine functionality."""

    def test_calculate_delay_doubles_and_caps(self) -> None:
        """Test delays start at 100ms, double, and stop at 60s."""
        engine = RetryEngine(RetryConfig())
        assert engine.calculate_delay(0) == pytest.approx(0.1)
        assert engine.calculate_delay(1) == pytest.approx(0.2)
        assert engine.calculate_delay(2) == pytest.approx(0.4)
        assert engine.calculate_delay(9) == pytest.approx(51.2)
        assert engine.calculate_delay(10) == 60.0
        assert engine.calculate_delay(50) == 60.0

    def test_calculate_delay_stays_capped_for_large_attempts(self) -> None:
        """Test attempt numbers past float range still give the cap."""
        engine = RetryEngine(RetryConfig())
        assert engine.calculate_delay(1024) == 60.0
        assert engine.calculate_delay(5000) == 60.0

    def test_calculate_delay_with_jitter(self) -> None:
        """Test jitter keeps the delay inside the jitter range."""
        engine = RetryEngine(RetryConfig(jitter=True))
        delay = engine.calculate_delay(1)
        assert 0.1 <= delay <= 0.3

    def test_success_first_try_does_not_sleep(self) -> None:
        """Test a successful call returns without waiting."""
        sleeps: list[float] = []
        engine = create_retry_engine(sleep=sleeps.append)
        operation = FlakyOperation(failures=0)

        assert engine.execute_with_retry_sync(operation) == b"ok"
        assert operation.calls == 1
        assert sleeps == []

    @pytest.mark.parametrize("failures", [1, 3, 12])
    def test_total_backoff_for_k_failures(self, failures: int) -> None:
        """Test k failures block for the sum of min(100ms * 2^i, 60s)."""
        sleeps: list[float] = []
        engine = create_retry_engine(sleep=sleeps.append)
        operation = FlakyOperation(failures=failures, value=b"scopes")

        assert engine.execute_with_retry_sync(operation) == b"scopes"
        assert operation.calls == failures + 1

        expected = [min(0.1 * 2**i, 60.0) for i in range(failures)]
        assert sleeps == pytest.approx(expected)
        assert sum(sleeps) == pytest.approx(sum(expected))

    def test_unbounded_by_default(self) -> None:
        """Test the default engine keeps retrying well past any small limit."""
        sleeps: list[float] = []
        operation = FlakyOperation(failures=100)

        result = retry_with_backoff(
            operation, engine=create_retry_engine(sleep=sleeps.append)
        )

        assert result == b"ok"
        assert len(sleeps) == 100
        assert max(sleeps) == 60.0

    def test_long_outage_keeps_retrying_at_cap(self) -> None:
        """Test more than a thousand failures still end in the result."""
        sleeps: list[float] = []
        engine = create_retry_engine(sleep=sleeps.append)
        operation = FlakyOperation(failures=1100)

        assert engine.execute_with_retry_sync(operation) == b"ok"
        assert operation.calls == 1101
        assert len(sleeps) == 1100
        assert sleeps[-1] == 60.0

    def test_bounded_attempts_raise_last_error(self) -> None:
        """Test an engine with max_attempts gives up and re-raises."""
        sleeps: list[float] = []
        engine = create_retry_engine(max_attempts=3, sleep=sleeps.append)
        operation = FlakyOperation(failures=10)

        with pytest.raises(NetworkError, match="metadata unreachable"):
            engine.execute_with_retry_sync(operation)

        assert operation.calls == 3
        assert sleeps == pytest.approx([0.1, 0.2])

    def test_bounded_attempts_success_within_limit(self) -> None:
        """Test a bounded engine still returns when a retry succeeds."""
        engine = create_retry_engine(max_attempts=3, sleep=lambda _delay: None)
        assert engine.execute_with_retry_sync(FlakyOperation(failures=2)) == b"ok"
