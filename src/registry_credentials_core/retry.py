"""Exponential backoff retry engine.

The metadata service can be unreachable for a while right after a VM boots,
so enablement checks keep retrying until the service answers. By default
there is no attempt limit: ``retry_with_backoff`` only returns on success.
Callers that need bounded latency can set ``max_attempts``.
"""

import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import structlog

# Get logger for this module
logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int | None = None
    base_delay: float = 0.1
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = False
    jitter_range: tuple[float, float] = (0.5, 1.5)

    def __post_init__(self) -> None:
        """Validate retry configuration."""
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")  # noqa: TRY003
        if self.base_delay <= 0:
            raise ValueError("base_delay must be positive")  # noqa: TRY003
        if self.max_delay <= 0:
            raise ValueError("max_delay must be positive")  # noqa: TRY003
        if self.exponential_base <= 1:
            raise ValueError("exponential_base must be greater than 1")  # noqa: TRY003
        if self.jitter_range[0] >= self.jitter_range[1]:
            raise ValueError(  # noqa: TRY003
                "jitter_range must be (min, max) where min < max"
            )


class RetryEngine:
    """Core retry engine that handles retry logic and backoff calculations."""

    def __init__(
        self, config: RetryConfig, sleep: Callable[[float], None] = time.sleep
    ) -> None:
        """Initialize the retry engine with configuration.

        Args:
            config: Retry configuration parameters.
            sleep: Function used to wait between attempts.
        """
        self.config = config
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """Calculate delay after a failed attempt.

        Args:
            attempt: The failed attempt number (0-based).

        Returns:
            Delay in seconds before the next attempt.
        """
        # Grow step by step so large attempt numbers never overflow.
        delay = min(self.config.base_delay, self.config.max_delay)
        for _ in range(attempt):
            if delay >= self.config.max_delay:
                break
            delay = min(delay * self.config.exponential_base, self.config.max_delay)

        if self.config.jitter:
            jitter_factor = random.uniform(*self.config.jitter_range)  # noqa: S311
            delay *= jitter_factor

        return delay

    def execute_with_retry_sync(self, func: Callable[[], T]) -> T:
        """Execute a function until it succeeds.

        Args:
            func: The function to execute.

        Returns:
            Result of the first successful call.

        Raises:
            The last exception encountered, only when ``max_attempts`` is set
            and every attempt failed.
        """
        attempt = 0
        while True:
            try:
                return func()
            except Exception as e:
                if (
                    self.config.max_attempts is not None
                    and attempt + 1 >= self.config.max_attempts
                ):
                    logger.warning(
                        "RETRY_ATTEMPTS_EXHAUSTED",
                        attempts=attempt + 1,
                        error=str(e),
                    )
                    raise

                delay = self.calculate_delay(attempt)
                logger.debug(
                    "RETRY_SCHEDULED", attempt=attempt + 1, delay=delay, error=str(e)
                )
                self._sleep(delay)
                attempt += 1


def create_retry_engine(
    max_attempts: int | None = None,
    base_delay: float = 0.1,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    *,
    jitter: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> RetryEngine:
    """Create a retry engine with the specified configuration.

    Args:
        max_attempts: Maximum number of attempts, or None to retry forever.
        base_delay: Delay after the first failure in seconds.
        max_delay: Maximum delay between attempts in seconds.
        exponential_base: Base for exponential backoff calculation.
        jitter: Whether to add random jitter to delays.
        sleep: Function used to wait between attempts.

    Returns:
        Configured RetryEngine instance.
    """
    config = RetryConfig(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        exponential_base=exponential_base,
        jitter=jitter,
    )
    return RetryEngine(config, sleep=sleep)


def retry_with_backoff(
    func: Callable[[], T], engine: RetryEngine | None = None
) -> T:
    """Run ``func`` with exponential backoff (100ms doubling, capped at 60s).

    With the default engine this blocks until ``func`` succeeds.
    """
    if engine is None:
        engine = create_retry_engine()
    return engine.execute_with_retry_sync(func)
