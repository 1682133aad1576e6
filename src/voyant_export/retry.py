# ABOUTME: Bounded exponential-backoff retry for async operations
# ABOUTME: Delays are plain asyncio sleeps so other records keep running while we wait
"""Retry policy for fallible async operations"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from voyant_export.exceptions import ConfigError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try an operation and how long to wait in between."""

    max_attempts: int = 3
    initial_delay: float = 1.0
    backoff_multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay < 0:
            raise ConfigError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.backoff_multiplier < 1:
            raise ConfigError(
                f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}"
            )

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after ``attempt`` (1-based) has failed."""
        return self.initial_delay * self.backoff_multiplier ** (attempt - 1)


DEFAULT_POLICY = RetryPolicy()


async def run_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_POLICY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    description: str = "operation",
) -> T:
    """
    Run an async operation, retrying with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt
        policy: Attempt count and backoff settings
        retry_on: Exception types that count as a failed attempt
        description: Label used in log messages

    Returns:
        Result of the first successful attempt

    Raises:
        RetryExhaustedError: After ``policy.max_attempts`` failed attempts,
            chained to the last error
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except retry_on as e:
            if attempt >= policy.max_attempts:
                logger.error(f"All {policy.max_attempts} attempts of {description} failed")
                raise RetryExhaustedError(attempt, e) from e
            delay = policy.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt} of {description} failed: {e}. Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)


def describe(policy: RetryPolicy) -> dict[str, Any]:
    """Policy as a plain dict, for logging and reports."""
    return {
        "max_attempts": policy.max_attempts,
        "initial_delay": policy.initial_delay,
        "backoff_multiplier": policy.backoff_multiplier,
    }
