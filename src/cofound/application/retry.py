"""Retry policy for transient store failures, with exponential backoff.

Only StoreUnavailableError is retried. Reads retry transparently a few times;
writes retry at most once and then surface the failure.
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from cofound.application.ports import StoreUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for one class of store operation."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


READ_RETRY = RetryConfig(max_retries=3, base_delay_s=0.1)
WRITE_RETRY = RetryConfig(max_retries=1, base_delay_s=0.2, backoff_factor=1.0)
NO_RETRY = RetryConfig(max_retries=0, base_delay_s=0.0)


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before retry number attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor**attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


def call_with_retry(
    fn: Callable[[], T],
    config: RetryConfig,
    *,
    operation: str = "store call",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run fn, retrying on StoreUnavailableError up to config.max_retries times.

    Raises the last StoreUnavailableError once retries are exhausted. Any other
    exception propagates immediately.
    """
    attempts = 0
    while True:
        try:
            return fn()
        except StoreUnavailableError:
            attempts += 1
            if attempts > config.max_retries:
                raise
            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "%s: store unavailable (attempt %d/%d), retrying in %.2fs",
                operation,
                attempts,
                config.max_retries,
                delay,
            )
            sleep(delay)
