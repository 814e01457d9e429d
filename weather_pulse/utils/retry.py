"""Retry logic for Weather Pulse."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..errors import FetchError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior. Delays are in milliseconds."""
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    jitter_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")
        if self.base_delay_ms < 0 or self.max_delay_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays must not be negative")


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of asking the policy about one failed attempt."""
    retry: bool
    delay_ms: float = 0.0
    reason: str = ""


def is_retryable(error: BaseException) -> bool:
    """Client errors are fatal; everything else is worth another try."""
    if isinstance(error, FetchError):
        return error.retryable
    return True


def compute_delay(
    attempt: int,
    config: RetryConfig,
    rng: Callable[[], float] = random.random,
) -> float:
    """Exponential backoff with additive jitter, capped at ``max_delay_ms``."""
    exponential = min(config.base_delay_ms * 2 ** (attempt - 1), config.max_delay_ms)
    jitter = rng() * config.jitter_ms
    return min(exponential + jitter, config.max_delay_ms)


def decide(
    error: BaseException,
    attempt: int,
    config: RetryConfig,
    rng: Callable[[], float] = random.random,
) -> RetryDecision:
    """
    Decide whether to retry after a failure.

    Args:
        error: The error raised by the attempt
        attempt: Number of failures so far (1 after the first failure)
        config: Retry configuration
        rng: Source of jitter in [0, 1)

    Returns:
        RetryDecision telling the caller to retry after ``delay_ms`` or stop
    """
    if not is_retryable(error):
        return RetryDecision(retry=False, reason="non-retryable")
    if attempt > config.max_attempts:
        return RetryDecision(retry=False, reason="attempts exhausted")
    return RetryDecision(retry=True, delay_ms=compute_delay(attempt, config, rng), reason="retryable")


async def retry_async(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
    **kwargs: Any,
) -> Any:
    """
    Retry an async function with exponential backoff.

    Args:
        func: Async function to retry
        *args: Positional arguments for func
        config: Retry configuration
        on_retry: Optional callback called before each wait (attempt, exception, delay_ms)
        sleep: Awaitable sleep taking seconds
        rng: Jitter source
        **kwargs: Keyword arguments for func

    Returns:
        The result of func on success

    Raises:
        The original error if it is not retryable, or the last error once
        attempts are exhausted
    """
    if config is None:
        config = RetryConfig()

    attempt = 0
    while True:
        try:
            return await func(*args, **kwargs)
        except Exception as exc:
            attempt += 1
            decision = decide(exc, attempt, config, rng)
            if not decision.retry:
                if decision.reason == "attempts exhausted":
                    logger.warning(f"All {attempt} attempts failed: {exc}")
                raise

            logger.debug(f"Attempt {attempt} failed: {exc}, retrying in {decision.delay_ms:.0f}ms")
            if on_retry:
                on_retry(attempt, exc, decision.delay_ms)

            await sleep(decision.delay_ms / 1000.0)
