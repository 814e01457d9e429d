"""Weather Pulse utilities."""

from .logging import get_logger, setup_logging, setup_logging_from_dict
from .metrics import SimpleMetrics
from .rate_limit import RateLimiter
from .retry import RetryConfig, RetryDecision, compute_delay, decide, is_retryable, retry_async

__all__ = [
    "get_logger",
    "setup_logging",
    "setup_logging_from_dict",
    "SimpleMetrics",
    "RateLimiter",
    "RetryConfig",
    "RetryDecision",
    "compute_delay",
    "decide",
    "is_retryable",
    "retry_async",
]
