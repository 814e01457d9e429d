"""Adaptive polling cadence from environment signals."""

import logging
from dataclasses import dataclass

from .types import ConnectionClass, PerformanceSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PollingPolicy:
    """
    Polling intervals in milliseconds.

    Attributes:
        fast_ms: Good connection (also unknown-but-online)
        medium_ms: Medium connection
        slow_ms: Slow connection
        low_power_ms: Device in low-power mode, any connection
        memory_pressure_threshold: Pressure above which updates should be reduced
    """
    fast_ms: int = 180000
    medium_ms: int = 300000
    slow_ms: int = 600000
    low_power_ms: int = 600000
    memory_pressure_threshold: float = 0.8

    def __post_init__(self) -> None:
        for name in ("fast_ms", "medium_ms", "slow_ms", "low_power_ms"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than 0")


class AdaptiveScheduler:
    """
    Decides whether and how often to poll.

    Pure function of the latest PerformanceSnapshot; the caller owns the timer.
    Offline stops polling entirely, low power and slow links only stretch
    the interval.
    """

    def __init__(self, policy: PollingPolicy | None = None) -> None:
        self._policy = policy if policy is not None else PollingPolicy()

    @property
    def policy(self) -> PollingPolicy:
        return self._policy

    def should_poll(self, snapshot: PerformanceSnapshot) -> bool:
        return snapshot.is_online

    def next_interval_ms(self, snapshot: PerformanceSnapshot) -> int:
        """Interval until the next tick; 0 means suspend polling."""
        if not snapshot.is_online:
            return 0
        if snapshot.low_power:
            return self._policy.low_power_ms
        if snapshot.connection_class == ConnectionClass.SLOW:
            return self._policy.slow_ms
        if snapshot.connection_class == ConnectionClass.MEDIUM:
            return self._policy.medium_ms
        return self._policy.fast_ms

    def should_reduce_updates(self, snapshot: PerformanceSnapshot) -> bool:
        """True when the environment calls for doing less work than usual."""
        return (
            not snapshot.is_online
            or snapshot.memory_pressure > self._policy.memory_pressure_threshold
            or snapshot.low_power
            or snapshot.connection_class == ConnectionClass.SLOW
        )
