"""
Weather Pulse type definitions.

This module contains the public value types shared by the cache, scheduler,
transport and orchestrator.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import urlencode


class ConnectionClass(Enum):
    """Coarse network quality bucket used by the scheduler."""
    OFFLINE = "offline"
    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"

    @classmethod
    def from_effective_type(cls, effective_type: str | None) -> "ConnectionClass":
        """Map a Network Information effective type ("2g", "4g", ...) to a class.

        Unknown or missing types are treated as fast: the device is online
        and nothing says the link is poor.
        """
        value = (effective_type or "").strip().lower()
        if value in ("slow-2g", "2g"):
            return cls.SLOW
        if value == "3g":
            return cls.MEDIUM
        if value == "offline":
            return cls.OFFLINE
        return cls.FAST


class FetchState(Enum):
    """Per-key lifecycle state inside the orchestrator."""
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Environment signals at one point in time. Replaced wholesale on update."""
    is_online: bool = True
    connection_class: ConnectionClass = ConnectionClass.FAST
    memory_pressure: float = 0.0  # 0.0-1.0
    low_power: bool = False
    timestamp: float = field(default_factory=time.time, compare=False)

    def __post_init__(self) -> None:
        pressure = min(max(float(self.memory_pressure), 0.0), 1.0)
        object.__setattr__(self, "memory_pressure", pressure)


@dataclass(frozen=True)
class RequestDescriptor:
    """A logical upstream request: method, URL and query parameters."""
    url: str
    params: dict[str, Any] = field(default_factory=dict, hash=False)
    method: str = "GET"

    @property
    def cache_key(self) -> str:
        """Deterministic key: the same logical request always yields the same key."""
        query = urlencode(sorted((str(k), str(v)) for k, v in self.params.items()))
        key = f"{self.method.upper()}_{self.url}"
        return f"{key}?{query}" if query else key


@dataclass
class FetchResult:
    """Settled outcome of one refresh, as seen by callers and subscribers."""
    key: str
    value: Any = None
    success: bool = True
    error: Exception | None = None
    stale: bool = False      # value is a last-known-good fallback
    synthetic: bool = False  # value was generated, not fetched
    from_cache: bool = False
    attempts: int = 0
    duration_ms: int = 0
    timestamp: float = field(default_factory=time.time)

    def __bool__(self) -> bool:
        """Allow `if result:` checks."""
        return self.success

    @property
    def has_value(self) -> bool:
        """True when there is something to display, fresh or degraded."""
        return self.success or self.stale or self.synthetic
