"""
Weather Pulse: resilient data fetching for live weather dashboards.

Keeps a bounded set of named upstream resources fresh under intermittent
connectivity: a TTL/LRU cache, in-flight request coalescing, exponential
backoff that tells retryable failures from fatal ones, and a polling cadence
that adapts to connectivity, power and memory pressure.

Basic Usage:
    import asyncio
    from weather_pulse import FetchOrchestrator, PulseConfig, weather

    async def main():
        config = PulseConfig.load("pulse.yaml")
        orchestrator = FetchOrchestrator.from_config(config)
        orchestrator.register("london", weather.current_weather("London", config))

        result = await orchestrator.refresh("london")
        print(result.value if result else result.error)
        await orchestrator.aclose()

    asyncio.run(main())

Event-Driven Usage:
    from weather_pulse import ResultEvent

    @orchestrator.on(ResultEvent)
    def on_result(event):
        chart.push(event.key, event.result.value)

    await orchestrator.start()   # polls until stop()/aclose()
"""

__version__ = "0.4.0"

from . import weather
from .cache import CacheEntry, CacheStats, TTLCache
from .coalescer import RequestCoalescer
from .config import PulseConfig
from .environment import EnvironmentMonitor, connectivity_probe
from .errors import (
    ClientError,
    ConfigError,
    FetchError,
    FetchTimeout,
    NetworkError,
    RateLimited,
    ServerError,
    UnknownFetchError,
    error_for_status,
)
from .events import (
    EventEmitter,
    PulseEvent,
    ResultEvent,
    RetryEvent,
    SnapshotEvent,
    StateEvent,
)
from .orchestrator import FetchOrchestrator, Resource
from .scheduler import AdaptiveScheduler, PollingPolicy
from .transport import HttpTransport
from .types import (
    ConnectionClass,
    FetchResult,
    FetchState,
    PerformanceSnapshot,
    RequestDescriptor,
)
from .utils.retry import RetryConfig, RetryDecision, decide

__all__ = [
    "__version__",
    # Orchestration
    "FetchOrchestrator",
    "Resource",
    "PulseConfig",
    # Components
    "TTLCache",
    "CacheEntry",
    "CacheStats",
    "RequestCoalescer",
    "AdaptiveScheduler",
    "PollingPolicy",
    "EnvironmentMonitor",
    "connectivity_probe",
    "HttpTransport",
    "RetryConfig",
    "RetryDecision",
    "decide",
    # Types
    "ConnectionClass",
    "FetchResult",
    "FetchState",
    "PerformanceSnapshot",
    "RequestDescriptor",
    # Events
    "EventEmitter",
    "PulseEvent",
    "ResultEvent",
    "RetryEvent",
    "SnapshotEvent",
    "StateEvent",
    # Errors
    "FetchError",
    "ClientError",
    "RateLimited",
    "FetchTimeout",
    "ServerError",
    "NetworkError",
    "UnknownFetchError",
    "ConfigError",
    "error_for_status",
    "weather",
]
