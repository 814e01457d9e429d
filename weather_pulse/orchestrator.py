"""
Fetch orchestrator: cache → coalescer → transport with retry → publish.

Keeps a bounded set of named resources fresh. Each key cycles through
IDLE → FETCHING → (SUCCEEDED | FAILED) → IDLE. A background polling task
refreshes every registered key at the cadence the AdaptiveScheduler picks
from the EnvironmentMonitor's latest snapshot.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .cache import TTLCache
from .coalescer import RequestCoalescer
from .config import PulseConfig
from .environment import EnvironmentMonitor
from .events import (
    EventEmitter,
    ResultEvent,
    RetryEvent,
    SnapshotEvent,
    StateEvent,
    subscribe_results,
)
from .scheduler import AdaptiveScheduler
from .types import FetchResult, FetchState, PerformanceSnapshot, RequestDescriptor
from .utils.logging import setup_logging
from .utils.metrics import SimpleMetrics
from .utils.retry import retry_async

logger = logging.getLogger(__name__)

Transport = Callable[[RequestDescriptor], Awaitable[Any]]


@dataclass
class Resource:
    """A named data item kept fresh by the orchestrator."""
    key: str
    descriptor: RequestDescriptor
    ttl_ms: Optional[int] = None


class FetchOrchestrator(EventEmitter):
    """
    Composes cache, coalescer, retry policy and scheduler.

    Usage (async):
        orchestrator = FetchOrchestrator.from_config(config)
        orchestrator.register("london", weather.current_weather("London"))

        unsubscribe = orchestrator.subscribe(lambda key, result: print(key, result.value))
        await orchestrator.start()
        ...
        await orchestrator.aclose()

    Usage (one-shot):
        result = await orchestrator.refresh("london")
        if result:
            print(result.value)
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[PulseConfig] = None,
        cache: Optional[TTLCache] = None,
        coalescer: Optional[RequestCoalescer] = None,
        scheduler: Optional[AdaptiveScheduler] = None,
        monitor: Optional[EnvironmentMonitor] = None,
        metrics: Optional[SimpleMetrics] = None,
        synthetic_factory: Optional[Callable[[str], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        """
        Initialize the orchestrator.

        Args:
            transport: Async callable performing one request
            config: PulseConfig; defaults are used when None
            cache: Shared cache (built from config when None)
            coalescer: Shared in-flight registry
            scheduler: Polling cadence policy (built from config when None)
            monitor: Environment-signal source
            metrics: Metrics collector
            synthetic_factory: key -> value, used only with ``fallback_mode: synthetic``
            sleep: Awaitable sleep in seconds, used for retry backoff
            rng: Jitter source in [0, 1)
        """
        super().__init__()
        self._config = config if config is not None else PulseConfig()
        self._transport = transport
        self._cache = cache if cache is not None else TTLCache(max_entries=self._config.max_cache_entries)
        self._coalescer = coalescer if coalescer is not None else RequestCoalescer()
        if scheduler is None:
            scheduler = AdaptiveScheduler(self._config.polling_policy())
        self._scheduler = scheduler
        self._monitor = monitor if monitor is not None else EnvironmentMonitor()
        self._metrics = metrics if metrics is not None else SimpleMetrics()
        self._retry_config = self._config.retry_config()
        self._synthetic_factory = synthetic_factory
        self._sleep = sleep
        self._rng = rng

        self._resources: Dict[str, Resource] = {}
        self._states: Dict[str, FetchState] = {}
        self._last_good: Dict[str, Any] = {}
        self._last_results: Dict[str, FetchResult] = {}

        self._poll_task: Optional[asyncio.Task] = None
        self._owns_transport = False

    @classmethod
    def from_config(
        cls,
        config: PulseConfig,
        transport: Optional[Transport] = None,
        configure_logging: bool = False,
        **kwargs: Any,
    ) -> "FetchOrchestrator":
        """
        Build an orchestrator wired from configuration.

        When no transport is given an HttpTransport is created and closed by
        ``aclose()``.
        """
        if configure_logging:
            setup_logging(config)
        owns_transport = transport is None
        if transport is None:
            from .transport import HttpTransport

            transport = HttpTransport.from_config(config)
        orchestrator = cls(transport, config=config, **kwargs)
        orchestrator._owns_transport = owns_transport
        return orchestrator

    # === Properties ===

    @property
    def config(self) -> PulseConfig:
        return self._config

    @property
    def cache(self) -> TTLCache:
        return self._cache

    @property
    def monitor(self) -> EnvironmentMonitor:
        return self._monitor

    @property
    def scheduler(self) -> AdaptiveScheduler:
        return self._scheduler

    @property
    def metrics(self) -> SimpleMetrics:
        return self._metrics

    @property
    def is_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    # === Resources ===

    def register(
        self,
        key: Optional[str],
        descriptor: RequestDescriptor,
        ttl_ms: Optional[int] = None,
    ) -> Resource:
        """
        Add a resource to keep fresh.

        Args:
            key: Name for the resource; None uses the descriptor's cache key
            descriptor: The upstream request
            ttl_ms: Freshness for this resource; defaults to ``default_ttl_ms``

        Returns:
            The registered Resource
        """
        resource = Resource(
            key=key if key is not None else descriptor.cache_key,
            descriptor=descriptor,
            ttl_ms=ttl_ms,
        )
        self._resources[resource.key] = resource
        self._states.setdefault(resource.key, FetchState.IDLE)
        return resource

    def unregister(self, key: str) -> bool:
        """Stop tracking a resource and drop everything cached for it."""
        if self._resources.pop(key, None) is None:
            return False
        self._cache.delete(key)
        self._last_good.pop(key, None)
        self._last_results.pop(key, None)
        self._states.pop(key, None)
        return True

    def keys(self) -> List[str]:
        return list(self._resources)

    def state(self, key: str) -> FetchState:
        return self._states.get(key, FetchState.IDLE)

    def last_result(self, key: str) -> Optional[FetchResult]:
        return self._last_results.get(key)

    def subscribe(
        self,
        handler: Callable[[str, FetchResult], Any],
        key: Optional[str] = None,
    ) -> Callable[[], None]:
        """Register a ``(key, result)`` callback, optionally for one resource; returns the function that releases it."""
        return subscribe_results(self, handler, key=key)

    # === Refresh ===

    async def refresh(self, key: str, force: bool = False) -> FetchResult:
        """
        Bring one resource up to date.

        Args:
            key: Registered resource name
            force: Skip the cache (manual refresh). Still joins an in-flight fetch.

        Returns:
            FetchResult; falsy on terminal failure, possibly carrying a stale value

        Raises:
            KeyError: If the key was never registered
        """
        resource = self._resources[key]

        if not force:
            cached = self._cache.get(key, _MISSING)
            if cached is not _MISSING:
                logger.debug(f"Cache hit: {key}")
                return FetchResult(key=key, value=cached, from_cache=True)

        return await self._coalescer.dedupe(key, lambda: self._fetch(resource))

    async def refresh_all(self, force: bool = False) -> Dict[str, FetchResult]:
        """Refresh every registered resource concurrently."""
        keys = self.keys()
        results = await asyncio.gather(*(self.refresh(k, force=force) for k in keys))
        return dict(zip(keys, results))

    async def _fetch(self, resource: Resource) -> FetchResult:
        """The single physical fetch shared by every caller attached to this key."""
        key = resource.key
        attempts = 0
        started = time.monotonic()
        self._set_state(key, FetchState.FETCHING)

        async def attempt() -> Any:
            nonlocal attempts
            attempts += 1
            return await self._transport(resource.descriptor)

        def on_retry(attempt_no: int, error: BaseException, delay_ms: float) -> None:
            self._metrics.record_retry()
            self.emit(RetryEvent(key=key, attempt=attempt_no, delay_ms=delay_ms, error=str(error)))

        try:
            value = await retry_async(
                attempt,
                config=self._retry_config,
                on_retry=on_retry,
                sleep=self._sleep,
                rng=self._rng,
            )
        except asyncio.CancelledError:
            self._set_state(key, FetchState.IDLE)
            raise
        except Exception as exc:
            duration_ms = int((time.monotonic() - started) * 1000)
            result = self._failure_result(resource, exc, attempts, duration_ms)
            self._metrics.record_fetch("error", duration_ms)
            self._set_state(key, FetchState.FAILED)
        else:
            duration_ms = int((time.monotonic() - started) * 1000)
            if key in self._resources:
                self._cache.set(key, value, resource.ttl_ms or self._config.default_ttl_ms)
                self._last_good[key] = value
            result = FetchResult(key=key, value=value, attempts=attempts, duration_ms=duration_ms)
            self._metrics.record_fetch("success", duration_ms)
            self._set_state(key, FetchState.SUCCEEDED)

        self._last_results[key] = result
        self.emit(ResultEvent(key=key, result=result))
        self._set_state(key, FetchState.IDLE)
        return result

    def _failure_result(
        self,
        resource: Resource,
        error: Exception,
        attempts: int,
        duration_ms: int,
    ) -> FetchResult:
        key = resource.key
        result = FetchResult(
            key=key,
            success=False,
            error=error,
            attempts=attempts,
            duration_ms=duration_ms,
        )
        mode = self._config.fallback_mode

        if mode != "none" and key in self._last_good:
            result.value = self._last_good[key]
            result.stale = True
            self._metrics.record_fallback("stale")
            logger.warning(f"Fetch failed for {key} after {attempts} attempt(s), serving last known value: {error}")
            return result

        if mode == "synthetic" and self._synthetic_factory is not None:
            try:
                result.value = self._synthetic_factory(key)
                result.synthetic = True
                self._metrics.record_fallback("synthetic")
                logger.warning(f"Fetch failed for {key}, serving synthetic data: {error}")
                return result
            except Exception as e:
                logger.error(f"Synthetic data factory failed for {key}: {e}")

        logger.warning(f"Fetch failed for {key} after {attempts} attempt(s): {error}")
        return result

    def _set_state(self, key: str, new_state: FetchState) -> None:
        old_state = self._states.get(key, FetchState.IDLE)
        if key in self._resources:
            self._states[key] = new_state
        if old_state != new_state:
            self.emit(StateEvent(key=key, old_state=old_state, new_state=new_state))

    # === Polling lifecycle ===

    async def start(self) -> None:
        """Start the background polling task. No-op if already running."""
        if self.is_running:
            return
        self._monitor.add_listener(self._on_snapshot)
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Polling started for {len(self._resources)} resource(s)")

    async def stop(self) -> None:
        """Stop polling and cancel fetches still in flight."""
        self._monitor.remove_listener(self._on_snapshot)
        task, self._poll_task = self._poll_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info("Polling stopped")
        await self._coalescer.cancel_all()

    async def aclose(self) -> None:
        """Stop polling and release the transport if this orchestrator created it."""
        await self.stop()
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> "FetchOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _poll_loop(self) -> None:
        """Refresh everything once per tick; suspend while offline."""
        while True:
            version = self._monitor.version
            snapshot = self._monitor.snapshot
            if not self._scheduler.should_poll(snapshot):
                logger.info("Offline, polling suspended")
                await self._monitor.wait_for_change(since=version)
                continue

            tick_started = time.monotonic()
            try:
                await self.refresh_all()
                if snapshot.memory_pressure > self._scheduler.policy.memory_pressure_threshold:
                    self._cache.cleanup()
            except Exception as e:
                logger.error(f"Polling tick error: {e}")

            await self._wait_for_next_tick(tick_started)

    async def _wait_for_next_tick(self, tick_started: float) -> None:
        """
        Sleep until the next tick is due.

        A snapshot change wakes the wait early so the interval is recomputed
        against the time already spent; going offline returns immediately.
        """
        while True:
            snapshot = self._monitor.snapshot
            interval_ms = self._scheduler.next_interval_ms(snapshot)
            self._metrics.set_poll_interval(interval_ms)
            if interval_ms == 0:
                return
            remaining = interval_ms / 1000.0 - (time.monotonic() - tick_started)
            if remaining <= 0:
                return
            changed = await self._monitor.wait_for_change(timeout=remaining, since=self._monitor.version)
            if not changed:
                return

    def _on_snapshot(self, snapshot: PerformanceSnapshot) -> None:
        interval_ms = self._scheduler.next_interval_ms(snapshot)
        logger.info(
            f"Environment changed ({snapshot.connection_class.value}, "
            f"low_power={snapshot.low_power}), next interval {interval_ms}ms"
        )
        self.emit(SnapshotEvent(snapshot=snapshot, interval_ms=interval_ms))

    # === Diagnostics ===

    def stats(self) -> Dict[str, Any]:
        cache_stats = self._cache.stats()
        return {
            "resources": len(self._resources),
            "in_flight": len(self._coalescer),
            "cache": {
                "size": cache_stats.size,
                "memory_estimate": cache_stats.memory_estimate,
                "hits": cache_stats.hits,
                "misses": cache_stats.misses,
                "evictions": cache_stats.evictions,
                "hit_rate": cache_stats.hit_rate,
            },
            "states": {k: s.value for k, s in self._states.items()},
            "metrics": self._metrics.get_all(),
        }


_MISSING = object()
