"""
Weather Pulse event system.

In-process publish/subscribe used by the orchestrator to deliver:
- Settled fetch results (fresh, stale fallback, or failure)
- Retry scheduling
- Per-key state transitions
- Environment snapshot changes
"""

import logging
import threading
import time
from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from .types import FetchResult, FetchState, PerformanceSnapshot

logger = logging.getLogger(__name__)


@dataclass
class PulseEvent(ABC):
    """Base event class for all Weather Pulse events."""
    timestamp: float = field(default_factory=time.time)
    key: str = ""


@dataclass
class ResultEvent(PulseEvent):
    """
    A fetch for ``key`` settled.

    Published once per physical fetch, never for cache hits.
    """
    result: Optional[FetchResult] = None


@dataclass
class RetryEvent(PulseEvent):
    """An attempt failed and another one is scheduled after ``delay_ms``."""
    attempt: int = 0
    delay_ms: float = 0.0
    error: str = ""


@dataclass
class StateEvent(PulseEvent):
    """Per-key lifecycle transition."""
    old_state: Optional[FetchState] = None
    new_state: Optional[FetchState] = None


@dataclass
class SnapshotEvent(PulseEvent):
    """Environment signals changed; ``interval_ms`` is the new polling interval."""
    snapshot: Optional[PerformanceSnapshot] = None
    interval_ms: int = 0


E = TypeVar("E", bound=PulseEvent)
Handler = Callable[[Any], None]


class EventEmitter:
    """
    Typed publish/subscribe with optional per-key filtering.

    Handlers registered for a base class also receive its subclasses, so a
    handler on PulseEvent sees everything. A handler registered with a
    ``key`` only sees events for that resource.

    Usage:
        emitter = EventEmitter()

        @emitter.on(ResultEvent, key="london")
        def on_london(event: ResultEvent):
            chart.push(event.result.value)

        emitter.emit(ResultEvent(key="london", result=...))
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[PulseEvent], List[Tuple[Optional[str], Handler]]] = {}
        self._lock = threading.Lock()

    def on(self, event_type: Type[E], key: Optional[str] = None) -> Callable[[Handler], Handler]:
        """Decorator form of ``add_handler``."""
        def decorator(func: Handler) -> Handler:
            self.add_handler(event_type, func, key=key)
            return func
        return decorator

    def on_any(self, func: Handler) -> Handler:
        """Register a handler for every event."""
        self.add_handler(PulseEvent, func)
        return func

    def add_handler(self, event_type: Type[E], handler: Handler, key: Optional[str] = None) -> None:
        with self._lock:
            self._handlers.setdefault(event_type, []).append((key, handler))

    def remove_handler(self, event_type: Type[E], handler: Handler) -> None:
        """Drop every registration of ``handler`` for ``event_type``, whatever its key."""
        with self._lock:
            registered = self._handlers.get(event_type)
            if registered:
                self._handlers[event_type] = [(k, h) for k, h in registered if h != handler]

    def remove_any(self, func: Handler) -> None:
        self.remove_handler(PulseEvent, func)

    def emit(self, event: PulseEvent) -> None:
        """
        Deliver ``event`` to matching handlers, most specific type first.

        Matching handlers are collected under the lock and called without
        it, so a handler may subscribe or unsubscribe. A failing handler is
        logged and the rest still run.
        """
        with self._lock:
            targets = [
                handler
                for cls in type(event).__mro__
                for key, handler in self._handlers.get(cls, ())
                if key is None or key == event.key
            ]

        for handler in targets:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"{type(event).__name__} handler failed for {event.key or '-'}: {e}")

    def clear_handlers(self, event_type: Optional[Type[E]] = None) -> None:
        with self._lock:
            if event_type is None:
                self._handlers.clear()
            else:
                self._handlers.pop(event_type, None)

    def handler_count(self, event_type: Optional[Type[E]] = None) -> int:
        """Registrations for exactly ``event_type``, or all of them."""
        with self._lock:
            if event_type is None:
                return sum(len(h) for h in self._handlers.values())
            return len(self._handlers.get(event_type, ()))


def subscribe_results(
    emitter: EventEmitter,
    handler: Callable[[str, FetchResult], Any],
    key: Optional[str] = None,
) -> Callable[[], None]:
    """
    Register a ``(key, result)`` callback for settled fetches.

    Args:
        emitter: Source of ResultEvents
        handler: Called with the resource key and its FetchResult
        key: Only deliver results for this resource

    Returns:
        A function that releases the subscription. Calling it twice is harmless.
    """
    def _on_result(event: ResultEvent) -> None:
        handler(event.key, event.result)

    emitter.add_handler(ResultEvent, _on_result, key=key)

    def unsubscribe() -> None:
        emitter.remove_handler(ResultEvent, _on_result)

    return unsubscribe
