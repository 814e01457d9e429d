"""
In-memory metrics for the fetch pipeline.

Counters, running histograms and gauges keyed by name plus optional labels.
Histograms keep only aggregates, so a poller running for days stays bounded.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

Labels = Optional[Dict[str, str]]

FETCHES_TOTAL = "fetches_total"
RETRIES_TOTAL = "retries_total"
FALLBACKS_TOTAL = "fallbacks_total"
FETCH_DURATION_MS = "fetch_duration_ms"
POLL_INTERVAL_MS = "poll_interval_ms"


@dataclass
class HistogramSummary:
    """Running count/sum/min/max of observed values."""
    count: int = 0
    total: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0

    def observe(self, value: float) -> None:
        if self.count == 0:
            self.minimum = self.maximum = value
        else:
            self.minimum = min(self.minimum, value)
            self.maximum = max(self.maximum, value)
        self.count += 1
        self.total += value

    def as_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "sum": self.total,
            "min": self.minimum,
            "max": self.maximum,
            "avg": self.total / self.count if self.count else 0,
        }


def metric_key(name: str, labels: Labels = None) -> str:
    """``name{k=v,...}`` with labels sorted, or just ``name``."""
    if not labels:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{rendered}}}"


class SimpleMetrics:
    """
    Metrics collector for the orchestrator.

    Usage:
        metrics = SimpleMetrics()
        metrics.record_fetch("success", duration_ms=120)
        metrics.record_fallback("stale")
        metrics.get_counter("fetches_total", labels={"status": "success"})
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._histograms: Dict[str, HistogramSummary] = {}
        self._gauges: Dict[str, float] = {}
        self._started = time.time()

    # === Pipeline events ===

    def record_fetch(self, status: str, duration_ms: float) -> None:
        """One settled physical fetch; ``status`` is ``success`` or ``error``."""
        self.inc_counter(FETCHES_TOTAL, labels={"status": status})
        self.observe_histogram(FETCH_DURATION_MS, duration_ms)

    def record_retry(self) -> None:
        self.inc_counter(RETRIES_TOTAL)

    def record_fallback(self, kind: str) -> None:
        """A degraded value was served; ``kind`` is ``stale`` or ``synthetic``."""
        self.inc_counter(FALLBACKS_TOTAL, labels={"kind": kind})

    def set_poll_interval(self, interval_ms: int) -> None:
        self.set_gauge(POLL_INTERVAL_MS, interval_ms)

    # === Generic instruments ===

    def inc_counter(self, name: str, value: int = 1, labels: Labels = None) -> None:
        key = metric_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def observe_histogram(self, name: str, value: float, labels: Labels = None) -> None:
        key = metric_key(name, labels)
        with self._lock:
            self._histograms.setdefault(key, HistogramSummary()).observe(value)

    def set_gauge(self, name: str, value: float, labels: Labels = None) -> None:
        with self._lock:
            self._gauges[metric_key(name, labels)] = value

    def get_counter(self, name: str, labels: Labels = None) -> int:
        return self._counters.get(metric_key(name, labels), 0)

    def get_gauge(self, name: str, labels: Labels = None) -> float:
        return self._gauges.get(metric_key(name, labels), 0.0)

    def get_histogram_stats(self, name: str, labels: Labels = None) -> Dict[str, float]:
        """count/sum/min/max/avg for one histogram; zeros when nothing was observed."""
        summary = self._histograms.get(metric_key(name, labels))
        return (summary or HistogramSummary()).as_dict()

    def get_all(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {k: h.as_dict() for k, h in self._histograms.items()},
                "gauges": dict(self._gauges),
                "uptime_seconds": time.time() - self._started,
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
            self._gauges.clear()
            self._started = time.time()
