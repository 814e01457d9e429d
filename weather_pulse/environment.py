"""
Environment-signal source.

Holds the latest PerformanceSnapshot and tells listeners when it is
replaced. Hosts push updates (connectivity or power-state changes) with
``update``/``update_fields``; ``run_probe`` refreshes the snapshot on a timer.
"""

import asyncio
import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional

import httpx

from .types import ConnectionClass, PerformanceSnapshot

logger = logging.getLogger(__name__)

MIN_PROBE_INTERVAL = 30.0  # seconds

Probe = Callable[[], Awaitable[PerformanceSnapshot]]


class EnvironmentMonitor:
    """Owner of the current PerformanceSnapshot."""

    def __init__(self, initial: Optional[PerformanceSnapshot] = None) -> None:
        self._snapshot = initial if initial is not None else PerformanceSnapshot()
        self._listeners: List[Callable[[PerformanceSnapshot], None]] = []
        # Replaced after every update; waiters hold the one current when they started.
        self._changed = asyncio.Event()
        self._version = 0

    @property
    def snapshot(self) -> PerformanceSnapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        """Incremented on every update."""
        return self._version

    def update(self, snapshot: PerformanceSnapshot) -> None:
        """Replace the snapshot and notify listeners."""
        old = self._snapshot
        self._snapshot = snapshot
        self._version += 1
        if old.is_online != snapshot.is_online:
            logger.info(f"Connectivity changed: {'online' if snapshot.is_online else 'offline'}")
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Environment listener error: {e}")

    def update_fields(self, **changes: Any) -> PerformanceSnapshot:
        """
        Build a new snapshot from the current one with some fields changed.

        Going offline also sets the connection class to OFFLINE; coming back
        online from OFFLINE without a class resets it to FAST.
        """
        if changes.get("is_online") is False:
            changes.setdefault("connection_class", ConnectionClass.OFFLINE)
        elif (
            changes.get("is_online") is True
            and "connection_class" not in changes
            and self._snapshot.connection_class == ConnectionClass.OFFLINE
        ):
            changes["connection_class"] = ConnectionClass.FAST
        changes["timestamp"] = time.time()
        snapshot = dataclasses.replace(self._snapshot, **changes)
        self.update(snapshot)
        return snapshot

    def add_listener(self, listener: Callable[[PerformanceSnapshot], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[PerformanceSnapshot], None]) -> None:
        self._listeners = [l for l in self._listeners if l != listener]

    async def wait_for_change(
        self,
        timeout: Optional[float] = None,
        since: Optional[int] = None,
    ) -> bool:
        """
        Wait until the snapshot is replaced.

        Args:
            timeout: Seconds to wait; None waits forever
            since: Version the caller last saw. If the monitor has moved
                past it already, returns immediately.

        Returns:
            True if an update arrived, False on timeout
        """
        if since is not None and since != self._version:
            return True
        event = self._changed
        try:
            await asyncio.wait_for(event.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False

    async def run_probe(
        self,
        probe: Probe,
        interval: float = MIN_PROBE_INTERVAL,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Refresh the snapshot from ``probe`` until cancelled.

        Intervals below 30 seconds are raised to 30. A failing probe is
        logged and the previous snapshot kept.
        """
        interval = max(interval, MIN_PROBE_INTERVAL)
        while True:
            try:
                self.update(await probe())
            except Exception as e:
                logger.error(f"Environment probe error: {e}")
            await sleep(interval)


async def connectivity_probe(
    client: httpx.AsyncClient,
    url: str,
    slow_threshold_ms: float = 1500.0,
    medium_threshold_ms: float = 400.0,
    timeout: float = 5.0,
    base: Optional[PerformanceSnapshot] = None,
) -> PerformanceSnapshot:
    """
    Classify connectivity by timing a HEAD request to ``url``.

    Any transport failure counts as offline. Round-trip time above
    ``slow_threshold_ms`` is slow, above ``medium_threshold_ms`` medium,
    otherwise fast. Power and memory fields are carried over from ``base``.
    """
    base = base if base is not None else PerformanceSnapshot()
    start = time.monotonic()
    try:
        await client.head(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug(f"Connectivity probe failed: {e}")
        return dataclasses.replace(
            base,
            is_online=False,
            connection_class=ConnectionClass.OFFLINE,
            timestamp=time.time(),
        )
    rtt_ms = (time.monotonic() - start) * 1000
    if rtt_ms > slow_threshold_ms:
        connection = ConnectionClass.SLOW
    elif rtt_ms > medium_threshold_ms:
        connection = ConnectionClass.MEDIUM
    else:
        connection = ConnectionClass.FAST
    return dataclasses.replace(
        base,
        is_online=True,
        connection_class=connection,
        timestamp=time.time(),
    )
