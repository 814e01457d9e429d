"""Deduplication of concurrent fetches for the same key."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)


class RequestCoalescer:
    """At most one outstanding fetch per key.

    The first caller for a key starts the fetch as a task; later callers
    attach to the same task until it settles, and all of them observe its
    result or exception.
    """

    def __init__(self) -> None:
        self._in_flight: dict[Hashable, asyncio.Task] = {}

    async def dedupe(
        self,
        key: Hashable,
        start_fetch: Callable[[], Awaitable[Any]],
    ) -> Any:
        # No await between lookup and registration.
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(start_fetch())
            self._in_flight[key] = task
            task.add_done_callback(lambda t, k=key: self._release(k, t))
        else:
            logger.debug(f"Attaching to in-flight fetch: {key}")
        # Shield so one cancelled waiter doesn't cancel the fetch for the rest.
        return await asyncio.shield(task)

    def in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    def pending_keys(self) -> list[Hashable]:
        return list(self._in_flight)

    def __len__(self) -> int:
        return len(self._in_flight)

    async def cancel_all(self) -> None:
        """Cancel every in-flight fetch and wait for them to unwind (shutdown)."""
        tasks = list(self._in_flight.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _release(self, key: Hashable, task: asyncio.Task) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"In-flight fetch for {key} failed: {task.exception()!r}")
