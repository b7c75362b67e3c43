# src/client/scheduler.py
"""Debounced, key-coalesced preloading."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_QUIET_WINDOW = 0.1  # seconds


class PreloadScheduler:
    """
    Run preload batches after a quiet window.

    Repeated `schedule()` calls for one key inside the window restart the
    timer and share one future. The memo holds in-flight fetches only, so a
    batch fired while an earlier one is still loading (hover, then click)
    joins its task. Finished tasks leave the memo; each script run drives
    the scheduler from a fresh event loop.
    """

    def __init__(self, quiet_window: float = DEFAULT_QUIET_WINDOW):
        self.quiet_window = quiet_window
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._waiters: Dict[str, asyncio.Future] = {}
        self._memo: Dict[str, asyncio.Future] = {}

    def schedule(
        self, key: str, endpoints: Dict[str, Callable[[], Awaitable[Any]]]
    ) -> asyncio.Future:
        """Queue a batch; the future resolves to {endpoint: result or exception}."""
        loop = asyncio.get_running_loop()

        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        waiter = self._waiters.get(key)
        if waiter is None or waiter.done() or waiter.get_loop() is not loop:
            waiter = loop.create_future()
            self._waiters[key] = waiter

        self._timers[key] = loop.call_later(self.quiet_window, self._fire, key, endpoints)
        return waiter

    def _fire(self, key: str, endpoints: Dict[str, Callable[[], Awaitable[Any]]]) -> None:
        self._timers.pop(key, None)
        waiter = self._waiters.pop(key, None)
        names = list(endpoints)
        logger.debug("preload_fired", key=key, endpoints=len(names))

        batch = asyncio.gather(
            *(self.fetch_once(name, endpoints[name]) for name in names),
            return_exceptions=True,
        )

        def finish(done: asyncio.Future) -> None:
            if waiter is None or waiter.done():
                return
            if done.cancelled():
                waiter.cancel()
                return
            waiter.set_result(dict(zip(names, done.result())))

        batch.add_done_callback(finish)

    def fetch_once(self, endpoint: str, fetch: Callable[[], Awaitable[Any]]) -> asyncio.Future:
        """Fetch one endpoint, joining the task already in flight for it."""
        task = self._memo.get(endpoint)
        if task is not None:
            return task

        task = asyncio.ensure_future(fetch())
        self._memo[endpoint] = task

        def forget(done: asyncio.Future) -> None:
            if self._memo.get(endpoint) is done:
                del self._memo[endpoint]

        task.add_done_callback(forget)
        return task

    def pending(self) -> int:
        return len(self._timers)

    def clear(self, prefix: str = "") -> None:
        """Cancel pending batches and drop memoized endpoints under `prefix`."""
        for key in [k for k in self._timers if k.startswith(prefix)]:
            self._timers.pop(key).cancel()
            waiter = self._waiters.pop(key, None)
            if waiter is not None and not waiter.done():
                waiter.cancel()
        for endpoint in [e for e in self._memo if e.startswith(prefix)]:
            del self._memo[endpoint]
