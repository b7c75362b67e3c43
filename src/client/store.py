# src/client/store.py
"""
Keyed resource store for the client layer.

Concurrent loads of one key share a single in-flight task, loads inside the
deduping interval reuse the last result, and transient failures are retried
with exponential backoff (never on 404). Every load and every explicit
mutation takes a new generation number; a response that resolves after a
newer generation was taken is discarded.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import structlog

from src.client.api import FetchError

logger = structlog.get_logger(__name__)

Fetcher = Callable[[], Awaitable[Any]]

UNSET = object()


@dataclass
class Entry:
    data: Any = None
    error: Exception | None = None
    updated_at: float | None = None
    generation: int = 0


class ResourceStore:
    """Shared cache of fetched resources, one Entry per key."""

    def __init__(
        self,
        deduping_interval: float = 5.0,
        error_retry_count: int = 2,
        error_retry_interval: float = 5.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.deduping_interval = deduping_interval
        self.error_retry_count = error_retry_count
        self.error_retry_interval = error_retry_interval
        self._clock = clock
        self._sleep = sleep
        self._entries: dict[str, Entry] = {}
        self._inflight: dict[str, asyncio.Task] = {}

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    def entry(self, key: str) -> Entry:
        return self._entries.setdefault(key, Entry())

    def is_fetching(self, key: str) -> bool:
        return key in self._inflight

    async def fetch(self, key: str, fetcher: Fetcher, force: bool = False) -> Any:
        """Load `key`, sharing in-flight work; raises the final fetch error."""
        entry = self.entry(key)

        task = self._inflight.get(key)
        if task is not None and not force:
            return await asyncio.shield(task)

        if (
            not force
            and entry.updated_at is not None
            and self._now() - entry.updated_at < self.deduping_interval
        ):
            return entry.data

        entry.generation += 1
        task = asyncio.ensure_future(self._run(key, fetcher, entry.generation))
        self._inflight[key] = task
        task.add_done_callback(lambda done: self._forget(key, done))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _run(self, key: str, fetcher: Fetcher, generation: int) -> Any:
        entry = self.entry(key)
        attempt = 0
        while True:
            try:
                data = await fetcher()
                break
            except FetchError as exc:
                if exc.status == 404 or attempt >= self.error_retry_count:
                    if entry.generation == generation:
                        entry.error = exc
                    logger.info("resource_fetch_failed", key=key, status=exc.status, attempts=attempt + 1)
                    raise
                delay = self.error_retry_interval * (2 ** attempt)
                attempt += 1
                logger.debug("resource_fetch_retry", key=key, attempt=attempt, delay=delay)
                await self._sleep(delay)

        if entry.generation != generation:
            logger.debug("resource_response_superseded", key=key, generation=generation)
            return entry.data

        entry.data = data
        entry.error = None
        entry.updated_at = self._now()
        return data

    async def mutate(
        self,
        key: str,
        data: Any = UNSET,
        revalidate: bool = True,
        fetcher: Fetcher | None = None,
    ) -> Any:
        """
        Replace (or transform, when `data` is callable) the cached value.

        Bumps the generation so in-flight responses cannot overwrite it, then
        optionally refetches.
        """
        entry = self.entry(key)
        entry.generation += 1
        if data is not UNSET:
            entry.data = data(entry.data) if callable(data) else data
            entry.error = None

        if revalidate and fetcher is not None:
            return await self.fetch(key, fetcher, force=True)
        return entry.data

    def invalidate(self, prefix: str = "") -> None:
        """Forget cached results whose key starts with `prefix`."""
        for key in [k for k in self._entries if k.startswith(prefix)]:
            entry = self._entries[key]
            entry.updated_at = None
            entry.generation += 1


class ResourceHandle:
    """One resource as seen by a view: data, is_loading, error, load, mutate."""

    def __init__(self, store: ResourceStore, key: str, fetcher: Fetcher, enabled: bool = True):
        self.store = store
        self.key = key
        self.fetcher = fetcher
        self.enabled = enabled

    @property
    def data(self) -> Any:
        return self.store.entry(self.key).data

    @property
    def error(self) -> Exception | None:
        return self.store.entry(self.key).error

    @property
    def is_loading(self) -> bool:
        if not self.enabled:
            return False
        entry = self.store.entry(self.key)
        return entry.updated_at is None and entry.error is None and entry.data is None

    async def load(self, force: bool = False) -> Any:
        """Fetch if needed; failures are exposed through `error`."""
        if not self.enabled:
            return None
        try:
            return await self.store.fetch(self.key, self.fetcher, force=force)
        except FetchError:
            return self.data

    async def mutate(self, data: Any = UNSET, revalidate: bool = True) -> Any:
        try:
            return await self.store.mutate(self.key, data, revalidate=revalidate, fetcher=self.fetcher)
        except FetchError:
            return self.data
