# tests/test_client_store.py
from __future__ import annotations

import asyncio

import pytest

from src.client.api import FetchError
from src.client.store import ResourceHandle, ResourceStore


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def _store(clock=None, delays=None):
    async def sleep(seconds):
        if delays is not None:
            delays.append(seconds)

    return ResourceStore(clock=clock or Clock(), sleep=sleep)


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_request():
    store = _store()
    release = asyncio.Event()
    calls = []

    async def fetcher():
        calls.append(1)
        await release.wait()
        return {"trades": []}

    first = asyncio.ensure_future(store.fetch("/trades", fetcher))
    second = asyncio.ensure_future(store.fetch("/trades", fetcher))
    await asyncio.sleep(0)
    assert store.is_fetching("/trades")

    release.set()
    assert await first == await second == {"trades": []}
    assert len(calls) == 1
    assert not store.is_fetching("/trades")


@pytest.mark.asyncio
async def test_deduping_interval():
    clock = Clock()
    store = _store(clock)
    calls = []

    async def fetcher():
        calls.append(1)
        return len(calls)

    assert await store.fetch("/assets", fetcher) == 1
    clock.now += 4.9
    assert await store.fetch("/assets", fetcher) == 1
    clock.now += 0.2
    assert await store.fetch("/assets", fetcher) == 2
    assert await store.fetch("/assets", fetcher, force=True) == 3


@pytest.mark.asyncio
async def test_retries_with_exponential_backoff():
    delays = []
    store = _store(delays=delays)
    attempts = []

    async def fetcher():
        attempts.append(1)
        if len(attempts) < 3:
            raise FetchError("boom", status=500)
        return "ok"

    assert await store.fetch("/stats", fetcher) == "ok"
    assert delays == [5.0, 10.0]
    assert store.entry("/stats").error is None


@pytest.mark.asyncio
async def test_gives_up_after_retry_limit():
    delays = []
    store = _store(delays=delays)

    async def fetcher():
        raise FetchError("down", status=None)

    with pytest.raises(FetchError):
        await store.fetch("/stats", fetcher)
    assert len(delays) == 2
    assert str(store.entry("/stats").error) == "down"


@pytest.mark.asyncio
async def test_not_found_is_not_retried():
    delays = []
    store = _store(delays=delays)

    async def fetcher():
        raise FetchError("Journal not found.", status=404)

    with pytest.raises(FetchError):
        await store.fetch("/journals/x", fetcher)
    assert delays == []


@pytest.mark.asyncio
async def test_late_response_does_not_overwrite_mutation():
    store = _store()
    release = asyncio.Event()

    async def slow():
        await release.wait()
        return {"trades": ["server"]}

    pending = asyncio.ensure_future(store.fetch("/trades", slow))
    await asyncio.sleep(0)

    await store.mutate("/trades", {"trades": ["local"]}, revalidate=False)
    release.set()
    await pending

    assert store.entry("/trades").data == {"trades": ["local"]}


@pytest.mark.asyncio
async def test_mutate_with_function_and_revalidate():
    store = _store()

    async def fetcher():
        return {"trades": ["fresh"]}

    await store.mutate("/trades", {"trades": ["a"]}, revalidate=False)
    await store.mutate("/trades", lambda current: {"trades": current["trades"] + ["b"]}, revalidate=False)
    assert store.entry("/trades").data == {"trades": ["a", "b"]}

    assert await store.mutate("/trades", revalidate=True, fetcher=fetcher) == {"trades": ["fresh"]}


@pytest.mark.asyncio
async def test_invalidate_prefix_forces_reload():
    store = _store()
    calls = []

    async def fetcher():
        calls.append(1)
        return len(calls)

    await store.fetch("/api/journals/j1/assets", fetcher)
    store.invalidate("/api/journals/j1")
    assert await store.fetch("/api/journals/j1/assets", fetcher) == 2


@pytest.mark.asyncio
async def test_handle_exposes_error_instead_of_raising():
    store = _store()

    async def fetcher():
        raise FetchError("Not authenticated.", status=401)

    handle = ResourceHandle(store, "/journals", fetcher)
    assert handle.is_loading
    assert await handle.load() is None
    assert handle.error is not None
    assert handle.error.status == 401
    assert not handle.is_loading


@pytest.mark.asyncio
async def test_disabled_handle_never_fetches():
    store = _store()

    async def fetcher():
        raise AssertionError("should not be called")

    handle = ResourceHandle(store, "/journals/none", fetcher, enabled=False)
    assert await handle.load() is None
    assert not handle.is_loading
