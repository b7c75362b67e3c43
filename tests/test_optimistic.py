# tests/test_optimistic.py
from __future__ import annotations

import asyncio

import pytest

from src.client.optimistic import IllegalTransitionError, MutationState, OptimisticMutation
from src.client.store import ResourceHandle, ResourceStore


async def _no_sleep(seconds):
    return None


def _handle(server_trades):
    store = ResourceStore(clock=lambda: 0.0, sleep=_no_sleep)

    async def fetcher():
        return {"trades": list(server_trades)}

    return ResourceHandle(store, "/api/journals/j1/trades", fetcher)


@pytest.mark.asyncio
async def test_provisional_record_visible_while_pending():
    server = [{"id": "t1"}]
    handle = _handle(server)
    await handle.load()

    seen = {}
    release = asyncio.Event()

    async def submit():
        seen["during"] = [t["id"] for t in handle.data["trades"]]
        await release.wait()
        server.insert(0, {"id": "t2"})
        return {"success": True}

    mutation = OptimisticMutation(handle, {"notes": "new"})
    running = asyncio.ensure_future(mutation.run(submit))
    await asyncio.sleep(0)
    assert mutation.state is MutationState.PENDING

    release.set()
    assert await running == {"success": True}

    assert seen["during"][0].startswith("temp-")
    assert seen["during"][1:] == ["t1"]
    assert mutation.state is MutationState.COMMITTED
    assert [t["id"] for t in handle.data["trades"]] == ["t2", "t1"]


@pytest.mark.asyncio
async def test_error_result_rolls_back():
    handle = _handle([{"id": "t1"}])
    await handle.load()

    mutation = OptimisticMutation(handle, {"notes": "bad"})
    result = await mutation.run(lambda: _resolved({"error": "Invalid form data."}))

    assert result == {"error": "Invalid form data."}
    assert mutation.state is MutationState.ROLLED_BACK
    assert [t["id"] for t in handle.data["trades"]] == ["t1"]


@pytest.mark.asyncio
async def test_raising_submit_rolls_back_and_reraises():
    handle = _handle([])
    await handle.load()

    async def submit():
        raise RuntimeError("network down")

    mutation = OptimisticMutation(handle, {})
    with pytest.raises(RuntimeError):
        await mutation.run(submit)

    assert mutation.state is MutationState.ROLLED_BACK
    assert handle.data == {"trades": []}


@pytest.mark.asyncio
async def test_illegal_transitions():
    mutation = OptimisticMutation(_handle([]), {})
    with pytest.raises(IllegalTransitionError):
        await mutation.commit()

    await mutation.apply()
    await mutation.commit()
    with pytest.raises(IllegalTransitionError):
        await mutation.rollback()


async def _resolved(value):
    return value
