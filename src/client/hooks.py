# src/client/hooks.py
"""Journal-scoped resource handles used by the UI."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any

from src.client.api import JournalApiClient
from src.client.optimistic import OptimisticMutation
from src.client.scheduler import PreloadScheduler
from src.client.store import ResourceHandle, ResourceStore

RESOURCES = ("assets", "sessions", "setups", "trades")


def journal_path(journal_id: str) -> str:
    return f"/api/journals/{journal_id}"


def resource_path(journal_id: str, kind: str) -> str:
    return f"{journal_path(journal_id)}/{kind}"


class JournalData:
    """The four resources of one journal, loaded independently."""

    def __init__(
        self,
        client: JournalApiClient,
        store: ResourceStore,
        journal_id: str | None,
        enabled: bool = True,
        scheduler: PreloadScheduler | None = None,
    ):
        self.client = client
        self.store = store
        self.journal_id = journal_id
        self.enabled = enabled and bool(journal_id)
        self.scheduler = scheduler
        self.handles: dict[str, ResourceHandle] = {}
        for kind in RESOURCES:
            path = resource_path(journal_id or "", kind)
            self.handles[kind] = ResourceHandle(
                store, path, self._fetcher(path), enabled=self.enabled
            )

    def _fetcher(self, path: str):
        async def fetch() -> Any:
            return await self.client.get_json(path)

        return fetch

    @property
    def assets(self) -> list[dict]:
        return self._items("assets")

    @property
    def sessions(self) -> list[dict]:
        return self._items("sessions")

    @property
    def setups(self) -> list[dict]:
        return self._items("setups")

    @property
    def trades(self) -> list[dict]:
        return self._items("trades")

    def _items(self, kind: str) -> list[dict]:
        data = self.handles[kind].data
        return list((data or {}).get(kind) or [])

    @property
    def is_loading(self) -> bool:
        """True until every resource has resolved."""
        return any(handle.is_loading for handle in self.handles.values())

    @property
    def error(self) -> Exception | None:
        for kind in RESOURCES:
            if self.handles[kind].error is not None:
                return self.handles[kind].error
        return None

    async def load(self) -> None:
        await asyncio.gather(*(handle.load() for handle in self.handles.values()))

    async def refresh_all(self) -> None:
        await asyncio.gather(*(handle.load(force=True) for handle in self.handles.values()))

    def preload(self) -> asyncio.Future | None:
        """Prefetch all four resources after the scheduler's quiet window."""
        if not self.enabled or self.scheduler is None:
            return None
        endpoints = {
            handle.key: (lambda h=handle: self.store.fetch(h.key, h.fetcher))
            for handle in self.handles.values()
        }
        return self.scheduler.schedule(journal_path(self.journal_id), endpoints)

    def clear_preload(self) -> None:
        if self.scheduler is not None and self.journal_id:
            self.scheduler.clear(journal_path(self.journal_id))

    async def add_trade(self, values: dict) -> dict:
        """Add a trade, showing it in `trades` before the server answers."""
        mutation = OptimisticMutation(self.handles["trades"], values)
        return await mutation.run(lambda: self.client.add_trade(self.journal_id, values))


class PaginatedTrades:
    """Manual pagination over the trades endpoint."""

    def __init__(
        self,
        client: JournalApiClient,
        store: ResourceStore,
        journal_id: str,
        limit: int = 50,
        date_from: date | None = None,
        date_to: date | None = None,
    ):
        self.client = client
        self.store = store
        self.journal_id = journal_id
        self.limit = limit
        self.date_from = date_from
        self.date_to = date_to
        self.page = 1

    def _params(self) -> dict:
        params = {"page": self.page, "limit": self.limit}
        if self.date_from:
            params["dateFrom"] = self.date_from.isoformat()
        if self.date_to:
            params["dateTo"] = self.date_to.isoformat()
        return params

    @property
    def handle(self) -> ResourceHandle:
        params = self._params()
        path = resource_path(self.journal_id, "trades")
        key = path + "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))

        async def fetch() -> Any:
            return await self.client.get_json(path, params=params)

        return ResourceHandle(self.store, key, fetch)

    @property
    def trades(self) -> list[dict]:
        return list((self.handle.data or {}).get("trades") or [])

    @property
    def total(self) -> int:
        return int((self.handle.data or {}).get("total") or 0)

    @property
    def has_more(self) -> bool:
        return self.page * self.limit < self.total

    @property
    def error(self) -> Exception | None:
        return self.handle.error

    async def load(self, page: int | None = None) -> list[dict]:
        if page is not None:
            self.page = max(page, 1)
        await self.handle.load()
        return self.trades

    async def next_page(self) -> list[dict]:
        if self.has_more:
            return await self.load(self.page + 1)
        return self.trades

    async def previous_page(self) -> list[dict]:
        return await self.load(max(self.page - 1, 1))
