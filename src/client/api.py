# src/client/api.py
"""Async HTTP client for the journal API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.errors import JournalAppError

logger = structlog.get_logger(__name__)


class FetchError(JournalAppError):
    """Non-2xx response (status set) or transport failure (status None)."""

    def __init__(self, message: str, status: int | None = None, info: Any = None):
        super().__init__(message)
        self.status = status
        self.info = info


class JournalApiClient:
    """
    Thin wrapper over httpx.AsyncClient.

    Read helpers raise FetchError; mutation helpers return the action payload
    (`{"success": ...}` or `{"error": ..., "issues": [...]}`) so forms can show it.
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._timeout = timeout or self.DEFAULT_TIMEOUT
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def __aenter__(self) -> JournalApiClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = self._get_client()
        try:
            response = await client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timeout: {e}") from e
        except httpx.RequestError as e:
            raise FetchError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            try:
                info = response.json()
            except ValueError:
                info = {"error": response.text}
            message = info.get("error") if isinstance(info, dict) else None
            logger.info("api_request_failed", method=method, path=path, status=response.status_code)
            raise FetchError(
                message or f"Request failed with status {response.status_code}",
                status=response.status_code,
                info=info,
            )
        return response

    async def get_json(self, path: str, params: dict | None = None) -> Any:
        response = await self._send("GET", path, params=params)
        return response.json()

    async def action(self, method: str, path: str, json: dict | None = None, **kwargs) -> dict:
        """Call a mutating endpoint; action errors come back as data."""
        try:
            response = await self._send(method, path, json=json, **kwargs)
        except FetchError as e:
            if isinstance(e.info, dict) and "error" in e.info:
                return e.info
            return {"error": str(e)}
        return response.json()

    # ---------------------------------------------------------------- auth

    async def sign_up(self, email: str, password: str, confirm_password: str) -> dict:
        result = await self.action(
            "POST",
            "/api/auth/sign-up",
            {"email": email, "password": password, "confirm_password": confirm_password},
        )
        if result.get("success"):
            self.token = result["data"]["token"]
        return result

    async def sign_in(self, email: str, password: str) -> dict:
        result = await self.action("POST", "/api/auth/sign-in", {"email": email, "password": password})
        if result.get("success"):
            self.token = result["data"]["token"]
        return result

    # ------------------------------------------------------------ journals

    async def list_journals(self) -> list[dict]:
        return (await self.get_json("/api/journals"))["journals"]

    async def get_journal(self, journal_id: str) -> dict:
        return (await self.get_json(f"/api/journals/{journal_id}"))["journal"]

    async def create_journal(self, values: dict) -> dict:
        return await self.action("POST", "/api/journals", values)

    async def update_journal(self, journal_id: str, values: dict) -> dict:
        return await self.action("PATCH", f"/api/journals/{journal_id}", values)

    async def delete_journal(self, journal_id: str) -> dict:
        return await self.action("DELETE", f"/api/journals/{journal_id}")

    # ----------------------------------------------------------- resources

    async def add_item(self, journal_id: str, kind: str, name: str) -> dict:
        return await self.action("POST", f"/api/journals/{journal_id}/{kind}", {"name": name})

    async def delete_item(self, journal_id: str, kind: str, item_id: str) -> dict:
        return await self.action("DELETE", f"/api/journals/{journal_id}/{kind}/{item_id}")

    async def add_trade(self, journal_id: str, values: dict) -> dict:
        return await self.action("POST", f"/api/journals/{journal_id}/trades", values)

    async def update_trade(self, journal_id: str, trade_id: str, values: dict) -> dict:
        return await self.action("PATCH", f"/api/journals/{journal_id}/trades/{trade_id}", values)

    async def delete_trade(self, journal_id: str, trade_id: str) -> dict:
        return await self.action("DELETE", f"/api/journals/{journal_id}/trades/{trade_id}")

    async def stats(self, journal_id: str) -> dict:
        return await self.get_json(f"/api/journals/{journal_id}/stats")

    # --------------------------------------------------------- interchange

    async def export_trades(self, journal_id: str, month: str | None = None) -> bytes:
        params = {"month": month} if month else None
        response = await self._send("GET", f"/api/journals/{journal_id}/export", params=params)
        return response.content

    async def import_trades(self, journal_id: str, filename: str, content: bytes) -> dict:
        return await self.action(
            "POST",
            f"/api/journals/{journal_id}/import",
            files={"file": (filename, content)},
        )
