# src/ui/helpers/current_context.py
"""Function(s) to Expose current runtime context"""

import asyncio
from typing import Any, Awaitable, Callable

import streamlit as st

from src.client.api import JournalApiClient
from src.client.hooks import JournalData
from src.client.scheduler import PreloadScheduler
from src.client.store import ResourceStore
from src.config import load_settings


def get_settings():
    if "settings" not in st.session_state:
        st.session_state.settings = load_settings()
    return st.session_state.settings


def get_client() -> JournalApiClient:
    if "api_client" not in st.session_state:
        settings = get_settings()
        st.session_state.api_client = JournalApiClient(
            settings.require("api_url"),
            timeout=settings.request_timeout,
        )
    return st.session_state.api_client


def get_store() -> ResourceStore:
    if "resource_store" not in st.session_state:
        st.session_state.resource_store = ResourceStore()
    return st.session_state.resource_store


def get_scheduler() -> PreloadScheduler:
    if "preload_scheduler" not in st.session_state:
        st.session_state.preload_scheduler = PreloadScheduler()
    return st.session_state.preload_scheduler


def run_async(factory: Callable[[], Awaitable[Any]]) -> Any:
    """Run one client coroutine to completion from a Streamlit script run."""
    client = get_client()

    async def runner():
        try:
            return await factory()
        finally:
            # the httpx pool is bound to this event loop
            await client.close()

    return asyncio.run(runner())


def require_journal_id() -> str:
    journal_id = st.session_state.get("journal_id")
    if not journal_id:
        st.info("Select or create a journal first.")
        st.stop()
    return journal_id


def journal_data(journal_id: str) -> JournalData:
    """Loaded resources for a journal; shows an error panel and stops on failure."""
    data = JournalData(get_client(), get_store(), journal_id, scheduler=get_scheduler())
    with st.spinner("Loading journal..."):
        run_async(data.load)
    if data.error is not None:
        st.error(f"Could not load journal data: {data.error}")
        st.stop()
    return data


def show_result(result: dict, success: str = None) -> bool:
    """Toast for an action payload; field issues are listed under the error."""
    if result.get("success"):
        st.toast(success or result.get("message") or "Saved.", icon="✅")
        return True

    st.error(result.get("error") or "Something went wrong.")
    for issue in result.get("issues") or []:
        path = ".".join(issue.get("path") or [])
        st.caption(f"{path}: {issue.get('message')}" if path else issue.get("message"))
    return False
