# src/ui/pages/journal_page.py
"""Journal page - add trades and manage assets, sessions and setups."""

from datetime import date

import streamlit as st

from src.client.hooks import JournalData
from src.schemas import DURATION_UNITS, duration_to_minutes
from src.ui.helpers.current_context import (
    get_client,
    journal_data,
    require_journal_id,
    run_async,
    show_result,
)

LIST_LABELS = {"assets": "Assets", "sessions": "Sessions", "setups": "Setups"}


def _options(items):
    return [None] + [item["id"] for item in items], {item["id"]: item["name"] for item in items}


def render():
    """Render journal workspace."""
    journal_id = require_journal_id()
    data = journal_data(journal_id)

    st.subheader("Add Trade")
    render_trade_form(data)

    st.divider()
    st.subheader("Manage Lists")
    cols = st.columns(3)
    for col, kind in zip(cols, LIST_LABELS):
        with col:
            render_list_manager(data, kind)


def render_trade_form(data: JournalData):
    asset_ids, asset_names = _options(data.assets)
    session_ids, session_names = _options(data.sessions)
    setup_ids, setup_names = _options(data.setups)

    if not data.assets:
        st.info("Add at least one asset before logging trades.")

    with st.form("add_trade", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        trade_date = col1.date_input("Date", value=date.today())
        asset_id = col2.selectbox(
            "Asset", asset_ids, format_func=lambda i: asset_names.get(i, "-")
        )
        session_id = col3.selectbox(
            "Session", session_ids, format_func=lambda i: session_names.get(i, "-")
        )

        col1, col2, col3 = st.columns(3)
        setup_id = col1.selectbox(
            "Setup", setup_ids, format_func=lambda i: setup_names.get(i, "-")
        )
        risk_input = col2.text_input("Risk", placeholder="1%")
        profit_loss = col3.text_input("Profit / loss (%)", placeholder="2.5 or -1")

        col1, col2, col3 = st.columns([3, 1, 1])
        tradingview_link = col1.text_input("Chart link")
        duration = col2.text_input("Duration")
        duration_unit = col3.radio("Unit", list(DURATION_UNITS), horizontal=True)
        notes = st.text_area("Notes")

        if st.form_submit_button("Add trade", type="primary"):
            values = {
                "trade_date": trade_date.isoformat(),
                "asset_id": asset_id,
                "session_id": session_id,
                "setup_id": setup_id,
                "risk_input": risk_input,
                "profit_loss_amount": profit_loss,
                "tradingview_link": tradingview_link,
                "notes": notes,
                "duration_minutes": duration_to_minutes(duration, duration_unit),
                "asset_name": asset_names.get(asset_id),
                "session_name": session_names.get(session_id),
                "setup_name": setup_names.get(setup_id),
            }
            result = run_async(lambda: data.add_trade(values))
            show_result(result, "Trade added.")


def render_list_manager(data: JournalData, kind: str):
    label = LIST_LABELS[kind]
    st.markdown(f"**{label}**")
    client = get_client()
    handle = data.handles[kind]

    with st.form(f"add_{kind}", clear_on_submit=True):
        name = st.text_input("Name", key=f"name_{kind}", max_chars=100)
        if st.form_submit_button("Add"):
            result = run_async(lambda: client.add_item(data.journal_id, kind, name))
            if show_result(result):
                run_async(lambda: handle.mutate(revalidate=True))
                st.rerun()

    items = getattr(data, kind)
    if not items:
        st.caption("Nothing yet.")
    for item in items:
        c1, c2 = st.columns([4, 1])
        c1.write(item["name"])
        if c2.button("🗑️", key=f"del_{kind}_{item['id']}"):
            result = run_async(lambda: client.delete_item(data.journal_id, kind, item["id"]))
            if show_result(result):
                run_async(lambda: handle.mutate(revalidate=True))
                st.rerun()
