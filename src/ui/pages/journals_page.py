# src/ui/pages/journals_page.py
"""Journals page - create, edit, delete and open journals."""

import streamlit as st

from src.client.hooks import JournalData
from src.domain.metrics import format_percent
from src.ui.helpers.current_context import (
    get_client,
    get_scheduler,
    get_store,
    run_async,
    show_result,
)


def render(journals):
    """Render journals overview."""
    st.subheader("My Journals")
    client = get_client()

    with st.expander("➕ New journal", expanded=not journals):
        with st.form("create_journal", clear_on_submit=True):
            name = st.text_input("Name", max_chars=100)
            description = st.text_area("Description", max_chars=500)
            if st.form_submit_button("Create"):
                result = run_async(
                    lambda: client.create_journal({"name": name, "description": description})
                )
                if show_result(result, "Journal created."):
                    st.session_state.journal_id = result["data"]["id"]
                    st.rerun()

    if not journals:
        st.info("No journals yet.")
        return

    for journal in journals:
        with st.container(border=True):
            col1, col2, col3, col4, col5 = st.columns([3, 1, 1, 1, 1])
            col1.markdown(f"**{journal['name']}**")
            if journal.get("description"):
                col1.caption(journal["description"])
            col2.metric("Trades", journal.get("trades_count", 0))
            col3.metric("Win rate", format_percent(journal.get("win_rate")))
            col4.metric("P&L", f"{journal.get('profit_loss', 0.0):.2f}%")
            col5.caption(f"Last trade: {journal.get('last_trade_date') or '-'}")

            b1, b2, b3 = st.columns(3)
            if b1.button("Open", key=f"open_{journal['id']}"):
                data = JournalData(get_client(), get_store(), journal["id"], scheduler=get_scheduler())

                async def preload():
                    future = data.preload()
                    if future is not None:
                        await future

                run_async(preload)
                st.session_state.journal_id = journal["id"]
                st.rerun()

            with b2.popover("Edit"):
                with st.form(f"edit_{journal['id']}"):
                    new_name = st.text_input("Name", value=journal["name"], max_chars=100)
                    new_description = st.text_area(
                        "Description", value=journal.get("description") or "", max_chars=500
                    )
                    if st.form_submit_button("Save"):
                        result = run_async(
                            lambda: client.update_journal(
                                journal["id"], {"name": new_name, "description": new_description}
                            )
                        )
                        if show_result(result, "Journal updated."):
                            st.rerun()

            with b3.popover("Delete"):
                st.warning("This deletes the journal with all its trades, assets, sessions and setups.")
                if st.button("Confirm delete", key=f"delete_{journal['id']}", type="primary"):
                    result = run_async(lambda: client.delete_journal(journal["id"]))
                    if show_result(result, "Journal deleted."):
                        get_scheduler().clear(f"/api/journals/{journal['id']}")
                        if st.session_state.journal_id == journal["id"]:
                            st.session_state.journal_id = None
                        st.rerun()
