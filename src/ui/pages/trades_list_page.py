# src/ui/pages/trades_list_page.py
"""Trades list page - filter, sort, edit and delete trades."""

import calendar
from datetime import date

import pandas as pd
import streamlit as st

from src.client.hooks import JournalData
from src.domain.metrics import MetricsCalculator, format_percent, to_date
from src.ui.helpers.current_context import (
    get_client,
    journal_data,
    require_journal_id,
    run_async,
    show_result,
)

PER_PAGE = 20
SORT_LABELS = {"Date": "date", "Performance": "performance", "Asset": "asset"}


def render():
    """Render trades list page."""
    st.subheader("Trades List")

    journal_id = require_journal_id()
    data = journal_data(journal_id)
    trades = data.trades

    if not trades:
        st.info("No trades yet. Add one on the Journal page or import a spreadsheet.")
        return

    years = sorted({to_date(t["trade_date"]).year for t in trades} | {date.today().year})

    # Filters
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        view_mode = st.selectbox("View", ["month", "year", "all"], format_func=str.capitalize)
    with col2:
        year = st.selectbox("Year", years, index=len(years) - 1, disabled=view_mode == "all")
    with col3:
        month = st.selectbox(
            "Month",
            range(1, 13),
            index=date.today().month - 1,
            format_func=lambda m: calendar.month_name[m],
            disabled=view_mode != "month",
        )
    with col4:
        search = st.text_input("Search", placeholder="asset, session, setup, notes...")

    col1, col2 = st.columns(2)
    with col1:
        sort_label = st.selectbox("Sort by", list(SORT_LABELS))
    with col2:
        sort_order = st.selectbox("Order", ["Descending", "Ascending"])

    filtered = MetricsCalculator.filter_trades(
        trades, view_mode=view_mode, reference=date(year, month, 1), search=search
    )
    filtered = MetricsCalculator.sort_trades(
        filtered, by=SORT_LABELS[sort_label], descending=sort_order == "Descending"
    )

    # Summary metrics
    stats = MetricsCalculator.get_overview_stats(filtered)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Trades", stats["total_trades"])
    c2.metric("TP / SL / BE", f"{stats['num_tp']} / {stats['num_sl']} / {stats['num_be']}")
    c3.metric("Win rate", format_percent(stats["win_rate"]))
    c4.metric("Performance", format_percent(stats["total_pnl"]))

    if not filtered:
        st.info("No trades match these filters.")
        return

    total_pages = MetricsCalculator.paginate(filtered, 1, PER_PAGE)[1]
    page = st.number_input("Page", min_value=1, max_value=total_pages, value=1, step=1)
    page_items, _ = MetricsCalculator.paginate(filtered, int(page), PER_PAGE)

    df = pd.DataFrame(
        [
            {
                "Date": t["trade_date"],
                "Asset": t.get("asset_name") or "-",
                "Session": t.get("session_name") or "-",
                "Setup": t.get("setup_name") or "-",
                "Risk": t.get("risk_input"),
                "P&L": format_percent(t.get("profit_loss_amount")),
                "Notes": t.get("notes") or "",
                "Link": t.get("tradingview_link") or "",
            }
            for t in page_items
        ]
    )
    st.dataframe(
        df,
        use_container_width=True,
        hide_index=True,
        column_config={"Link": st.column_config.LinkColumn("Link")},
    )
    st.caption(f"Page {int(page)} of {total_pages} • {len(filtered)} trades")

    st.divider()
    st.subheader("Edit / Delete")
    labels = {
        t["id"]: f"{t['trade_date']} • {t.get('asset_name') or '-'} • {t.get('profit_loss_amount')}%"
        for t in page_items
    }
    trade_id = st.selectbox("Trade", list(labels), format_func=labels.get)
    trade = next(t for t in page_items if t["id"] == trade_id)
    render_edit_form(data, trade)


def render_edit_form(data: JournalData, trade: dict):
    client = get_client()
    handle = data.handles["trades"]

    def pick(items, current):
        ids = [None] + [i["id"] for i in items]
        names = {i["id"]: i["name"] for i in items}
        return ids, names, ids.index(current) if current in ids else 0

    asset_ids, asset_names, asset_idx = pick(data.assets, trade.get("asset_id"))
    session_ids, session_names, session_idx = pick(data.sessions, trade.get("session_id"))
    setup_ids, setup_names, setup_idx = pick(data.setups, trade.get("setup_id"))

    with st.form(f"edit_{trade['id']}"):
        col1, col2, col3 = st.columns(3)
        trade_date = col1.date_input("Date", value=to_date(trade["trade_date"]))
        asset_id = col2.selectbox(
            "Asset", asset_ids, index=asset_idx, format_func=lambda i: asset_names.get(i, "-")
        )
        session_id = col3.selectbox(
            "Session", session_ids, index=session_idx, format_func=lambda i: session_names.get(i, "-")
        )
        col1, col2, col3 = st.columns(3)
        setup_id = col1.selectbox(
            "Setup", setup_ids, index=setup_idx, format_func=lambda i: setup_names.get(i, "-")
        )
        risk_input = col2.text_input("Risk", value=trade.get("risk_input") or "")
        profit_loss = col3.text_input("Profit / loss (%)", value=str(trade.get("profit_loss_amount")))
        tradingview_link = st.text_input("Chart link", value=trade.get("tradingview_link") or "")
        notes = st.text_area("Notes", value=trade.get("notes") or "")

        if st.form_submit_button("Save changes"):
            values = {
                "trade_date": trade_date.isoformat(),
                "asset_id": asset_id or "",
                "session_id": session_id or "",
                "setup_id": setup_id or "",
                "risk_input": risk_input,
                "profit_loss_amount": profit_loss,
                "tradingview_link": tradingview_link,
                "notes": notes,
            }
            result = run_async(lambda: client.update_trade(data.journal_id, trade["id"], values))
            if result.get("success") and result.get("changed") is False:
                st.info(result.get("message") or "No changes detected.")
            elif show_result(result, "Trade updated."):
                run_async(lambda: handle.mutate(revalidate=True))
                st.rerun()

    with st.popover("Delete trade"):
        st.warning("This trade will be permanently deleted.")
        if st.button("Confirm delete", key=f"delete_{trade['id']}", type="primary"):
            result = run_async(lambda: client.delete_trade(data.journal_id, trade["id"]))
            if show_result(result, "Trade deleted."):
                run_async(lambda: handle.mutate(revalidate=True))
                st.rerun()
