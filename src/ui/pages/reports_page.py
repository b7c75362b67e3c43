# src/ui/pages/reports_page.py
"""Reports page - overview, cumulative and monthly PnL, breakdowns."""

import plotly.express as px
import streamlit as st

from src.domain.metrics import MetricsCalculator, format_percent, format_ratio
from src.ui.helpers.current_context import journal_data, require_journal_id


def render():
    """Render reports page."""
    st.subheader("Reports")

    journal_id = require_journal_id()
    trades = journal_data(journal_id).trades

    if not trades:
        st.info("No trades yet.")
        return

    report_type = st.selectbox(
        "Select Report",
        ["Overview", "Cumulative P&L", "Monthly Performance", "Sessions & Setups"],
    )

    if report_type == "Overview":
        render_overview(trades)
    elif report_type == "Cumulative P&L":
        render_cumulative(trades)
    elif report_type == "Monthly Performance":
        render_monthly(trades)
    elif report_type == "Sessions & Setups":
        render_breakdowns(trades)


def render_overview(trades):
    """Render overview report."""
    stats = MetricsCalculator.get_overview_stats(trades)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Trades", stats["total_trades"])
    col2.metric("Win Rate", format_percent(stats["win_rate"]))
    col3.metric("Profit Factor", format_ratio(stats["profit_factor"]))
    col4.metric("Total P&L", format_percent(stats["total_pnl"]))

    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Average P&L", format_percent(stats["average_pnl"]))
        st.metric("Avg Win", format_percent(stats["avg_win"]))
        st.metric("Avg Loss", format_percent(stats["avg_loss"]))

    with col2:
        outcomes = MetricsCalculator.get_outcome_distribution(trades)
        fig = px.pie(
            names=list(outcomes),
            values=list(outcomes.values()),
            hole=0.5,
            title="Outcomes",
            color=list(outcomes),
            color_discrete_map={"TP": "#22c55e", "SL": "#ef4444", "BE": "#9ca3af"},
        )
        st.plotly_chart(fig, use_container_width=True)


def render_cumulative(trades):
    """Render cumulative PnL chart."""
    curve = MetricsCalculator.get_cumulative_pnl(trades)

    fig = px.line(
        curve,
        x="date",
        y="cumulative_pnl",
        title="Cumulative P&L",
        labels={"cumulative_pnl": "Cumulative P&L (%)", "date": "Date"},
        markers=True,
    )
    st.plotly_chart(fig, use_container_width=True)


def render_monthly(trades):
    """Render monthly PnL bars."""
    monthly = MetricsCalculator.get_monthly_pnl(trades)

    fig = px.bar(
        monthly,
        x="month",
        y="pnl",
        title="Monthly Performance",
        labels={"pnl": "P&L (%)", "month": "Month"},
        color=monthly["pnl"].apply(lambda v: "gain" if v >= 0 else "loss"),
        color_discrete_map={"gain": "#22c55e", "loss": "#ef4444"},
    )
    fig.update_layout(showlegend=False)
    st.plotly_chart(fig, use_container_width=True)

    display = monthly.copy()
    display["pnl"] = display["pnl"].apply(format_percent)
    st.dataframe(display, use_container_width=True, hide_index=True)


def render_breakdowns(trades):
    """Render PnL per session and setup, and the setup distribution."""
    col1, col2 = st.columns(2)

    with col1:
        by_session = MetricsCalculator.get_category_performance(trades, "session_name")
        fig = px.bar(by_session, x="name", y="pnl", title="P&L by Session",
                     labels={"name": "Session", "pnl": "P&L (%)"})
        st.plotly_chart(fig, use_container_width=True)

    with col2:
        by_setup = MetricsCalculator.get_category_performance(trades, "setup_name")
        fig = px.bar(by_setup, x="name", y="pnl", title="P&L by Setup",
                     labels={"name": "Setup", "pnl": "P&L (%)"})
        st.plotly_chart(fig, use_container_width=True)

    distribution = MetricsCalculator.get_setup_distribution(trades)
    fig = px.pie(distribution, names="setup", values="count", title="Setup Distribution")
    st.plotly_chart(fig, use_container_width=True)
