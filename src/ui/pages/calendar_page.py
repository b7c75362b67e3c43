# src/ui/pages/calendar_page.py
"""Calendar page - daily P&L over 1, 3, 6 or 12 months."""


import calendar
from datetime import date


import streamlit as st


from src.domain.metrics import CALENDAR_PERIODS, MetricsCalculator
from src.ui.helpers.current_context import journal_data, require_journal_id


def render():
    st.subheader("Calendar P&L")

    journal_id = require_journal_id()
    trades = journal_data(journal_id).trades

    if "calendar_anchor" not in st.session_state:
        st.session_state.calendar_anchor = date.today().replace(day=1)

    period = st.radio(
        "Period",
        CALENDAR_PERIODS,
        horizontal=True,
        format_func=lambda p: f"{p} month{'s' if p > 1 else ''}",
    )

    col1, col2, col3 = st.columns([1, 4, 1])
    if col1.button("◀", key="cal_prev"):
        st.session_state.calendar_anchor = MetricsCalculator.shift_period(
            st.session_state.calendar_anchor, period, -1
        )
    if col3.button("▶", key="cal_next"):
        st.session_state.calendar_anchor = MetricsCalculator.shift_period(
            st.session_state.calendar_anchor, period, 1
        )

    months = MetricsCalculator.calendar_window(st.session_state.calendar_anchor, period)
    start, end = MetricsCalculator.calendar_range(st.session_state.calendar_anchor, period)
    first, last = months[0], months[-1]
    title = f"{calendar.month_name[first.month]} {first.year}"
    if len(months) > 1:
        title += f" - {calendar.month_name[last.month]} {last.year}"
    col2.markdown(f"### {title}")

    in_range = [t for t in trades if start.isoformat() <= t["trade_date"][:10] <= end.isoformat()]
    buckets = MetricsCalculator.get_daily_buckets(in_range)

    # Period summary
    period_total = sum(b["pnl"] for b in buckets.values())
    trading_days = len(buckets)
    avg_per_day = (period_total / trading_days) if trading_days else 0.0

    c1, c2, c3 = st.columns(3)
    c1.metric("Period P&L", f"{period_total:.2f}%")
    c2.metric("Trading days", trading_days)
    c3.metric("Avg / day", f"{avg_per_day:.2f}%")

    st.divider()

    for month_start in months:
        render_month(month_start.year, month_start.month, buckets)


def render_month(year, month, buckets):
    st.write(f"#### {calendar.month_name[month]} {year}")
    cal = calendar.monthcalendar(year, month)

    # Day headers
    cols = st.columns(7)
    for i, day_name in enumerate(["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]):
        cols[i].write(f"**{day_name}**")

    # Cells
    for week in cal:
        cols = st.columns(7)
        for i, day_num in enumerate(week):
            if day_num == 0:
                cols[i].write("")
                continue

            bucket = buckets.get(date(year, month, day_num))

            if bucket is None:
                cols[i].write(str(day_num))
                continue

            pnl = bucket["pnl"]
            count = bucket["count"]
            # Use rgba for transparency instead of opacity
            bg_color = "rgba(0, 128, 0, 0.25)" if pnl > 0 else "rgba(255, 0, 0, 0.25)" if pnl < 0 else "rgba(128, 128, 128, 0.25)"
            sign = "+" if pnl > 0 else ""

            with cols[i]:
                st.markdown(
                    f"""
                    <div style="background-color: {bg_color}; padding: 10px; border-radius: 6px;">
                      <div style="color: #262730; font-weight: 500; text-align: left;">{day_num}</div>
                      <div style="color: #262730; font-weight: 700; font-size: 16px; text-align: center; margin-top: 4px;">{sign}{pnl:.2f}%</div>
                      <div style="color: #262730; font-size: 12px; text-align: center;">{count} trade{'s' if count > 1 else ''}</div>
                    </div>
                    """,
                    unsafe_allow_html=True,
                )
