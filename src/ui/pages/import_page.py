# src/ui/pages/import_page.py
"""Import / export page for journal spreadsheets."""

import calendar
from datetime import date

import streamlit as st

from src.client.api import FetchError
from src.io.spreadsheet import SpreadsheetExporter
from src.ui.helpers.current_context import (
    get_client,
    journal_data,
    require_journal_id,
    run_async,
)


def render():
    """Render import/export page."""
    journal_id = require_journal_id()
    data = journal_data(journal_id)
    client = get_client()

    st.subheader("📥 Import Spreadsheet")
    st.caption(
        "Rows start at line 2. Columns: A date, G asset, L session, Z risk, "
        "AC profit/loss, AF setup, AK notes, AY chart link."
    )

    uploaded_file = st.file_uploader(
        "Upload .xlsx / .xls",
        type=["xlsx", "xls"],
        accept_multiple_files=False,
    )

    if uploaded_file and st.button("Import", key="import_btn", type="primary"):
        with st.spinner("Importing..."):
            result = run_async(
                lambda: client.import_trades(journal_id, uploaded_file.name, uploaded_file.getvalue())
            )

        if result.get("error"):
            st.error(result["error"])
        else:
            if result.get("imported"):
                st.success(f"✅ {result['imported']} trade(s) imported.")
            if result.get("failed"):
                st.error(f"{result['failed']} trade(s) could not be imported.")
            if not result.get("imported") and not result.get("failed"):
                st.error("No valid trade found in the file.")

            if result.get("skipped"):
                with st.expander(f"{len(result['skipped'])} row(s) skipped"):
                    for line in result["skipped"]:
                        st.write(f"⚠️ {line}")
            if result.get("warnings") or result.get("failures"):
                with st.expander("Details"):
                    for line in result.get("warnings", []) + result.get("failures", []):
                        st.write(line)

            run_async(lambda: data.handles["trades"].mutate(revalidate=True))

    st.divider()
    st.subheader("📤 Export")

    col1, col2 = st.columns(2)
    with col1:
        scope = st.radio("Period", ["All trades", "One month"], horizontal=True)
    month_key = None
    with col2:
        if scope == "One month":
            today = date.today()
            year = st.number_input("Year", min_value=2000, max_value=2100, value=today.year)
            month = st.selectbox(
                "Month", range(1, 13), index=today.month - 1, format_func=lambda m: calendar.month_name[m]
            )
            month_key = f"{int(year):04d}-{month:02d}"

    if st.button("Prepare export"):
        try:
            content = run_async(lambda: client.export_trades(journal_id, month_key))
        except FetchError as e:
            st.error(str(e))
        else:
            journal = next(
                (j for j in run_async(client.list_journals) if j["id"] == journal_id), {"name": "journal"}
            )
            st.download_button(
                label="Download .xlsx",
                data=content,
                file_name=SpreadsheetExporter.export_filename(journal["name"], month_key),
                mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            )
