# tests/test_spreadsheet.py
from __future__ import annotations

import io
from datetime import date, datetime

import pytest
from openpyxl import load_workbook

from src.actions.results import ActionResult
from src.io.spreadsheet import (
    COLUMN_GROUPS,
    IMPORT_OFFSETS,
    SpreadsheetExporter,
    SpreadsheetImporter,
)

ASSETS = [{"id": "asset-nq", "name": "NQ"}]
SESSIONS = [{"id": "session-ldn", "name": "London"}]
SETUPS = [{"id": "setup-bo", "name": "Breakout"}]

HEADER = ["Date"] + [None] * 54


def _row(**cells):
    row = [None] * 55
    for name, value in cells.items():
        row[IMPORT_OFFSETS[name]] = value
    return row


def test_parse_rows_maps_names_to_ids():
    rows = [
        HEADER,
        _row(trade_date=datetime(2025, 1, 15), asset="nq", session="London", setup="breakout",
             risk_input="1%", profit_loss_amount=2.5, notes="clean"),
    ]
    summary = SpreadsheetImporter.parse_rows(rows, ASSETS, SESSIONS, SETUPS)

    assert summary.errors == []
    assert summary.warnings == []
    assert summary.trades == [
        {
            "trade_date": "2025-01-15",
            "asset_id": "asset-nq",
            "session_id": "session-ldn",
            "setup_id": "setup-bo",
            "risk_input": "1%",
            "profit_loss_amount": "2.5",
            "notes": "clean",
            "tradingview_link": "",
            "duration_minutes": None,
        }
    ]


def test_parse_rows_reports_skipped_rows():
    rows = [
        HEADER,
        _row(asset="NQ"),
        _row(trade_date="2025-01-02"),
        _row(trade_date="2025-01-03", asset="GC"),
        _row(trade_date="not a date", asset="NQ"),
        [None] * 55,
        _row(trade_date="03/01/2025", asset="NQ", session="Tokyo"),
    ]
    summary = SpreadsheetImporter.parse_rows(rows, ASSETS, SESSIONS, SETUPS)

    assert summary.errors == [
        "Row 2: missing date",
        "Row 3: missing asset",
        'Row 4: asset "GC" not found in the journal',
        "Row 5: Could not parse date: not a date",
    ]
    assert summary.warnings == ['Row 7: session "Tokyo" not found, left empty']
    assert len(summary.trades) == 1
    assert summary.trades[0]["trade_date"] == "2025-01-03"
    assert summary.trades[0]["session_id"] is None
    assert summary.trades[0]["profit_loss_amount"] == 0


@pytest.mark.parametrize(
    "value, expected",
    [
        (datetime(2025, 2, 1, 9, 30), date(2025, 2, 1)),
        (45658, date(2025, 1, 1)),
        ("2025-02-01", date(2025, 2, 1)),
        ("01.02.2025", date(2025, 2, 1)),
    ],
)
def test_parse_date(value, expected):
    assert SpreadsheetImporter.parse_date(value) == expected


def test_submit_counts_results():
    summary = SpreadsheetImporter.parse_rows(
        [HEADER, _row(trade_date="2025-01-01", asset="NQ"), _row(trade_date="2025-01-02", asset="NQ")],
        ASSETS, SESSIONS, SETUPS,
    )

    def add_trade(payload):
        if payload["trade_date"] == "2025-01-02":
            return ActionResult.fail("Invalid form data.")
        return ActionResult.ok(payload)

    SpreadsheetImporter.submit(summary, add_trade)

    assert summary.succeeded == 1
    assert summary.failed == 1
    assert summary.failures == ["2025-01-02: Invalid form data."]


def test_export_layout():
    trades = [
        {
            "trade_date": "2025-01-15",
            "asset_name": "NQ",
            "session_name": "London",
            "risk_input": "1%",
            "profit_loss_amount": 2.5,
            "setup_name": None,
            "notes": "clean",
            "tradingview_link": "https://tradingview.com/x",
        }
    ]
    wb = load_workbook(io.BytesIO(SpreadsheetExporter.export_bytes(trades)))
    ws = wb["Trades"]

    assert [ws.cell(row=1, column=g.first).value for g in COLUMN_GROUPS] == [
        "Date", "Asset", "Session", "/", "/", "/", "Risk", "Profit", "Setup", "Notes", "Link",
    ]
    merged = {str(r) for r in ws.merged_cells.ranges}
    assert "A1:F1" in merged
    assert "AK2:AX2" in merged
    assert ws["G2"].value == "NQ"
    assert ws["AC2"].value == 2.5
    assert ws["AF2"].value is None
    assert ws.column_dimensions["AY"].width == 30


def test_export_then_import():
    trades = [
        {"trade_date": "2025-01-15", "asset_name": "NQ", "session_name": "London",
         "risk_input": "1%", "profit_loss_amount": -1.0, "setup_name": "Breakout"},
    ]
    content = SpreadsheetExporter.export_bytes(trades)

    rows = SpreadsheetImporter.read_rows(content, "export.xlsx")
    summary = SpreadsheetImporter.parse_rows(rows, ASSETS, SESSIONS, SETUPS)

    assert summary.errors == []
    [payload] = summary.trades
    assert payload["trade_date"] == "2025-01-15"
    assert payload["asset_id"] == "asset-nq"
    assert payload["setup_id"] == "setup-bo"
    assert float(payload["profit_loss_amount"]) == -1.0


def test_export_requires_trades():
    with pytest.raises(ValueError, match="No trades to export"):
        SpreadsheetExporter.export_bytes([])


def test_export_filename():
    assert SpreadsheetExporter.export_filename("My Journal!", "2025-01") == "My_Journal_2025-01.xlsx"
    assert SpreadsheetExporter.export_filename("", None) == "journal_all.xlsx"
