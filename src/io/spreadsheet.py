# src/io/spreadsheet.py
"""Spreadsheet interchange: trade import from .xlsx/.xls and grouped-column export."""

import io
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence

import pandas as pd
import structlog
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter
from openpyxl.utils.datetime import from_excel

from src.actions.results import ActionResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ColumnGroup:
    label: str
    first: int  # 1-based column index
    last: int
    width: int


# Fixed layout: one logical field per merged group of columns
COLUMN_GROUPS = [
    ColumnGroup("Date", 1, 6, 12),        # A-F
    ColumnGroup("Asset", 7, 11, 15),      # G-K
    ColumnGroup("Session", 12, 16, 12),   # L-P
    ColumnGroup("/", 17, 19, 2),          # Q-S
    ColumnGroup("/", 20, 22, 2),          # T-V
    ColumnGroup("/", 23, 25, 2),          # W-Y
    ColumnGroup("Risk", 26, 28, 8),       # Z-AB
    ColumnGroup("Profit", 29, 31, 8),     # AC-AE
    ColumnGroup("Setup", 32, 36, 12),     # AF-AJ
    ColumnGroup("Notes", 37, 50, 20),     # AK-AX
    ColumnGroup("Link", 51, 55, 30),      # AY-BC
]
FILLER_WIDTH = 2
SHEET_NAME = "Trades"

# Trade dict key per group label
EXPORT_FIELDS = {
    "Date": "trade_date",
    "Asset": "asset_name",
    "Session": "session_name",
    "Risk": "risk_input",
    "Profit": "profit_loss_amount",
    "Setup": "setup_name",
    "Notes": "notes",
    "Link": "tradingview_link",
}

# 0-based offsets of the first cell of each group read on import
IMPORT_OFFSETS = {
    "trade_date": 0,            # A
    "asset": 6,                 # G
    "session": 11,              # L
    "risk_input": 25,           # Z
    "profit_loss_amount": 28,   # AC
    "setup": 31,                # AF
    "notes": 36,                # AK
    "tradingview_link": 50,     # AY
}


@dataclass
class ImportSummary:
    """Outcome of one import run."""

    trades: List[Dict] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    failures: List[str] = field(default_factory=list)


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _name_index(items: Sequence[Dict]) -> Dict[str, Dict]:
    return {str(item["name"]).strip().lower(): item for item in items}


class SpreadsheetImporter:
    """Parse journal spreadsheets into trade payloads."""

    DATE_FORMATS = [
        "%Y-%m-%d",
        "%Y-%m-%d %H:%M:%S",
        "%d/%m/%Y",
        "%d-%m-%Y",
        "%d.%m.%Y",
        "%Y/%m/%d",
    ]

    @staticmethod
    def read_rows(content: bytes, filename: str) -> List[List]:
        """All sheet rows of the first worksheet, header included; NaN -> None."""
        engine = "xlrd" if filename.lower().endswith(".xls") else "openpyxl"
        df = pd.read_excel(io.BytesIO(content), header=None, dtype=object, engine=engine)
        df = df.astype(object).where(pd.notna(df), None)
        return df.values.tolist()

    @staticmethod
    def parse_date(value) -> date:
        """Cell value (datetime, Excel serial or text) to a date."""
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            converted = from_excel(value)
            return converted.date() if isinstance(converted, datetime) else converted

        text = str(value).strip()
        for fmt in SpreadsheetImporter.DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Could not parse date: {text}")

    @staticmethod
    def parse_rows(
        rows: List[List],
        assets: Sequence[Dict],
        sessions: Sequence[Dict],
        setups: Sequence[Dict],
    ) -> ImportSummary:
        """
        Map data rows (the first row is the header) to trade payloads.

        Rows without a date or asset, or with an unknown asset, are skipped
        and reported with their spreadsheet row number.
        """
        summary = ImportSummary()
        asset_index = _name_index(assets)
        session_index = _name_index(sessions)
        setup_index = _name_index(setups)

        def cell(row: List, name: str):
            offset = IMPORT_OFFSETS[name]
            return row[offset] if offset < len(row) else None

        for i, row in enumerate(rows[1:]):
            row_number = i + 2
            if not row or all(_is_blank(value) for value in row):
                continue

            raw_date = cell(row, "trade_date")
            asset_name = cell(row, "asset")
            if _is_blank(raw_date):
                summary.errors.append(f"Row {row_number}: missing date")
                continue
            if _is_blank(asset_name):
                summary.errors.append(f"Row {row_number}: missing asset")
                continue

            try:
                trade_date = SpreadsheetImporter.parse_date(raw_date)
            except ValueError as exc:
                summary.errors.append(f"Row {row_number}: {exc}")
                continue

            asset = asset_index.get(str(asset_name).strip().lower())
            if asset is None:
                summary.errors.append(f'Row {row_number}: asset "{asset_name}" not found in the journal')
                continue

            references = {}
            for name, index in (("session", session_index), ("setup", setup_index)):
                value = cell(row, name)
                match = None
                if not _is_blank(value):
                    match = index.get(str(value).strip().lower())
                    if match is None:
                        summary.warnings.append(f'Row {row_number}: {name} "{value}" not found, left empty')
                references[f"{name}_id"] = match["id"] if match else None

            risk = cell(row, "risk_input")
            pnl = cell(row, "profit_loss_amount")
            notes = cell(row, "notes")
            link = cell(row, "tradingview_link")
            summary.trades.append(
                {
                    "trade_date": trade_date.isoformat(),
                    "asset_id": asset["id"],
                    "session_id": references["session_id"],
                    "setup_id": references["setup_id"],
                    "risk_input": "" if _is_blank(risk) else str(risk),
                    "profit_loss_amount": 0 if _is_blank(pnl) else str(pnl),
                    "notes": "" if _is_blank(notes) else str(notes),
                    "tradingview_link": "" if _is_blank(link) else str(link),
                    "duration_minutes": None,
                }
            )

        return summary

    @staticmethod
    def submit(summary: ImportSummary, add_trade: Callable[[Dict], ActionResult]) -> ImportSummary:
        """Submit parsed trades one by one, counting successes and failures."""
        for payload in summary.trades:
            result = add_trade(payload)
            if result.success:
                summary.succeeded += 1
            else:
                summary.failed += 1
                summary.failures.append(f"{payload['trade_date']}: {result.error}")

        logger.info(
            "spreadsheet_import_finished",
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=len(summary.errors),
        )
        return summary

    @staticmethod
    def import_file(
        content: bytes,
        filename: str,
        lists: Dict[str, Sequence[Dict]],
        add_trade: Callable[[Dict], ActionResult],
    ) -> ImportSummary:
        rows = SpreadsheetImporter.read_rows(content, filename)
        summary = SpreadsheetImporter.parse_rows(
            rows, lists.get("assets", []), lists.get("sessions", []), lists.get("setups", [])
        )
        return SpreadsheetImporter.submit(summary, add_trade)


class SpreadsheetExporter:
    """Write trades into the grouped-column layout."""

    @staticmethod
    def build_workbook(trades: Sequence[Dict]) -> Workbook:
        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_NAME

        for col in range(1, COLUMN_GROUPS[-1].last + 1):
            ws.column_dimensions[get_column_letter(col)].width = FILLER_WIDTH
        for group in COLUMN_GROUPS:
            ws.column_dimensions[get_column_letter(group.first)].width = group.width

        for group in COLUMN_GROUPS:
            cell = ws.cell(row=1, column=group.first, value=group.label)
            cell.font = Font(bold=True)
            cell.alignment = Alignment(horizontal="center")
            ws.merge_cells(start_row=1, start_column=group.first, end_row=1, end_column=group.last)

        for row_num, trade in enumerate(trades, start=2):
            for group in COLUMN_GROUPS:
                key = EXPORT_FIELDS.get(group.label)
                value = trade.get(key) if key else None
                if value is not None:
                    ws.cell(row=row_num, column=group.first, value=value)
                ws.merge_cells(
                    start_row=row_num, start_column=group.first, end_row=row_num, end_column=group.last
                )

        return wb

    @staticmethod
    def export_bytes(trades: Sequence[Dict]) -> bytes:
        """Serialized .xlsx; raises ValueError when there is nothing to export."""
        if not trades:
            raise ValueError("No trades to export for this period.")
        output = io.BytesIO()
        SpreadsheetExporter.build_workbook(trades).save(output)
        logger.info("spreadsheet_exported", trades=len(trades))
        return output.getvalue()

    @staticmethod
    def export_filename(journal_name: str, period: Optional[str] = None) -> str:
        stem = "".join(c if c.isalnum() or c in "-_" else "_" for c in journal_name).strip("_") or "journal"
        return f"{stem}_{period or 'all'}.xlsx"
