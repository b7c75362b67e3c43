# src/domain/metrics.py
"""Metrics and reporting calculations."""

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

# Signed PnL trichotomy
OUTCOME_TP = "TP"
OUTCOME_SL = "SL"
OUTCOME_BE = "BE"

UNDEFINED_CATEGORY = "Undefined"

VIEW_MODES = ("month", "year", "all")
SORT_FIELDS = ("date", "performance", "asset")
CALENDAR_PERIODS = (1, 3, 6, 12)


def to_date(value) -> Optional[date]:
    """Coerce a date, datetime or ISO string to a date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def pnl_of(trade: Dict) -> float:
    return float(trade.get("profit_loss_amount") or 0.0)


def outcome_of(trade: Dict) -> str:
    pnl = pnl_of(trade)
    if pnl > 0:
        return OUTCOME_TP
    if pnl < 0:
        return OUTCOME_SL
    return OUTCOME_BE


def format_percent(value: Optional[float]) -> str:
    """`12.5` -> "12.50%"; None -> "N/A"."""
    if value is None:
        return "N/A"
    return f"{value:.2f}%"


def format_ratio(value: Optional[float]) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f}"


def _month_start(day: date, offset: int = 0) -> date:
    index = day.year * 12 + (day.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


class MetricsCalculator:
    """Calculate journal statistics over lists of trade dicts."""

    @staticmethod
    def get_overview_stats(trades: Iterable[Dict]) -> Dict:
        """
        Overall trading statistics.

        win_rate is a percentage over non-breakeven trades (None when there are
        none); profit_factor is None when gross loss is zero.
        """
        trades = list(trades)
        pnls = [pnl_of(t) for t in trades]

        wins = [p for p in pnls if p > 0]
        losses = [p for p in pnls if p < 0]
        num_be = len(pnls) - len(wins) - len(losses)

        total_pnl = sum(pnls)
        gross_profit = sum(wins)
        gross_loss = sum(losses)

        decided = len(wins) + len(losses)
        win_rate = len(wins) / decided * 100 if decided else None
        profit_factor = gross_profit / abs(gross_loss) if gross_loss != 0 else None

        return {
            "total_trades": len(pnls),
            "num_tp": len(wins),
            "num_sl": len(losses),
            "num_be": num_be,
            "win_rate": win_rate,
            "total_pnl": total_pnl,
            "average_pnl": total_pnl / len(pnls) if pnls else 0.0,
            "avg_win": gross_profit / len(wins) if wins else 0.0,
            "avg_loss": abs(gross_loss) / len(losses) if losses else 0.0,
            "gross_profit": gross_profit,
            "gross_loss": gross_loss,
            "profit_factor": profit_factor,
        }

    @staticmethod
    def get_monthly_pnl(trades: Iterable[Dict]) -> pd.DataFrame:
        """
        Sum PnL per calendar month of the trade date.

        Returns DataFrame with columns: month (YYYY-MM), pnl, trades
        """
        rows = [
            {"month": to_date(t["trade_date"]).strftime("%Y-%m"), "pnl": pnl_of(t)}
            for t in trades
        ]
        if not rows:
            return pd.DataFrame(columns=["month", "pnl", "trades"])

        df = pd.DataFrame(rows)
        return (
            df.groupby("month", as_index=False)
            .agg(pnl=("pnl", "sum"), trades=("pnl", "count"))
            .sort_values("month")
            .reset_index(drop=True)
        )

    @staticmethod
    def get_cumulative_pnl(trades: Iterable[Dict]) -> pd.DataFrame:
        """
        Running PnL per trade day, starting from a zero point the day before
        the first trade.

        Returns DataFrame with columns: date, daily_pnl, cumulative_pnl
        """
        rows = [{"date": to_date(t["trade_date"]), "pnl": pnl_of(t)} for t in trades]
        if not rows:
            return pd.DataFrame(columns=["date", "daily_pnl", "cumulative_pnl"])

        df = pd.DataFrame(rows)
        daily = (
            df.groupby("date", as_index=False)
            .agg(daily_pnl=("pnl", "sum"))
            .sort_values("date")
        )
        start = pd.DataFrame(
            [{"date": daily["date"].iloc[0] - timedelta(days=1), "daily_pnl": 0.0}]
        )
        out = pd.concat([start, daily], ignore_index=True)
        out["cumulative_pnl"] = out["daily_pnl"].cumsum()
        return out

    @staticmethod
    def get_category_performance(trades: Iterable[Dict], field: str) -> pd.DataFrame:
        """PnL per session or setup name, best first."""
        rows = [
            {"name": t.get(field) or UNDEFINED_CATEGORY, "pnl": pnl_of(t)}
            for t in trades
        ]
        if not rows:
            return pd.DataFrame(columns=["name", "pnl", "trades"])

        df = pd.DataFrame(rows)
        return (
            df.groupby("name", as_index=False)
            .agg(pnl=("pnl", "sum"), trades=("pnl", "count"))
            .sort_values(["pnl", "name"], ascending=[False, True])
            .reset_index(drop=True)
        )

    @staticmethod
    def get_setup_distribution(trades: Iterable[Dict]) -> pd.DataFrame:
        """Trade count per setup."""
        names = [t.get("setup_name") or UNDEFINED_CATEGORY for t in trades]
        if not names:
            return pd.DataFrame(columns=["setup", "count"])

        counts = pd.Series(names).value_counts()
        return (
            pd.DataFrame({"setup": counts.index, "count": counts.values})
            .sort_values(["count", "setup"], ascending=[False, True])
            .reset_index(drop=True)
        )

    @staticmethod
    def get_outcome_distribution(trades: Iterable[Dict]) -> Dict[str, int]:
        counts = {OUTCOME_TP: 0, OUTCOME_SL: 0, OUTCOME_BE: 0}
        for trade in trades:
            counts[outcome_of(trade)] += 1
        return counts

    @staticmethod
    def get_daily_buckets(trades: Iterable[Dict]) -> Dict[date, Dict]:
        """Calendar cells: trade date -> {pnl, count, trades}."""
        buckets: Dict[date, Dict] = {}
        for trade in trades:
            day = to_date(trade["trade_date"])
            bucket = buckets.setdefault(day, {"pnl": 0.0, "count": 0, "trades": []})
            bucket["pnl"] += pnl_of(trade)
            bucket["count"] += 1
            bucket["trades"].append(trade)
        return buckets

    @staticmethod
    def get_journal_summary(trades: Iterable[Dict]) -> Dict:
        """Card summary for the journal list."""
        trades = list(trades)
        stats = MetricsCalculator.get_overview_stats(trades)
        dates = [to_date(t["trade_date"]) for t in trades]
        return {
            "trades_count": stats["total_trades"],
            "win_rate": stats["win_rate"],
            "profit_loss": stats["total_pnl"],
            "last_trade_date": max(dates).isoformat() if dates else None,
        }

    # ------------------------------------------------------------ list views

    @staticmethod
    def filter_trades(
        trades: Iterable[Dict],
        view_mode: str = "all",
        reference: Optional[date] = None,
        search: str = "",
    ) -> List[Dict]:
        """
        Restrict to the month/year of `reference` and to trades whose asset,
        session, setup, notes or risk contain `search` (case-insensitive).
        """
        if view_mode not in VIEW_MODES:
            raise ValueError(f"Unknown view mode: {view_mode}")
        reference = reference or date.today()
        term = search.strip().lower()

        out = []
        for trade in trades:
            day = to_date(trade["trade_date"])
            if view_mode == "month" and (day.year, day.month) != (reference.year, reference.month):
                continue
            if view_mode == "year" and day.year != reference.year:
                continue
            if term:
                haystack = " ".join(
                    str(trade.get(key) or "")
                    for key in ("asset_name", "session_name", "setup_name", "notes", "risk_input")
                ).lower()
                if term not in haystack:
                    continue
            out.append(trade)
        return out

    @staticmethod
    def sort_trades(trades: Iterable[Dict], by: str = "date", descending: bool = True) -> List[Dict]:
        if by == "date":
            key = lambda t: (to_date(t["trade_date"]), str(t.get("created_at") or ""))
        elif by == "performance":
            key = pnl_of
        elif by == "asset":
            key = lambda t: (t.get("asset_name") or "").lower()
        else:
            raise ValueError(f"Unknown sort field: {by}")
        return sorted(trades, key=key, reverse=descending)

    @staticmethod
    def paginate(items: List, page: int, per_page: int) -> Tuple[List, int]:
        """Slice for a 1-based page, plus the total page count (at least 1)."""
        if per_page <= 0:
            raise ValueError("per_page must be positive")
        total_pages = max(1, -(-len(items) // per_page))
        page = min(max(page, 1), total_pages)
        start = (page - 1) * per_page
        return items[start:start + per_page], total_pages

    # -------------------------------------------------------------- calendar

    @staticmethod
    def calendar_window(anchor: date, months: int) -> List[date]:
        """First days of the `months` months ending with the anchor's month."""
        if months not in CALENDAR_PERIODS:
            raise ValueError(f"Unsupported calendar period: {months}")
        return [_month_start(anchor, offset) for offset in range(-(months - 1), 1)]

    @staticmethod
    def calendar_range(anchor: date, months: int) -> Tuple[date, date]:
        """Inclusive date range covered by a calendar window."""
        window = MetricsCalculator.calendar_window(anchor, months)
        return window[0], _month_start(window[-1], 1) - timedelta(days=1)

    @staticmethod
    def shift_period(anchor: date, months: int, direction: int) -> date:
        """Move the anchor a whole period back (-1) or forward (+1)."""
        if months not in CALENDAR_PERIODS:
            raise ValueError(f"Unsupported calendar period: {months}")
        return _month_start(anchor, direction * months)
