# src/actions/trade_actions.py
"""Trade actions: listing, paging, add, edit with field diffing, delete."""

from datetime import date, timedelta
from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.actions.common import (
    JOURNALS_TAG,
    STATS_TAG,
    TRADES_TAG,
    find_journal,
    invalidate,
    load_journal,
    resource_pattern,
)
from src.actions.results import ActionResult
from src.cache.response_cache import ResponseCache
from src.db.models import REFERENCE_FOREIGN_KEYS, REFERENCE_MODELS, Asset, Setup, Trade, TradingSession
from src.domain.metrics import to_date
from src.schemas import TradeSchema, TradeUpdateSchema

logger = structlog.get_logger(__name__)

TRADE_TAGS = (TRADES_TAG, STATS_TAG, JOURNALS_TAG)

EDITABLE_FIELDS = (
    "trade_date",
    "asset_id",
    "session_id",
    "setup_id",
    "risk_input",
    "profit_loss_amount",
    "tradingview_link",
    "notes",
    "duration_minutes",
)

NO_CHANGES = "No changes detected."


def _blank(value: Any) -> Any:
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


def _comparable(field: str, value: Any) -> Any:
    """Normalize a field value so form input compares equal to stored data."""
    value = _blank(value)
    if value is None:
        return None
    if field == "trade_date":
        try:
            return to_date(value)
        except ValueError:
            return value
    if field == "profit_loss_amount":
        try:
            return float(str(value).strip().replace(",", "."))
        except ValueError:
            return value
    if field == "duration_minutes":
        try:
            return int(value)
        except (TypeError, ValueError):
            return value
    return str(value)


def compute_trade_changes(original: Dict, submitted: Dict) -> Dict:
    """
    Fields of `submitted` that differ from `original`.

    Only fields present in `submitted` are compared; empty strings count as
    cleared values and are returned as None.
    """
    changes = {}
    for field in EDITABLE_FIELDS:
        if field not in submitted:
            continue
        if _comparable(field, submitted[field]) != _comparable(field, original.get(field)):
            changes[field] = _blank(submitted[field])
    return changes


def trade_to_dict(trade: Trade, asset_name=None, session_name=None, setup_name=None) -> Dict:
    return {
        "id": trade.id,
        "journal_id": trade.journal_id,
        "trade_date": trade.trade_date.isoformat(),
        "asset_id": trade.asset_id,
        "session_id": trade.session_id,
        "setup_id": trade.setup_id,
        "asset_name": asset_name,
        "session_name": session_name,
        "setup_name": setup_name,
        "risk_input": trade.risk_input,
        "profit_loss_amount": trade.profit_loss_amount,
        "tradingview_link": trade.tradingview_link,
        "notes": trade.notes,
        "duration_minutes": trade.duration_minutes,
        "created_at": trade.created_at.isoformat(),
    }


class TradeActions:
    """Journal-scoped trade operations."""

    def __init__(self, cache: Optional[ResponseCache] = None):
        self.cache = cache

    # ----------------------------------------------------------------- reads

    @staticmethod
    def _joined(user_id: str, journal_id: str):
        return (
            select(Trade, Asset.name, TradingSession.name, Setup.name)
            .outerjoin(Asset, Trade.asset_id == Asset.id)
            .outerjoin(TradingSession, Trade.session_id == TradingSession.id)
            .outerjoin(Setup, Trade.setup_id == Setup.id)
            .where(Trade.user_id == user_id, Trade.journal_id == journal_id)
        )

    @staticmethod
    def _date_range(stmt, date_from: Optional[date], date_to: Optional[date]):
        if date_from is not None:
            stmt = stmt.where(Trade.trade_date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Trade.trade_date <= date_to)
        return stmt

    def get_trades(
        self,
        session: Session,
        user_id: Optional[str],
        journal_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[Dict]:
        """Trades with reference names, newest first."""
        journal = load_journal(session, user_id, journal_id)
        stmt = self._date_range(self._joined(journal.user_id, journal.id), date_from, date_to)
        rows = session.exec(
            stmt.order_by(Trade.trade_date.desc(), Trade.created_at.desc())
        ).all()
        return [trade_to_dict(*row) for row in rows]

    def get_trades_page(
        self,
        session: Session,
        user_id: Optional[str],
        journal_id: str,
        page: int = 1,
        limit: int = 50,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Dict:
        """One page of trades plus the total matching count."""
        journal = load_journal(session, user_id, journal_id)
        page = max(page, 1)
        limit = max(limit, 1)

        count_stmt = self._date_range(
            select(func.count()).select_from(Trade).where(
                Trade.user_id == journal.user_id, Trade.journal_id == journal.id
            ),
            date_from,
            date_to,
        )
        total = session.exec(count_stmt).one()

        stmt = self._date_range(self._joined(journal.user_id, journal.id), date_from, date_to)
        rows = session.exec(
            stmt.order_by(Trade.trade_date.desc(), Trade.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return {
            "trades": [trade_to_dict(*row) for row in rows],
            "total": total,
            "page": page,
            "limit": limit,
            "has_more": page * limit < total,
        }

    def get_trades_by_month(
        self, session: Session, user_id: Optional[str], journal_id: str, year: int, month: int
    ) -> List[Dict]:
        start = date(year, month, 1)
        end = date(year + month // 12, month % 12 + 1, 1)
        return self.get_trades(
            session, user_id, journal_id, date_from=start, date_to=end - timedelta(days=1)
        )

    def get_trade(self, session: Session, user_id: Optional[str], journal_id: str, trade_id: str) -> Optional[Dict]:
        journal = load_journal(session, user_id, journal_id)
        row = session.exec(self._joined(journal.user_id, journal.id).where(Trade.id == trade_id)).first()
        return trade_to_dict(*row) if row else None

    # ------------------------------------------------------------- mutations

    @staticmethod
    def _foreign_issues(session: Session, user_id: str, journal_id: str, values: Dict) -> List[Dict]:
        """Issues for reference ids that do not belong to the journal."""
        issues = []
        for kind, field in REFERENCE_FOREIGN_KEYS.items():
            item_id = values.get(field)
            if not item_id:
                continue
            model = REFERENCE_MODELS[kind]
            found = session.exec(
                select(model.id).where(
                    model.id == item_id, model.journal_id == journal_id, model.user_id == user_id
                )
            ).first()
            if found is None:
                issues.append({"path": [field], "message": "The selected item is not valid."})
        return issues

    def _invalidate(self, journal_id: str) -> None:
        invalidate(self.cache, TRADE_TAGS, resource_pattern(journal_id, "trades"))

    def add_trade(self, session: Session, user_id: Optional[str], journal_id: str, values: Dict) -> ActionResult:
        if not user_id:
            return ActionResult.unauthenticated()
        try:
            data = TradeSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        if find_journal(session, user_id, journal_id) is None:
            return ActionResult.fail("Journal not found.", kind="not_found")

        fields = data.model_dump()
        issues = self._foreign_issues(session, user_id, journal_id, fields)
        if issues:
            return ActionResult.fail("Invalid form data.", issues=issues)

        trade = Trade(user_id=user_id, journal_id=journal_id, **fields)
        try:
            session.add(trade)
            session.commit()
            session.refresh(trade)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("trade_add_failed", journal_id=journal_id)
            return ActionResult.backend(exc)

        self._invalidate(journal_id)
        logger.info("trade_added", trade_id=trade.id, journal_id=journal_id)
        return ActionResult.ok(trade_to_dict(trade), message="Trade added.")

    def update_trade(
        self, session: Session, user_id: Optional[str], journal_id: str, trade_id: str, values: Dict
    ) -> ActionResult:
        """Write only the fields that changed; no-op edits skip the write."""
        if not user_id:
            return ActionResult.unauthenticated()

        trade = session.exec(
            select(Trade).where(
                Trade.id == trade_id, Trade.journal_id == journal_id, Trade.user_id == user_id
            )
        ).first()
        if trade is None:
            return ActionResult.fail("Trade not found.", kind="not_found")

        changes = compute_trade_changes(trade_to_dict(trade), values)
        if not changes:
            result = ActionResult.ok(message=NO_CHANGES)
            result.changed = False
            return result

        try:
            validated = TradeUpdateSchema.model_validate(changes).model_dump(exclude_unset=True)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        for field in ("trade_date", "risk_input", "profit_loss_amount"):
            if field in validated and validated[field] is None:
                return ActionResult.fail(
                    "Invalid form data.",
                    issues=[{"path": [field], "message": "This field is required."}],
                )

        issues = self._foreign_issues(session, user_id, journal_id, validated)
        if issues:
            return ActionResult.fail("Invalid form data.", issues=issues)

        for field, value in validated.items():
            setattr(trade, field, value)
        try:
            session.add(trade)
            session.commit()
            session.refresh(trade)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("trade_update_failed", trade_id=trade_id)
            return ActionResult.backend(exc)

        self._invalidate(journal_id)
        logger.info("trade_updated", trade_id=trade_id, fields=sorted(validated))
        result = ActionResult.ok({"changes": changes, "trade": trade_to_dict(trade)}, message="Trade updated.")
        result.changed = True
        return result

    def delete_trade(self, session: Session, user_id: Optional[str], journal_id: str, trade_id: str) -> ActionResult:
        if not user_id:
            return ActionResult.unauthenticated()

        trade = session.exec(
            select(Trade).where(
                Trade.id == trade_id, Trade.journal_id == journal_id, Trade.user_id == user_id
            )
        ).first()
        if trade is None:
            return ActionResult.fail("Trade not found.", kind="not_found")

        try:
            session.delete(trade)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("trade_delete_failed", trade_id=trade_id)
            return ActionResult.backend(exc)

        self._invalidate(journal_id)
        logger.info("trade_deleted", trade_id=trade_id, journal_id=journal_id)
        return ActionResult.ok(message="Trade deleted.")
