# src/actions/journal_actions.py
"""Journal CRUD actions."""

from datetime import datetime
from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, delete

from src.actions.common import (
    JOURNALS_TAG,
    REFERENCE_TAG,
    STATS_TAG,
    TRADES_TAG,
    find_journal,
    invalidate,
    load_journal,
    require_user,
    resource_pattern,
)
from src.actions.results import ActionResult
from src.cache.response_cache import ResponseCache
from src.db.models import Asset, Journal, Setup, Trade, TradingSession
from src.domain.metrics import MetricsCalculator
from src.schemas import JournalSchema

logger = structlog.get_logger(__name__)


class JournalActions:
    """Create, list, edit and delete journals for the signed-in user."""

    def __init__(self, cache: Optional[ResponseCache] = None):
        self.cache = cache

    def get_journals(self, session: Session, user_id: Optional[str]) -> List[Dict]:
        """Owned journals, newest first."""
        user_id = require_user(user_id)
        journals = session.exec(
            select(Journal)
            .where(Journal.user_id == user_id)
            .order_by(Journal.created_at.desc())
        ).all()
        return [j.to_dict() for j in journals]

    def get_journals_with_stats(self, session: Session, user_id: Optional[str]) -> List[Dict]:
        """Owned journals with trade count, win rate, total PnL and last trade date."""
        journals = self.get_journals(session, user_id)
        if not journals:
            return []

        trades = session.exec(
            select(Trade.journal_id, Trade.trade_date, Trade.profit_loss_amount).where(
                Trade.user_id == user_id,
                Trade.journal_id.in_([j["id"] for j in journals]),
            )
        ).all()

        by_journal: Dict[str, List[Dict]] = {}
        for journal_id, trade_date, pnl in trades:
            by_journal.setdefault(journal_id, []).append(
                {"trade_date": trade_date, "profit_loss_amount": pnl}
            )

        for journal in journals:
            journal.update(MetricsCalculator.get_journal_summary(by_journal.get(journal["id"], [])))
        return journals

    def get_journal(self, session: Session, user_id: Optional[str], journal_id: str) -> Dict:
        """Raises NotAuthenticatedError / NotFoundError."""
        return load_journal(session, user_id, journal_id).to_dict()

    def create_journal(self, session: Session, user_id: Optional[str], values: Dict) -> ActionResult:
        if not user_id:
            return ActionResult.unauthenticated()
        try:
            data = JournalSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        journal = Journal(user_id=user_id, name=data.name, description=data.description)
        try:
            session.add(journal)
            session.commit()
            session.refresh(journal)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("journal_create_failed", user_id=user_id)
            return ActionResult.backend(exc)

        invalidate(self.cache, [JOURNALS_TAG], resource_pattern())
        logger.info("journal_created", journal_id=journal.id, user_id=user_id)
        return ActionResult.ok(journal.to_dict(), message="Journal created.")

    def update_journal(
        self, session: Session, user_id: Optional[str], journal_id: str, values: Dict
    ) -> ActionResult:
        if not user_id:
            return ActionResult.unauthenticated()
        try:
            data = JournalSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        journal = find_journal(session, user_id, journal_id)
        if journal is None:
            return ActionResult.fail("Journal not found.", kind="not_found")

        journal.name = data.name
        journal.description = data.description
        journal.updated_at = datetime.utcnow()
        try:
            session.add(journal)
            session.commit()
            session.refresh(journal)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("journal_update_failed", journal_id=journal_id)
            return ActionResult.backend(exc)

        invalidate(self.cache, [JOURNALS_TAG], resource_pattern())
        logger.info("journal_updated", journal_id=journal_id)
        return ActionResult.ok(journal.to_dict(), message="Journal updated.")

    def delete_journal(self, session: Session, user_id: Optional[str], journal_id: str) -> ActionResult:
        """Delete a journal with its trades and reference lists."""
        if not user_id:
            return ActionResult.unauthenticated()

        journal = find_journal(session, user_id, journal_id)
        if journal is None:
            return ActionResult.fail("Journal not found.", kind="not_found")

        try:
            for model in (Trade, Asset, TradingSession, Setup):
                session.exec(
                    delete(model).where(model.journal_id == journal_id, model.user_id == user_id)
                )
            session.delete(journal)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("journal_delete_failed", journal_id=journal_id)
            return ActionResult.backend(exc)

        invalidate(
            self.cache,
            [JOURNALS_TAG, TRADES_TAG, STATS_TAG, REFERENCE_TAG],
            resource_pattern(),
        )
        logger.info("journal_deleted", journal_id=journal_id, user_id=user_id)
        return ActionResult.ok(message="Journal deleted.")
