# src/actions/reference_actions.py
"""Actions for the per-journal reference lists: assets, sessions, setups."""

from typing import Dict, List, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from src.actions.common import (
    REFERENCE_TAG,
    find_journal,
    invalidate,
    load_journal,
    resource_pattern,
)
from src.actions.results import ActionResult
from src.cache.response_cache import ResponseCache
from src.db.models import REFERENCE_FOREIGN_KEYS, REFERENCE_MODELS, Trade
from src.schemas import ListItemSchema

logger = structlog.get_logger(__name__)

REFERENCE_LABELS = {
    "assets": "asset",
    "sessions": "session",
    "setups": "setup",
}


def _check_kind(kind: str) -> None:
    if kind not in REFERENCE_MODELS:
        raise ValueError(f"Unknown reference list: {kind}")


class ReferenceActions:
    """List, add and delete assets / sessions / setups of a journal."""

    def __init__(self, cache: Optional[ResponseCache] = None):
        self.cache = cache

    def get_items(
        self, session: Session, user_id: Optional[str], journal_id: str, kind: str
    ) -> List[Dict]:
        """Items sorted by name (case-insensitive)."""
        _check_kind(kind)
        journal = load_journal(session, user_id, journal_id)
        model = REFERENCE_MODELS[kind]
        items = session.exec(
            select(model)
            .where(model.journal_id == journal.id, model.user_id == journal.user_id)
            .order_by(func.lower(model.name))
        ).all()
        return [
            {"id": item.id, "name": item.name, "created_at": item.created_at.isoformat()}
            for item in items
        ]

    def add_item(
        self, session: Session, user_id: Optional[str], journal_id: str, kind: str, values: Dict
    ) -> ActionResult:
        _check_kind(kind)
        label = REFERENCE_LABELS[kind]
        if not user_id:
            return ActionResult.unauthenticated()
        try:
            data = ListItemSchema.model_validate(values)
        except ValidationError as exc:
            return ActionResult.invalid(exc)

        if find_journal(session, user_id, journal_id) is None:
            return ActionResult.fail("Journal not found.", kind="not_found")

        model = REFERENCE_MODELS[kind]
        duplicate = session.exec(
            select(model).where(
                model.journal_id == journal_id,
                model.user_id == user_id,
                func.lower(model.name) == data.name.lower(),
            )
        ).first()
        if duplicate is not None:
            return ActionResult.fail(
                f'The {label} "{data.name}" already exists.', kind="conflict"
            )

        item = model(user_id=user_id, journal_id=journal_id, name=data.name)
        try:
            session.add(item)
            session.commit()
            session.refresh(item)
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("reference_add_failed", kind=kind, journal_id=journal_id)
            return ActionResult.backend(exc)

        invalidate(self.cache, [REFERENCE_TAG], resource_pattern(journal_id, kind))
        logger.info("reference_added", kind=kind, item_id=item.id, journal_id=journal_id)
        return ActionResult.ok(
            {"id": item.id, "name": item.name},
            message=f'{label.capitalize()} "{item.name}" added.',
        )

    def delete_item(
        self, session: Session, user_id: Optional[str], journal_id: str, kind: str, item_id: str
    ) -> ActionResult:
        """Delete an item unless a trade still references it."""
        _check_kind(kind)
        label = REFERENCE_LABELS[kind]
        if not user_id:
            return ActionResult.unauthenticated()

        model = REFERENCE_MODELS[kind]
        item = session.exec(
            select(model).where(
                model.id == item_id,
                model.journal_id == journal_id,
                model.user_id == user_id,
            )
        ).first()
        if item is None:
            return ActionResult.fail(f"{label.capitalize()} not found.", kind="not_found")

        foreign_key = getattr(Trade, REFERENCE_FOREIGN_KEYS[kind])
        in_use = session.exec(
            select(func.count()).select_from(Trade).where(
                foreign_key == item_id, Trade.user_id == user_id
            )
        ).one()
        if in_use:
            logger.info("reference_delete_refused", kind=kind, item_id=item_id, trades=in_use)
            return ActionResult.fail(
                f'Cannot delete the {label} "{item.name}": it is used by {in_use} trade(s).',
                kind="conflict",
            )

        name = item.name
        try:
            session.delete(item)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("reference_delete_failed", kind=kind, item_id=item_id)
            return ActionResult.backend(exc)

        invalidate(self.cache, [REFERENCE_TAG], resource_pattern(journal_id, kind))
        logger.info("reference_deleted", kind=kind, item_id=item_id, journal_id=journal_id)
        return ActionResult.ok(message=f'{label.capitalize()} "{name}" deleted.')
