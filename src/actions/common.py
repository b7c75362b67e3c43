# src/actions/common.py
"""Helpers shared by the action classes."""

import re
from typing import Iterable, Optional

import structlog
from sqlmodel import Session, select

from src.cache.response_cache import ResponseCache
from src.db.models import Journal
from src.errors import NotAuthenticatedError, NotFoundError

logger = structlog.get_logger(__name__)

REFERENCE_TAG = "reference-data"
TRADES_TAG = "trades"
STATS_TAG = "stats"
JOURNALS_TAG = "journals"


def resource_pattern(journal_id: Optional[str] = None, resource: Optional[str] = None) -> str:
    """Regex matching cached keys under a journal (or one of its resources)."""
    if journal_id is None:
        return r"^/api/journals(?:[/?_]|$)"
    pattern = r"^/api/journals/" + re.escape(journal_id)
    if resource:
        pattern += "/" + re.escape(resource)
    return pattern + r"(?:[/?_]|$)"


def invalidate(cache: Optional[ResponseCache], tags: Iterable[str], pattern: Optional[str] = None) -> int:
    """Drop cached responses by tag and by path pattern."""
    if cache is None:
        return 0
    removed = sum(cache.invalidate_by_tag(tag) for tag in tags)
    if pattern:
        removed += cache.invalidate_by_pattern(pattern)
    return removed


def require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def find_journal(session: Session, user_id: str, journal_id: str) -> Optional[Journal]:
    """Journal owned by `user_id`, or None."""
    return session.exec(
        select(Journal).where(Journal.id == journal_id, Journal.user_id == user_id)
    ).first()


def load_journal(session: Session, user_id: Optional[str], journal_id: str) -> Journal:
    """Owned journal or raise."""
    user_id = require_user(user_id)
    journal = find_journal(session, user_id, journal_id)
    if journal is None:
        raise NotFoundError(f"Journal {journal_id} not found.")
    return journal
