# src/client/optimistic.py
"""Optimistic list insertion as an explicit state machine."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

import pytz
import structlog

from src.client.store import ResourceHandle
from src.errors import JournalAppError

logger = structlog.get_logger(__name__)

TEMP_PREFIX = "temp-"


class MutationState(str, Enum):
    NEW = "new"
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class IllegalTransitionError(JournalAppError):
    """A mutation was moved out of a state that does not allow it."""


class OptimisticMutation:
    """
    Show a provisional record at the head of a cached list while the real
    write is in flight.

    NEW -> PENDING (record spliced in) -> COMMITTED (authoritative refetch)
                                       -> ROLLED_BACK (record removed, refetch)
    """

    def __init__(self, handle: ResourceHandle, values: dict, list_field: str = "trades"):
        self.handle = handle
        self.list_field = list_field
        self.state = MutationState.NEW
        self.record = {
            **values,
            "id": f"{TEMP_PREFIX}{uuid.uuid4()}",
            "created_at": datetime.now(pytz.UTC).isoformat(),
        }

    def _transition(self, expected: MutationState, target: MutationState) -> None:
        if self.state is not expected:
            raise IllegalTransitionError(
                f"Cannot move from {self.state.value} to {target.value}"
            )
        self.state = target

    def _with_record(self, current: Any) -> dict:
        current = dict(current or {})
        current[self.list_field] = [self.record] + list(current.get(self.list_field) or [])
        return current

    def _without_record(self, current: Any) -> dict:
        current = dict(current or {})
        current[self.list_field] = [
            item for item in current.get(self.list_field) or [] if item.get("id") != self.record["id"]
        ]
        return current

    async def apply(self) -> None:
        self._transition(MutationState.NEW, MutationState.PENDING)
        await self.handle.mutate(self._with_record, revalidate=False)

    async def commit(self) -> None:
        self._transition(MutationState.PENDING, MutationState.COMMITTED)
        await self.handle.mutate(revalidate=True)

    async def rollback(self) -> None:
        self._transition(MutationState.PENDING, MutationState.ROLLED_BACK)
        await self.handle.mutate(self._without_record, revalidate=True)

    async def run(self, submit: Callable[[], Awaitable[dict]]) -> dict:
        """Apply, submit, then commit or roll back on the submit outcome."""
        await self.apply()
        try:
            result = await submit()
        except Exception:
            logger.warning("optimistic_submit_raised", record_id=self.record["id"])
            await self.rollback()
            raise

        if not result or result.get("error"):
            logger.info("optimistic_rolled_back", record_id=self.record["id"])
            await self.rollback()
            return result

        await self.commit()
        return result
