# src/db/models.py
"""
SQLModel definitions for the trading journal.
Designed for SQLite locally, PostgreSQL in production.
"""

from datetime import date, datetime
from typing import Optional, List
from sqlmodel import SQLModel, Field, Relationship
import uuid


def _uuid() -> str:
    return str(uuid.uuid4())


class User(SQLModel, table=True):
    """User accounts; every other row is owned by exactly one user."""
    id: str = Field(default_factory=_uuid, primary_key=True)
    email: str = Field(unique=True, index=True)  # stored lower-cased
    hashed_password: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    journals: List["Journal"] = Relationship(back_populates="user")


class Journal(SQLModel, table=True):
    """Named container scoping trades and reference lists."""
    __tablename__ = "journal"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    user: User = Relationship(back_populates="journals")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


class Asset(SQLModel, table=True):
    """What was traded (e.g. "EURUSD", "NQ")."""
    __tablename__ = "asset"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    journal_id: str = Field(foreign_key="journal.id", index=True)
    name: str = Field(max_length=100)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class TradingSession(SQLModel, table=True):
    """Market session a trade was taken in (e.g. "London", "New York")."""
    __tablename__ = "trading_session"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    journal_id: str = Field(foreign_key="journal.id", index=True)
    name: str = Field(max_length=100)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Setup(SQLModel, table=True):
    """Strategy setup used for a trade."""
    __tablename__ = "setup"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    journal_id: str = Field(foreign_key="journal.id", index=True)
    name: str = Field(max_length=100)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Trade(SQLModel, table=True):
    """One logged position outcome."""
    __tablename__ = "trade"

    id: str = Field(default_factory=_uuid, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    journal_id: str = Field(foreign_key="journal.id", index=True)

    trade_date: date = Field(index=True)

    # Reference lists (nullable; deletion of a referenced item is refused)
    asset_id: Optional[str] = Field(default=None, foreign_key="asset.id", index=True)
    session_id: Optional[str] = Field(default=None, foreign_key="trading_session.id", index=True)
    setup_id: Optional[str] = Field(default=None, foreign_key="setup.id", index=True)

    risk_input: str = Field()
    profit_loss_amount: float = Field()  # signed percentage; 0 is breakeven

    tradingview_link: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    duration_minutes: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


# Reference list kind -> table model
REFERENCE_MODELS = {
    "assets": Asset,
    "sessions": TradingSession,
    "setups": Setup,
}

# Reference list kind -> Trade foreign key column name
REFERENCE_FOREIGN_KEYS = {
    "assets": "asset_id",
    "sessions": "session_id",
    "setups": "setup_id",
}
