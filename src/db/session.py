# src/db/session.py
"""Database session factory and initialization."""

from pathlib import Path

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session

from src.db import models  # noqa: F401  (registers tables on SQLModel.metadata)


def make_engine(database_url: str) -> Engine:
    """Create an engine; local SQLite files get their parent directory created."""
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        db_path = database_url.replace("sqlite:///", "")
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if "sqlite" in database_url else {},
        echo=False,
    )


def create_db_and_tables(bind: Engine):
    """Create all tables if they don't exist."""
    SQLModel.metadata.create_all(bind)


def get_session(bind: Engine) -> Session:
    """Get a new database session."""
    return Session(bind)


def init_db(bind: Engine):
    """Initialize database on startup."""
    create_db_and_tables(bind)
