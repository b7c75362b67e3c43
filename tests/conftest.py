# tests/conftest.py
"""Test configuration and fixtures."""

from datetime import date

import pytest
from sqlmodel import Session, create_engine, SQLModel
from sqlmodel.pool import StaticPool

from src.auth import AuthManager
from src.cache.response_cache import ResponseCache
from src.config import Settings
from src.db.models import Asset, Journal, Setup, Trade, TradingSession, User


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(name="engine")
def engine_fixture():
    """Create in-memory SQLite test database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="test_user")
def test_user_fixture(session: Session):
    """Create test user."""
    user = User(
        email="test@example.com",
        hashed_password=AuthManager.hash_password("testpass123"),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(name="test_journal")
def test_journal_fixture(session: Session, test_user: User):
    """Create test journal."""
    journal = Journal(user_id=test_user.id, name="Futures", description="NQ and ES")
    session.add(journal)
    session.commit()
    session.refresh(journal)
    return journal


@pytest.fixture(name="reference_items")
def reference_items_fixture(session: Session, test_user: User, test_journal: Journal):
    """One asset, session and setup in the test journal."""
    scope = {"user_id": test_user.id, "journal_id": test_journal.id}
    asset = Asset(name="NQ", **scope)
    trading_session = TradingSession(name="London", **scope)
    setup = Setup(name="Breakout", **scope)
    session.add_all([asset, trading_session, setup])
    session.commit()
    for item in (asset, trading_session, setup):
        session.refresh(item)
    return {"asset": asset, "session": trading_session, "setup": setup}


@pytest.fixture(name="make_trade")
def make_trade_fixture(session: Session, test_user: User, test_journal: Journal):
    """Factory inserting trades into the test journal."""

    def make(pnl: float, trade_date: date = date(2025, 1, 15), **fields) -> Trade:
        trade = Trade(
            user_id=test_user.id,
            journal_id=test_journal.id,
            trade_date=trade_date,
            risk_input=fields.pop("risk_input", "1%"),
            profit_loss_amount=pnl,
            **fields,
        )
        session.add(trade)
        session.commit()
        session.refresh(trade)
        return trade

    return make


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock()


@pytest.fixture(name="cache")
def cache_fixture(clock):
    return ResponseCache(capacity=2000, clock=clock)


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(
        database_url="sqlite:///:memory:",
        secret_key="test-secret",
        api_url="http://testserver",
    )


@pytest.fixture(name="app")
def app_fixture(settings, engine, cache):
    from src.api.app import create_app

    app = create_app(settings, engine=engine, cache=cache)
    app.config.update(TESTING=True)
    return app


@pytest.fixture(name="client")
def client_fixture(app):
    return app.test_client()


@pytest.fixture(name="auth_headers")
def auth_headers_fixture(test_user: User, settings: Settings):
    token = AuthManager.issue_token(settings.secret_key, test_user.id)
    return {"Authorization": f"Bearer {token}"}
