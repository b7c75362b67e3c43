# src/api/app.py
"""
Flask application factory for the journal JSON API.

Read endpoints are served through the response cache; mutations go through
the action classes, which invalidate it.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from flask import Flask, current_app, g, jsonify, request
from sqlalchemy.engine import Engine

from src.actions.journal_actions import JournalActions
from src.actions.reference_actions import ReferenceActions
from src.actions.trade_actions import TradeActions
from src.cache.response_cache import ResponseCache
from src.config import Settings, load_settings
from src.db.session import get_session, init_db, make_engine
from src.errors import NotAuthenticatedError, NotFoundError

logger = structlog.get_logger(__name__)

EXTENSION_KEY = "trading_journal"


@dataclass
class Services:
    """Per-app collaborators shared by all requests."""

    settings: Settings
    engine: Engine
    cache: ResponseCache
    journals: JournalActions
    references: ReferenceActions
    trades: TradeActions


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
    cache: Optional[ResponseCache] = None,
) -> Flask:
    """Application factory."""
    settings = settings or load_settings()
    secret_key = settings.require("secret_key")

    app = Flask(__name__)
    app.config.update(
        SECRET_KEY=secret_key,
        TOKEN_MAX_AGE=settings.token_max_age,
        MAX_CONTENT_LENGTH=10 * 1024 * 1024,
    )

    engine = engine or make_engine(settings.database_url)
    init_db(engine)
    cache = cache or ResponseCache(capacity=settings.cache_capacity)
    app.extensions[EXTENSION_KEY] = Services(
        settings=settings,
        engine=engine,
        cache=cache,
        journals=JournalActions(cache),
        references=ReferenceActions(cache),
        trades=TradeActions(cache),
    )

    from src.api.routes import api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.before_request
    def bind_request_context():
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=str(uuid.uuid4()),
            method=request.method,
            path=request.path,
        )

    @app.teardown_appcontext
    def close_db_session(exc):
        db = g.pop("db", None)
        if db is not None:
            db.close()

    @app.errorhandler(NotAuthenticatedError)
    def not_authenticated(error):
        return jsonify({"error": str(error)}), 401

    @app.errorhandler(NotFoundError)
    def not_found(error):
        return jsonify({"error": str(error)}), 404

    @app.errorhandler(404)
    def unknown_route(error):
        return jsonify({"error": "Not found."}), 404

    @app.errorhandler(500)
    def internal_error(error):
        db = g.get("db")
        if db is not None:
            db.rollback()
        logger.error("unhandled_error", error=str(error))
        return jsonify({"error": "Internal server error."}), 500

    @app.route("/api/health")
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({"status": "healthy", "cache": cache.stats()})

    logger.info("api_created", database_url=settings.database_url.split("@")[-1])
    return app


def services() -> Services:
    return current_app.extensions[EXTENSION_KEY]


def db_session():
    """Request-scoped SQLModel session, closed on teardown."""
    if "db" not in g:
        g.db = get_session(services().engine)
    return g.db
