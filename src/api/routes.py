# src/api/routes.py
"""
Journal API blueprint.

Auth comes from an `Authorization: Bearer <token>` header or the Flask
session cookie set by sign-in.
"""

import io
import json
from datetime import date
from typing import Callable, Optional

import structlog
from flask import Blueprint, Response, current_app, jsonify, request, send_file, session

from src.actions.results import ActionResult
from src.api.app import db_session, services
from src.auth import AuthManager
from src.cache.response_cache import (
    JOURNALS,
    REFERENCE_DATA,
    STATS,
    TRADES,
    CacheConfig,
    CacheRequest,
    CachedResponse,
)
from src.domain.metrics import MetricsCalculator
from src.errors import NotAuthenticatedError
from src.io.spreadsheet import SpreadsheetExporter, SpreadsheetImporter

logger = structlog.get_logger(__name__)

api_bp = Blueprint("api", __name__)

STATUS_BY_KIND = {
    "validation": 400,
    "auth": 401,
    "not_found": 404,
    "conflict": 409,
    "backend": 500,
}

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


# --------------------------------------------------------------------- helpers

def current_user_id() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return AuthManager.resolve_token(
            current_app.config["SECRET_KEY"],
            header[7:].strip(),
            current_app.config["TOKEN_MAX_AGE"],
        )
    return session.get("user_id")


def require_user_id() -> str:
    user_id = current_user_id()
    if not user_id:
        raise NotAuthenticatedError()
    return user_id


def respond(result: ActionResult, success_status: int = 200):
    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STATUS_BY_KIND.get(result.kind, 400)


def payload() -> dict:
    return request.get_json(silent=True) or {}


def cached_json(config: CacheConfig, loader: Callable[[], object]):
    """Serve from the response cache, filling it from `loader` on a miss."""
    user_id = require_user_id()
    cache = services().cache
    cache_request = CacheRequest(
        path=request.path,
        query=request.query_string.decode("utf-8"),
        owner_id=user_id,
        headers=dict(request.headers),
    )

    cached = cache.get(cache_request, config)
    if cached is None:
        token = cache.generation(config)
        cached = cache.set(cache_request, loader(), config, generation=token)
    return to_response(cached)


def to_response(cached: CachedResponse) -> Response:
    if cached.status == 304:
        response = Response(status=304)
    else:
        response = jsonify(cached.body)
    for name, value in cached.headers.items():
        response.headers[name] = value
    return response


def parse_date_arg(name: str) -> Optional[date]:
    value = request.args.get(name)
    if not value:
        return None
    return date.fromisoformat(value)


# ------------------------------------------------------------------------ auth

@api_bp.route("/auth/sign-up", methods=["POST"])
def sign_up():
    result = AuthManager.sign_up(db_session(), payload())
    if result.success:
        result.data["token"] = AuthManager.issue_token(
            current_app.config["SECRET_KEY"], result.data["user_id"]
        )
        session["user_id"] = result.data["user_id"]
    return respond(result, 201)


@api_bp.route("/auth/sign-in", methods=["POST"])
def sign_in():
    result = AuthManager.sign_in(db_session(), payload())
    if result.success:
        result.data["token"] = AuthManager.issue_token(
            current_app.config["SECRET_KEY"], result.data["user_id"]
        )
        session["user_id"] = result.data["user_id"]
    return respond(result)


@api_bp.route("/auth/sign-out", methods=["POST"])
def sign_out():
    session.clear()
    return jsonify({"success": True})


# -------------------------------------------------------------------- journals

@api_bp.route("/journals", methods=["GET"])
def list_journals():
    user_id = require_user_id()
    return cached_json(
        JOURNALS,
        lambda: {"journals": services().journals.get_journals_with_stats(db_session(), user_id)},
    )


@api_bp.route("/journals", methods=["POST"])
def create_journal():
    result = services().journals.create_journal(db_session(), current_user_id(), payload())
    return respond(result, 201)


@api_bp.route("/journals/<journal_id>", methods=["GET"])
def get_journal(journal_id):
    user_id = require_user_id()
    return jsonify({"journal": services().journals.get_journal(db_session(), user_id, journal_id)})


@api_bp.route("/journals/<journal_id>", methods=["PATCH"])
def update_journal(journal_id):
    result = services().journals.update_journal(db_session(), current_user_id(), journal_id, payload())
    return respond(result)


@api_bp.route("/journals/<journal_id>", methods=["DELETE"])
def delete_journal(journal_id):
    result = services().journals.delete_journal(db_session(), current_user_id(), journal_id)
    return respond(result)


# ------------------------------------------------------------ journal resources

@api_bp.route("/journals/<journal_id>/<any(assets, sessions, setups):kind>", methods=["GET"])
def list_items(journal_id, kind):
    user_id = require_user_id()
    return cached_json(
        REFERENCE_DATA,
        lambda: {kind: services().references.get_items(db_session(), user_id, journal_id, kind)},
    )


@api_bp.route("/journals/<journal_id>/<any(assets, sessions, setups):kind>", methods=["POST"])
def add_item(journal_id, kind):
    result = services().references.add_item(db_session(), current_user_id(), journal_id, kind, payload())
    return respond(result, 201)


@api_bp.route("/journals/<journal_id>/<any(assets, sessions, setups):kind>/<item_id>", methods=["DELETE"])
def delete_item(journal_id, kind, item_id):
    result = services().references.delete_item(db_session(), current_user_id(), journal_id, kind, item_id)
    return respond(result)


@api_bp.route("/journals/<journal_id>/trades", methods=["GET"])
def list_trades(journal_id):
    user_id = require_user_id()
    try:
        date_from = parse_date_arg("dateFrom")
        date_to = parse_date_arg("dateTo")
    except ValueError:
        return jsonify({"error": "Invalid date filter; expected YYYY-MM-DD."}), 400

    page = request.args.get("page", type=int)
    limit = request.args.get("limit", type=int)
    trades = services().trades

    if page is not None or limit is not None:
        def load():
            result = trades.get_trades_page(
                db_session(), user_id, journal_id,
                page=page or 1, limit=limit or 50,
                date_from=date_from, date_to=date_to,
            )
            return {
                "trades": result["trades"],
                "total": result["total"],
                "page": result["page"],
                "limit": result["limit"],
                "hasMore": result["has_more"],
            }
    else:
        def load():
            return {
                "trades": trades.get_trades(
                    db_session(), user_id, journal_id, date_from=date_from, date_to=date_to
                )
            }

    return cached_json(TRADES, load)


@api_bp.route("/journals/<journal_id>/trades", methods=["POST"])
def add_trade(journal_id):
    result = services().trades.add_trade(db_session(), current_user_id(), journal_id, payload())
    return respond(result, 201)


@api_bp.route("/journals/<journal_id>/trades/<trade_id>", methods=["PATCH"])
def update_trade(journal_id, trade_id):
    result = services().trades.update_trade(db_session(), current_user_id(), journal_id, trade_id, payload())
    return respond(result)


@api_bp.route("/journals/<journal_id>/trades/<trade_id>", methods=["DELETE"])
def delete_trade(journal_id, trade_id):
    result = services().trades.delete_trade(db_session(), current_user_id(), journal_id, trade_id)
    return respond(result)


@api_bp.route("/journals/<journal_id>/stats", methods=["GET"])
def journal_stats(journal_id):
    user_id = require_user_id()

    def load():
        trades = services().trades.get_trades(db_session(), user_id, journal_id)
        return {
            "overview": MetricsCalculator.get_overview_stats(trades),
            "monthly": json.loads(MetricsCalculator.get_monthly_pnl(trades).to_json(orient="records")),
            "outcomes": MetricsCalculator.get_outcome_distribution(trades),
        }

    return cached_json(STATS, load)


# ---------------------------------------------------------------- interchange

@api_bp.route("/journals/<journal_id>/export", methods=["GET"])
def export_trades(journal_id):
    user_id = require_user_id()
    journal = services().journals.get_journal(db_session(), user_id, journal_id)
    trades = services().trades.get_trades(db_session(), user_id, journal_id)

    month = request.args.get("month")  # YYYY-MM
    if month:
        trades = [t for t in trades if t["trade_date"].startswith(month)]

    try:
        content = SpreadsheetExporter.export_bytes(trades)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    return send_file(
        io.BytesIO(content),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=SpreadsheetExporter.export_filename(journal["name"], month),
    )


@api_bp.route("/journals/<journal_id>/import", methods=["POST"])
def import_trades(journal_id):
    user_id = require_user_id()
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file selected."}), 400
    if not upload.filename.lower().endswith((".xlsx", ".xls")):
        return jsonify({"error": "Only .xlsx and .xls files are supported."}), 400

    db = db_session()
    refs = services().references
    lists = {
        kind: refs.get_items(db, user_id, journal_id, kind)
        for kind in ("assets", "sessions", "setups")
    }

    try:
        summary = SpreadsheetImporter.import_file(
            upload.read(),
            upload.filename,
            lists,
            lambda values: services().trades.add_trade(db, user_id, journal_id, values),
        )
    except ValueError as exc:
        logger.warning("spreadsheet_unreadable", error=str(exc))
        return jsonify({"error": "Could not read the spreadsheet."}), 400

    return jsonify(
        {
            "success": summary.failed == 0,
            "imported": summary.succeeded,
            "failed": summary.failed,
            "skipped": summary.errors,
            "warnings": summary.warnings,
            "failures": summary.failures,
        }
    )
