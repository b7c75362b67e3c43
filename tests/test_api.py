# tests/test_api.py
from __future__ import annotations

import io
from datetime import date

from openpyxl import load_workbook

from src.io.spreadsheet import SpreadsheetExporter


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_requires_authentication(client, test_journal):
    response = client.get(f"/api/journals/{test_journal.id}/trades")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Not authenticated."}


def test_rejects_forged_token(client, test_journal):
    response = client.get("/api/journals", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


def test_sign_up_and_session_cookie(client):
    response = client.post(
        "/api/auth/sign-up",
        json={"email": "new@example.com", "password": "password1", "confirm_password": "password1"},
    )
    assert response.status_code == 201
    assert response.get_json()["data"]["token"]

    response = client.get("/api/journals")
    assert response.status_code == 200
    assert response.get_json()["journals"] == []


def test_sign_in_failure(client, test_user):
    response = client.post(
        "/api/auth/sign-in", json={"email": "test@example.com", "password": "wrongpass"}
    )
    assert response.status_code == 401
    assert response.get_json()["error"] == "Invalid credentials."


def test_journal_crud(client, auth_headers):
    created = client.post("/api/journals", json={"name": "Swing"}, headers=auth_headers)
    assert created.status_code == 201
    journal_id = created.get_json()["data"]["id"]

    listed = client.get("/api/journals", headers=auth_headers).get_json()["journals"]
    assert [j["name"] for j in listed] == ["Swing"]
    assert listed[0]["trades_count"] == 0

    patched = client.patch(f"/api/journals/{journal_id}", json={"name": ""}, headers=auth_headers)
    assert patched.status_code == 400
    assert patched.get_json()["issues"][0]["path"] == ["name"]

    deleted = client.delete(f"/api/journals/{journal_id}", headers=auth_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/journals/{journal_id}", headers=auth_headers).status_code == 404


def test_trades_are_cached_and_invalidated(client, auth_headers, test_journal):
    url = f"/api/journals/{test_journal.id}/trades"

    first = client.get(url, headers=auth_headers)
    assert first.headers["X-Cache-Status"] == "MISS"
    second = client.get(url, headers=auth_headers)
    assert second.headers["X-Cache-Status"] == "HIT"
    assert second.headers["ETag"] == first.headers["ETag"]

    not_modified = client.get(url, headers={**auth_headers, "If-None-Match": first.headers["ETag"]})
    assert not_modified.status_code == 304

    created = client.post(
        url,
        json={"trade_date": "2025-01-15", "risk_input": "1%", "profit_loss_amount": "2,5"},
        headers=auth_headers,
    )
    assert created.status_code == 201

    refreshed = client.get(url, headers=auth_headers)
    assert refreshed.headers["X-Cache-Status"] == "MISS"
    assert len(refreshed.get_json()["trades"]) == 1


def test_trades_paging_and_bad_dates(client, auth_headers, test_journal, make_trade):
    for day in (1, 2, 3):
        make_trade(1.0, date(2025, 1, day))
    url = f"/api/journals/{test_journal.id}/trades"

    body = client.get(f"{url}?page=1&limit=2", headers=auth_headers).get_json()
    assert body["total"] == 3
    assert body["hasMore"] is True
    assert len(body["trades"]) == 2

    ranged = client.get(f"{url}?dateFrom=2025-01-02&dateTo=2025-01-02", headers=auth_headers).get_json()
    assert [t["trade_date"] for t in ranged["trades"]] == ["2025-01-02"]

    assert client.get(f"{url}?dateFrom=01/02/2025", headers=auth_headers).status_code == 400


def test_reference_delete_conflict(client, auth_headers, test_journal, reference_items, make_trade):
    asset = reference_items["asset"]
    make_trade(1.0, asset_id=asset.id)

    response = client.delete(
        f"/api/journals/{test_journal.id}/assets/{asset.id}", headers=auth_headers
    )
    assert response.status_code == 409
    assert "1 trade(s)" in response.get_json()["error"]


def test_add_reference_item(client, auth_headers, test_journal):
    url = f"/api/journals/{test_journal.id}/sessions"
    assert client.get(url, headers=auth_headers).get_json() == {"sessions": []}

    response = client.post(url, json={"name": "New York"}, headers=auth_headers)
    assert response.status_code == 201

    assert [s["name"] for s in client.get(url, headers=auth_headers).get_json()["sessions"]] == ["New York"]


def test_update_trade_without_changes(client, auth_headers, test_journal, make_trade):
    trade = make_trade(2.5, notes="keep")
    response = client.patch(
        f"/api/journals/{test_journal.id}/trades/{trade.id}",
        json={"notes": "keep"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "No changes detected.", "changed": False}


def test_stats(client, auth_headers, test_journal, make_trade):
    make_trade(2.5, date(2025, 1, 3))
    make_trade(-1.0, date(2025, 2, 3))
    make_trade(0, date(2025, 2, 4))

    body = client.get(f"/api/journals/{test_journal.id}/stats", headers=auth_headers).get_json()

    assert body["overview"]["total_trades"] == 3
    assert body["overview"]["win_rate"] == 50.0
    assert body["outcomes"] == {"TP": 1, "SL": 1, "BE": 1}
    assert [m["month"] for m in body["monthly"]] == ["2025-01", "2025-02"]


def test_export(client, auth_headers, test_journal, make_trade):
    make_trade(2.5, date(2025, 1, 3))

    response = client.get(f"/api/journals/{test_journal.id}/export?month=2025-01", headers=auth_headers)
    assert response.status_code == 200
    ws = load_workbook(io.BytesIO(response.data))["Trades"]
    assert ws["A2"].value == "2025-01-03"

    empty = client.get(f"/api/journals/{test_journal.id}/export?month=2024-06", headers=auth_headers)
    assert empty.status_code == 400
    assert empty.get_json()["error"] == "No trades to export for this period."


def test_import(client, auth_headers, test_journal, reference_items):
    content = SpreadsheetExporter.export_bytes(
        [
            {"trade_date": "2025-01-03", "asset_name": "NQ", "risk_input": "1%", "profit_loss_amount": 1.0},
            {"trade_date": "2025-01-04", "asset_name": "GC", "risk_input": "1%", "profit_loss_amount": 1.0},
        ]
    )
    response = client.post(
        f"/api/journals/{test_journal.id}/import",
        data={"file": (io.BytesIO(content), "trades.xlsx")},
        headers=auth_headers,
        content_type="multipart/form-data",
    )

    body = response.get_json()
    assert body["imported"] == 1
    assert body["failed"] == 0
    assert body["skipped"] == ['Row 3: asset "GC" not found in the journal']


def test_import_rejects_other_formats(client, auth_headers, test_journal):
    response = client.post(
        f"/api/journals/{test_journal.id}/import",
        data={"file": (io.BytesIO(b"a,b"), "trades.csv")},
        headers=auth_headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 400
