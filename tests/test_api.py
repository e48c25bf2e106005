"""HTTP tests for the JSON API and the dashboard form actions."""

from urllib.parse import parse_qs, urlparse

import pytest
from fastapi.testclient import TestClient

from lending.application import create_app
from lending.core.config import AppSettings


def _create(client, name="Ball", total=2):
    response = client.post("/api/v1/equipment", json={"name": name, "total": total})
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["X-Request-ID"]


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_create_and_list_equipment(client):
    created = _create(client, "Ball", 5)
    assert created["total"] == 5
    assert created["available"] == 5
    assert created["on_loan"] == 0

    response = client.get("/api/v1/equipment")
    assert response.status_code == 200
    assert [row["name"] for row in response.json()] == ["Ball"]


def test_create_signals_refresh(client):
    response = client.post("/api/v1/equipment", json={"name": "Net", "total": 1})
    assert response.headers["X-Lending-Refresh"] == "equipment,records"


def test_create_rejects_negative_total(client):
    response = client.post("/api/v1/equipment", json={"name": "Ball", "total": -1})
    assert response.status_code == 422
    assert response.json()["code"] == "validation_error"


def test_create_rejects_blank_name(client):
    response = client.post("/api/v1/equipment", json={"name": "   ", "total": 1})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "validation_error"
    assert body["message"] == "Equipment name is required"


def test_adjust_stock_endpoint(client):
    created = _create(client, "Ball", 5)

    response = client.post(f"/api/v1/equipment/{created['id']}/stock", json={"delta": -2})
    assert response.status_code == 200
    assert (response.json()["total"], response.json()["available"]) == (3, 3)

    rejected = client.post(f"/api/v1/equipment/{created['id']}/stock", json={"delta": -4})
    assert rejected.status_code == 422
    assert rejected.json()["code"] == "validation_error"


def test_adjust_stock_unknown_equipment(client):
    response = client.post("/api/v1/equipment/99/stock", json={"delta": 1})
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


def test_delete_equipment_endpoint(client):
    created = _create(client)

    response = client.delete(f"/api/v1/equipment/{created['id']}")
    assert response.status_code == 200
    assert response.json() == {"status": "deleted"}

    missing = client.delete(f"/api/v1/equipment/{created['id']}")
    assert missing.status_code == 404


def test_borrow_return_flow(client):
    created = _create(client, "Ball", 1)

    borrowed = client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]})
    assert borrowed.status_code == 201
    record = borrowed.json()
    assert record["status"] == "ACTIVE"
    assert record["equipment"]["available"] == 0

    out_of_stock = client.post("/api/v1/records", json={"user_name": "bob", "equipment_id": created["id"]})
    assert out_of_stock.status_code == 409
    assert out_of_stock.json() == {"code": "out_of_stock", "message": "Out of stock", "details": {"equipment_id": created["id"]}}

    returned = client.post(f"/api/v1/records/{record['id']}/return")
    assert returned.status_code == 200
    body = returned.json()
    assert body["status"] == "returned"
    assert body["record"]["status"] == "RETURNED"
    assert body["record"]["return_date"]
    assert body["record"]["equipment"]["available"] == 1

    again = client.post(f"/api/v1/records/{record['id']}/return")
    assert again.json() == {"status": "unchanged", "record": None}
    assert "X-Lending-Refresh" not in again.headers


def test_list_records_includes_equipment(client):
    created = _create(client, "Net", 2)
    client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]})

    rows = client.get("/api/v1/records").json()
    assert len(rows) == 1
    assert rows[0]["equipment"]["name"] == "Net"


def test_clear_history_endpoint(client):
    created = _create(client, "Ball", 2)
    client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]})

    response = client.delete("/api/v1/records")
    assert response.json() == {"status": "cleared", "deleted": 1, "reconciled": False}
    assert client.get("/api/v1/records").json() == []
    assert client.get("/api/v1/equipment").json()[0]["available"] == 1


def test_clear_history_reconcile_query(client):
    created = _create(client, "Ball", 2)
    client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]})

    response = client.delete("/api/v1/records", params={"reconcile": "true"})
    assert response.json()["reconciled"] is True
    assert client.get("/api/v1/equipment").json()[0]["available"] == 2


def test_dashboard_renders_tabs(client):
    _create(client, "Tripod", 1)

    response = client.get("/borrow")
    assert response.status_code == 200
    assert "Tripod" in response.text
    assert response.headers["Cache-Control"] == "no-store"

    history = client.get("/borrow", params={"tab": "history"})
    assert "No history." in history.text


def test_dashboard_root_redirects(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/borrow"


def test_dashboard_borrow_form_redirects_back(client):
    created = _create(client, "Tripod", 1)

    response = client.post(
        "/borrow/records",
        data={"user_name": "alice", "equipment_id": str(created["id"])},
        follow_redirects=False,
    )
    assert response.status_code == 303
    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query["tab"] == ["borrow"]
    assert "error" not in query

    failed = client.post(
        "/borrow/records",
        data={"user_name": "bob", "equipment_id": str(created["id"])},
        follow_redirects=False,
    )
    query = parse_qs(urlparse(failed.headers["location"]).query)
    assert query["error"] == ["Out of stock"]

    page = client.get(failed.headers["location"])
    assert "Out of stock" in page.text
    assert "alice" in page.text


def test_dashboard_equipment_forms(client):
    response = client.post("/borrow/equipment", data={"name": "Cone", "total": "3"}, follow_redirects=False)
    assert response.status_code == 303
    item = client.get("/api/v1/equipment").json()[0]
    assert item["available"] == 3

    client.post(f"/borrow/equipment/{item['id']}/stock", data={"delta": "-1"})
    assert client.get("/api/v1/equipment").json()[0]["total"] == 2

    bad = client.post("/borrow/equipment", data={"name": "Cone", "total": "lots"}, follow_redirects=False)
    assert "error" in parse_qs(urlparse(bad.headers["location"]).query)

    client.post(f"/borrow/equipment/{item['id']}/delete")
    assert client.get("/api/v1/equipment").json() == []


def test_dashboard_return_and_clear(client):
    created = _create(client, "Cone", 1)
    record = client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]}).json()

    client.post(f"/borrow/records/{record['id']}/return")
    assert client.get("/api/v1/equipment").json()[0]["available"] == 1

    response = client.post("/borrow/history/clear", follow_redirects=False)
    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query["notice"] == ["Cleared 1 records"]
    assert client.get("/api/v1/records").json() == []


def test_out_of_range_numbers_are_validation_errors(client):
    too_big = client.post("/api/v1/equipment", json={"name": "Ball", "total": 2**70})
    assert too_big.status_code == 422
    assert too_big.json()["code"] == "validation_error"

    created = _create(client, "Ball", 2)
    stock = client.post(f"/api/v1/equipment/{created['id']}/stock", json={"delta": 2**70})
    assert stock.status_code == 422

    borrow = client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": 2**70})
    assert borrow.status_code == 422

    missing = client.post(f"/api/v1/equipment/{2**70}/stock", json={"delta": 1})
    assert missing.status_code == 404
    assert client.get("/api/v1/equipment").json()[0]["total"] == 2


def test_dashboard_rejects_out_of_range_numbers(client):
    response = client.post("/borrow/equipment", data={"name": "Cone", "total": str(2**70)}, follow_redirects=False)
    assert response.status_code == 303
    assert "error" in parse_qs(urlparse(response.headers["location"]).query)
    assert client.get("/api/v1/equipment").json() == []

    borrow = client.post(
        "/borrow/records",
        data={"user_name": "alice", "equipment_id": str(2**70)},
        follow_redirects=False,
    )
    assert parse_qs(urlparse(borrow.headers["location"]).query)["error"] == ["Out of stock"]


@pytest.fixture()
def reconciling_client(engine):
    settings = AppSettings(DB_URL="sqlite://", TZ="UTC", LOG_JSON=False, RECONCILE_ON_CLEAR_HISTORY=True)
    with TestClient(create_app(settings, engine=engine)) as test_client:
        yield test_client


def test_dashboard_clear_checkbox_follows_setting(client, reconciling_client):
    plain = client.get("/borrow", params={"tab": "history"})
    assert 'value="true" checked' not in plain.text

    page = reconciling_client.get("/borrow", params={"tab": "history"})
    assert 'value="true" checked' in page.text


def test_dashboard_unchecked_clear_does_not_reconcile(reconciling_client):
    created = _create(reconciling_client, "Cone", 2)
    reconciling_client.post("/api/v1/records", json={"user_name": "alice", "equipment_id": created["id"]})

    reconciling_client.post("/borrow/history/clear", data={})
    assert reconciling_client.get("/api/v1/equipment").json()[0]["available"] == 1

    reconciling_client.post("/api/v1/records", json={"user_name": "bob", "equipment_id": created["id"]})
    reconciling_client.post("/borrow/history/clear", data={"reconcile": "true"})
    assert reconciling_client.get("/api/v1/equipment").json()[0]["available"] == 1
    assert reconciling_client.get("/api/v1/records").json() == []


def test_dashboard_pages_carry_content_security_policy(client):
    page = client.get("/borrow")
    policy = page.headers["Content-Security-Policy"]
    assert "default-src 'none'" in policy
    assert "style-src 'self' /static/" in policy
    assert "form-action 'self'" in policy
    assert page.headers["X-Frame-Options"] == "DENY"

    api = client.get("/api/v1/equipment")
    assert api.headers["X-Content-Type-Options"] == "nosniff"
    assert "Content-Security-Policy" not in api.headers

    docs = client.get("/docs")
    assert "Content-Security-Policy" not in docs.headers
