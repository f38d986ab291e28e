"""
tests/test_health.py -- GET /health and GET /health/db.
"""

from __future__ import annotations

from sqlalchemy.exc import OperationalError

from models import storage


def test_health_returns_ok(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["timestamp"]
    assert body["uptime"] >= 0


def test_health_no_auth_required(client):
    resp = client.get("/health", headers={})
    assert resp.status_code == 200


def test_health_db_connected(client):
    resp = client.get("/health/db")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"


def test_health_db_disconnected(client, monkeypatch):
    def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(storage, "ping", broken_ping)
    resp = client.get("/health/db")
    assert resp.status_code == 503
    body = resp.get_json()
    assert body["status"] == "error"
    assert body["database"] == "disconnected"


def test_uptime_counts_from_app_creation(app, client):
    app.extensions["started_at"] -= 100
    assert client.get("/health").get_json()["uptime"] >= 100
