from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/api/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    resp = client.get("/api/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_auth_errors_carry_request_id():
    resp = client.get("/api/data", params={"type": "outcomes"}, headers={"X-Request-ID": "req-auth-1"})

    assert resp.status_code == 401
    assert resp.headers.get("X-Request-ID") == "req-auth-1"
    assert resp.json()["error"]["request_id"] == "req-auth-1"
