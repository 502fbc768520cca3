"""Tests for the strategy data API routes.

Covers authentication, validation, persistence and rate limiting of
``/api/data`` through the full application stack.
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.routes.data import get_data_store
from app.core.app_factory import create_app
from app.core.rate_limit import get_rate_limit_preset, get_rate_limiter
from app.services.data_store import StrategyDataStore


@pytest.fixture
def store(tmp_path: Path) -> StrategyDataStore:
    return StrategyDataStore(tmp_path)


@pytest.fixture
def client(store: StrategyDataStore) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_data_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}


class TestReadData:
    def test_requires_api_key(self, client: TestClient) -> None:
        response = client.get("/api/data", params={"type": "outcomes"})
        assert response.status_code == 401

    def test_returns_document(self, client: TestClient, store: StrategyDataStore, headers) -> None:
        store.write("outcomes", {"items": [1, 2]})

        response = client.get("/api/data", params={"type": "outcomes"}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {"items": [1, 2]}
        assert response.headers["X-RateLimit-Limit"] == str(get_rate_limit_preset("DATA_OPS").max_requests)

    def test_all_returns_every_type(self, client: TestClient, store: StrategyDataStore, headers) -> None:
        store.write("revenue", {"target": 5})

        response = client.get("/api/data", params={"type": "all"}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "outcomes": None,
            "revenue": {"target": 5},
            "priorities": None,
            "history": None,
        }

    def test_missing_document_is_404(self, client: TestClient, headers) -> None:
        response = client.get("/api/data", params={"type": "history"}, headers=headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "data_not_found"

    def test_invalid_type_is_400(self, client: TestClient, headers) -> None:
        response = client.get("/api/data", params={"type": "secrets"}, headers=headers)

    def test_missing_type_is_400(self, client: TestClient, headers) -> None:
        response = client.get("/api/data", headers=headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_type"
        assert "Type must be one of: outcomes, revenue, priorities, history, all" == error["message"]

        assert response.status_code == 400
        assert "Type must be one of" in response.json()["error"]["message"]


class TestSaveData:
    def test_saves_document(self, client: TestClient, store: StrategyDataStore, headers) -> None:
        response = client.post(
            "/api/data",
            json={"type": "priorities", "data": [{"title": "Digital twin rollout"}]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Data saved successfully"}
        assert store.read("priorities") == [{"title": "Digital twin rollout"}]

    def test_rejects_all_type(self, client: TestClient, headers) -> None:
        response = client.post("/api/data", json={"type": "all", "data": {}}, headers=headers)
        assert response.status_code == 400

    def test_rejects_missing_data(self, client: TestClient, headers) -> None:
        response = client.post("/api/data", json={"type": "outcomes"}, headers=headers)

    @pytest.mark.parametrize("data", [0, False, ""])
    def test_rejects_falsy_data(self, client: TestClient, headers, data) -> None:
        response = client.post("/api/data", json={"type": "outcomes", "data": data}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "missing_data"

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "missing_data"


class TestRateLimiting:
    def test_returns_429_after_quota(self, client: TestClient, store: StrategyDataStore, headers) -> None:
        store.write("outcomes", {"a": 1})
        limit = get_rate_limit_preset("DATA_OPS").max_requests

        for _ in range(limit):
            ok = client.get("/api/data", params={"type": "outcomes"}, headers=headers)
            assert ok.status_code == 200

        response = client.get("/api/data", params={"type": "outcomes"}, headers=headers)

        assert response.status_code == 429
        error = response.json()["error"]
        assert error["code"] == "rate_limit_exceeded"
        assert error["retryAfter"] >= 1
        assert f"Try again in {error['retryAfter']} seconds." in error["message"]
        assert response.headers["Retry-After"] == str(error["retryAfter"])
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_read_and_write_have_separate_quotas(
        self, client: TestClient, store: StrategyDataStore, headers
    ) -> None:
        store.write("outcomes", {"a": 1})
        limit = get_rate_limit_preset("DATA_OPS").max_requests

        for _ in range(limit):
            client.get("/api/data", params={"type": "outcomes"}, headers=headers)

        response = client.post("/api/data", json={"type": "outcomes", "data": {"a": 2}}, headers=headers)
        assert response.status_code == 200

    def test_clients_have_separate_quotas(self, client: TestClient, store: StrategyDataStore, headers) -> None:
        store.write("outcomes", {"a": 1})
        limit = get_rate_limit_preset("DATA_OPS").max_requests
        first = {**headers, "X-Forwarded-For": "203.0.113.1"}
        second = {**headers, "X-Forwarded-For": "203.0.113.2"}

        for _ in range(limit):
            client.get("/api/data", params={"type": "outcomes"}, headers=first)

        assert client.get("/api/data", params={"type": "outcomes"}, headers=first).status_code == 429
        assert client.get("/api/data", params={"type": "outcomes"}, headers=second).status_code == 200
        assert get_rate_limiter().get_status("data-read", "203.0.113.1").count == limit

    def test_disabled_rate_limit(self, client: TestClient, store: StrategyDataStore, headers, monkeypatch) -> None:
        from app.core.config import settings

        monkeypatch.setattr(settings.app, "rate_limit_enabled", False)
        store.write("outcomes", {"a": 1})
        limit = get_rate_limit_preset("DATA_OPS").max_requests

        for _ in range(limit + 2):
            response = client.get("/api/data", params={"type": "outcomes"}, headers=headers)
            assert response.status_code == 200


def test_health_is_public(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
