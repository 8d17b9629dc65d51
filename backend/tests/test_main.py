"""
Tests for application wiring: health checks, request IDs and error handlers.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from groceazy.api.deps import get_current_user, get_order_service
from groceazy.database.models import User, UserRole
from groceazy.main import app


@pytest.fixture
def client():
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestReadiness:
    @pytest.fixture(autouse=True)
    def engine(self):
        with patch("groceazy.main.get_engine", return_value=MagicMock()):
            yield

    def test_ready(self, client):
        with patch("groceazy.main.check_database_health", AsyncMock(return_value=True)):
            response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["database"] == "healthy"

    def test_not_ready(self, client):
        with patch("groceazy.main.check_database_health", AsyncMock(return_value=False)):
            response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"


class TestRequestId:
    def test_generated(self, client):
        response = client.get("/live")

        assert response.headers["X-Request-ID"]

    def test_propagated(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"


class TestErrorHandlers:
    def test_unexpected_error_is_500(self, client):
        user = User(name="Asha", email="asha@example.com", role=UserRole.CUSTOMER)
        reads = AsyncMock()
        reads.list_user_orders.side_effect = RuntimeError("connection reset")
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_order_service] = lambda: reads

        response = client.get("/api/v1/orders")

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal Server Error"
        assert "connection reset" not in body["message"]

    def test_validation_error_shape(self, client):
        app.dependency_overrides[get_current_user] = lambda: User(
            name="Staff", email="staff@groceazy.com", role=UserRole.ADMIN
        )
        app.dependency_overrides[get_order_service] = lambda: AsyncMock()

        response = client.get("/api/v1/orders/all", params={"page": 0})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Validation Error"
        assert body["details"][0]["loc"] == ["query", "page"]
