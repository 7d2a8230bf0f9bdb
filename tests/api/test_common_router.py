"""Tests for common router."""

from fastapi.testclient import TestClient


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["monitoring"] is False
    assert "timestamp" in data


def test_health_response_model() -> None:
    """Test health response model structure."""
    from api.routers.common import HealthResponse

    response = HealthResponse(
        status="healthy",
        version="1.0.0",
        timestamp="2024-01-01T00:00:00",
        monitoring=True,
    )

    assert response.status == "healthy"
    assert response.monitoring is True
