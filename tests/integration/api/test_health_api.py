"""
Integration tests for health endpoints.
"""

import pytest

pytestmark = pytest.mark.integration


def test_health(client):
    """Test the liveness endpoint."""
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "license-server"}


@pytest.mark.django_db
def test_health_db(client):
    """Test the database check."""
    response = client.get("/health/db/")

    assert response.status_code == 200
    assert response.json()["database"] == "connected"


def test_health_cache(client):
    """Test the cache check."""
    response = client.get("/health/cache/")

    assert response.status_code == 200
    assert response.json()["cache"] == "connected"


@pytest.mark.django_db
def test_ready(client):
    """Test readiness with database and cache available."""
    response = client.get("/ready/")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "degraded": False,
        "checks": {"database": True, "cache": True},
    }


@pytest.mark.django_db
def test_openapi_schema(client):
    """Test the OpenAPI schema documents the license endpoints."""
    response = client.get("/api/schema/")

    assert response.status_code == 200
    assert "/api/v1/license/activate" in response.content.decode()
