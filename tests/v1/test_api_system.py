# tests/v1/test_api_system.py
"""Tests for health, configuration and sweep endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "ok"}


def test_root(client: TestClient) -> None:
    data = client.get("/").json()
    assert data["name"] == "Haven Forum Core"
    assert data["docs"] == "/docs"


def test_system_config(client: TestClient) -> None:
    r = client.get("/api/v1/system/config")
    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert "app" in data and "sweeps" in data and "notifications" in data
    assert data["notifications"]["reaction_batch_window_minutes"] == 15
    assert "database_url" not in str(data)


def test_manual_sweep_requires_admin(client: TestClient, moderator_headers, admin_headers) -> None:
    response = client.post("/api/v1/system/sweep", headers=moderator_headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post("/api/v1/system/sweep", headers=admin_headers)
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["failed_batches"] == 0
    assert data["warnings_expired"] == 0
