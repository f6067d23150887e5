"""Tests for system and diagnostics endpoints."""

from fastapi import status
from fastapi.testclient import TestClient


def test_system_health_checks_database(client: TestClient) -> None:
    r = client.get("/api/v1/system/health")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["status"] == "healthy"
    assert data["components"]["database"] == "healthy"


def test_system_metrics_reports_counters(client: TestClient, lock_manager) -> None:
    lock_manager.acquire("alice@acme.com")

    r = client.get("/api/v1/system/metrics")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["server"]["requestCount"] >= 1
    assert data["locks"] == {"held": 1, "stale_after_seconds": 3600}
    assert {"requests", "errors", "errors_by_kind", "endpoints"} <= set(data["salesforce"])
