# tests/test_health.py
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from workpunch_relay.api.middleware import server_state


def test_health_responds(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"status": "ok"}


def test_root_reports_request_counter(client: TestClient) -> None:
    before = server_state.request_count

    r = client.get("/")

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["status"] == "running"
    assert data["requestCount"] == before + 1
    assert r.headers["X-Request-ID"]


def test_unhandled_error_becomes_internal_error(app: FastAPI) -> None:
    @app.get("/api/v1/_boom", include_in_schema=False)
    async def boom() -> None:
        raise RuntimeError("kaboom")

    try:
        with TestClient(app, raise_server_exceptions=False) as client:
            r = client.get("/api/v1/_boom", headers={"X-Request-ID": "req-500"})
            assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
            assert r.json() == {"error": "InternalError", "message": "Internal server error"}
            assert r.headers["X-Request-ID"] == "req-500"

            # The process keeps serving after the failure.
            assert client.get("/health").status_code == status.HTTP_200_OK
    finally:
        app.router.routes[:] = [
            route for route in app.router.routes if getattr(route, "path", None) != "/api/v1/_boom"
        ]
