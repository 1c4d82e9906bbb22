"""
Unit tests for middleware components.
"""

from __future__ import annotations

import pytest
import structlog
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from pixiedvc.middleware import RequestIDMiddleware


@pytest.fixture
def client() -> TestClient:
    """Test client for a bare app carrying only RequestIDMiddleware."""
    app = FastAPI()
    app.add_middleware(RequestIDMiddleware)

    @app.get("/test")
    async def test_endpoint(request: Request) -> dict[str, str]:
        context = structlog.contextvars.get_contextvars()
        return {
            "request_id": request.state.request_id,
            "bound_request_id": context.get("request_id"),
            "bound_path": context.get("path"),
        }

    return TestClient(app)


@pytest.mark.unit
def test_request_id_generated_and_returned(client: TestClient) -> None:
    response = client.get("/test")

    assert response.status_code == 200
    request_id = response.headers["X-Request-ID"]
    assert len(request_id) == 36
    assert response.json()["request_id"] == request_id


@pytest.mark.unit
def test_incoming_request_id_is_honored(client: TestClient) -> None:
    response = client.get("/test", headers={"X-Request-ID": "cron-run-42"})

    assert response.headers["X-Request-ID"] == "cron-run-42"
    assert response.json()["request_id"] == "cron-run-42"


@pytest.mark.unit
def test_request_id_bound_into_log_context(client: TestClient) -> None:
    """Log events emitted inside the handler carry request_id and path."""
    response = client.get("/test", headers={"X-Request-ID": "abc"})

    body = response.json()
    assert body["bound_request_id"] == "abc"
    assert body["bound_path"] == "/test"


@pytest.mark.unit
def test_each_request_gets_its_own_id(client: TestClient) -> None:
    first = client.get("/test").headers["X-Request-ID"]
    second = client.get("/test").headers["X-Request-ID"]

    assert first != second
