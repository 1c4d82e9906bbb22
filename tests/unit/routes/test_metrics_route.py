"""
Unit tests for the metrics and health endpoints.
"""

from __future__ import annotations

from unittest.mock import Mock, patch

import pytest
from fastapi.testclient import TestClient

from pixiedvc.main import app
from pixiedvc.metrics import bookings_evaluated, matches_created, owner_emails


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    return TestClient(app)


@pytest.mark.unit
def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    response = client.get("/metrics")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]


@pytest.mark.unit
def test_metrics_endpoint_contains_matching_metrics(client: TestClient) -> None:
    matches_created.inc()
    bookings_evaluated.labels(decision="matched").inc()
    owner_emails.labels(status="skipped").inc()

    content = client.get("/metrics").text

    assert "pixiedvc_matches_created_total" in content
    assert 'pixiedvc_bookings_evaluated_total{decision="matched"}' in content
    assert 'pixiedvc_owner_emails_total{status="skipped"}' in content
    assert "pixiedvc_match_run_duration_seconds" in content


@pytest.mark.unit
def test_health_does_not_touch_database(client: TestClient) -> None:
    with patch("pixiedvc.routes.health.check_engine_health") as mock_health:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    mock_health.assert_not_called()


@pytest.mark.unit
@patch("pixiedvc.routes.health.check_engine_health")
def test_ready_reports_database_state(mock_health: Mock, client: TestClient) -> None:
    mock_health.return_value = True
    assert client.get("/ready").json() == {"status": "ready", "checks": {"database": "ok"}}

    mock_health.return_value = False
    response = client.get("/ready")
    assert response.status_code == 503
    assert response.json()["checks"]["database"] == "failed"
