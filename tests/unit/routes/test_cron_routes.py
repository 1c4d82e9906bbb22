"""
Unit tests for the scheduled matching endpoint.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import MagicMock, Mock, patch

import pytest
from fastapi.testclient import TestClient

from pixiedvc.dependencies import get_db_engine
from pixiedvc.main import app
from pixiedvc.schemas.matching import MatchRunError, MatchRunResult

CRON_HEADERS = {"x-cron-secret": "test-cron-secret"}


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    monkeypatch.setattr("pixiedvc.config.CRON_SECRET", "test-cron-secret")
    app.dependency_overrides[get_db_engine] = lambda: MagicMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.mark.unit
def test_cron_requires_secret(client: TestClient) -> None:
    assert client.post("/cron/match-bookings").status_code == 401
    assert (
        client.post("/cron/match-bookings", headers={"x-cron-secret": "wrong"}).status_code == 401
    )


@pytest.mark.unit
@patch("pixiedvc.routes.cron.run_match_bookings")
@patch("pixiedvc.routes.cron.expire_stale_matches")
def test_cron_expires_then_runs_live(
    mock_expire: Mock, mock_run: Mock, client: TestClient
) -> None:
    """Stale matches are released before the live run so their points are reusable."""
    calls = []
    mock_expire.side_effect = lambda engine: calls.append("expire") or 2
    mock_run.side_effect = lambda engine, **kwargs: calls.append("run") or MatchRunResult(
        ok=True, matches_created=0, dry_run=False
    )

    response = client.post("/cron/match-bookings", headers=CRON_HEADERS)

    assert response.status_code == 200
    assert calls == ["expire", "run"]
    body = response.json()
    assert body["expired"] == 2
    assert body["result"]["dry_run"] is False
    kwargs = mock_run.call_args.kwargs
    assert kwargs["dry_run"] is False
    assert kwargs["send_emails"] is True


@pytest.mark.unit
@patch("pixiedvc.routes.cron.run_match_bookings")
@patch("pixiedvc.routes.cron.expire_stale_matches")
def test_cron_run_errors_return_500(mock_expire: Mock, mock_run: Mock, client: TestClient) -> None:
    mock_expire.return_value = 0
    mock_run.return_value = MatchRunResult(
        ok=False,
        matches_created=0,
        dry_run=False,
        errors=[MatchRunError(booking_id="all", step="load_bookings", message="down")],
    )

    response = client.post("/cron/match-bookings", headers=CRON_HEADERS)

    assert response.status_code == 500
    assert response.json()["result"]["errors"][0]["step"] == "load_bookings"


@pytest.mark.unit
def test_cron_unconfigured_secret_returns_503(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("pixiedvc.config.CRON_SECRET", None)

    response = TestClient(app).post("/cron/match-bookings", headers=CRON_HEADERS)

    assert response.status_code == 503
