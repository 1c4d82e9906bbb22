from unittest.mock import patch

import pytest

from pixiedvc.logging_config import add_service_context


@pytest.mark.unit
def test_events_tagged_with_service() -> None:
    event = add_service_context(None, "info", {"event": "match_run_completed"})

    assert event["service"] == "pixiedvc"
    assert "dry_run" not in event


@pytest.mark.unit
@patch("pixiedvc.logging_config.DRY_RUN", True)
def test_dry_run_flag_added_without_overriding_caller() -> None:
    assert add_service_context(None, "info", {"event": "x"})["dry_run"] is True
    assert add_service_context(None, "info", {"event": "x", "dry_run": False})["dry_run"] is False
