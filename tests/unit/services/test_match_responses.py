"""
Unit tests for owner accept/decline and stale match expiry.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from pixiedvc.schemas.rentals import EnsureRentalResult
from pixiedvc.services.match_responses import (
    MatchResponseError,
    accept_match,
    decline_match,
    expire_stale_matches,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

RENTAL = EnsureRentalResult(
    rental_id="rental-1",
    check_in=date(2026, 6, 1),
    owner_user_id="owner-user-1",
    rental_amount_cents=180000,
)


def make_match(**overrides):
    match = {
        "id": "match-1",
        "booking_id": "booking-1",
        "owner_id": "owner-a",
        "status": "pending_owner",
        "expires_at": NOW + timedelta(minutes=30),
    }
    match.update(overrides)
    return match


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.update_booking_status")
@patch("pixiedvc.services.match_responses.ensure_rental_for_match")
@patch("pixiedvc.services.match_responses.mark_match_accepted")
@patch("pixiedvc.services.match_responses.get_match")
def test_accept_pending_match_creates_rental(
    mock_get_match: Mock,
    mock_mark_accepted: Mock,
    mock_ensure_rental: Mock,
    mock_update_booking: Mock,
    mock_engine,
) -> None:
    mock_get_match.return_value = make_match()
    mock_mark_accepted.return_value = True
    mock_ensure_rental.return_value = RENTAL

    result = accept_match(mock_engine, "match-1", owner_id="owner-a", now=NOW)

    assert result.status == "accepted"
    assert result.rental == RENTAL
    mock_ensure_rental.assert_called_once()
    mock_update_booking.assert_called_once_with(
        mock_engine.connection, "booking-1", "matched", ("pending_owner",)
    )


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.update_booking_status")
@patch("pixiedvc.services.match_responses.ensure_rental_for_match")
@patch("pixiedvc.services.match_responses.mark_match_accepted")
@patch("pixiedvc.services.match_responses.get_match")
def test_accept_is_idempotent_for_accepted_match(
    mock_get_match: Mock,
    mock_mark_accepted: Mock,
    mock_ensure_rental: Mock,
    mock_update_booking: Mock,
    mock_engine,
) -> None:
    """Accepting twice refreshes the same rental without a second transition."""
    mock_get_match.return_value = make_match(status="accepted")
    mock_ensure_rental.return_value = RENTAL

    result = accept_match(mock_engine, "match-1", now=NOW)

    assert result.status == "accepted"
    mock_mark_accepted.assert_not_called()
    mock_ensure_rental.assert_called_once()


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.ensure_rental_for_match")
@patch("pixiedvc.services.match_responses.release_match")
@patch("pixiedvc.services.match_responses.get_match")
def test_accept_past_expiry_releases_match(
    mock_get_match: Mock,
    mock_release: Mock,
    mock_ensure_rental: Mock,
    mock_engine,
) -> None:
    mock_get_match.return_value = make_match(expires_at=NOW - timedelta(minutes=1))
    mock_release.return_value = True

    with pytest.raises(MatchResponseError) as exc_info:
        accept_match(mock_engine, "match-1", now=NOW)

    assert exc_info.value.code == "match_expired"
    mock_release.assert_called_once_with(mock_engine, "match-1", status="expired", now=NOW)
    mock_ensure_rental.assert_not_called()


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.ensure_rental_for_match")
@patch("pixiedvc.services.match_responses.mark_match_accepted")
@patch("pixiedvc.services.match_responses.get_match")
def test_accept_losing_race_to_expiry(
    mock_get_match: Mock,
    mock_mark_accepted: Mock,
    mock_ensure_rental: Mock,
    mock_engine,
) -> None:
    """The guarded update finds the match already expired by the sweep."""
    mock_get_match.side_effect = [make_match(), make_match(status="expired")]
    mock_mark_accepted.return_value = False

    with pytest.raises(MatchResponseError) as exc_info:
        accept_match(mock_engine, "match-1", now=NOW)

    assert exc_info.value.code == "match_expired"
    mock_ensure_rental.assert_not_called()


@pytest.mark.unit
@pytest.mark.parametrize(
    "status,code",
    [("declined", "invalid_status"), ("expired", "match_expired")],
)
@patch("pixiedvc.services.match_responses.get_match")
def test_accept_rejects_closed_matches(mock_get_match: Mock, status, code, mock_engine) -> None:
    mock_get_match.return_value = make_match(status=status)

    with pytest.raises(MatchResponseError) as exc_info:
        accept_match(mock_engine, "match-1", now=NOW)

    assert exc_info.value.code == code
    assert exc_info.value.status == status


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.get_match")
def test_unknown_match(mock_get_match: Mock, mock_engine) -> None:
    mock_get_match.return_value = None

    with pytest.raises(MatchResponseError) as exc_info:
        decline_match(mock_engine, "missing", now=NOW)

    assert exc_info.value.code == "match_not_found"


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.resolve_owner_user_id")
@patch("pixiedvc.services.match_responses.get_match")
def test_owner_checked_against_both_identifiers(
    mock_get_match: Mock, mock_resolve: Mock, mock_engine
) -> None:
    mock_get_match.return_value = make_match(status="declined")
    mock_resolve.return_value = "owner-user-1"

    assert decline_match(mock_engine, "match-1", owner_id="owner-user-1", now=NOW).status == "declined"

    with pytest.raises(MatchResponseError) as exc_info:
        decline_match(mock_engine, "match-1", owner_id="someone-else", now=NOW)
    assert exc_info.value.code == "owner_mismatch"


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.release_match")
@patch("pixiedvc.services.match_responses.get_match")
def test_decline_releases_pending_match(
    mock_get_match: Mock, mock_release: Mock, mock_engine
) -> None:
    mock_get_match.return_value = make_match()
    mock_release.return_value = True

    result = decline_match(mock_engine, "match-1", owner_id="owner-a", now=NOW)

    assert result.status == "declined"
    assert result.rental is None
    mock_release.assert_called_once_with(mock_engine, "match-1", status="declined", now=NOW)


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.release_match")
@patch("pixiedvc.services.match_responses.get_match")
def test_decline_after_accept_is_rejected(
    mock_get_match: Mock, mock_release: Mock, mock_engine
) -> None:
    mock_get_match.return_value = make_match(status="accepted")

    with pytest.raises(MatchResponseError) as exc_info:
        decline_match(mock_engine, "match-1", now=NOW)

    assert exc_info.value.code == "invalid_status"
    mock_release.assert_not_called()


@pytest.mark.unit
@patch("pixiedvc.services.match_responses.release_match")
@patch("pixiedvc.services.match_responses.get_expired_pending_match_ids")
def test_expire_stale_matches_counts_only_released(
    mock_expired_ids: Mock, mock_release: Mock, mock_engine
) -> None:
    """A match answered in the meantime is not counted; a failure does not stop the sweep."""
    mock_expired_ids.return_value = ["m-1", "m-2", "m-3"]
    mock_release.side_effect = [True, False, RuntimeError("db gone")]

    assert expire_stale_matches(mock_engine, now=NOW) == 1
    assert mock_release.call_count == 3
