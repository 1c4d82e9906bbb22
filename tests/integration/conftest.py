"""
Shared fixtures for integration tests.

These tests need a PostgreSQL database at DATABASE_URL with the alembic
migrations applied (``alembic upgrade head``). They are skipped when the
database is unreachable.
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import Any, Callable, Generator

import pytest
from sqlalchemy import text

from pixiedvc.db.engine import check_engine_health, engine


@pytest.fixture(autouse=True)
def require_database() -> None:
    if not check_engine_health():
        pytest.skip("PostgreSQL not reachable at DATABASE_URL")


@pytest.fixture
def marketplace() -> Generator[dict[str, Any], None, None]:
    """
    Seed one resort, one guest, and one verified owner holding a 150-point
    membership for contract year 2026.

    Yields the ids. Everything created under the resort is removed afterwards.
    """
    ids = {
        "resort_id": str(uuid.uuid4()),
        "guest_user_id": str(uuid.uuid4()),
        "owner_user_id": str(uuid.uuid4()),
        "owner_id": str(uuid.uuid4()),
    }
    code = f"T{uuid.uuid4().hex[:6].upper()}"

    with engine.begin() as conn:
        conn.execute(
            text(
                """
                INSERT INTO pixiedvc.resorts (id, slug, name, calculator_code)
                VALUES (:resort_id, :slug, 'Test Resort', :code)
                """
            ),
            {"resort_id": ids["resort_id"], "slug": code.lower(), "code": code},
        )
        conn.execute(
            text(
                """
                INSERT INTO pixiedvc.profiles (id, email, display_name, payout_email)
                VALUES
                    (:guest_user_id, 'guest@example.com', 'Test Guest', NULL),
                    (:owner_user_id, 'owner@example.com', 'Test Owner', 'payouts@example.com')
                """
            ),
            ids,
        )
        conn.execute(
            text(
                """
                INSERT INTO pixiedvc.owners (id, user_id, verification)
                VALUES (:owner_id, :owner_user_id, 'verified')
                """
            ),
            ids,
        )
        conn.execute(
            text(
                """
                INSERT INTO pixiedvc.owner_verifications (owner_id, status)
                VALUES (:owner_id, 'approved')
                """
            ),
            ids,
        )
        ids["membership_id"] = conn.execute(
            text(
                """
                INSERT INTO pixiedvc.owner_memberships (
                    owner_id, resort_id, home_resort, contract_year,
                    use_year_start, use_year_end, points_available
                )
                VALUES (:owner_id, :resort_id, :code, 2026, '2026-02-01', '2027-01-31', 150)
                RETURNING id
                """
            ),
            {**ids, "code": code},
        ).scalar_one()

    yield ids

    with engine.begin() as conn:
        params = {"resort_id": ids["resort_id"], "owner_id": ids["owner_id"]}
        conn.execute(
            text(
                """
                DELETE FROM pixiedvc.booking_matches
                WHERE owner_id = :owner_id
                """
            ),
            params,
        )
        conn.execute(
            text("DELETE FROM pixiedvc.booking_requests WHERE primary_resort_id = :resort_id"),
            params,
        )
        conn.execute(text("DELETE FROM pixiedvc.owners WHERE id = :owner_id"), params)
        conn.execute(
            text("DELETE FROM pixiedvc.profiles WHERE id IN (:guest, :owner)"),
            {"guest": ids["guest_user_id"], "owner": ids["owner_user_id"]},
        )
        conn.execute(text("DELETE FROM pixiedvc.resorts WHERE id = :resort_id"), params)


@pytest.fixture
def create_booking(marketplace: dict[str, Any]) -> Callable[..., str]:
    """Factory inserting a submitted booking at the seeded resort; returns its id."""

    def _create(total_points: int = 100) -> str:
        with engine.begin() as conn:
            return str(
                conn.execute(
                    text(
                        """
                        INSERT INTO pixiedvc.booking_requests (
                            renter_id, status, primary_resort_id, primary_room,
                            check_in, check_out, nights, total_points, adults, youths,
                            deposit_due, deposit_paid, guest_total_cents,
                            lead_guest_name, lead_guest_email
                        )
                        VALUES (
                            :renter_id, 'submitted', :resort_id, 'Deluxe Studio',
                            :check_in, :check_out, 7, :total_points, 2, 0,
                            9900, 9900, :guest_total_cents,
                            'Test Guest', 'guest@example.com'
                        )
                        RETURNING id
                        """
                    ),
                    {
                        "renter_id": marketplace["guest_user_id"],
                        "resort_id": marketplace["resort_id"],
                        "check_in": date(2026, 6, 1),
                        "check_out": date(2026, 6, 8),
                        "total_points": total_points,
                        "guest_total_cents": total_points * 2500,
                    },
                ).scalar_one()
            )

    return _create


@pytest.fixture
def membership_points() -> Callable[[int], tuple[int, int]]:
    """Reader returning (points_available, points_reserved) for a membership."""

    def _read(membership_id: int) -> tuple[int, int]:
        with engine.connect() as conn:
            row = conn.execute(
                text(
                    """
                    SELECT points_available, points_reserved
                    FROM pixiedvc.owner_memberships WHERE id = :id
                    """
                ),
                {"id": membership_id},
            ).one()
        return row.points_available, row.points_reserved

    return _read


@pytest.fixture
def booking_status() -> Callable[[str], str]:
    def _read(booking_id: str) -> str:
        with engine.connect() as conn:
            return conn.execute(
                text("SELECT status FROM pixiedvc.booking_requests WHERE id = :id"),
                {"id": booking_id},
            ).scalar_one()

    return _read
