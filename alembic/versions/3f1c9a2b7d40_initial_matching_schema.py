"""Initial matching schema

Revision ID: 3f1c9a2b7d40
Revises:
Create Date: 2026-01-12 10:02:11.418233

"""

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op  # type: ignore[attr-defined]

# revision identifiers, used by Alembic.
revision = "3f1c9a2b7d40"
down_revision = None
branch_labels = None
depends_on = None

SCHEMA = "pixiedvc"
UUID = postgresql.UUID(as_uuid=False)


def _uuid_pk() -> sa.Column:
    return sa.Column("id", UUID, primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "resorts",
        _uuid_pk(),
        sa.Column("slug", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("calculator_code", sa.String(), nullable=True),
        sa.Column(
            "is_resale_restricted_resort",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        _created_at(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_resorts_calculator_code", "resorts", ["calculator_code"], schema=SCHEMA
    )

    op.create_table(
        "profiles",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("payout_email", sa.String(), nullable=True),
        sa.Column("guest_rewards_enrolled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("owner_rewards_enrolled_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        schema=SCHEMA,
    )

    op.create_table(
        "owners",
        _uuid_pk(),
        sa.Column(
            "user_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.profiles.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("verification", sa.String(), nullable=True),
        sa.Column("payout_email", sa.String(), nullable=True),
        _created_at(),
        schema=SCHEMA,
    )

    op.create_table(
        "owner_verifications",
        sa.Column(
            "owner_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.owners.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _updated_at(),
        schema=SCHEMA,
    )

    op.create_table(
        "owner_memberships",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column(
            "owner_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.owners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "resort_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.resorts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("home_resort", sa.String(), nullable=True),
        sa.Column("contract_year", sa.Integer(), nullable=True),
        sa.Column("use_year_start", sa.Date(), nullable=True),
        sa.Column("use_year_end", sa.Date(), nullable=True),
        sa.Column("points_owned", sa.Integer(), nullable=True),
        sa.Column("points_available", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("points_reserved", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "borrowing_enabled", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")
        ),
        sa.Column(
            "max_points_to_borrow", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("banked_assumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expired_assumed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint(
            "owner_id", "resort_id", "contract_year", name="uq_membership_contract_year"
        ),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_owner_memberships_owner_id", "owner_memberships", ["owner_id"], schema=SCHEMA
    )
    op.create_index(
        "ix_owner_memberships_resort_id", "owner_memberships", ["resort_id"], schema=SCHEMA
    )
    op.create_index(
        "ix_owner_memberships_home_resort", "owner_memberships", ["home_resort"], schema=SCHEMA
    )

    op.create_table(
        "booking_requests",
        _uuid_pk(),
        sa.Column(
            "renter_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.profiles.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'draft'")),
        sa.Column(
            "primary_resort_id", UUID, sa.ForeignKey(f"{SCHEMA}.resorts.id"), nullable=True
        ),
        sa.Column("primary_room", sa.String(), nullable=True),
        sa.Column("primary_view", sa.String(), nullable=True),
        sa.Column("check_in", sa.Date(), nullable=True),
        sa.Column("check_out", sa.Date(), nullable=True),
        sa.Column("nights", sa.Integer(), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=True),
        sa.Column("adults", sa.Integer(), nullable=True),
        sa.Column("youths", sa.Integer(), nullable=True),
        sa.Column(
            "requires_accessibility",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("max_price_per_point", sa.Integer(), nullable=True),
        sa.Column("est_cash", sa.Integer(), nullable=True),
        sa.Column("deposit_due", sa.Integer(), nullable=True),
        sa.Column("deposit_paid", sa.Integer(), nullable=True),
        sa.Column("deposit_currency", sa.String(), nullable=True),
        sa.Column("guest_total_cents", sa.Integer(), nullable=True),
        sa.Column("guest_rate_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("guest_total_cents_final", sa.Integer(), nullable=True),
        sa.Column("guest_discount_cents", sa.Integer(), nullable=True),
        sa.Column("guest_reward_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("guest_perks_discount_pct", sa.Integer(), nullable=True),
        sa.Column("lead_guest_name", sa.String(), nullable=True),
        sa.Column("lead_guest_email", sa.String(), nullable=True),
        sa.Column("lead_guest_phone", sa.String(), nullable=True),
        sa.Column("address_line1", sa.String(), nullable=True),
        sa.Column("address_line2", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("state", sa.String(), nullable=True),
        sa.Column("postal_code", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("guest_profile_complete_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("guest_agreement_accepted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_booking_requests_renter_id", "booking_requests", ["renter_id"], schema=SCHEMA
    )
    op.create_index("ix_booking_requests_status", "booking_requests", ["status"], schema=SCHEMA)

    op.create_table(
        "booking_matches",
        _uuid_pk(),
        sa.Column(
            "booking_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.booking_requests.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("owner_id", UUID, sa.ForeignKey(f"{SCHEMA}.owners.id"), nullable=False),
        sa.Column(
            "owner_membership_id",
            sa.BigInteger(),
            sa.ForeignKey(f"{SCHEMA}.owner_memberships.id"),
            nullable=False,
        ),
        sa.Column(
            "borrow_membership_id",
            sa.BigInteger(),
            sa.ForeignKey(f"{SCHEMA}.owner_memberships.id"),
            nullable=True,
        ),
        sa.Column(
            "status", sa.String(), nullable=False, server_default=sa.text("'pending_owner'")
        ),
        sa.Column("points_reserved", sa.Integer(), nullable=False),
        sa.Column(
            "points_reserved_current", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column(
            "points_reserved_borrowed", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        sa.Column("owner_base_rate_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("owner_premium_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("owner_rate_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("owner_total_cents", sa.Integer(), nullable=True),
        sa.Column(
            "owner_home_resort_premium_applied",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("FALSE"),
        ),
        sa.Column("owner_bonus_per_point_cents", sa.Integer(), nullable=True),
        sa.Column("owner_rewards_tier", sa.String(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_booking_matches_booking_id", "booking_matches", ["booking_id"], schema=SCHEMA
    )
    op.create_index("ix_booking_matches_owner_id", "booking_matches", ["owner_id"], schema=SCHEMA)
    op.create_index("ix_booking_matches_status", "booking_matches", ["status"], schema=SCHEMA)

    op.create_table(
        "rentals",
        _uuid_pk(),
        sa.Column(
            "match_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.booking_matches.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("owner_id", UUID, nullable=True),
        sa.Column("owner_user_id", UUID, nullable=False),
        sa.Column("guest_id", UUID, nullable=True),
        sa.Column("guest_user_id", UUID, nullable=True),
        sa.Column("resort_code", sa.String(), nullable=True),
        sa.Column("room_type", sa.String(), nullable=True),
        sa.Column("check_in", sa.Date(), nullable=True),
        sa.Column("check_out", sa.Date(), nullable=True),
        sa.Column("points_required", sa.Integer(), nullable=True),
        sa.Column("rental_amount_cents", sa.Integer(), nullable=True),
        sa.Column(
            "status", sa.String(), nullable=False, server_default=sa.text("'needs_dvc_booking'")
        ),
        sa.Column(
            "booking_package",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("adults", sa.Integer(), nullable=True),
        sa.Column("youths", sa.Integer(), nullable=True),
        sa.Column("dvc_confirmation_number", sa.String(), nullable=True),
        sa.Column("disney_confirmation_number", sa.String(), nullable=True),
        sa.Column("lead_guest_name", sa.String(), nullable=True),
        sa.Column("lead_guest_email", sa.String(), nullable=True),
        sa.Column("lead_guest_phone", sa.String(), nullable=True),
        sa.Column("lead_guest_address", postgresql.JSONB(), nullable=True),
        _created_at(),
        _updated_at(),
        schema=SCHEMA,
    )
    op.create_index("ix_rentals_owner_user_id", "rentals", ["owner_user_id"], schema=SCHEMA)
    op.create_index("ix_rentals_guest_user_id", "rentals", ["guest_user_id"], schema=SCHEMA)

    op.create_table(
        "rental_milestones",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "rental_id",
            UUID,
            sa.ForeignKey(f"{SCHEMA}.rentals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("rental_id", "code", name="uq_rental_milestone_code"),
        schema=SCHEMA,
    )
    op.create_index(
        "ix_rental_milestones_rental_id", "rental_milestones", ["rental_id"], schema=SCHEMA
    )

    op.create_table(
        "pricing_promotions",
        _uuid_pk(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("FALSE")),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "enrollment_required", sa.Boolean(), nullable=False, server_default=sa.text("TRUE")
        ),
        sa.Column(
            "guest_max_reward_per_point_cents",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "owner_max_bonus_per_point_cents",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "min_spread_per_point_cents", sa.Integer(), nullable=False, server_default=sa.text("0")
        ),
        _created_at(),
        schema=SCHEMA,
    )


def downgrade() -> None:
    """Downgrade schema."""
    for table in (
        "pricing_promotions",
        "rental_milestones",
        "rentals",
        "booking_matches",
        "booking_requests",
        "owner_memberships",
        "owner_verifications",
        "owners",
        "profiles",
        "resorts",
    ):
        op.drop_table(table, schema=SCHEMA)
