"""Initial schema: users, vehicles, bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2024-02-12
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Admin users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    # Fleet
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("color", sa.String(50), nullable=False),
        sa.Column("license_plate", sa.String(20), nullable=False, unique=True),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("body_type", sa.String(50), nullable=True),
        sa.Column("transmission", sa.String(50), nullable=False),
        sa.Column("fuel_air_con", sa.String(50), nullable=True),
        sa.Column("passenger_capacity", sa.Integer(), nullable=False),
        sa.Column("door_count", sa.Integer(), nullable=False),
        sa.Column("big_suitcases", sa.Integer(), nullable=True),
        sa.Column("small_suitcases", sa.Integer(), nullable=True),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("main_image", sa.String(500), nullable=True),
        sa.Column("daily_rate", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default=sa.text("'EUR'")),
        sa.Column("custom_pricing", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'available'")),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("added_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("daily_rate >= 0", name="check_vehicle_daily_rate_non_negative"),
        sa.CheckConstraint("passenger_capacity BETWEEN 1 AND 9", name="check_vehicle_passenger_capacity"),
    )
    op.create_index("ix_vehicles_id", "vehicles", ["id"])
    op.create_index("ix_vehicles_created_at", "vehicles", ["created_at"])
    # Catalog filters: availability search narrows on status first, then
    # pickup location. Covers WHERE status IN (...) AND location = ?
    op.create_index("ix_vehicles_status_location", "vehicles", ["status", "location"])
    # Browsing by class sorted by price
    op.create_index("ix_vehicles_category_rate", "vehicles", ["category", "daily_rate"])

    # Bookings
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_reference", sa.String(20), nullable=False),
        sa.Column("client_info", sa.JSON(), nullable=False),
        sa.Column("client_email", sa.String(255), nullable=False),
        sa.Column("vehicle_id", sa.Integer(), sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("vehicle_info", sa.JSON(), nullable=False),
        sa.Column("pickup_date", sa.Date(), nullable=False),
        sa.Column("return_date", sa.Date(), nullable=False),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("rental_days", sa.Integer(), nullable=False),
        sa.Column("cdw_coverage", sa.String(10), nullable=False, server_default=sa.text("'basic'")),
        sa.Column("add_ons", sa.JSON(), nullable=False),
        sa.Column("base_daily_rate", sa.Float(), nullable=False),
        sa.Column("cdw_cost", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("add_ons_cost", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_daily_rate", sa.Float(), nullable=False),
        sa.Column("total_cost", sa.Float(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        *_timestamps(),
        sa.CheckConstraint("pickup_date < return_date", name="check_booking_dates_ordered"),
        sa.CheckConstraint("rental_days > 0", name="check_booking_rental_days_positive"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_booking_reference", "bookings", ["booking_reference"], unique=True)
    op.create_index("ix_bookings_client_email", "bookings", ["client_email"])
    op.create_index("ix_bookings_vehicle_id", "bookings", ["vehicle_id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_created_at", "bookings", ["created_at"])
    # OVERLAP INDEX: every availability search and every booking attempt runs
    # WHERE vehicle_id = ? AND status IN ('confirmed', 'in_progress')
    #   AND pickup_date <= ? AND return_date >= ?
    # Leading with vehicle_id + status keeps the range scan to a single car's
    # live bookings instead of the whole history.
    op.create_index(
        "ix_bookings_vehicle_status_dates",
        "bookings",
        ["vehicle_id", "status", "pickup_date", "return_date"],
    )
    # Dashboard "upcoming" and "active today" counts scan by pickup date
    op.create_index("ix_bookings_pickup_date", "bookings", ["pickup_date"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("users")
