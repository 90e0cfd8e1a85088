"""Initial schema: passengers, drivers and rides.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

PASSENGER_ACTIVE = "status IN ('pending', 'accepted', 'in-progress')"
DRIVER_ACTIVE = "status IN ('accepted', 'in-progress')"


def upgrade() -> None:
    # ── passengers ────────────────────────────────────────────────────
    op.create_table(
        "passengers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("vehicle_type", sa.String(20), nullable=False),
        sa.Column("vehicle_make", sa.String(60), nullable=False),
        sa.Column("vehicle_model", sa.String(60), nullable=False),
        sa.Column(
            "vehicle_number_plate", sa.String(20), unique=True, nullable=False
        ),
        sa.Column("vehicle_capacity", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── rides ─────────────────────────────────────────────────────────
    op.create_table(
        "rides",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "passenger_id",
            sa.Integer,
            sa.ForeignKey("passengers.id"),
            nullable=False,
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True
        ),
        sa.Column("pickup_address", sa.String(255), nullable=False),
        sa.Column("pickup_city", sa.String(120), nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_cell", sa.String(20), nullable=False),
        sa.Column("drop_address", sa.String(255), nullable=False),
        sa.Column("drop_city", sa.String(120), nullable=False),
        sa.Column("drop_lng", sa.Float, nullable=False),
        sa.Column("drop_lat", sa.Float, nullable=False),
        sa.Column("fare", sa.Float, nullable=False),
        sa.Column("distance", sa.Float, nullable=False),
        sa.Column("duration", sa.Integer, nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("vehicle_type", sa.String(20), nullable=False),
        sa.Column("notes", sa.String(500), nullable=False, server_default=""),
        sa.Column("estimated_arrival", sa.String(120), nullable=True),
        sa.Column("route_polyline", sa.Text, nullable=True),
        sa.Column("vehicle_snapshot", sa.JSON, nullable=True),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default="pending"
        ),
        sa.Column("passenger_rating", sa.Integer, nullable=True),
        sa.Column("driver_rating", sa.Integer, nullable=True),
        sa.Column("cancellation_reason", sa.String(500), nullable=True),
        sa.Column("cancelled_by", sa.String(20), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'in-progress', "
            "'completed', 'cancelled')",
            name="ridestatus",
        ),
        sa.CheckConstraint(
            "payment_method IN ('cash', 'wallet', 'card')",
            name="paymentmethod",
        ),
        sa.CheckConstraint(
            "(driver_id IS NULL) = (vehicle_snapshot IS NULL)",
            name="ck_rides_driver_vehicle_together",
        ),
        sa.CheckConstraint(
            "passenger_rating IS NULL OR passenger_rating BETWEEN 1 AND 5",
            name="ck_rides_passenger_rating_range",
        ),
        sa.CheckConstraint(
            "driver_rating IS NULL OR driver_rating BETWEEN 1 AND 5",
            name="ck_rides_driver_rating_range",
        ),
    )
    op.create_index("idx_rides_pickup_cell", "rides", ["pickup_cell"])
    op.create_index("idx_rides_status", "rides", ["status"])
    op.create_index("idx_rides_passenger", "rides", ["passenger_id", "created_at"])
    op.create_index("idx_rides_driver", "rides", ["driver_id", "created_at"])

    # One active ride per actor, enforced by the store
    op.create_index(
        "uq_rides_active_passenger",
        "rides",
        ["passenger_id"],
        unique=True,
        postgresql_where=sa.text(PASSENGER_ACTIVE),
    )
    op.create_index(
        "uq_rides_active_driver",
        "rides",
        ["driver_id"],
        unique=True,
        postgresql_where=sa.text(DRIVER_ACTIVE),
    )


def downgrade() -> None:
    op.drop_table("rides")
    op.drop_table("drivers")
    op.drop_table("passengers")
