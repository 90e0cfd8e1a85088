"""
SQLAlchemy ORM models  (PostgreSQL in production, SQLite in tests).

Tables
------
* ``passengers`` -- registered passengers (owners of rides)
* ``drivers``    -- driver profiles with their current vehicle
* ``rides``      -- ride requests and their lifecycle

Indexes
-------
* **B-Tree** on ``pickup_cell`` -- the H3 cell of the pickup point; this is
  the geospatial index the dispatch query uses.
* **B-Tree** on ``status``, ``(passenger_id, created_at)``,
  ``(driver_id, created_at)`` for listings and active-ride look-ups.
* **Partial unique** on ``passenger_id`` while a ride is pending, accepted or
  in-progress, and on ``driver_id`` while accepted or in-progress.  These
  reject a second concurrent writer for the same actor.

Constraints
-----------
* ``driver_id`` and ``vehicle_snapshot`` are either both NULL or both set.

Relationships
-------------
``RideModel.passenger`` and ``RideModel.driver`` load eagerly (LEFT OUTER
JOIN), so ride objects can be serialised outside an awaited lazy load.
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import relationship

from .database import Base
from ridehail.domain.enums import (
    DEFAULT_VEHICLE_TYPE,
    PaymentMethod,
    RideStatus,
)


def _enum(enum_cls, name: str) -> Enum:
    """Store enum *values* ("in-progress"), not member names."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


_PASSENGER_ACTIVE = text("status IN ('pending', 'accepted', 'in-progress')")
_DRIVER_ACTIVE = text("status IN ('accepted', 'in-progress')")


class PassengerModel(Base):
    __tablename__ = "passengers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    vehicle_type = Column(String(20), nullable=False)
    vehicle_make = Column(String(60), nullable=False)
    vehicle_model = Column(String(60), nullable=False)
    vehicle_number_plate = Column(String(20), unique=True, nullable=False)
    vehicle_capacity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(Integer, primary_key=True, autoincrement=True)
    passenger_id = Column(Integer, ForeignKey("passengers.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)

    pickup_address = Column(String(255), nullable=False)
    pickup_city = Column(String(120), nullable=False)
    pickup_lng = Column(Float, nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_cell = Column(String(20), nullable=False)

    drop_address = Column(String(255), nullable=False)
    drop_city = Column(String(120), nullable=False)
    drop_lng = Column(Float, nullable=False)
    drop_lat = Column(Float, nullable=False)

    fare = Column(Float, nullable=False)
    distance = Column(Float, nullable=False)  # km
    duration = Column(Integer, nullable=False)  # minutes
    payment_method = Column(_enum(PaymentMethod, "paymentmethod"), nullable=False)
    vehicle_type = Column(String(20), nullable=False, default=DEFAULT_VEHICLE_TYPE)
    notes = Column(String(500), nullable=False, default="")
    estimated_arrival = Column(String(120), nullable=True)
    route_polyline = Column(Text, nullable=True)

    # {type, make, model, number_plate, capacity}; written once on accept
    vehicle_snapshot = Column(JSON(none_as_null=True), nullable=True)

    status = Column(
        _enum(RideStatus, "ridestatus"), default=RideStatus.PENDING, nullable=False
    )
    passenger_rating = Column(Integer, nullable=True)
    driver_rating = Column(Integer, nullable=True)
    cancellation_reason = Column(String(500), nullable=True)
    cancelled_by = Column(String(20), nullable=True)

    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Joined on every load; responses always carry both parties
    passenger = relationship(PassengerModel, lazy="joined")
    driver = relationship(DriverModel, lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "(driver_id IS NULL) = (vehicle_snapshot IS NULL)",
            name="ck_rides_driver_vehicle_together",
        ),
        CheckConstraint(
            "passenger_rating IS NULL OR passenger_rating BETWEEN 1 AND 5",
            name="ck_rides_passenger_rating_range",
        ),
        CheckConstraint(
            "driver_rating IS NULL OR driver_rating BETWEEN 1 AND 5",
            name="ck_rides_driver_rating_range",
        ),
        Index("idx_rides_pickup_cell", "pickup_cell"),
        Index("idx_rides_status", "status"),
        Index("idx_rides_passenger", "passenger_id", "created_at"),
        Index("idx_rides_driver", "driver_id", "created_at"),
        Index(
            "uq_rides_active_passenger",
            "passenger_id",
            unique=True,
            postgresql_where=_PASSENGER_ACTIVE,
            sqlite_where=_PASSENGER_ACTIVE,
        ),
        Index(
            "uq_rides_active_driver",
            "driver_id",
            unique=True,
            postgresql_where=_DRIVER_ACTIVE,
            sqlite_where=_DRIVER_ACTIVE,
        ),
    )
