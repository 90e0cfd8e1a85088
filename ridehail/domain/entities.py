"""
Domain value objects.

Patterns used
-------------
- ``Actor`` is the verified identity every service call receives as an
  argument; nothing reads the caller from ambient state.
- ``RideDraft`` is the validated, normalised ride-creation request.  It is
  only ever built by ``ridehail.domain.validation``.
- ``VehicleSnapshot`` is copied from the driver profile at acceptance and
  never refreshed afterwards.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional

from .enums import ActorRole, PaymentMethod, RideStatus, can_transition
from .exceptions import InvalidStateTransition


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class GeoPoint:
    longitude: float
    latitude: float

    def as_coordinates(self) -> list[float]:
        """GeoJSON order: ``[longitude, latitude]``."""
        return [self.longitude, self.latitude]


@dataclass(frozen=True)
class Place:
    address: str
    city: str
    point: GeoPoint


@dataclass(frozen=True)
class Actor:
    actor_id: int
    role: ActorRole

    @property
    def is_passenger(self) -> bool:
        return self.role == ActorRole.PASSENGER

    @property
    def is_driver(self) -> bool:
        return self.role == ActorRole.DRIVER


@dataclass(frozen=True)
class VehicleSnapshot:
    type: str
    make: str
    model: str
    number_plate: str
    capacity: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RideDraft:
    pickup: Place
    drop: Place
    fare: float
    distance: float
    duration: int
    payment_method: PaymentMethod
    vehicle_type: str
    notes: str = ""
    estimated_arrival: Optional[str] = None
    route_polyline: Optional[str] = None


def ensure_transition(
    ride_id: Optional[int],
    current: RideStatus,
    target: RideStatus,
    action: str,
    *,
    created_at: Optional[datetime] = None,
) -> None:
    """Raise ``InvalidStateTransition`` unless *current* -> *target* is legal."""
    if not can_transition(current, target):
        status = RideStatus(current).value
        raise InvalidStateTransition(
            f"Ride is {status} and cannot be {action}",
            ride_id=ride_id,
            status=status,
            created_at=created_at,
        )
