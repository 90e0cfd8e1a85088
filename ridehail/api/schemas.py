"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from ridehail.domain.enums import PROGRESS_PERCENTAGE, RideStatus


# ── Requests ──────────────────────────────────────────────────────────
# Shapes only; ranges and business rules live in ridehail.domain.validation
# so every field problem is reported together.


class LocationIn(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    coordinates: Optional[list[Any]] = Field(
        None, description="[longitude, latitude]"
    )


class RideCreateRequest(BaseModel):
    pickup_location: Optional[LocationIn] = None
    drop_location: Optional[LocationIn] = None
    # Any: lax mode would turn JSON true into 1.0 before the domain check
    fare: Any = None
    distance: Any = Field(None, description="Kilometres")
    duration: Any = Field(None, description="Minutes")
    payment_method: Optional[str] = Field(None, description="cash, wallet or card")
    vehicle_type: Optional[str] = None
    notes: Optional[str] = None
    estimated_arrival: Optional[str] = None
    route_polyline: Optional[str] = Field(
        None, description="Encoded polyline from the routing provider."
    )


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class RateRequest(BaseModel):
    # Any: booleans and floats must reach the domain check untouched
    rating: Any = None


# ── Responses ─────────────────────────────────────────────────────────


class LocationOut(BaseModel):
    address: str
    city: str
    coordinates: list[float]


class VehicleOut(BaseModel):
    type: str
    make: str
    model: str
    number_plate: str
    capacity: int


class PartyOut(BaseModel):
    id: int
    name: str


def _party(person: Any) -> Optional[PartyOut]:
    return PartyOut(id=person.id, name=person.name) if person is not None else None


class RideResponse(BaseModel):
    id: int
    passenger_id: int
    driver_id: Optional[int] = None
    passenger: Optional[PartyOut] = None
    driver: Optional[PartyOut] = None
    pickup_location: LocationOut
    drop_location: LocationOut
    fare: float
    distance: float
    duration: int
    payment_method: str
    vehicle_type: str
    notes: str = ""
    estimated_arrival: Optional[str] = None
    route_polyline: Optional[str] = None
    vehicle: Optional[VehicleOut] = None
    status: str
    progress_percentage: int
    passenger_rating: Optional[int] = None
    driver_rating: Optional[int] = None
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    trip_minutes: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, ride: Any, **extra: Any) -> "RideResponse":
        status = RideStatus(ride.status)
        trip_minutes = None
        if ride.started_at is not None and ride.completed_at is not None:
            elapsed = ride.completed_at - ride.started_at
            trip_minutes = round(elapsed.total_seconds() / 60)

        return cls(
            id=ride.id,
            passenger_id=ride.passenger_id,
            driver_id=ride.driver_id,
            passenger=_party(ride.passenger),
            driver=_party(ride.driver),
            pickup_location=LocationOut(
                address=ride.pickup_address,
                city=ride.pickup_city,
                coordinates=[ride.pickup_lng, ride.pickup_lat],
            ),
            drop_location=LocationOut(
                address=ride.drop_address,
                city=ride.drop_city,
                coordinates=[ride.drop_lng, ride.drop_lat],
            ),
            fare=ride.fare,
            distance=ride.distance,
            duration=ride.duration,
            payment_method=getattr(ride.payment_method, "value", ride.payment_method),
            vehicle_type=ride.vehicle_type,
            notes=ride.notes or "",
            estimated_arrival=ride.estimated_arrival,
            route_polyline=ride.route_polyline,
            vehicle=VehicleOut(**ride.vehicle_snapshot) if ride.vehicle_snapshot else None,
            status=status.value,
            progress_percentage=PROGRESS_PERCENTAGE[status],
            passenger_rating=ride.passenger_rating,
            driver_rating=ride.driver_rating,
            cancellation_reason=ride.cancellation_reason,
            cancelled_by=ride.cancelled_by,
            trip_minutes=trip_minutes,
            started_at=ride.started_at,
            completed_at=ride.completed_at,
            created_at=ride.created_at,
            updated_at=ride.updated_at,
            **extra,
        )


class NearbyRideResponse(RideResponse):
    distance_meters: int


class RideEnvelope(BaseModel):
    success: bool = True
    message: str
    ride: RideResponse


class Pagination(BaseModel):
    current_page: int
    total_pages: int
    total_rides: int
    has_next_page: bool
    has_prev_page: bool


class RideListEnvelope(BaseModel):
    success: bool = True
    message: str
    rides: list[RideResponse]
    pagination: Pagination


class SearchInfo(BaseModel):
    coordinates: list[float]
    radius_meters: int
    count: int


class NearbyEnvelope(BaseModel):
    success: bool = True
    message: str
    rides: list[NearbyRideResponse]
    search: SearchInfo


class HealthResponse(BaseModel):
    status: str = "ok"


class FieldErrorOut(BaseModel):
    field: str
    message: str


class ConflictOut(BaseModel):
    ride_id: Optional[int] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    errors: Optional[list[FieldErrorOut]] = None
    conflict: Optional[ConflictOut] = None
