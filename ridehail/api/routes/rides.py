"""
Ride endpoints
==============

POST  /api/v1/rides                   -- book a ride (passenger)
GET   /api/v1/rides                   -- my rides, newest first, paginated
GET   /api/v1/rides/active            -- my current active ride
GET   /api/v1/rides/nearby            -- pending rides near a driver
GET   /api/v1/rides/{ride_id}         -- ride detail (passenger or driver)
PATCH /api/v1/rides/{ride_id}/accept   -- driver takes a pending ride
PATCH /api/v1/rides/{ride_id}/start    -- assigned driver starts the trip
PATCH /api/v1/rides/{ride_id}/complete -- assigned driver ends the trip
PATCH /api/v1/rides/{ride_id}/cancel   -- passenger or assigned driver
PATCH /api/v1/rides/{ride_id}/rate     -- either party, once, after completion

Every endpoint requires a bearer token; failures use the error envelope
from ``ridehail.api.errors``.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.api.dependencies import get_current_actor, get_db
from ridehail.api.middleware import limiter
from ridehail.api.schemas import (
    CancelRequest,
    ErrorEnvelope,
    NearbyEnvelope,
    NearbyRideResponse,
    Pagination,
    RateRequest,
    RideCreateRequest,
    RideEnvelope,
    RideListEnvelope,
    RideResponse,
    SearchInfo,
)
from ridehail.config import settings
from ridehail.domain.entities import Actor
from ridehail.services.dispatch import DispatchQueryEngine
from ridehail.services.lifecycle import RideLifecycleManager

router = APIRouter(
    prefix="/rides",
    tags=["rides"],
    responses={
        400: {"model": ErrorEnvelope},
        401: {"model": ErrorEnvelope},
        403: {"model": ErrorEnvelope},
        404: {"model": ErrorEnvelope},
        409: {"model": ErrorEnvelope},
    },
)


def _envelope(ride, message: str) -> RideEnvelope:
    return RideEnvelope(message=message, ride=RideResponse.from_model(ride))


# ── Collection ────────────────────────────────────────────────────────


@router.post(
    "",
    status_code=201,
    response_model=RideEnvelope,
    summary="Book a ride",
)
@limiter.limit(settings.rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).create(actor, body.model_dump())
    return _envelope(ride, "Ride booked successfully")


@router.get(
    "",
    response_model=RideListEnvelope,
    summary="List my rides, newest first",
)
@limiter.limit(settings.rate_limit)
async def list_rides(
    request: Request,
    status: Optional[str] = Query(None),
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await RideLifecycleManager(db).list_rides(
        actor, status=status, page=page, limit=limit
    )
    return RideListEnvelope(
        message="Rides retrieved successfully",
        rides=[RideResponse.from_model(r) for r in result.rides],
        pagination=Pagination(
            current_page=result.current_page,
            total_pages=result.total_pages,
            total_rides=result.total_rides,
            has_next_page=result.has_next_page,
            has_prev_page=result.has_prev_page,
        ),
    )


@router.get(
    "/active",
    response_model=RideEnvelope,
    summary="Get my active ride",
)
@limiter.limit(settings.rate_limit)
async def get_active_ride(
    request: Request,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).active_ride(actor)
    return _envelope(ride, "Active ride retrieved successfully")


@router.get(
    "/nearby",
    response_model=NearbyEnvelope,
    summary="Find pending rides near a driver",
    description=(
        "Pending rides whose pickup lies within ``radius`` metres "
        "(default 5000, at most 20000), nearest first."
    ),
)
@limiter.limit(settings.rate_limit)
async def find_nearby_rides(
    request: Request,
    longitude: Optional[float] = Query(None),
    latitude: Optional[float] = Query(None),
    radius: Optional[float] = Query(None, description="Metres"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    search = await DispatchQueryEngine(db).find_nearby_pending(
        actor, longitude, latitude, radius
    )
    return NearbyEnvelope(
        message="Nearby rides retrieved successfully",
        rides=[
            NearbyRideResponse.from_model(n.ride, distance_meters=round(n.distance_m))
            for n in search.rides
        ],
        search=SearchInfo(
            coordinates=search.point.as_coordinates(),
            radius_meters=search.radius_m,
            count=len(search.rides),
        ),
    )


# ── Single ride ───────────────────────────────────────────────────────


@router.get(
    "/{ride_id}",
    response_model=RideEnvelope,
    summary="Get ride details",
)
@limiter.limit(settings.rate_limit)
async def get_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).get(actor, ride_id)
    return _envelope(ride, "Ride retrieved successfully")


@router.patch(
    "/{ride_id}/accept",
    response_model=RideEnvelope,
    summary="Accept a pending ride",
    description="Only one driver can win a given ride; later callers get 409.",
)
@limiter.limit(settings.rate_limit)
async def accept_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).accept(actor, ride_id)
    return _envelope(ride, "Ride accepted successfully")


@router.patch(
    "/{ride_id}/start",
    response_model=RideEnvelope,
    summary="Start an accepted ride",
)
@limiter.limit(settings.rate_limit)
async def start_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).start(actor, ride_id)
    return _envelope(ride, "Ride started successfully")


@router.patch(
    "/{ride_id}/complete",
    response_model=RideEnvelope,
    summary="Complete a ride in progress",
)
@limiter.limit(settings.rate_limit)
async def complete_ride(
    request: Request,
    ride_id: int,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).complete(actor, ride_id)
    return _envelope(ride, "Ride completed successfully")


@router.patch(
    "/{ride_id}/cancel",
    response_model=RideEnvelope,
    summary="Cancel a ride",
    description=(
        "Pending or accepted rides only. The passenger may cancel either; "
        "the assigned driver only an accepted one."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: int,
    body: Optional[CancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    ride = await RideLifecycleManager(db).cancel(actor, ride_id, reason)
    return _envelope(ride, "Ride cancelled successfully")


@router.patch(
    "/{ride_id}/rate",
    response_model=RideEnvelope,
    summary="Rate a completed ride",
)
@limiter.limit(settings.rate_limit)
async def rate_ride(
    request: Request,
    ride_id: int,
    body: RateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    ride = await RideLifecycleManager(db).rate(actor, ride_id, body.rating)
    return _envelope(ride, "Ride rated successfully")
