"""
Ride Lifecycle Manager
======================

Owns the ride state machine::

    pending      --accept(driver)-->          accepted
    pending      --cancel(owner)-->           cancelled
    accepted     --start(driver)-->           in-progress
    accepted     --cancel(owner/driver)-->    cancelled
    in-progress  --complete(driver)-->        completed

Every operation runs validation, then the authorization gate, then the
state checks, and finally one conditional UPDATE in the store.

Concurrency safety
------------------
* **Conditional updates** -- each transition is ``UPDATE ... WHERE status
  IN (expected)``; when two drivers race for the same pending ride exactly
  one update matches a row and the other caller gets ``Conflict``.
* **Partial unique indexes** -- "one active ride per passenger / driver" is
  also enforced by the store.  A concurrent second writer fails with
  ``IntegrityError``; the session is rolled back and the caller gets
  ``Conflict`` naming the ride that won.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.config import settings
from ridehail.domain.authorization import Action, authorize
from ridehail.domain.entities import Actor, ensure_transition
from ridehail.domain.enums import (
    DEFAULT_CANCELLATION_REASON,
    CancelledBy,
    RideStatus,
)
from ridehail.domain.exceptions import (
    ActiveRideExists,
    InvalidStateTransition,
    NotFound,
)
from ridehail.domain.geo_index import pickup_cell
from ridehail.domain.validation import (
    validate_cancellation_reason,
    validate_rating,
    validate_ride_request,
)
from ridehail.infrastructure.models import RideModel
from ridehail.infrastructure.repositories import (
    DriverRepository,
    PassengerRepository,
    RideRepository,
)
from ridehail.services.rating import RatingRecorder

logger = logging.getLogger(__name__)

PASSENGER_BUSY = (
    "You already have an active ride. "
    "Please complete or cancel it before booking a new one."
)
DRIVER_BUSY = (
    "You already have an active ride. Complete it before accepting new rides."
)


@dataclass
class RidePage:
    rides: list[RideModel]
    current_page: int
    total_pages: int
    total_rides: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.current_page > 1


def active_ride_conflict(ride: RideModel, message: str) -> ActiveRideExists:
    return ActiveRideExists(
        message,
        ride_id=ride.id,
        status=RideStatus(ride.status).value,
        created_at=ride.created_at,
    )


class RideLifecycleManager:
    def __init__(self, session: AsyncSession, *, h3_resolution: Optional[int] = None):
        self.session = session
        self.rides = RideRepository(session)
        self.drivers = DriverRepository(session)
        self.passengers = PassengerRepository(session)
        self.ratings = RatingRecorder(self.rides)
        self.h3_resolution = h3_resolution or settings.h3_resolution

    # ── Helpers ───────────────────────────────────────────────────────

    async def _get_or_404(self, ride_id: int) -> RideModel:
        ride = await self.rides.get_by_id(ride_id)
        if ride is None:
            raise NotFound("Ride not found")
        return ride

    async def _lost_race(self, ride_id: int, action: str) -> InvalidStateTransition:
        """Build the Conflict for a conditional update that matched no row."""
        current = await self.rides.get_by_id(ride_id, fresh=True)
        status = RideStatus(current.status).value if current else None
        logger.info("Ride %d changed concurrently (now %s); %s rejected", ride_id, status, action)
        return InvalidStateTransition(
            f"Ride is already {status} and cannot be {action}",
            ride_id=ride_id,
            status=status,
            created_at=current.created_at if current else None,
        )

    # ── Passenger operations ──────────────────────────────────────────

    async def create(self, actor: Actor, request: Mapping[str, Any]) -> RideModel:
        draft = validate_ride_request(request)
        authorize(actor, Action.CREATE)

        if await self.passengers.get_by_id(actor.actor_id) is None:
            raise NotFound("Passenger not found")

        existing = await self.rides.get_active_for_passenger(actor.actor_id)
        if existing is not None:
            raise active_ride_conflict(existing, PASSENGER_BUSY)

        try:
            ride = await self.rides.create_ride(
                passenger_id=actor.actor_id,
                draft=draft,
                pickup_cell=pickup_cell(draft.pickup.point, self.h3_resolution),
            )
        except IntegrityError:
            await self.session.rollback()
            existing = await self.rides.get_active_for_passenger(actor.actor_id)
            if existing is None:
                raise
            logger.info(
                "Concurrent booking for passenger %d lost to ride %d",
                actor.actor_id,
                existing.id,
            )
            raise active_ride_conflict(existing, PASSENGER_BUSY) from None

        logger.info("Ride %d created by passenger %d", ride.id, actor.actor_id)
        return ride

    # ── Driver operations ─────────────────────────────────────────────

    async def accept(self, actor: Actor, ride_id: int) -> RideModel:
        authorize(actor, Action.ACCEPT)
        ride = await self._get_or_404(ride_id)
        ensure_transition(
            ride.id, ride.status, RideStatus.ACCEPTED, "accepted",
            created_at=ride.created_at,
        )

        active = await self.rides.get_active_for_driver(actor.actor_id)
        if active is not None:
            raise active_ride_conflict(active, DRIVER_BUSY)

        vehicle = await self.drivers.get_vehicle_snapshot(actor.actor_id)
        if vehicle is None:
            raise NotFound("Driver not found")

        try:
            updated = await self.rides.accept(
                ride_id, driver_id=actor.actor_id, vehicle=vehicle
            )
        except IntegrityError:
            await self.session.rollback()
            active = await self.rides.get_active_for_driver(actor.actor_id)
            if active is None:
                raise
            raise active_ride_conflict(active, DRIVER_BUSY) from None

        if updated is None:
            raise await self._lost_race(ride_id, "accepted")

        logger.info("Ride %d accepted by driver %d", ride_id, actor.actor_id)
        return updated

    async def start(self, actor: Actor, ride_id: int) -> RideModel:
        ride = await self._get_or_404(ride_id)
        authorize(actor, Action.START, ride)
        ensure_transition(
            ride.id, ride.status, RideStatus.IN_PROGRESS, "started",
            created_at=ride.created_at,
        )

        updated = await self.rides.transition(
            ride_id,
            from_statuses=[RideStatus.ACCEPTED],
            to_status=RideStatus.IN_PROGRESS,
            assigned_to=actor.actor_id,
            started_at=func.now(),
        )
        if updated is None:
            raise await self._lost_race(ride_id, "started")

        logger.info("Ride %d started by driver %d", ride_id, actor.actor_id)
        return updated

    async def complete(self, actor: Actor, ride_id: int) -> RideModel:
        ride = await self._get_or_404(ride_id)
        authorize(actor, Action.COMPLETE, ride)
        ensure_transition(
            ride.id, ride.status, RideStatus.COMPLETED, "completed",
            created_at=ride.created_at,
        )

        updated = await self.rides.transition(
            ride_id,
            from_statuses=[RideStatus.IN_PROGRESS],
            to_status=RideStatus.COMPLETED,
            assigned_to=actor.actor_id,
            completed_at=func.now(),
        )
        if updated is None:
            raise await self._lost_race(ride_id, "completed")

        logger.info("Ride %d completed by driver %d", ride_id, actor.actor_id)
        return updated

    # ── Either party ──────────────────────────────────────────────────

    async def cancel(
        self, actor: Actor, ride_id: int, reason: Optional[str] = None
    ) -> RideModel:
        reason = validate_cancellation_reason(reason)
        ride = await self._get_or_404(ride_id)
        authorize(actor, Action.CANCEL, ride)
        ensure_transition(
            ride.id, ride.status, RideStatus.CANCELLED, "cancelled",
            created_at=ride.created_at,
        )

        if actor.is_passenger:
            # The owner may cancel whether or not a driver got there first
            updated = await self.rides.transition(
                ride_id,
                from_statuses=[RideStatus.PENDING, RideStatus.ACCEPTED],
                to_status=RideStatus.CANCELLED,
                cancellation_reason=reason or DEFAULT_CANCELLATION_REASON,
                cancelled_by=CancelledBy.PASSENGER.value,
            )
        else:
            updated = await self.rides.transition(
                ride_id,
                from_statuses=[RideStatus.ACCEPTED],
                to_status=RideStatus.CANCELLED,
                assigned_to=actor.actor_id,
                cancellation_reason=reason or DEFAULT_CANCELLATION_REASON,
                cancelled_by=CancelledBy.DRIVER.value,
            )
        if updated is None:
            raise await self._lost_race(ride_id, "cancelled")

        logger.info(
            "Ride %d cancelled by %s %d", ride_id, actor.role.value, actor.actor_id
        )
        return updated

    async def rate(self, actor: Actor, ride_id: int, rating: Any) -> RideModel:
        rating = validate_rating(rating)
        ride = await self._get_or_404(ride_id)
        if ride.status != RideStatus.COMPLETED:
            raise InvalidStateTransition(
                "Only completed rides can be rated",
                ride_id=ride.id,
                status=RideStatus(ride.status).value,
                created_at=ride.created_at,
            )
        authorize(actor, Action.RATE, ride)
        return await self.ratings.record(ride, actor, rating)

    # ── Reads ─────────────────────────────────────────────────────────

    async def get(self, actor: Actor, ride_id: int) -> RideModel:
        ride = await self._get_or_404(ride_id)
        authorize(actor, Action.READ, ride)
        return ride

    async def active_ride(self, actor: Actor) -> RideModel:
        if actor.is_passenger:
            ride = await self.rides.get_active_for_passenger(actor.actor_id)
        else:
            ride = await self.rides.get_active_for_driver(actor.actor_id)
        if ride is None:
            raise NotFound("No active ride found")
        return ride

    async def list_rides(
        self,
        actor: Actor,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> RidePage:
        page = max(1, page)
        limit = limit or settings.default_page_size
        limit = max(1, min(limit, settings.max_page_size))

        # Unknown filters are ignored rather than rejected
        status_filter: Optional[RideStatus] = None
        if status:
            try:
                status_filter = RideStatus(status)
            except ValueError:
                status_filter = None
        if actor.is_driver and status_filter == RideStatus.PENDING:
            status_filter = None

        owner = (
            {"passenger_id": actor.actor_id}
            if actor.is_passenger
            else {"driver_id": actor.actor_id}
        )
        total = await self.rides.count_rides(status=status_filter, **owner)
        rides = await self.rides.list_rides(
            status=status_filter,
            offset=(page - 1) * limit,
            limit=limit,
            **owner,
        )
        return RidePage(
            rides=rides,
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_rides=total,
        )
