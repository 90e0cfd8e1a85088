"""
Dispatch Query Engine
=====================

Answers "which pending rides are near this driver".

Algorithm
---------
1. Validate the point and clamp the radius (default 5 km, max 20 km).
2. Reject the caller if it is not a driver, or already holds an active
   ride -- checked before any geo work so the driver gets a clear reason.
3. Turn ``(point, radius)`` into a disk of H3 cells and fetch pending rides
   whose ``pickup_cell`` is in it (indexed look-up).
4. Refine with exact Haversine distance and drop anything outside the radius.
5. Rank by ascending distance; equidistant requests are served
   first-come-first-served (``created_at``, then ``id``).

The query is read-only and takes no locks.  A ride returned here may be
accepted by another driver a moment later; the subsequent ``accept`` then
fails with ``Conflict``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ridehail.config import settings
from ridehail.domain.authorization import Action, authorize
from ridehail.domain.distance import haversine_m
from ridehail.domain.entities import Actor, GeoPoint
from ridehail.domain.geo_index import covering_cells
from ridehail.domain.validation import validate_search
from ridehail.infrastructure.models import RideModel
from ridehail.infrastructure.repositories import RideRepository
from ridehail.services.lifecycle import DRIVER_BUSY, active_ride_conflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyRide:
    ride: RideModel
    distance_m: float


@dataclass(frozen=True)
class NearbySearch:
    point: GeoPoint
    radius_m: int
    rides: list[NearbyRide]


class DispatchQueryEngine:
    def __init__(self, session: AsyncSession, *, h3_resolution: Optional[int] = None):
        self.rides = RideRepository(session)
        self.h3_resolution = h3_resolution or settings.h3_resolution

    async def find_nearby_pending(
        self,
        actor: Actor,
        longitude: Any,
        latitude: Any,
        radius_m: Any = None,
    ) -> NearbySearch:
        point, radius = validate_search(
            longitude,
            latitude,
            radius_m,
            default_radius_m=settings.default_search_radius_m,
            max_radius_m=settings.max_search_radius_m,
        )
        authorize(actor, Action.FIND_NEARBY)

        active = await self.rides.get_active_for_driver(actor.actor_id)
        if active is not None:
            raise active_ride_conflict(active, DRIVER_BUSY)

        cells = covering_cells(point, radius, self.h3_resolution)
        candidates = await self.rides.get_pending_in_cells(cells)

        nearby: list[NearbyRide] = []
        for ride in candidates:
            d = haversine_m(point.latitude, point.longitude, ride.pickup_lat, ride.pickup_lng)
            if d <= radius:
                nearby.append(NearbyRide(ride=ride, distance_m=d))

        nearby.sort(key=lambda n: (n.distance_m, n.ride.created_at, n.ride.id))

        logger.debug(
            "Nearby search for driver %d: %d cells, %d candidates, %d within %dm",
            actor.actor_id,
            len(cells),
            len(candidates),
            len(nearby),
            radius,
        )
        return NearbySearch(point=point, radius_m=radius, rides=nearby)
