"""
Rating recorder.

Sits behind ``RideLifecycleManager.rate`` once the manager has established
that the ride exists, is completed and the caller is a party to it.  The
only thing left to guarantee is that each side rates at most once, which
is done with a conditional update on the rating column being NULL.

Driver aggregates (average rating, trip count) are not maintained
here.
"""

from __future__ import annotations

import logging

from ridehail.domain.entities import Actor
from ridehail.domain.enums import ActorRole, RideStatus
from ridehail.domain.exceptions import Conflict
from ridehail.infrastructure.models import RideModel
from ridehail.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)

RATING_FIELDS: dict[ActorRole, str] = {
    ActorRole.PASSENGER: "passenger_rating",
    ActorRole.DRIVER: "driver_rating",
}


def rating_field_for(role: ActorRole) -> str:
    """Column holding the rating *given by* an actor of this role."""
    return RATING_FIELDS[ActorRole(role)]


class RatingRecorder:
    def __init__(self, rides: RideRepository):
        self.rides = rides

    async def record(self, ride: RideModel, actor: Actor, rating: int) -> RideModel:
        field = rating_field_for(actor.role)
        if getattr(ride, field) is not None:
            raise Conflict(
                "You have already rated this ride",
                ride_id=ride.id,
                status=RideStatus(ride.status).value,
                created_at=ride.created_at,
            )

        updated = await self.rides.set_rating_once(ride.id, field=field, rating=rating)
        if updated is None:
            # Lost to a concurrent rating from the same side
            current = await self.rides.get_by_id(ride.id, fresh=True)
            raise Conflict(
                "You have already rated this ride",
                ride_id=ride.id,
                status=RideStatus(current.status).value if current else None,
                created_at=current.created_at if current else None,
            )

        logger.info(
            "Ride %d rated %d by %s %d", ride.id, rating, actor.role.value, actor.actor_id
        )
        return updated
