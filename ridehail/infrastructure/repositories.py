"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.

Every status change goes through ``RideRepository.transition``: a single
``UPDATE ... WHERE id = :id AND status IN (:expected)`` whose row count
tells the caller whether it won.  Nothing here reads a row and writes it
back.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DriverModel, PassengerModel, RideModel
from ridehail.domain.entities import RideDraft, VehicleSnapshot
from ridehail.domain.enums import (
    DRIVER_ACTIVE_STATUSES,
    PASSENGER_ACTIVE_STATUSES,
    CancelledBy,
    RideStatus,
)


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_ride(
        self, *, passenger_id: int, draft: RideDraft, pickup_cell: str
    ) -> RideModel:
        ride = RideModel(
            passenger_id=passenger_id,
            pickup_address=draft.pickup.address,
            pickup_city=draft.pickup.city,
            pickup_lng=draft.pickup.point.longitude,
            pickup_lat=draft.pickup.point.latitude,
            pickup_cell=pickup_cell,
            drop_address=draft.drop.address,
            drop_city=draft.drop.city,
            drop_lng=draft.drop.point.longitude,
            drop_lat=draft.drop.point.latitude,
            fare=draft.fare,
            distance=draft.distance,
            duration=draft.duration,
            payment_method=draft.payment_method,
            vehicle_type=draft.vehicle_type,
            notes=draft.notes,
            estimated_arrival=draft.estimated_arrival,
            route_polyline=draft.route_polyline,
            status=RideStatus.PENDING,
        )
        self.session.add(ride)
        await self.session.flush()
        # server-side timestamps and the joined passenger
        return await self.get_by_id(ride.id, fresh=True)

    async def get_by_id(
        self, ride_id: int, *, fresh: bool = False
    ) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id, populate_existing=fresh)

    async def get_active_for_passenger(
        self, passenger_id: int
    ) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.passenger_id == passenger_id,
                RideModel.status.in_(PASSENGER_ACTIVE_STATUSES),
            )
            .order_by(RideModel.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_active_for_driver(self, driver_id: int) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.driver_id == driver_id,
                RideModel.status.in_(DRIVER_ACTIVE_STATUSES),
            )
            .order_by(RideModel.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    def _owned_by(
        self, *, passenger_id: Optional[int], driver_id: Optional[int]
    ) -> Any:
        if passenger_id is not None:
            return RideModel.passenger_id == passenger_id
        return RideModel.driver_id == driver_id

    async def list_rides(
        self,
        *,
        passenger_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[RideStatus] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> list[RideModel]:
        query = select(RideModel).where(
            self._owned_by(passenger_id=passenger_id, driver_id=driver_id)
        )
        if status is not None:
            query = query.where(RideModel.status == status)
        result = await self.session.execute(
            query.order_by(RideModel.created_at.desc(), RideModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_rides(
        self,
        *,
        passenger_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        status: Optional[RideStatus] = None,
    ) -> int:
        query = (
            select(func.count())
            .select_from(RideModel)
            .where(self._owned_by(passenger_id=passenger_id, driver_id=driver_id))
        )
        if status is not None:
            query = query.where(RideModel.status == status)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def get_pending_in_cells(self, cells: Sequence[str]) -> list[RideModel]:
        if not cells:
            return []
        result = await self.session.execute(
            select(RideModel)
            .where(
                RideModel.status == RideStatus.PENDING,
                RideModel.pickup_cell.in_(list(cells)),
            )
            .order_by(RideModel.created_at, RideModel.id)
        )
        return list(result.scalars().all())

    async def transition(
        self,
        ride_id: int,
        *,
        from_statuses: Sequence[RideStatus],
        to_status: RideStatus,
        assigned_to: Optional[int] = None,
        require_unassigned: bool = False,
        **values: Any,
    ) -> Optional[RideModel]:
        """
        Atomic conditional update.

        Moves the ride to *to_status* only if its stored status is still one
        of *from_statuses* (and, when given, it is still assigned to
        *assigned_to* / still unassigned).  Returns the refreshed ride, or
        ``None`` when the precondition no longer held.
        """
        conditions = [
            RideModel.id == ride_id,
            RideModel.status.in_(list(from_statuses)),
        ]
        if assigned_to is not None:
            conditions.append(RideModel.driver_id == assigned_to)
        if require_unassigned:
            conditions.append(RideModel.driver_id.is_(None))

        result = await self.session.execute(
            update(RideModel)
            .where(*conditions)
            .values(status=to_status, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.get_by_id(ride_id, fresh=True)

    async def accept(
        self, ride_id: int, *, driver_id: int, vehicle: VehicleSnapshot
    ) -> Optional[RideModel]:
        """``pending -> accepted``; only one concurrent caller can win."""
        return await self.transition(
            ride_id,
            from_statuses=[RideStatus.PENDING],
            to_status=RideStatus.ACCEPTED,
            require_unassigned=True,
            driver_id=driver_id,
            vehicle_snapshot=vehicle.to_dict(),
        )

    async def set_rating_once(
        self, ride_id: int, *, field: str, rating: int
    ) -> Optional[RideModel]:
        """Write *field* only while the ride is completed and it is unset."""
        column = getattr(RideModel, field)
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.id == ride_id,
                RideModel.status == RideStatus.COMPLETED,
                column.is_(None),
            )
            .values({field: rating, "updated_at": func.now()})
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        return await self.get_by_id(ride_id, fresh=True)

    async def expire_pending_before(self, cutoff: datetime, reason: str) -> int:
        """Cancel every pending ride created before *cutoff*; returns the count."""
        result = await self.session.execute(
            update(RideModel)
            .where(
                RideModel.status == RideStatus.PENDING,
                RideModel.created_at < cutoff,
            )
            .values(
                status=RideStatus.CANCELLED,
                cancellation_reason=reason,
                cancelled_by=CancelledBy.SYSTEM.value,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def get_vehicle_snapshot(
        self, driver_id: int
    ) -> Optional[VehicleSnapshot]:
        driver = await self.get_by_id(driver_id)
        if driver is None:
            return None
        return VehicleSnapshot(
            type=driver.vehicle_type,
            make=driver.vehicle_make,
            model=driver.vehicle_model,
            number_plate=driver.vehicle_number_plate.upper(),
            capacity=driver.vehicle_capacity,
        )


class PassengerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, passenger_id: int) -> Optional[PassengerModel]:
        return await self.session.get(PassengerModel, passenger_id)
