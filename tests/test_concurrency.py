"""
Concurrency safety tests.

Demonstrates:
1. N drivers racing for one pending ride: exactly one wins.
2. Concurrent bookings by one passenger leave a single active ride.
3. One driver accepting two rides at once ends up holding only one.
4. Simultaneous ratings from the same side: only one sticks.
5. Distributed lock prevents simultaneous acquire.

Each caller gets its own session (and connection) on a shared SQLite file,
mirroring independent API requests.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from ridehail.domain.enums import PASSENGER_ACTIVE_STATUSES, RideStatus
from ridehail.domain.exceptions import ActiveRideExists, Conflict
from ridehail.infrastructure.locks import DistributedLock, LockNotAcquired
from ridehail.infrastructure.models import RideModel
from ridehail.services.lifecycle import RideLifecycleManager
from tests.conftest import driver, passenger, ride_request


async def _attempt(session_factory, op):
    """Run *op* in its own unit of work; return the ride or the Conflict."""
    async with session_factory() as session:
        try:
            result = await op(RideLifecycleManager(session))
            await session.commit()
            return result
        except Conflict as exc:
            await session.rollback()
            return exc


async def _setup(session_factory, op):
    async with session_factory() as session:
        result = await op(RideLifecycleManager(session))
        await session.commit()
        return result


def _split(results):
    wins = [r for r in results if isinstance(r, RideModel)]
    losses = [r for r in results if isinstance(r, Conflict)]
    return wins, losses


class TestAcceptRace:
    @pytest.mark.asyncio
    async def test_exactly_one_driver_wins(self, session_factory):
        ride = await _setup(
            session_factory, lambda m: m.create(passenger(1), ride_request())
        )

        results = await asyncio.gather(
            *(
                _attempt(session_factory, lambda m, d=d: m.accept(driver(d), ride.id))
                for d in range(1, 6)
            )
        )
        wins, losses = _split(results)

        assert len(wins) == 1
        assert len(losses) == 4
        assert all(loss.ride_id == ride.id for loss in losses)
        assert all(loss.created_at is not None for loss in losses)

        async with session_factory() as session:
            stored = await session.get(RideModel, ride.id)
        assert stored.status == RideStatus.ACCEPTED
        assert stored.driver_id == wins[0].driver_id
        assert stored.vehicle_snapshot is not None

    @pytest.mark.asyncio
    async def test_one_driver_two_rides(self, session_factory):
        first = await _setup(
            session_factory, lambda m: m.create(passenger(1), ride_request())
        )
        second = await _setup(
            session_factory, lambda m: m.create(passenger(2), ride_request())
        )

        results = await asyncio.gather(
            _attempt(session_factory, lambda m: m.accept(driver(1), first.id)),
            _attempt(session_factory, lambda m: m.accept(driver(1), second.id)),
        )
        wins, losses = _split(results)

        assert len(wins) == 1
        assert len(losses) == 1
        assert isinstance(losses[0], ActiveRideExists)
        assert losses[0].ride_id == wins[0].id

        async with session_factory() as session:
            held = (
                await session.execute(
                    select(RideModel).where(RideModel.driver_id == 1)
                )
            ).scalars().all()
        assert [r.id for r in held] == [wins[0].id]


class TestBookingRace:
    @pytest.mark.asyncio
    async def test_single_active_ride_per_passenger(self, session_factory):
        results = await asyncio.gather(
            *(
                _attempt(session_factory, lambda m: m.create(passenger(1), ride_request()))
                for _ in range(3)
            )
        )
        wins, losses = _split(results)

        assert len(wins) == 1
        assert len(losses) == 2
        for loss in losses:
            assert isinstance(loss, ActiveRideExists)
            assert loss.ride_id == wins[0].id

        async with session_factory() as session:
            active = (
                await session.execute(
                    select(RideModel).where(
                        RideModel.passenger_id == 1,
                        RideModel.status.in_(PASSENGER_ACTIVE_STATUSES),
                    )
                )
            ).scalars().all()
        assert len(active) == 1


class TestRatingRace:
    @pytest.mark.asyncio
    async def test_only_one_rating_sticks(self, session_factory):
        async def _completed(m):
            ride = await m.create(passenger(1), ride_request())
            await m.accept(driver(1), ride.id)
            await m.start(driver(1), ride.id)
            return await m.complete(driver(1), ride.id)

        ride = await _setup(session_factory, _completed)

        results = await asyncio.gather(
            _attempt(session_factory, lambda m: m.rate(passenger(1), ride.id, 5)),
            _attempt(session_factory, lambda m: m.rate(passenger(1), ride.id, 4)),
        )
        wins, losses = _split(results)

        assert len(wins) == 1
        assert len(losses) == 1

        async with session_factory() as session:
            stored = await session.get(RideModel, ride.id)
        assert stored.passenger_rating == wins[0].passenger_rating


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "ride_expiry", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:ride_expiry", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=None)

        lock = DistributedLock(mock_redis, "ride_expiry", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_checks_ownership(self):
        mock_redis = AsyncMock()
        mock_redis.eval = AsyncMock(return_value=0)

        lock = DistributedLock(mock_redis, "ride_expiry")
        assert await lock.release() is False
        mock_redis.eval.assert_awaited_once()
        assert mock_redis.eval.await_args.args[1:] == (1, "lock:ride_expiry", lock.token)

    @pytest.mark.asyncio
    async def test_context_manager_releases(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        async with DistributedLock(mock_redis, "ride_expiry"):
            mock_redis.eval.assert_not_awaited()
        mock_redis.eval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "ride_expiry", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass
