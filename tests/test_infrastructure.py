"""Tests for the identity tokens, engine options, table constraints and the Redis pool."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ridehail.domain.exceptions import Unauthorized
from ridehail.infrastructure import redis_client
from ridehail.infrastructure.database import engine_options
from ridehail.infrastructure.models import RideModel
from ridehail.infrastructure.tokens import create_access_token, decode_access_token
from ridehail.services.lifecycle import RideLifecycleManager
from tests.conftest import driver, passenger, ride_request


class TestTokens:
    def test_round_trip_keeps_role(self):
        assert decode_access_token(create_access_token(passenger(3))) == passenger(3)
        assert decode_access_token(create_access_token(driver(3))) == driver(3)

    def test_expired(self):
        token = create_access_token(driver(1), expires_delta=timedelta(seconds=-5))
        with pytest.raises(Unauthorized):
            decode_access_token(token)

    def test_garbage(self):
        with pytest.raises(Unauthorized):
            decode_access_token("not-a-jwt")


class TestEngineOptions:
    def test_postgres_pool_is_sized(self):
        opts = engine_options("postgresql+asyncpg://u:p@db/ridehail")
        assert opts["pool_size"] == 20
        assert opts["max_overflow"] == 10
        assert opts["pool_pre_ping"] is True

    def test_sqlite_takes_no_pool_arguments(self):
        opts = engine_options("sqlite+aiosqlite:///./rides.db")
        assert set(opts) == {"echo"}


class TestRedisPool:
    @pytest.mark.asyncio
    async def test_pool_is_lazy_and_closable(self, monkeypatch):
        pool = MagicMock()
        pool.disconnect = AsyncMock()
        from_url = MagicMock(return_value=pool)
        monkeypatch.setattr(redis_client, "_pool", None)
        monkeypatch.setattr(redis_client.aioredis.ConnectionPool, "from_url", from_url)
        monkeypatch.setattr(redis_client.aioredis, "Redis", MagicMock())

        await redis_client.get_redis()
        await redis_client.get_redis()
        from_url.assert_called_once()

        await redis_client.close_redis()
        pool.disconnect.assert_awaited_once()
        assert redis_client._pool is None


class TestRideConstraints:
    """The store rejects a driver without a vehicle snapshot, and the reverse."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "values",
        [
            {"driver_id": 1},
            {"vehicle_snapshot": {"type": "car", "make": "Toyota", "model": "Corolla",
                                  "number_plate": "LEC-5678", "capacity": 4}},
        ],
    )
    async def test_driver_and_vehicle_go_together(self, db_session, values):
        ride = await RideLifecycleManager(db_session).create(passenger(1), ride_request())
        await db_session.commit()

        with pytest.raises(IntegrityError):
            await db_session.execute(
                update(RideModel).where(RideModel.id == ride.id).values(**values)
            )
        await db_session.rollback()

    @pytest.mark.asyncio
    async def test_rating_outside_range(self, db_session):
        ride = await RideLifecycleManager(db_session).create(passenger(1), ride_request())
        await db_session.commit()

        with pytest.raises(IntegrityError):
            await db_session.execute(
                update(RideModel).where(RideModel.id == ride.id).values(passenger_rating=6)
            )
        await db_session.rollback()
