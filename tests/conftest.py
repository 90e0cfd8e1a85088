"""
Shared test fixtures.

Each test gets its own SQLite file database (via aiosqlite) built from the
production models, so the partial unique indexes and check constraints are
the real ones.  A file rather than ``:memory:`` lets concurrent sessions
hold separate connections, which the race tests rely on.  No Docker,
PostgreSQL or Redis needed.
"""

from typing import AsyncGenerator, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ridehail.domain.entities import Actor
from ridehail.domain.enums import ActorRole
from ridehail.infrastructure.database import Base
from ridehail.infrastructure.models import DriverModel, PassengerModel
from ridehail.infrastructure.tokens import create_access_token

# Lahore city centre
CENTRE_LNG, CENTRE_LAT = 74.3587, 31.5204

# ~200 m of latitude
LAT_200M = 0.0018


def passenger(actor_id: int) -> Actor:
    return Actor(actor_id, ActorRole.PASSENGER)


def driver(actor_id: int) -> Actor:
    return Actor(actor_id, ActorRole.DRIVER)


def auth(actor: Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(actor)}"}


def ride_request(
    lng: float = CENTRE_LNG,
    lat: float = CENTRE_LAT,
    *,
    drop: Optional[tuple[float, float]] = None,
    **overrides,
) -> dict:
    """A valid ride-creation payload picking up at ``(lng, lat)``."""
    drop_lng, drop_lat = drop or (74.3436, 31.5102)
    body = {
        "pickup_location": {
            "address": "Data Darbar, Ravi Road",
            "city": "Lahore",
            "coordinates": [lng, lat],
        },
        "drop_location": {
            "address": "Liberty Market, Gulberg III",
            "city": "Lahore",
            "coordinates": [drop_lng, drop_lat],
        },
        "fare": 268,
        "distance": 5.2,
        "duration": 15,
        "payment_method": "cash",
    }
    body.update(overrides)
    return body


PASSENGERS = [
    {"name": "Ayesha Khan", "email": "ayesha@example.com"},
    {"name": "Bilal Ahmed", "email": "bilal@example.com"},
    {"name": "Fatima Malik", "email": "fatima@example.com"},
]

DRIVERS = [
    {"name": "Imran Shah", "email": "imran@example.com", "vehicle_type": "bike",
     "vehicle_make": "Honda", "vehicle_model": "CD 70",
     "vehicle_number_plate": "lea-1234", "vehicle_capacity": 1},
    {"name": "Nadia Hussain", "email": "nadia@example.com", "vehicle_type": "car",
     "vehicle_make": "Toyota", "vehicle_model": "Corolla",
     "vehicle_number_plate": "LEC-5678", "vehicle_capacity": 4},
    {"name": "Zain Abbas", "email": "zain@example.com", "vehicle_type": "rickshaw",
     "vehicle_make": "Sazgar", "vehicle_model": "Auto",
     "vehicle_number_plate": "LER-9012", "vehicle_capacity": 3},
    {"name": "Omar Farooq", "email": "omar@example.com", "vehicle_type": "car",
     "vehicle_make": "Suzuki", "vehicle_model": "Alto",
     "vehicle_number_plate": "LED-3456", "vehicle_capacity": 4},
    {"name": "Hina Javed", "email": "hina@example.com", "vehicle_type": "car",
     "vehicle_make": "Honda", "vehicle_model": "City",
     "vehicle_number_plate": "LEE-7890", "vehicle_capacity": 4},
]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'rides.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker:
    """Session factory over a database seeded with passengers 1-3, drivers 1-5."""
    factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with factory() as session:
        session.add_all([PassengerModel(**p) for p in PASSENGERS])
        session.add_all([DriverModel(**d) for d in DRIVERS])
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient against the real app, with the DB session overridden."""
    from ridehail.api.app import create_app
    from ridehail.api.dependencies import get_db
    from ridehail.api.middleware import limiter

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    limiter.enabled = True
