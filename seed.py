"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 6 sample passengers
  - 4 sample drivers (with vehicles) around Lahore city centre
  - 5 sample rides, driven through the lifecycle manager so every
    invariant holds: 2 pending, 1 accepted, 1 completed and rated,
    1 cancelled
and prints a bearer token for every passenger and driver.
"""

import asyncio

from sqlalchemy import text

from ridehail.domain.entities import Actor
from ridehail.domain.enums import ActorRole
from ridehail.infrastructure.database import async_session_factory, engine
from ridehail.infrastructure.models import DriverModel, PassengerModel
from ridehail.infrastructure.tokens import create_access_token
from ridehail.services.lifecycle import RideLifecycleManager

# Lahore city centre (approx)
CENTRE_LNG, CENTRE_LAT = 74.3587, 31.5204


PASSENGERS = [
    {"name": "Ayesha Khan", "email": "ayesha@example.com"},
    {"name": "Bilal Ahmed", "email": "bilal@example.com"},
    {"name": "Fatima Malik", "email": "fatima@example.com"},
    {"name": "Hamza Raza", "email": "hamza@example.com"},
    {"name": "Sana Iqbal", "email": "sana@example.com"},
    {"name": "Usman Tariq", "email": "usman@example.com"},
]

DRIVERS = [
    {"name": "Imran Shah", "email": "imran@example.com", "vehicle_type": "bike",
     "vehicle_make": "Honda", "vehicle_model": "CD 70", "vehicle_number_plate": "LEA-1234", "vehicle_capacity": 1},
    {"name": "Nadia Hussain", "email": "nadia@example.com", "vehicle_type": "car",
     "vehicle_make": "Toyota", "vehicle_model": "Corolla", "vehicle_number_plate": "LEC-5678", "vehicle_capacity": 4},
    {"name": "Zain Abbas", "email": "zain@example.com", "vehicle_type": "rickshaw",
     "vehicle_make": "Sazgar", "vehicle_model": "Auto", "vehicle_number_plate": "LER-9012", "vehicle_capacity": 3},
    {"name": "Omar Farooq", "email": "omar@example.com", "vehicle_type": "car",
     "vehicle_make": "Suzuki", "vehicle_model": "Alto", "vehicle_number_plate": "LED-3456", "vehicle_capacity": 4},
]


def _ride(pickup, drop, fare, distance, duration, payment_method="cash", vehicle_type="bike"):
    return {
        "pickup_location": {"address": pickup[0], "city": "Lahore", "coordinates": list(pickup[1])},
        "drop_location": {"address": drop[0], "city": "Lahore", "coordinates": list(drop[1])},
        "fare": fare,
        "distance": distance,
        "duration": duration,
        "payment_method": payment_method,
        "vehicle_type": vehicle_type,
    }


LIBERTY = ("Liberty Market, Gulberg III", (74.3436, 31.5102))
MALL_ROAD = ("The Mall Road, Anarkali", (74.3145, 31.5580))
DHA = ("DHA Phase 5, Y Block", (74.4089, 31.4697))
JOHAR = ("Johar Town, Block G", (74.2728, 31.4697))
CENTRE = ("Data Darbar, Ravi Road", (CENTRE_LNG, CENTRE_LAT))
AIRPORT = ("Allama Iqbal International Airport", (74.4036, 31.5216))


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM passengers"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Passengers ────────────────────────────────────────────────
        passenger_models = [PassengerModel(**p) for p in PASSENGERS]
        session.add_all(passenger_models)
        await session.flush()
        print(f"  Created {len(passenger_models)} passengers")

        # ── Drivers ───────────────────────────────────────────────────
        driver_models = [DriverModel(**d) for d in DRIVERS]
        session.add_all(driver_models)
        await session.flush()
        print(f"  Created {len(driver_models)} drivers")

        passengers = [Actor(p.id, ActorRole.PASSENGER) for p in passenger_models]
        drivers = [Actor(d.id, ActorRole.DRIVER) for d in driver_models]
        manager = RideLifecycleManager(session)

        # ── Rides ─────────────────────────────────────────────────────
        # Pending, waiting for a driver
        await manager.create(passengers[0], _ride(CENTRE, LIBERTY, 268, 5.2, 15))
        await manager.create(
            passengers[1], _ride(MALL_ROAD, DHA, 640, 14.8, 35, "wallet", "car")
        )

        # Accepted, driver on the way
        accepted = await manager.create(
            passengers[2], _ride(LIBERTY, AIRPORT, 520, 9.6, 24, "card", "car")
        )
        await manager.accept(drivers[1], accepted.id)

        # Completed and rated by both sides
        done = await manager.create(passengers[3], _ride(JOHAR, LIBERTY, 310, 7.1, 20))
        await manager.accept(drivers[0], done.id)
        await manager.start(drivers[0], done.id)
        await manager.complete(drivers[0], done.id)
        await manager.rate(passengers[3], done.id, 5)
        await manager.rate(drivers[0], done.id, 4)

        # Cancelled by the passenger before pickup
        dropped = await manager.create(
            passengers[4], _ride(AIRPORT, MALL_ROAD, 450, 11.3, 28, "cash", "rickshaw")
        )
        await manager.cancel(passengers[4], dropped.id, "Flight delayed")
        print("  Created 5 rides")

        await session.commit()

        print("\nBearer tokens:")
        for actor, model in zip(passengers, passenger_models):
            print(f"  passenger {model.email:<22} {create_access_token(actor)}")
        for actor, model in zip(drivers, driver_models):
            print(f"  driver    {model.email:<22} {create_access_token(actor)}")
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
